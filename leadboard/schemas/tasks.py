"""Daily mission task drafts and records."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from leadboard.core.enums import TaskPriority, TaskStatus, TaskType
from leadboard.models.base import as_utc
from leadboard.schemas.common import Record


class TaskDraft(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    due_date: date
    priority: TaskPriority = TaskPriority.MEDIUM
    lead_id: str | None = None


class TaskRecord(Record):
    id: str
    user_id: str
    lead_id: str | None = None
    title: str
    due_date: date
    priority: TaskPriority
    status: TaskStatus
    type: TaskType
    created_at: datetime
    completed_at: datetime | None = None

    @field_validator("created_at", "completed_at")
    @classmethod
    def timestamps_are_aware(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)
