"""Pipeline stage records."""

from __future__ import annotations

from datetime import datetime

from pydantic import field_validator

from leadboard.models.base import as_utc
from leadboard.schemas.common import Record


class StageRecord(Record):
    id: str
    user_id: str
    name: str
    position: int
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def created_at_is_aware(cls, value: datetime) -> datetime:
        return as_utc(value)
