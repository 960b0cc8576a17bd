"""Lead event records."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import field_validator

from leadboard.core.enums import LeadEventType
from leadboard.models.base import as_utc
from leadboard.schemas.common import Record


class LeadEventRecord(Record):
    id: str
    user_id: str
    lead_id: str
    event_type: LeadEventType
    details: dict[str, Any] | None = None
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def created_at_is_aware(cls, value: datetime) -> datetime:
        return as_utc(value)
