"""Lead drafts, partial updates and stored lead records."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, model_validator

from leadboard.core.enums import LeadOrigin, LeadOutcome, LeadPurpose, LeadStatus, Temperature
from leadboard.models.base import as_utc
from leadboard.schemas.common import Record


class LeadDraft(BaseModel):
    """User-supplied fields for a new lead; id, owner, stage and timestamps are assigned later."""

    name: str = Field(min_length=1, max_length=255)
    temperature: Temperature = Temperature.WARM
    email: str | None = Field(default=None, max_length=320)
    phone: str | None = Field(default=None, max_length=40)
    purpose: LeadPurpose | None = None
    desired_value: Decimal | None = Field(default=None, ge=0, max_digits=14, decimal_places=2)
    origin: LeadOrigin | None = None
    origin_details: str | None = Field(default=None, max_length=255)
    notes: str | None = Field(default=None, max_length=10000)
    property_of_interest: str | None = Field(default=None, max_length=255)
    next_contact_date: date | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name must not be blank")
        return value.strip()


class LeadUpdate(BaseModel):
    """Partial lead update. Only explicitly set fields are written."""

    stage_id: str | None = None
    name: str | None = Field(default=None, min_length=1, max_length=255)
    temperature: Temperature | None = None
    email: str | None = Field(default=None, max_length=320)
    phone: str | None = Field(default=None, max_length=40)
    purpose: LeadPurpose | None = None
    desired_value: Decimal | None = Field(default=None, ge=0, max_digits=14, decimal_places=2)
    origin: LeadOrigin | None = None
    origin_details: str | None = Field(default=None, max_length=255)
    notes: str | None = Field(default=None, max_length=10000)
    property_of_interest: str | None = Field(default=None, max_length=255)
    next_contact_date: date | None = None
    outcome: LeadOutcome | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError("name must not be blank")
        return value.strip() if value is not None else None

    @model_validator(mode="after")
    def required_fields_not_cleared(self) -> LeadUpdate:
        for field in ("name", "temperature"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be cleared")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class LeadRecord(Record):
    id: str
    user_id: str
    stage_id: str
    name: str
    temperature: Temperature
    email: str | None = None
    phone: str | None = None
    purpose: LeadPurpose | None = None
    desired_value: Decimal | None = None
    origin: LeadOrigin | None = None
    origin_details: str | None = None
    notes: str | None = None
    property_of_interest: str | None = None
    next_contact_date: date | None = None
    outcome: LeadOutcome | None = None
    status: LeadStatus
    created_at: datetime
    updated_at: datetime
    last_activity_at: datetime | None = None

    @field_validator("created_at", "updated_at", "last_activity_at")
    @classmethod
    def timestamps_are_aware(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    @property
    def is_active(self) -> bool:
        return self.outcome is None
