"""Lead model module."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from leadboard.core.enums import LeadStatus, Temperature
from leadboard.models.base import AuditMixin, Base, IdentityMixin, OwnedMixin


class Lead(Base, IdentityMixin, OwnedMixin, AuditMixin):
    __tablename__ = "leads"
    __table_args__ = (
        Index("idx_leads_user_outcome", "user_id", "outcome"),
        Index("idx_leads_user_stage", "user_id", "stage_id"),
    )

    stage_id: Mapped[str] = mapped_column(ForeignKey("kanban_stages.id", ondelete="RESTRICT"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    temperature: Mapped[str] = mapped_column(String(16), default=Temperature.WARM.value, nullable=False)
    email: Mapped[str | None] = mapped_column(String(320))
    phone: Mapped[str | None] = mapped_column(String(40))
    purpose: Mapped[str | None] = mapped_column(String(16))
    desired_value: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    origin: Mapped[str | None] = mapped_column(String(32))
    origin_details: Mapped[str | None] = mapped_column(String(255))
    notes: Mapped[str | None] = mapped_column(Text)
    property_of_interest: Mapped[str | None] = mapped_column(String(255))
    next_contact_date: Mapped[date | None] = mapped_column(Date)
    outcome: Mapped[str | None] = mapped_column(String(16))
    status: Mapped[str] = mapped_column(String(16), default=LeadStatus.ACTIVE.value, nullable=False)
    last_activity_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
