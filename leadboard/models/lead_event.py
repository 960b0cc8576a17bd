"""Append-only lead event model module."""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from leadboard.models.base import Base, CreatedMixin, IdentityMixin, OwnedMixin


class LeadEvent(Base, IdentityMixin, OwnedMixin, CreatedMixin):
    __tablename__ = "lead_events"
    __table_args__ = (Index("idx_lead_events_user_lead_created", "user_id", "lead_id", "created_at"),)

    lead_id: Mapped[str] = mapped_column(ForeignKey("leads.id", ondelete="RESTRICT"), nullable=False)
    event_type: Mapped[str] = mapped_column(String(32), nullable=False)
    details: Mapped[dict[str, Any] | None] = mapped_column(JSON)
