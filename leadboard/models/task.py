"""Daily mission task model module."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from leadboard.core.enums import TaskPriority, TaskStatus, TaskType
from leadboard.models.base import Base, CreatedMixin, IdentityMixin, OwnedMixin


class Task(Base, IdentityMixin, OwnedMixin, CreatedMixin):
    __tablename__ = "tasks"
    __table_args__ = (Index("idx_tasks_user_status", "user_id", "status"),)

    lead_id: Mapped[str | None] = mapped_column(ForeignKey("leads.id", ondelete="SET NULL"))
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    priority: Mapped[str] = mapped_column(String(16), default=TaskPriority.MEDIUM.value, nullable=False)
    status: Mapped[str] = mapped_column(String(16), default=TaskStatus.PENDING.value, nullable=False)
    type: Mapped[str] = mapped_column(String(16), default=TaskType.MANUAL.value, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
