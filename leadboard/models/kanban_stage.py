"""Kanban stage model module."""

from __future__ import annotations

from sqlalchemy import Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from leadboard.models.base import Base, CreatedMixin, IdentityMixin, OwnedMixin


class KanbanStage(Base, IdentityMixin, OwnedMixin, CreatedMixin):
    __tablename__ = "kanban_stages"
    __table_args__ = (UniqueConstraint("user_id", "position", name="uq_kanban_stages_user_position"),)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
