"""SQLAlchemy model package for the per-user lead pipeline schema."""

from leadboard.models.base import Base
from leadboard.models.kanban_stage import KanbanStage
from leadboard.models.lead import Lead
from leadboard.models.lead_event import LeadEvent
from leadboard.models.task import Task

__all__ = [
    "Base",
    "KanbanStage",
    "Lead",
    "LeadEvent",
    "Task",
]
