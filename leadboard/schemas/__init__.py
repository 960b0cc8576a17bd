"""Record and request schemas exposed by the leadboard package."""

from leadboard.schemas.events import LeadEventRecord
from leadboard.schemas.leads import LeadDraft, LeadRecord, LeadUpdate
from leadboard.schemas.stages import StageRecord
from leadboard.schemas.tasks import TaskDraft, TaskRecord

__all__ = [
    "LeadDraft",
    "LeadEventRecord",
    "LeadRecord",
    "LeadUpdate",
    "StageRecord",
    "TaskDraft",
    "TaskRecord",
]
