"""Closed enumerations for lead, stage, event and task fields.

Values are stored as plain strings. Anything outside these sets is rejected
when rows are parsed into records.
"""

from __future__ import annotations

import enum


class Temperature(str, enum.Enum):
    HOT = "HOT"
    WARM = "WARM"
    COLD = "COLD"


class LeadPurpose(str, enum.Enum):
    SALE = "SALE"
    RENT = "RENT"


class LeadOrigin(str, enum.Enum):
    SOCIAL_MEDIA = "SOCIAL_MEDIA"
    REFERRAL = "REFERRAL"
    REAL_ESTATE_PORTAL = "REAL_ESTATE_PORTAL"
    OTHER = "OTHER"


class LeadOutcome(str, enum.Enum):
    WON = "WON"
    LOST = "LOST"


class LeadStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    FINALIZED = "FINALIZED"


class OutcomeResolution(str, enum.Enum):
    """Target of an outcome change; ACTIVE means reactivate."""

    WON = "WON"
    LOST = "LOST"
    ACTIVE = "ACTIVE"


class LeadEventType(str, enum.Enum):
    CREATION = "CREATION"
    MOVEMENT = "MOVEMENT"
    WON = "WON"
    LOST = "LOST"
    REACTIVATION = "REACTIVATION"
    NOTE = "NOTE"


class TaskPriority(str, enum.Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class TaskStatus(str, enum.Enum):
    PENDING = "PENDING"
    DONE = "DONE"


class TaskType(str, enum.Enum):
    NEW_LEAD = "NEW_LEAD"
    RULE_ENGINE = "RULE_ENGINE"
    MANUAL = "MANUAL"


def status_for_outcome(outcome: LeadOutcome | None) -> LeadStatus:
    """Lead status is derived from outcome: no outcome means still active."""
    return LeadStatus.ACTIVE if outcome is None else LeadStatus.FINALIZED


# Priority rank used for ordering pending tasks (HIGH first).
PRIORITY_RANK = {
    TaskPriority.HIGH: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.LOW: 2,
}

# Daily mission buckets.
PRIORITY_BUCKETS = {
    TaskPriority.HIGH: "P1",
    TaskPriority.MEDIUM: "P2",
    TaskPriority.LOW: "P3",
}

DEFAULT_STAGE_NAMES = ("Capture", "Qualification", "Visit Scheduled", "Negotiation")
