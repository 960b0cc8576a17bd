"""Contract for the backing lead store (leads, stage catalog and event log).

Every call is scoped to the owning user; implementations must never return
or mutate rows owned by another user.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from leadboard.core.enums import LeadEventType, LeadOutcome
from leadboard.schemas import LeadDraft, LeadEventRecord, LeadRecord, LeadUpdate, StageRecord


class LeadStore(ABC):
    @abstractmethod
    async def list_stages(self, user_id: str) -> list[StageRecord]:
        """Stages ordered ascending by position."""

    @abstractmethod
    async def seed_default_stages(self, user_id: str) -> list[StageRecord]:
        """Create the default stage set once; returns existing stages if any."""

    @abstractmethod
    async def list_active_leads(self, user_id: str) -> list[LeadRecord]:
        """Leads with no outcome, newest first."""

    @abstractmethod
    async def create_lead(self, user_id: str, draft: LeadDraft, stage_id: str) -> LeadRecord:
        ...

    @abstractmethod
    async def update_lead(self, lead_id: str, user_id: str, changes: LeadUpdate) -> LeadRecord:
        ...

    @abstractmethod
    async def reactivate_lead(self, lead_id: str, user_id: str) -> LeadRecord:
        ...

    @abstractmethod
    async def append_event(
        self,
        user_id: str,
        lead_id: str,
        event_type: LeadEventType,
        details: dict[str, Any] | None = None,
    ) -> LeadEventRecord:
        ...

    @abstractmethod
    async def list_events(self, user_id: str, lead_id: str) -> list[LeadEventRecord]:
        """Events for a lead, newest first."""

    @abstractmethod
    async def search_inactive_leads(self, user_id: str, outcome: LeadOutcome | None = None) -> list[LeadRecord]:
        ...

    @abstractmethod
    async def search_all_leads(
        self,
        user_id: str,
        query: str,
        outcome: LeadOutcome | None = None,
    ) -> list[LeadRecord]:
        ...
