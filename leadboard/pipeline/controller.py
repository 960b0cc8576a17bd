"""Lead pipeline controller: the Kanban board's in-memory view of active leads.

Stage moves are optimistic. The local board is patched synchronously and the
store write is confirmed by a background task. When the store rejects the
write, all local speculative state is discarded by reloading the active leads
from the store; there is no field-level undo.

Overlapping moves of the same lead are not sequenced: whichever write the
store sees last wins.
"""

from __future__ import annotations

import asyncio
import logging
from operator import attrgetter
from typing import Any

from leadboard.auth.session import UserSession, require_user
from leadboard.core.enums import LeadEventType, LeadOutcome, OutcomeResolution
from leadboard.core.exceptions import LeadboardException, NoPipelineStage, NotFoundError, ValidationError
from leadboard.models.base import utcnow
from leadboard.schemas import LeadDraft, LeadEventRecord, LeadRecord, LeadUpdate, StageRecord
from leadboard.services.lead_store import LeadStore
from leadboard.utils.validators import sanitize_text

logger = logging.getLogger(__name__)


def _by_position(stages: list[StageRecord]) -> tuple[StageRecord, ...]:
    return tuple(sorted(stages, key=attrgetter("position")))


def _only_active(leads: list[LeadRecord]) -> tuple[LeadRecord, ...]:
    return tuple(lead for lead in leads if lead.is_active)


class LeadPipelineController:
    """Owns the stage list and active leads for one signed-in user."""

    def __init__(self, store: LeadStore, session: UserSession | None) -> None:
        self._store = store
        self._session = session
        self.stages: tuple[StageRecord, ...] = ()
        self.active_leads: tuple[LeadRecord, ...] = ()
        self.ready = False
        self.last_error: LeadboardException | None = None
        self._pending: set[asyncio.Task] = set()

    @property
    def user_id(self) -> str:
        return require_user(self._session)

    def find_lead(self, lead_id: str) -> LeadRecord:
        for lead in self.active_leads:
            if lead.id == lead_id:
                return lead
        raise NotFoundError(f"Lead {lead_id} is not on the active board.")

    def find_stage(self, stage_id: str) -> StageRecord:
        for stage in self.stages:
            if stage.id == stage_id:
                return stage
        raise NotFoundError(f"Pipeline stage {stage_id} not found.")

    def board(self) -> list[tuple[StageRecord, list[LeadRecord]]]:
        """Active leads grouped into stage columns, left to right."""
        return [(stage, [lead for lead in self.active_leads if lead.stage_id == stage.id]) for stage in self.stages]

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Load stages (seeding defaults on first use) and active leads.

        Nothing is published unless both loads succeed.
        """
        user_id = self.user_id
        try:
            stages = await self._store.list_stages(user_id)
            if not stages:
                stages = await self._store.seed_default_stages(user_id)
            leads = await self._store.list_active_leads(user_id)
        except LeadboardException as exc:
            self.last_error = exc
            logger.warning(
                "pipeline.initialize.failed",
                extra={"event": "pipeline.initialize.failed", "user_id": user_id, "error_code": exc.code},
            )
            raise

        self.stages = _by_position(stages)
        self.active_leads = _only_active(leads)
        self.ready = True
        self.last_error = None
        logger.info(
            "pipeline.initialized",
            extra={"event": "pipeline.initialized", "user_id": user_id},
        )

    async def _reload_active_leads(self, user_id: str) -> None:
        try:
            leads = await self._store.list_active_leads(user_id)
        except LeadboardException as exc:
            self.last_error = exc
            logger.exception(
                "pipeline.reload.failed",
                extra={"event": "pipeline.reload.failed", "user_id": user_id, "error_code": exc.code},
            )
            return
        self.active_leads = _only_active(leads)

    # ------------------------------------------------------------------
    # Lead creation
    # ------------------------------------------------------------------

    async def add_lead(self, draft: LeadDraft) -> LeadRecord:
        """Persist a new lead in the lowest-position stage."""
        user_id = self.user_id
        if not self.stages:
            logger.warning(
                "pipeline.lead.no_stage",
                extra={"event": "pipeline.lead.no_stage", "user_id": user_id},
            )
            raise NoPipelineStage("No initial pipeline stage found.")

        first_stage = min(self.stages, key=attrgetter("position"))
        created = await self._store.create_lead(user_id, draft, stage_id=first_stage.id)

        try:
            await self._store.append_event(
                user_id,
                created.id,
                LeadEventType.CREATION,
                {"initial_data": draft.model_dump(mode="json", exclude_none=True)},
            )
        except LeadboardException:
            # The lead stays created even without its audit entry.
            logger.warning(
                "pipeline.lead.creation_event_failed",
                exc_info=True,
                extra={"event": "pipeline.lead.creation_event_failed", "user_id": user_id, "lead_id": created.id},
            )

        self.active_leads = (created, *(lead for lead in self.active_leads if lead.id != created.id))
        logger.info(
            "pipeline.lead.created",
            extra={"event": "pipeline.lead.created", "user_id": user_id, "lead_id": created.id, "stage_id": first_stage.id},
        )
        return created

    # ------------------------------------------------------------------
    # Stage moves
    # ------------------------------------------------------------------

    def move_lead(self, lead_id: str, target_stage_id: str) -> asyncio.Task | None:
        """Move a lead to another stage optimistically.

        The local board reflects the move before this returns. The store write
        runs in the returned task. Outside a running event loop this raises
        RuntimeError before the board is touched. Awaiting the task yields the
        stored lead, or raises the store failure after the board has been
        reloaded. Returns None when the lead is already in the target stage.
        """
        user_id = self.user_id
        lead = self.find_lead(lead_id)
        stage = self.find_stage(target_stage_id)
        if lead.stage_id == stage.id:
            return None

        loop = asyncio.get_running_loop()
        moved = lead.model_copy(update={"stage_id": stage.id, "updated_at": utcnow()})
        self.active_leads = tuple(moved if item.id == lead_id else item for item in self.active_leads)

        task = loop.create_task(self._confirm_move(user_id, lead_id, stage))
        self._pending.add(task)
        task.add_done_callback(self._move_settled)
        return task

    async def _confirm_move(self, user_id: str, lead_id: str, stage: StageRecord) -> LeadRecord:
        try:
            updated = await self._store.update_lead(lead_id, user_id, LeadUpdate(stage_id=stage.id))
        except Exception:
            logger.warning(
                "pipeline.lead.move_rejected",
                exc_info=True,
                extra={"event": "pipeline.lead.move_rejected", "user_id": user_id, "lead_id": lead_id, "stage_id": stage.id},
            )
            await self._reload_active_leads(user_id)
            raise

        await self._store.append_event(user_id, lead_id, LeadEventType.MOVEMENT, {"to": stage.name})
        logger.info(
            "pipeline.lead.moved",
            extra={"event": "pipeline.lead.moved", "user_id": user_id, "lead_id": lead_id, "stage_id": stage.id},
        )
        return updated

    def _move_settled(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled():
            # Failures were logged by _confirm_move; mark them retrieved.
            task.exception()

    async def wait_for_pending(self) -> list[Any]:
        """Wait for in-flight move confirmations; failures are returned, not raised."""
        if not self._pending:
            return []
        return await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ------------------------------------------------------------------
    # Outcomes
    # ------------------------------------------------------------------

    async def resolve_outcome(
        self,
        lead_id: str,
        resolution: OutcomeResolution | str,
        detail: dict[str, Any] | None = None,
    ) -> LeadRecord:
        """Mark a lead won or lost, or reactivate it, then reload the board.

        No local state changes until the store accepts the transition.
        """
        user_id = self.user_id
        try:
            resolution = OutcomeResolution(resolution)
        except ValueError as exc:
            raise ValidationError(f"Unknown outcome resolution: {resolution!r}.") from exc
        if resolution is OutcomeResolution.ACTIVE:
            lead = await self._store.reactivate_lead(lead_id, user_id)
            event_type = LeadEventType.REACTIVATION
        else:
            lead = await self._store.update_lead(lead_id, user_id, LeadUpdate(outcome=LeadOutcome(resolution.value)))
            event_type = LeadEventType(resolution.value)

        try:
            await self._store.append_event(user_id, lead_id, event_type, detail or {})
        except LeadboardException as exc:
            logger.warning(
                "pipeline.lead.outcome_event_failed",
                exc_info=True,
                extra={
                    "event": "pipeline.lead.outcome_event_failed",
                    "user_id": user_id,
                    "lead_id": lead_id,
                    "error_code": exc.code,
                },
            )
            raise
        finally:
            await self.initialize()

        logger.info(
            "pipeline.lead.outcome_resolved",
            extra={"event": "pipeline.lead.outcome_resolved", "user_id": user_id, "lead_id": lead_id},
        )
        return lead

    # ------------------------------------------------------------------
    # History and search
    # ------------------------------------------------------------------

    async def list_events(self, lead_id: str) -> list[LeadEventRecord]:
        return await self._store.list_events(self.user_id, lead_id)

    async def add_note(self, lead_id: str, text: str) -> LeadEventRecord:
        cleaned = sanitize_text(text, max_len=10000)
        if not cleaned:
            raise ValidationError("Note text must not be empty.")
        return await self._store.append_event(self.user_id, lead_id, LeadEventType.NOTE, {"text": cleaned})

    async def search_inactive(self, outcome: LeadOutcome | None = None) -> list[LeadRecord]:
        return await self._store.search_inactive_leads(self.user_id, outcome)

    async def search(self, query: str, outcome: LeadOutcome | None = None) -> list[LeadRecord]:
        return await self._store.search_all_leads(self.user_id, query, outcome)
