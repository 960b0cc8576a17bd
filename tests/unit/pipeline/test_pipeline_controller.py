from __future__ import annotations

import asyncio
import logging

import pytest

from leadboard.core.enums import DEFAULT_STAGE_NAMES, LeadEventType, LeadOutcome, OutcomeResolution
from leadboard.core.exceptions import (
    AuthenticationRequired,
    NoPipelineStage,
    NotFoundError,
    PersistenceFailure,
    ValidationError,
)
from leadboard.pipeline.controller import LeadPipelineController
from leadboard.schemas import LeadDraft
from leadboard.services.sql_lead_store import SqlLeadStore


class RecordingStore(SqlLeadStore):
    """SQL store that records writes and can reject or hold them."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.calls: list[tuple] = []
        self.reject: set[str] = set()
        self.update_gate: asyncio.Event | None = None

    async def list_stages(self, user_id):
        if "list_stages" in self.reject:
            raise PersistenceFailure("stages unavailable")
        return await super().list_stages(user_id)

    async def list_active_leads(self, user_id):
        if "list_active_leads" in self.reject:
            raise PersistenceFailure("leads unavailable")
        return await super().list_active_leads(user_id)

    async def update_lead(self, lead_id, user_id, changes):
        self.calls.append(("update_lead", lead_id, changes.changes()))
        if self.update_gate is not None:
            await self.update_gate.wait()
        if "update_lead" in self.reject:
            raise PersistenceFailure("update rejected by store")
        return await super().update_lead(lead_id, user_id, changes)

    async def append_event(self, user_id, lead_id, event_type, details=None):
        self.calls.append(("append_event", lead_id, event_type))
        if "append_event" in self.reject:
            raise PersistenceFailure("event log unavailable")
        return await super().append_event(user_id, lead_id, event_type, details)

    def writes(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]


class ShuffledStagesStore(RecordingStore):
    async def list_stages(self, user_id):
        stages = await super().list_stages(user_id)
        return list(reversed(stages))


@pytest.fixture
def store(session_factory):
    return RecordingStore(session_factory=session_factory, default_stage_names=DEFAULT_STAGE_NAMES)


async def _ready_controller(store, user) -> LeadPipelineController:
    controller = LeadPipelineController(store=store, session=user)
    await controller.initialize()
    return controller


def test_initialize_seeds_default_stages_once(store, user):
    async def scenario():
        first = await _ready_controller(store, user)
        second = await _ready_controller(store, user)
        return first, second, await store.list_stages(user.user_id)

    first, second, stored = asyncio.run(scenario())

    assert [stage.name for stage in first.stages] == list(DEFAULT_STAGE_NAMES)
    assert [stage.position for stage in first.stages] == list(range(len(DEFAULT_STAGE_NAMES)))
    assert [stage.id for stage in second.stages] == [stage.id for stage in first.stages]
    assert len(stored) == len(DEFAULT_STAGE_NAMES)
    assert first.ready is True


def test_initialize_failure_publishes_nothing(store, user):
    controller = LeadPipelineController(store=store, session=user)
    store.reject.add("list_active_leads")

    with pytest.raises(PersistenceFailure):
        asyncio.run(controller.initialize())

    assert controller.ready is False
    assert controller.stages == ()
    assert controller.active_leads == ()
    assert isinstance(controller.last_error, PersistenceFailure)


def test_initialize_failure_keeps_last_loaded_board(store, user):
    async def scenario():
        controller = await _ready_controller(store, user)
        await controller.add_lead(LeadDraft(name="Fabio"))
        loaded = (controller.stages, controller.active_leads)
        store.reject.add("list_stages")
        with pytest.raises(PersistenceFailure):
            await controller.initialize()
        return controller, loaded

    controller, (stages, leads) = asyncio.run(scenario())

    assert controller.stages == stages
    assert controller.active_leads == leads
    assert controller.ready is True
    assert isinstance(controller.last_error, PersistenceFailure)


def test_add_lead_uses_lowest_position_stage_regardless_of_order(session_factory, user):
    store = ShuffledStagesStore(session_factory=session_factory, default_stage_names=DEFAULT_STAGE_NAMES)

    async def scenario():
        controller = LeadPipelineController(store=store, session=user)
        await controller.initialize()
        controller.stages = tuple(reversed(controller.stages))
        return controller, await controller.add_lead(LeadDraft(name="Ana"))

    controller, lead = asyncio.run(scenario())

    lowest = min(controller.stages, key=lambda stage: stage.position)
    assert lowest.position == 0
    assert lead.stage_id == lowest.id
    assert controller.active_leads[0].id == lead.id


def test_add_lead_writes_creation_event(store, user):
    async def scenario():
        controller = await _ready_controller(store, user)
        lead = await controller.add_lead(LeadDraft(name="Bruno", email="bruno@example.com"))
        return lead, await controller.list_events(lead.id)

    lead, events = asyncio.run(scenario())

    assert [event.event_type for event in events] == [LeadEventType.CREATION]
    assert events[0].details == {"initial_data": {"name": "Bruno", "temperature": "WARM", "email": "bruno@example.com"}}
    assert lead.outcome is None


def test_add_lead_survives_event_log_failure(store, user):
    async def scenario():
        controller = await _ready_controller(store, user)
        store.reject.add("append_event")
        lead = await controller.add_lead(LeadDraft(name="Carla"))
        store.reject.clear()
        return controller, lead, await controller.list_events(lead.id)

    controller, lead, events = asyncio.run(scenario())

    assert [item.id for item in controller.active_leads] == [lead.id]
    assert events == []


def test_add_lead_store_rejection_leaves_board_untouched(store, user):
    async def scenario():
        controller = await _ready_controller(store, user)
        # A stage that the store does not know about.
        controller.stages = (controller.stages[0].model_copy(update={"id": "missing-stage"}),)
        with pytest.raises(NotFoundError):
            await controller.add_lead(LeadDraft(name="Diego"))
        return controller

    controller = asyncio.run(scenario())

    assert controller.active_leads == ()


def test_move_is_visible_before_store_confirms(store, user):
    async def scenario():
        controller = await _ready_controller(store, user)
        lead = await controller.add_lead(LeadDraft(name="Jane Doe"))
        target = controller.stages[2]
        store.update_gate = asyncio.Event()

        task = controller.move_lead(lead.id, target.id)
        visible_before = controller.find_lead(lead.id).stage_id
        await asyncio.sleep(0)
        pending_before_release = not task.done()

        store.update_gate.set()
        stored = await task
        events = await controller.list_events(lead.id)
        return target, lead, visible_before, pending_before_release, stored, events, controller

    target, lead, visible_before, pending, stored, events, controller = asyncio.run(scenario())

    assert visible_before == target.id
    assert pending is True
    assert stored.stage_id == target.id
    assert controller.find_lead(lead.id).stage_id == target.id
    assert controller.find_lead(lead.id).updated_at > lead.updated_at
    assert events[0].event_type == LeadEventType.MOVEMENT
    assert events[0].details == {"to": target.name}


def test_move_failure_reloads_server_truth(store, user):
    async def scenario():
        controller = await _ready_controller(store, user)
        lead = await controller.add_lead(LeadDraft(name="Eva"))
        store.reject.add("update_lead")

        task = controller.move_lead(lead.id, controller.stages[3].id)
        optimistic = controller.find_lead(lead.id).stage_id
        with pytest.raises(PersistenceFailure):
            await task
        fresh = await store.list_active_leads(user.user_id)
        return controller, lead, optimistic, fresh

    controller, lead, optimistic, fresh = asyncio.run(scenario())

    assert optimistic == controller.stages[3].id
    assert controller.find_lead(lead.id).stage_id == lead.stage_id
    assert [(item.id, item.stage_id) for item in controller.active_leads] == [
        (item.id, item.stage_id) for item in fresh
    ]
    assert store.writes("append_event") == [("append_event", lead.id, LeadEventType.CREATION)]


def test_move_outside_event_loop_leaves_board_untouched(store, user):
    async def setup():
        controller = await _ready_controller(store, user)
        return controller, await controller.add_lead(LeadDraft(name="Elisa"))

    controller, lead = asyncio.run(setup())
    before = controller.active_leads

    with pytest.raises(RuntimeError):
        controller.move_lead(lead.id, controller.stages[2].id)

    stored = asyncio.run(store.list_active_leads(user.user_id))
    assert controller.active_leads == before
    assert controller.find_lead(lead.id).stage_id == stored[0].stage_id == lead.stage_id
    assert store.writes("update_lead") == []


def test_move_to_current_stage_is_a_no_op(store, user):
    async def scenario():
        controller = await _ready_controller(store, user)
        lead = await controller.add_lead(LeadDraft(name="Fabio"))
        result = controller.move_lead(lead.id, lead.stage_id)
        return controller, lead, result

    controller, lead, result = asyncio.run(scenario())

    assert result is None
    assert store.writes("update_lead") == []
    assert store.writes("append_event") == [("append_event", lead.id, LeadEventType.CREATION)]
    assert controller.find_lead(lead.id) == lead


def test_move_rejects_unknown_lead_and_stage(store, user):
    async def scenario():
        controller = await _ready_controller(store, user)
        lead = await controller.add_lead(LeadDraft(name="Gina"))
        with pytest.raises(NotFoundError):
            controller.move_lead("no-such-lead", controller.stages[1].id)
        with pytest.raises(NotFoundError):
            controller.move_lead(lead.id, "no-such-stage")
        return controller, lead

    controller, lead = asyncio.run(scenario())

    assert controller.find_lead(lead.id).stage_id == lead.stage_id
    assert store.writes("update_lead") == []


def test_move_event_failure_keeps_committed_move(store, user):
    async def scenario():
        controller = await _ready_controller(store, user)
        lead = await controller.add_lead(LeadDraft(name="Hugo"))
        target = controller.stages[1]
        store.reject.add("append_event")
        task = controller.move_lead(lead.id, target.id)
        with pytest.raises(PersistenceFailure):
            await task
        return controller, lead, target, await store.list_active_leads(user.user_id)

    controller, lead, target, fresh = asyncio.run(scenario())

    assert controller.find_lead(lead.id).stage_id == target.id
    assert fresh[0].stage_id == target.id


def test_wait_for_pending_collects_failures(store, user):
    async def scenario():
        controller = await _ready_controller(store, user)
        lead = await controller.add_lead(LeadDraft(name="Iris"))
        store.reject.add("update_lead")
        controller.move_lead(lead.id, controller.stages[1].id)
        return await controller.wait_for_pending(), await controller.wait_for_pending()

    first, second = asyncio.run(scenario())

    assert len(first) == 1
    assert isinstance(first[0], PersistenceFailure)
    assert second == []


def test_won_lead_leaves_active_board(store, user):
    async def scenario():
        controller = await _ready_controller(store, user)
        lead = await controller.add_lead(LeadDraft(name="Joao"))
        resolved = await controller.resolve_outcome(lead.id, OutcomeResolution.WON, {"reason": "signed"})
        archived = await controller.search_inactive(LeadOutcome.WON)
        events = await controller.list_events(lead.id)
        return controller, lead, resolved, archived, events

    controller, lead, resolved, archived, events = asyncio.run(scenario())

    assert resolved.outcome == LeadOutcome.WON
    assert resolved.status.value == "FINALIZED"
    assert all(item.id != lead.id for item in controller.active_leads)
    assert [item.id for item in archived] == [lead.id]
    assert events[0].event_type == LeadEventType.WON
    assert events[0].details == {"reason": "signed"}


def test_reactivation_restores_lead_to_board(store, user):
    async def scenario():
        controller = await _ready_controller(store, user)
        lead = await controller.add_lead(LeadDraft(name="Karen"))
        move = controller.move_lead(lead.id, controller.stages[2].id)
        await move
        await controller.resolve_outcome(lead.id, OutcomeResolution.WON)
        await controller.resolve_outcome(lead.id, "ACTIVE")
        return controller, lead, await controller.list_events(lead.id)

    controller, lead, events = asyncio.run(scenario())

    restored = controller.find_lead(lead.id)
    assert restored.outcome is None
    assert restored.stage_id == controller.stages[2].id
    assert events[0].event_type == LeadEventType.REACTIVATION


def test_resolve_outcome_failure_changes_nothing(store, user):
    async def scenario():
        controller = await _ready_controller(store, user)
        lead = await controller.add_lead(LeadDraft(name="Luis"))
        store.reject.add("update_lead")
        with pytest.raises(PersistenceFailure):
            await controller.resolve_outcome(lead.id, OutcomeResolution.LOST)
        return controller, lead

    controller, lead = asyncio.run(scenario())

    assert controller.find_lead(lead.id).outcome is None
    assert store.writes("append_event") == [("append_event", lead.id, LeadEventType.CREATION)]


def test_resolve_outcome_rejects_unknown_resolution(store, user):
    async def scenario():
        controller = await _ready_controller(store, user)
        lead = await controller.add_lead(LeadDraft(name="Marta"))
        with pytest.raises(ValidationError):
            await controller.resolve_outcome(lead.id, "WINNING")
        return controller, lead

    controller, lead = asyncio.run(scenario())

    assert controller.find_lead(lead.id).outcome is None
    assert store.writes("update_lead") == []


def test_resolve_outcome_event_failure_still_reloads(store, user, caplog):
    caplog.set_level(logging.WARNING)

    async def scenario():
        controller = await _ready_controller(store, user)
        lead = await controller.add_lead(LeadDraft(name="Nina"))
        store.reject.add("append_event")
        with pytest.raises(PersistenceFailure, match="event log unavailable"):
            await controller.resolve_outcome(lead.id, OutcomeResolution.WON)
        return controller

    controller = asyncio.run(scenario())

    assert controller.active_leads == ()
    assert "pipeline.lead.outcome_event_failed" in [record.getMessage() for record in caplog.records]


def test_events_are_listed_newest_first(store, user):
    async def scenario():
        controller = await _ready_controller(store, user)
        lead = await controller.add_lead(LeadDraft(name="Marta"))
        await controller.move_lead(lead.id, controller.stages[1].id)
        await controller.move_lead(lead.id, controller.stages[2].id)
        await controller.add_note(lead.id, "Prefers ground floor")
        return await controller.list_events(lead.id)

    events = asyncio.run(scenario())

    assert [event.event_type for event in events] == [
        LeadEventType.NOTE,
        LeadEventType.MOVEMENT,
        LeadEventType.MOVEMENT,
        LeadEventType.CREATION,
    ]
    stamps = [event.created_at for event in events]
    assert all(newer > older for newer, older in zip(stamps, stamps[1:]))


def test_end_to_end_create_before_and_after_seeding(store, user):
    async def scenario():
        controller = LeadPipelineController(store=store, session=user)
        with pytest.raises(NoPipelineStage):
            await controller.add_lead(LeadDraft(name="Jane Doe"))
        await controller.initialize()
        return controller, await controller.add_lead(LeadDraft(name="Jane Doe"))

    controller, lead = asyncio.run(scenario())

    first_stage = controller.stages[0]
    assert first_stage.position == 0
    assert lead.stage_id == first_stage.id
    assert [item.name for item in controller.active_leads] == ["Jane Doe"]


def test_board_groups_leads_by_stage(store, user):
    async def scenario():
        controller = await _ready_controller(store, user)
        first = await controller.add_lead(LeadDraft(name="Nina"))
        second = await controller.add_lead(LeadDraft(name="Otto"))
        await controller.move_lead(second.id, controller.stages[1].id)
        return controller, first, second

    controller, first, second = asyncio.run(scenario())

    columns = {stage.name: [lead.id for lead in leads] for stage, leads in controller.board()}
    assert columns[DEFAULT_STAGE_NAMES[0]] == [first.id]
    assert columns[DEFAULT_STAGE_NAMES[1]] == [second.id]
    assert columns[DEFAULT_STAGE_NAMES[3]] == []


def test_search_passes_through_to_store(store, user):
    async def scenario():
        controller = await _ready_controller(store, user)
        await controller.add_lead(LeadDraft(name="Paula Souza", email="paula@example.com"))
        lost = await controller.add_lead(LeadDraft(name="Paulo Lima"))
        await controller.resolve_outcome(lost.id, OutcomeResolution.LOST)
        return (
            await controller.search("paul"),
            await controller.search("paul", LeadOutcome.LOST),
            await controller.search_inactive(),
        )

    everything, only_lost, inactive = asyncio.run(scenario())

    assert {lead.name for lead in everything} == {"Paula Souza", "Paulo Lima"}
    assert [lead.name for lead in only_lost] == ["Paulo Lima"]
    assert [lead.name for lead in inactive] == ["Paulo Lima"]


def test_operations_require_an_authenticated_user(store):
    controller = LeadPipelineController(store=store, session=None)

    with pytest.raises(AuthenticationRequired):
        asyncio.run(controller.initialize())
    with pytest.raises(AuthenticationRequired):
        asyncio.run(controller.add_lead(LeadDraft(name="Nobody")))
    with pytest.raises(AuthenticationRequired):
        controller.move_lead("lead", "stage")
    assert store.calls == []
