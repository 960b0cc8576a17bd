"""SQLAlchemy implementation of the lead store, stage catalog and event log."""

from __future__ import annotations

import enum
import logging
from collections.abc import Sequence
from datetime import timedelta
from typing import Any

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, sessionmaker

from leadboard.core.config import get_config
from leadboard.core.enums import LeadEventType, LeadOutcome, LeadStatus, status_for_outcome
from leadboard.core.exceptions import NoPipelineStage, NotFoundError, ValidationError
from leadboard.models import KanbanStage, Lead, LeadEvent
from leadboard.models.base import as_utc, utcnow
from leadboard.schemas import LeadDraft, LeadEventRecord, LeadRecord, LeadUpdate, StageRecord
from leadboard.services.base_service import BaseService
from leadboard.services.lead_store import LeadStore
from leadboard.utils.validators import sanitize_optional, sanitize_text

logger = logging.getLogger(__name__)

_TEXT_FIELDS = ("email", "phone", "origin_details", "notes", "property_of_interest")


def _column_values(data: dict[str, Any]) -> dict[str, Any]:
    values = {}
    for key, value in data.items():
        if isinstance(value, enum.Enum):
            value = value.value
        elif key == "name" and value is not None:
            value = sanitize_text(value, max_len=255)
        elif key in _TEXT_FIELDS:
            value = sanitize_optional(value)
        values[key] = value
    return values


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _owned_lead(session: Session, lead_id: str, user_id: str) -> Lead:
    lead = session.query(Lead).filter(Lead.id == lead_id, Lead.user_id == user_id).first()
    if lead is None:
        raise NotFoundError(f"Lead {lead_id} not found.")
    return lead


def _owned_stage(session: Session, stage_id: str, user_id: str) -> KanbanStage:
    stage = (
        session.query(KanbanStage)
        .filter(KanbanStage.id == stage_id, KanbanStage.user_id == user_id)
        .first()
    )
    if stage is None:
        raise NotFoundError(f"Pipeline stage {stage_id} not found.")
    return stage


def _ordered_stages(session: Session, user_id: str) -> list[KanbanStage]:
    return (
        session.query(KanbanStage)
        .filter(KanbanStage.user_id == user_id)
        .order_by(KanbanStage.position.asc())
        .all()
    )


class SqlLeadStore(BaseService, LeadStore):
    """Per-user lead persistence on a relational database."""

    def __init__(
        self,
        session_factory: sessionmaker | None = None,
        default_stage_names: Sequence[str] | None = None,
    ) -> None:
        super().__init__(session_factory)
        self.default_stage_names = tuple(default_stage_names or get_config().DEFAULT_STAGE_NAMES)

    # ------------------------------------------------------------------
    # Stage catalog
    # ------------------------------------------------------------------

    async def list_stages(self, user_id: str) -> list[StageRecord]:
        def work(session: Session) -> list[StageRecord]:
            return [StageRecord.model_validate(row) for row in _ordered_stages(session, user_id)]

        return await self.run("list_stages", work, user_id=user_id)

    async def seed_default_stages(self, user_id: str) -> list[StageRecord]:
        def work(session: Session) -> list[StageRecord]:
            existing = _ordered_stages(session, user_id)
            if existing:
                return [StageRecord.model_validate(row) for row in existing]

            rows = [
                KanbanStage(user_id=user_id, name=name, position=position)
                for position, name in enumerate(self.default_stage_names)
            ]
            session.add_all(rows)
            session.flush()
            logger.info(
                "stages.defaults.seeded",
                extra={"event": "stages.defaults.seeded", "user_id": user_id},
            )
            return [StageRecord.model_validate(row) for row in rows]

        return await self.run("seed_default_stages", work, user_id=user_id)

    # ------------------------------------------------------------------
    # Leads
    # ------------------------------------------------------------------

    async def list_active_leads(self, user_id: str) -> list[LeadRecord]:
        def work(session: Session) -> list[LeadRecord]:
            rows = (
                session.query(Lead)
                .filter(Lead.user_id == user_id, Lead.outcome.is_(None))
                .order_by(Lead.created_at.desc())
                .all()
            )
            return [LeadRecord.model_validate(row) for row in rows]

        return await self.run("list_active_leads", work, user_id=user_id)

    async def create_lead(self, user_id: str, draft: LeadDraft, stage_id: str) -> LeadRecord:
        def work(session: Session) -> LeadRecord:
            _owned_stage(session, stage_id, user_id)
            lead = Lead(
                user_id=user_id,
                stage_id=stage_id,
                outcome=None,
                status=LeadStatus.ACTIVE.value,
                **_column_values(draft.model_dump()),
            )
            session.add(lead)
            session.flush()
            return LeadRecord.model_validate(lead)

        return await self.run("create_lead", work, user_id=user_id)

    async def update_lead(self, lead_id: str, user_id: str, changes: LeadUpdate) -> LeadRecord:
        def work(session: Session) -> LeadRecord:
            lead = _owned_lead(session, lead_id, user_id)
            data = changes.changes()
            if "stage_id" in data:
                if data["stage_id"] is None:
                    raise ValidationError("A lead must always reference a pipeline stage.")
                _owned_stage(session, data["stage_id"], user_id)
            if "outcome" in data:
                data["status"] = status_for_outcome(data["outcome"])

            for key, value in _column_values(data).items():
                setattr(lead, key, value)
            lead.updated_at = utcnow()
            session.flush()
            return LeadRecord.model_validate(lead)

        return await self.run("update_lead", work, user_id=user_id)

    async def reactivate_lead(self, lead_id: str, user_id: str) -> LeadRecord:
        def work(session: Session) -> LeadRecord:
            lead = _owned_lead(session, lead_id, user_id)
            stage = session.get(KanbanStage, lead.stage_id)
            if stage is None or stage.user_id != user_id:
                stages = _ordered_stages(session, user_id)
                if not stages:
                    raise NoPipelineStage("No pipeline stage available to reactivate the lead into.")
                lead.stage_id = stages[0].id
            lead.outcome = None
            lead.status = LeadStatus.ACTIVE.value
            lead.updated_at = utcnow()
            session.flush()
            return LeadRecord.model_validate(lead)

        return await self.run("reactivate_lead", work, user_id=user_id)

    async def search_inactive_leads(self, user_id: str, outcome: LeadOutcome | None = None) -> list[LeadRecord]:
        def work(session: Session) -> list[LeadRecord]:
            query = session.query(Lead).filter(Lead.user_id == user_id, Lead.outcome.is_not(None))
            if outcome is not None:
                query = query.filter(Lead.outcome == outcome.value)
            rows = query.order_by(Lead.updated_at.desc()).all()
            return [LeadRecord.model_validate(row) for row in rows]

        return await self.run("search_inactive_leads", work, user_id=user_id)

    async def search_all_leads(
        self,
        user_id: str,
        query: str,
        outcome: LeadOutcome | None = None,
    ) -> list[LeadRecord]:
        term = sanitize_text(query, max_len=255)

        def work(session: Session) -> list[LeadRecord]:
            rows = session.query(Lead).filter(Lead.user_id == user_id)
            if term:
                pattern = f"%{_escape_like(term)}%"
                rows = rows.filter(
                    or_(
                        Lead.name.ilike(pattern, escape="\\"),
                        Lead.email.ilike(pattern, escape="\\"),
                        Lead.phone.ilike(pattern, escape="\\"),
                    )
                )
            if outcome is not None:
                rows = rows.filter(Lead.outcome == outcome.value)
            return [LeadRecord.model_validate(row) for row in rows.order_by(Lead.updated_at.desc()).all()]

        return await self.run("search_all_leads", work, user_id=user_id)

    # ------------------------------------------------------------------
    # Event log
    # ------------------------------------------------------------------

    async def append_event(
        self,
        user_id: str,
        lead_id: str,
        event_type: LeadEventType,
        details: dict[str, Any] | None = None,
    ) -> LeadEventRecord:
        def work(session: Session) -> LeadEventRecord:
            lead = _owned_lead(session, lead_id, user_id)
            latest = as_utc(
                session.query(func.max(LeadEvent.created_at)).filter(LeadEvent.lead_id == lead_id).scalar()
            )
            created_at = utcnow()
            # created_at is strictly increasing per lead.
            if latest is not None and created_at <= latest:
                created_at = latest + timedelta(microseconds=1)

            event = LeadEvent(
                user_id=user_id,
                lead_id=lead_id,
                event_type=event_type.value,
                details=details,
                created_at=created_at,
            )
            session.add(event)
            lead.last_activity_at = created_at
            session.flush()
            return LeadEventRecord.model_validate(event)

        return await self.run("append_event", work, user_id=user_id)

    async def list_events(self, user_id: str, lead_id: str) -> list[LeadEventRecord]:
        def work(session: Session) -> list[LeadEventRecord]:
            _owned_lead(session, lead_id, user_id)
            rows = (
                session.query(LeadEvent)
                .filter(LeadEvent.user_id == user_id, LeadEvent.lead_id == lead_id)
                .order_by(LeadEvent.created_at.desc())
                .all()
            )
            return [LeadEventRecord.model_validate(row) for row in rows]

        return await self.run("list_events", work, user_id=user_id)
