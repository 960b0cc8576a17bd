"""Dependency providers wiring sessions, stores and controllers."""

from __future__ import annotations

from sqlalchemy.orm import sessionmaker

from leadboard.auth.jwt import decode_jwt
from leadboard.auth.session import UserSession, from_claims
from leadboard.core.config import Config, get_config
from leadboard.pipeline.controller import LeadPipelineController
from leadboard.pipeline.task_board import TaskBoardController
from leadboard.services.sql_lead_store import SqlLeadStore
from leadboard.services.task_store import SqlTaskStore


def get_settings() -> Config:
    """Return validated application configuration."""
    return get_config()


def get_user_session(token: str | None, settings: Config | None = None) -> UserSession | None:
    """Resolve the signed-in user from a bearer token; no token means signed out."""
    if token is None:
        return None
    cfg = settings or get_settings()
    return from_claims(decode_jwt(token=token, secret=cfg.JWT_SECRET))


def get_pipeline_controller(
    token: str | None,
    session_factory: sessionmaker | None = None,
    settings: Config | None = None,
) -> LeadPipelineController:
    cfg = settings or get_settings()
    store = SqlLeadStore(session_factory=session_factory, default_stage_names=cfg.DEFAULT_STAGE_NAMES)
    return LeadPipelineController(store=store, session=get_user_session(token, settings=cfg))


def get_task_board(
    token: str | None,
    session_factory: sessionmaker | None = None,
    settings: Config | None = None,
) -> TaskBoardController:
    cfg = settings or get_settings()
    store = SqlTaskStore(session_factory=session_factory, completed_limit=cfg.COMPLETED_TASKS_LIMIT)
    return TaskBoardController(store=store, session=get_user_session(token, settings=cfg))
