"""Shared store base with per-call session lifecycle behavior."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Generator
from contextlib import contextmanager
from typing import TypeVar

import pydantic
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from leadboard.core.exceptions import PersistenceFailure, ValidationError
from leadboard.database.db import get_session_factory

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BaseService:
    """Base class for stores backed by SQLAlchemy sessions.

    Each call opens its own short-lived session and runs in a worker thread,
    so coroutine callers never block the event loop on database I/O.
    """

    def __init__(self, session_factory: sessionmaker | None = None) -> None:
        self._session_factory = session_factory or get_session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Commit on success and rollback on failure."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _run_sync(self, work: Callable[[Session], T]) -> T:
        with self.session_scope() as session:
            return work(session)

    async def run(self, operation: str, work: Callable[[Session], T], user_id: str | None = None) -> T:
        """Execute `work(session)` off the event loop and translate store errors."""
        try:
            return await asyncio.to_thread(self._run_sync, work)
        except SQLAlchemyError as exc:
            logger.exception(
                f"store.{operation}.failed",
                extra={"event": f"store.{operation}.failed", "user_id": user_id},
            )
            raise PersistenceFailure(str(exc)) from exc
        except pydantic.ValidationError as exc:
            logger.error(
                f"store.{operation}.invalid_row",
                extra={"event": f"store.{operation}.invalid_row", "user_id": user_id},
            )
            raise ValidationError(str(exc)) from exc
