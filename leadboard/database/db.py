"""Database connection and session management."""

from __future__ import annotations

import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from leadboard.core.config import get_config

logger = logging.getLogger(__name__)

_engine: Engine | None = None
_session_factory: sessionmaker | None = None
_database_url: str | None = None


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine; SQLite connections are shared with worker threads."""
    if database_url.startswith("sqlite"):
        options: dict = {"connect_args": {"check_same_thread": False}}
        if database_url in {"sqlite://", "sqlite:///:memory:"}:
            options["poolclass"] = StaticPool
        return create_engine(database_url, echo=echo, **options)
    return create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_recycle=3600,
        pool_size=10,
        max_overflow=20,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def _configure_engine(database_url: str) -> None:
    global _database_url, _engine, _session_factory
    config = get_config()
    _database_url = database_url
    _engine = build_engine(database_url, echo=config.DEBUG and not config.is_production)
    _session_factory = build_session_factory(_engine)


def get_engine() -> Engine:
    """Return the active SQLAlchemy engine, creating it on first use."""
    if _engine is None:
        _configure_engine(get_config().DATABASE_URL)
    return _engine


def get_session_factory() -> sessionmaker:
    if _session_factory is None:
        _configure_engine(get_config().DATABASE_URL)
    return _session_factory


def get_active_database_url() -> str:
    """Return the currently bound database URL."""
    return _database_url or get_config().DATABASE_URL


def verify_database_connection() -> bool:
    """Verify DB connectivity during startup."""
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.exception("database.connection_failed", extra={"event": "database.connection_failed"})
        return False
