from __future__ import annotations

import pytest

from leadboard.auth.session import UserSession
from leadboard.core.enums import DEFAULT_STAGE_NAMES
from leadboard.database.db import build_engine, build_session_factory
from leadboard.models import Base
from leadboard.services.sql_lead_store import SqlLeadStore
from leadboard.services.task_store import SqlTaskStore


@pytest.fixture
def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'leadboard_test.db'}")
    Base.metadata.create_all(bind=engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def lead_store(session_factory):
    return SqlLeadStore(session_factory=session_factory, default_stage_names=DEFAULT_STAGE_NAMES)


@pytest.fixture
def task_store(session_factory):
    return SqlTaskStore(session_factory=session_factory, completed_limit=50)


@pytest.fixture
def user():
    return UserSession(user_id="user-1", email="broker@example.com")


@pytest.fixture
def other_user():
    return UserSession(user_id="user-2")
