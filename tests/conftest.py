"""Shared pytest fixtures for cognimirror tests."""

from concurrent.futures import Executor, Future
from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cognimirror.db.schema import Base
from cognimirror.models.domain import SessionRecord, TapEvent

BASE_TIME = datetime(2025, 3, 1, 10, 0, 0)


class InlineExecutor(Executor):
    """Executor that runs submitted work immediately in the caller's thread."""

    def submit(self, fn, /, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


def make_record(
    *,
    index: int = 0,
    user_id: str = "user-1",
    game_id: str | None = "memory",
    metrics: dict | None = None,
    taps: list[tuple[float | None, bool | None]] | None = None,
    start_time: datetime | None = None,
) -> SessionRecord:
    """Build a SessionRecord; taps are (timestamp, is_correct) pairs."""
    start = start_time or BASE_TIME + timedelta(days=index)
    return SessionRecord(
        session_id=f"{user_id}_{index}",
        user_id=user_id,
        game_id=game_id,
        start_time=start,
        metrics=metrics or {},
        all_taps=[TapEvent(timestamp=ts, is_correct=ok) for ts, ok in (taps or [])],
    )


@pytest.fixture
def engine():
    """Create an in-memory SQLite engine shared across sessions and threads."""
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def session_factory(engine):
    """Session factory bound to the test engine."""
    return sessionmaker(bind=engine)


@pytest.fixture
def session(session_factory):
    """Create a database session for testing."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def inline_executor():
    """Executor running cache writes synchronously."""
    return InlineExecutor()


@pytest.fixture
def client(session_factory):
    """Test client for an app bound to the test database."""
    from fastapi.testclient import TestClient

    from cognimirror.api.app import create_app

    app = create_app(session_factory=session_factory, cache_executor=InlineExecutor())
    return TestClient(app)
