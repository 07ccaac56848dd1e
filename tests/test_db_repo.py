"""Tests for the database schema and repository."""

import json
from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from cognimirror.db import repo
from cognimirror.db.schema import Base, GameSession
from cognimirror.db.session import get_db_session, init_db
from cognimirror.models.domain import SummaryCacheEntity
from conftest import make_record


class TestSchemaCreation:
    """Test that schema can be created without errors."""

    def test_all_tables_created(self, engine):
        """All required tables should exist after creation."""
        assert {"analysis_game_sessions", "summary_metrics"}.issubset(Base.metadata.tables.keys())


class TestGameSessionRepository:
    """Storing and querying game sessions."""

    def test_round_trip_preserves_taps_and_metrics(self, session):
        """Stored taps and metrics come back unchanged."""
        record = make_record(
            metrics={"errorRate": 12.5, "maxSpan": 6, "extra": "kept"},
            taps=[(0, True), (350.5, False), (None, None)],
        )
        repo.create_session_record(session, record)
        repo.commit(session)

        loaded = repo.get_session_record(session, record.session_id)
        assert loaded is not None
        assert loaded.metrics == {"errorRate": 12.5, "maxSpan": 6, "extra": "kept"}
        assert [(t.timestamp, t.is_correct) for t in loaded.all_taps] == [
            (0, True),
            (350.5, False),
            (None, None),
        ]

    def test_missing_session_returns_none(self, session):
        """Unknown id gives None."""
        assert repo.get_session_record(session, "nope") is None

    def test_sessions_ascending_by_start_time(self, session):
        """Sessions are returned oldest first regardless of insert order."""
        for index in [2, 0, 1]:
            repo.create_session_record(session, make_record(index=index))
        repo.commit(session)

        records = repo.get_sessions_for_user(session, "user-1")
        assert [r.session_id for r in records] == ["user-1_0", "user-1_1", "user-1_2"]

    def test_filters_by_user_and_game(self, session):
        """Only the requested user's (and game's) sessions are returned."""
        repo.create_session_record(session, make_record(index=0, game_id="memory"))
        repo.create_session_record(session, make_record(index=1, game_id="tetris"))
        repo.create_session_record(session, make_record(index=2, user_id="user-2"))
        repo.commit(session)

        assert len(repo.get_sessions_for_user(session, "user-1")) == 2
        memory = repo.get_sessions_for_user(session, "user-1", "memory")
        assert [r.game_id for r in memory] == ["memory"]
        assert repo.get_sessions_for_user(session, "nobody") == []

    def test_count_sessions_by_game(self, session):
        """Counts per game, with missing games as 'unknown'."""
        for index, game in enumerate(["memory", "memory", "tetris", None]):
            repo.create_session_record(session, make_record(index=index, game_id=game))
        repo.commit(session)

        assert repo.count_sessions_by_game(session, "user-1") == {
            "memory": 2,
            "tetris": 1,
            "unknown": 1,
        }

    def test_duplicate_session_id_rejected(self, session_factory):
        """The same session id cannot be stored twice."""
        first = session_factory()
        repo.create_session_record(first, make_record(index=0))
        repo.commit(first)
        first.close()

        second = session_factory()
        repo.create_session_record(second, make_record(index=0))
        with pytest.raises(IntegrityError):
            repo.commit(second)
        second.rollback()
        second.close()

    def test_corrupt_taps_raise(self, session):
        """Undecodable stored taps surface as an error."""
        session.add(
            GameSession(
                session_id="bad",
                user_id="user-1",
                start_time=datetime(2025, 1, 1),
                metrics_json=json.dumps({}),
                taps_json="not json",
            )
        )
        session.commit()

        with pytest.raises(ValueError):
            repo.get_sessions_for_user(session, "user-1")


class TestSummaryCacheRepository:
    """Upserting and reading cached summaries."""

    def test_insert_then_read(self, session):
        """A new cache row can be read back."""
        repo.upsert_summary_cache(
            session,
            SummaryCacheEntity(cache_key="user-1", user_id="user-1", accuracy=70.0, retry_count=2),
        )
        repo.commit(session)

        entity = repo.get_summary_cache(session, "user-1")
        assert entity.accuracy == 70.0
        assert entity.retry_count == 2
        assert entity.last_updated is not None

    def test_upsert_overwrites(self, session):
        """Writing the same key replaces the previous values."""
        first = SummaryCacheEntity(cache_key="user-1:memory", user_id="user-1", game_id="memory")
        first.accuracy = 50.0
        repo.upsert_summary_cache(session, first)
        repo.commit(session)

        second = SummaryCacheEntity(
            cache_key="user-1:memory",
            user_id="user-1",
            game_id="memory",
            accuracy=90.0,
            last_updated=datetime(2030, 1, 1) + timedelta(hours=1),
        )
        repo.upsert_summary_cache(session, second)
        repo.commit(session)

        entity = repo.get_summary_cache(session, "user-1:memory")
        assert entity.accuracy == 90.0
        assert entity.last_updated == datetime(2030, 1, 1, 1, 0)

    def test_missing_key_returns_none(self, session):
        """Unknown key gives None."""
        assert repo.get_summary_cache(session, "nobody") is None


class TestDbSessionContext:
    """get_db_session commits on success and rolls back on error."""

    def test_commits_on_exit(self, tmp_path):
        """Work done inside the block is committed."""
        db_path = tmp_path / "ctx.db"
        init_db(db_path)

        with get_db_session(db_path) as db:
            repo.create_session_record(db, make_record(index=0))

        with get_db_session(db_path) as db:
            assert repo.get_session_record(db, "user-1_0") is not None

    def test_rolls_back_on_error(self, tmp_path):
        """An exception discards uncommitted work and propagates."""
        db_path = tmp_path / "ctx.db"
        init_db(db_path)

        with pytest.raises(RuntimeError):
            with get_db_session(db_path) as db:
                repo.create_session_record(db, make_record(index=0))
                raise RuntimeError("abort")

        with get_db_session(db_path) as db:
            assert repo.get_session_record(db, "user-1_0") is None
