"""Tests for session recording."""

from datetime import datetime, timedelta, timezone

import pytest

from cognimirror.db import repo
from cognimirror.ingest.sessions import DuplicateSessionError, SessionInput, record_session
from cognimirror.models.domain import TapEvent


def make_input(**overrides) -> SessionInput:
    values = dict(
        user_id="user-1",
        start_time=datetime(2025, 3, 1, 10, 0, 0),
        game_id="memory",
        user_name="Ana",
        metrics={"maxSpan": 5},
        all_taps=[TapEvent(0, True), TapEvent(800, False)],
    )
    values.update(overrides)
    return SessionInput(**values)


class TestRecordSession:
    """Storing completed sessions."""

    def test_records_and_returns(self, session):
        """A recorded session can be read back by id."""
        record = record_session(session, make_input())

        assert record.session_id == "user-1_1740823200000"
        stored = repo.get_session_record(session, record.session_id)
        assert stored.user_name == "Ana"
        assert stored.metrics == {"maxSpan": 5}
        assert len(stored.all_taps) == 2

    def test_aware_times_stored_as_utc(self, session):
        """Timezone-aware times are normalized to naive UTC."""
        tz = timezone(timedelta(hours=2))
        record = record_session(
            session,
            make_input(
                start_time=datetime(2025, 3, 1, 12, 0, tzinfo=tz),
                end_time=datetime(2025, 3, 1, 12, 5, tzinfo=tz),
            ),
        )

        assert record.start_time == datetime(2025, 3, 1, 10, 0)
        assert record.end_time == datetime(2025, 3, 1, 10, 5)
        assert record.session_id == "user-1_1740823200000"

    def test_empty_game_stored_as_none(self, session):
        """An empty game id is stored as missing."""
        record = record_session(session, make_input(game_id=""))
        assert repo.get_session_record(session, record.session_id).game_id is None

    def test_blank_user_rejected(self, session):
        """Blank user ids are rejected."""
        with pytest.raises(ValueError):
            record_session(session, make_input(user_id="  "))

    def test_duplicate_rejected(self, session):
        """Recording the same user and start twice raises."""
        record_session(session, make_input())
        with pytest.raises(DuplicateSessionError):
            record_session(session, make_input(metrics={"maxSpan": 9}))

        assert len(repo.get_sessions_for_user(session, "user-1")) == 1
