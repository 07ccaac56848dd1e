"""Tests for the repository-backed session source."""

from cognimirror.db import repo
from cognimirror.live.source import RepoSessionSource
from cognimirror.models.domain import SessionQuery
from conftest import make_record


def store(session_factory, *records):
    session = session_factory()
    try:
        for record in records:
            repo.create_session_record(session, record)
        repo.commit(session)
    finally:
        session.close()


class TestFetch:
    """One-shot fetches."""

    def test_fetch_applies_filter(self, session_factory):
        """Fetch returns the filtered set in ascending order."""
        store(
            session_factory,
            make_record(index=1, game_id="memory"),
            make_record(index=0, game_id="memory"),
            make_record(index=2, game_id="tetris"),
        )
        source = RepoSessionSource(session_factory)

        records = source.fetch(SessionQuery(user_id="user-1", game_id="memory"))
        assert [r.session_id for r in records] == ["user-1_0", "user-1_1"]


class TestSubscribe:
    """Live subscriptions."""

    def test_initial_delivery(self, session_factory):
        """Subscribing delivers the current set immediately."""
        store(session_factory, make_record(index=0))
        source = RepoSessionSource(session_factory)
        snapshots = []

        source.subscribe(SessionQuery(user_id="user-1"), snapshots.append, lambda e: None)
        assert [len(s) for s in snapshots] == [1]

    def test_notify_redelivers_full_set(self, session_factory):
        """A change for the user re-delivers the whole matching list."""
        source = RepoSessionSource(session_factory)
        snapshots = []
        source.subscribe(SessionQuery(user_id="user-1"), snapshots.append, lambda e: None)

        store(session_factory, make_record(index=0), make_record(index=1))
        source.notify("user-1")

        assert [len(s) for s in snapshots] == [0, 2]

    def test_notify_other_user_ignored(self, session_factory):
        """Changes for another user do not trigger delivery."""
        source = RepoSessionSource(session_factory)
        snapshots = []
        source.subscribe(SessionQuery(user_id="user-1"), snapshots.append, lambda e: None)

        source.notify("user-2")
        assert len(snapshots) == 1

    def test_unsubscribe_stops_delivery(self, session_factory):
        """After unsubscribe no more snapshots arrive; unsubscribing twice is safe."""
        source = RepoSessionSource(session_factory)
        snapshots = []
        unsubscribe = source.subscribe(
            SessionQuery(user_id="user-1"), snapshots.append, lambda e: None
        )

        unsubscribe()
        unsubscribe()
        source.notify("user-1")

        assert len(snapshots) == 1
        assert source.subscription_count == 0

    def test_fetch_failure_goes_to_error_callback(self):
        """A failed delivery calls on_error instead of on_snapshot."""

        def broken_factory():
            raise RuntimeError("database unavailable")

        source = RepoSessionSource(broken_factory)
        snapshots, errors = [], []
        source.subscribe(SessionQuery(user_id="user-1"), snapshots.append, errors.append)

        assert snapshots == []
        assert [str(e) for e in errors] == ["database unavailable"]

    def test_failing_subscriber_does_not_block_others(self, session_factory, caplog):
        """A subscriber that raises is logged and the rest are still delivered."""
        source = RepoSessionSource(session_factory)

        def broken_subscriber(records):
            raise RuntimeError("subscriber crashed")

        snapshots = []
        source.subscribe(SessionQuery(user_id="user-1"), broken_subscriber, lambda e: None)
        source.subscribe(SessionQuery(user_id="user-1"), snapshots.append, lambda e: None)

        store(session_factory, make_record(index=0))
        source.notify("user-1")

        assert [len(s) for s in snapshots] == [0, 1]
        assert "subscriber crashed" in caplog.text

    def test_failing_error_callback_is_contained(self, caplog):
        """An on_error callback that raises does not escape."""

        def broken_factory():
            raise RuntimeError("database unavailable")

        def broken_on_error(exc):
            raise RuntimeError("handler crashed")

        source = RepoSessionSource(broken_factory)
        source.subscribe(SessionQuery(user_id="user-1"), lambda r: None, broken_on_error)
        source.notify("user-1")

        assert "handler crashed" in caplog.text
