"""Tests for the advisory summary cache."""

import pytest

from cognimirror.aggregation.cache import SummaryCache, entity_to_summary
from cognimirror.db import repo
from cognimirror.models.domain import SummaryCacheEntity
from cognimirror.models.types import CognitiveSummary


def make_summary(**overrides) -> CognitiveSummary:
    values = dict(
        accuracy=80.0,
        avg_rt=900.0,
        max_span=6.0,
        fatigue=-0.5,
        self_correction_rate=0.4,
        fluency=790.0,
        score_max=120.0,
        score_avg=95.0,
        error_rate=20.0,
        retry_count=3,
    )
    values.update(overrides)
    return CognitiveSummary(**values)


class TestSummaryCache:
    """Reading and writing through SummaryCache."""

    def test_read_missing_returns_none(self, session_factory):
        """No cached row gives None."""
        assert SummaryCache(session_factory).read("user-1") is None

    def test_write_then_read(self, session_factory):
        """A written summary reads back identically."""
        cache = SummaryCache(session_factory)
        summary = make_summary()
        cache.write("user-1", None, summary)

        assert cache.read("user-1") == summary

    def test_keys_are_per_filter(self, session_factory):
        """User-wide and per-game summaries are stored separately."""
        cache = SummaryCache(session_factory)
        cache.write("user-1", None, make_summary(accuracy=50.0))
        cache.write("user-1", "memory", make_summary(accuracy=90.0))

        assert cache.read("user-1").accuracy == 50.0
        assert cache.read("user-1", "memory").accuracy == 90.0
        assert cache.read("user-1", "tetris") is None

    def test_write_overwrites(self, session_factory, session):
        """A second write replaces the first and refreshes last_updated."""
        cache = SummaryCache(session_factory)
        cache.write("user-1", "memory", make_summary(accuracy=50.0))
        cache.write("user-1", "memory", make_summary(accuracy=75.0))

        entity = repo.get_summary_cache(session, "user-1:memory")
        assert entity.accuracy == 75.0
        assert entity.game_id == "memory"
        assert entity.last_updated is not None

    def test_read_failure_reported_as_no_cache(self, caplog):
        """A storage failure during read is logged, not raised."""

        def broken_factory():
            raise RuntimeError("database unavailable")

        assert SummaryCache(broken_factory).read("user-1") is None
        assert "database unavailable" in caplog.text

    def test_write_failure_raises(self):
        """A storage failure during write propagates."""

        def broken_factory():
            raise RuntimeError("database unavailable")

        with pytest.raises(RuntimeError):
            SummaryCache(broken_factory).write("user-1", None, make_summary())


class TestEntityToSummary:
    """Filling absent cached fields."""

    def test_absent_fields_are_zero(self):
        """Every missing field defaults to zero."""
        summary = entity_to_summary(SummaryCacheEntity(cache_key="u", user_id="u"))
        assert summary == CognitiveSummary(
            accuracy=0.0,
            avg_rt=0.0,
            max_span=0.0,
            fatigue=0.0,
            self_correction_rate=0.0,
            fluency=0.0,
            score_max=0.0,
            score_avg=0.0,
            error_rate=0.0,
            retry_count=0,
        )

    def test_error_rate_falls_back_to_accuracy(self):
        """Missing error rate is derived from cached accuracy."""
        entity = SummaryCacheEntity(cache_key="u", user_id="u", accuracy=72.5)
        assert entity_to_summary(entity).error_rate == 27.5

    def test_stored_error_rate_wins(self):
        """A cached error rate is used as is."""
        entity = SummaryCacheEntity(cache_key="u", user_id="u", accuracy=72.5, error_rate=10.0)
        assert entity_to_summary(entity).error_rate == 10.0
