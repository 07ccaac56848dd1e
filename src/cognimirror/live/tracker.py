"""Live cognitive metrics tracker.

Architecture:
- CognitiveMetricsTracker: holds the current TrackerState for one filter
  and recomputes it from every snapshot the source delivers
- TrackerRegistry: one started tracker per (user_id, game_id) pair, at most
  max_trackers at a time; the least recently used one is stopped first

State machine: loading -> (success | error), re-entered on every start().
Each computation replaces the whole state; nothing is merged.

Failure handling:
- subscription error: one fallback fetch, error state only if that fails too
- computation error: error state, last summary kept
- cache read: ignored, treated as "no cache"
- cache write: detached, failure only logged
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass

from cognimirror.aggregation.cache import SummaryCache
from cognimirror.aggregation.cognitive import compute_metrics
from cognimirror.core.identity import summary_cache_key
from cognimirror.live.source import SessionSource, Unsubscribe
from cognimirror.models.domain import SessionQuery, SessionRecord, TrackerStatus
from cognimirror.models.types import CognitiveSummary, TrendPoint

logger = logging.getLogger(__name__)

# Live filters kept per registry; each one re-queries on every write for its user
DEFAULT_MAX_TRACKERS = 256

# Shared by all trackers that are not given an executor
_default_cache_writer: ThreadPoolExecutor | None = None
_default_cache_writer_lock = threading.Lock()


def _get_default_cache_writer() -> ThreadPoolExecutor:
    global _default_cache_writer
    with _default_cache_writer_lock:
        if _default_cache_writer is None:
            _default_cache_writer = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="summary-cache"
            )
        return _default_cache_writer


@dataclass(frozen=True)
class TrackerState:
    """Immutable snapshot of a tracker.

    Attributes:
        status: loading, success or error.
        summary: Latest summary; while loading this may be the cached one.
        trend: Trend points of the latest computation.
        filtered_sessions_count: Sessions in the latest snapshot.
        error: Message when status is error.
        from_cache: True while summary comes from the cache.
    """

    status: TrackerStatus
    summary: CognitiveSummary | None = None
    trend: tuple[TrendPoint, ...] = ()
    filtered_sessions_count: int = 0
    error: str | None = None
    from_cache: bool = False


class CognitiveMetricsTracker:
    """Keeps a live cognitive summary for one user/game filter."""

    def __init__(
        self,
        source: SessionSource,
        cache: SummaryCache | None = None,
        executor: Executor | None = None,
    ):
        """Initialize tracker.

        Args:
            source: Observable session source.
            cache: Optional summary cache for provisional reads and write-back.
            executor: Runs cache writes. Defaults to a shared single worker.
        """
        self._source = source
        self._cache = cache
        self._executor = executor
        self._query: SessionQuery | None = None
        self._unsubscribe: Unsubscribe | None = None
        self._state = TrackerState(status="loading")

    @property
    def state(self) -> TrackerState:
        return self._state

    @property
    def query(self) -> SessionQuery | None:
        return self._query

    def start(self, user_id: str, game_id: str | None = None) -> TrackerState:
        """Start (or restart) tracking a filter.

        Args:
            user_id: User to track.
            game_id: Optional game filter.

        Returns:
            State after the first delivery (or loading if none arrived yet).
        """
        self.stop()

        query = SessionQuery(user_id=user_id, game_id=game_id or None)
        self._query = query
        self._state = TrackerState(status="loading")

        cached = self._cache.read(user_id, query.game_id) if self._cache else None
        if cached is not None:
            self._state = TrackerState(status="loading", summary=cached, from_cache=True)

        self._unsubscribe = self._source.subscribe(
            query,
            on_snapshot=lambda records: self._on_snapshot(query, records),
            on_error=lambda exc: self._on_error(query, exc),
        )
        return self._state

    def stop(self) -> None:
        """Cancel the current subscription, if any."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _is_current(self, query: SessionQuery) -> bool:
        return self._query is query

    def _on_snapshot(self, query: SessionQuery, records: list[SessionRecord]) -> None:
        if not self._is_current(query):
            return
        try:
            summary = self._compute(records)
        except Exception as e:
            logger.warning(f"Metrics computation failed for {query}: {e}")
            self._set_error(str(e) or "computation error")
            return
        self._write_cache(query, summary)

    def _on_error(self, query: SessionQuery, exc: Exception) -> None:
        if not self._is_current(query):
            return
        logger.warning(f"Live subscription failed for {query}, falling back to fetch: {exc}")
        try:
            records = self._source.fetch(query)
        except Exception as e:
            logger.warning(f"Fallback fetch failed for {query}: {e}")
            self._set_error(str(e) or "query error")
            return
        try:
            self._compute(records)
        except Exception as e:
            logger.warning(f"Metrics computation failed for {query}: {e}")
            self._set_error(str(e) or "computation error")

    def _set_error(self, message: str) -> None:
        """Enter the error state, keeping the last summary on display."""
        previous = self._state
        self._state = TrackerState(
            status="error",
            summary=previous.summary,
            trend=previous.trend,
            filtered_sessions_count=previous.filtered_sessions_count,
            error=message,
            from_cache=previous.from_cache,
        )

    def _compute(self, records: list[SessionRecord]) -> CognitiveSummary:
        summary, trend = compute_metrics(records)
        self._state = TrackerState(
            status="success",
            summary=summary,
            trend=tuple(trend),
            filtered_sessions_count=len(records),
        )
        return summary

    def _write_cache(self, query: SessionQuery, summary: CognitiveSummary) -> None:
        if self._cache is None:
            return
        key = summary_cache_key(query.user_id, query.game_id)
        executor = self._executor or _get_default_cache_writer()
        try:
            future = executor.submit(self._cache.write, query.user_id, query.game_id, summary)
        except RuntimeError as e:
            logger.warning(f"Summary cache write not scheduled for {key}: {e}")
            return
        future.add_done_callback(lambda f: _log_cache_write_failure(key, f))


def _log_cache_write_failure(key: str, future: Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.warning(f"Summary cache write failed for {key}: {exc}")


class TrackerRegistry:
    """Started trackers keyed by (user_id, game_id), least recently used first out."""

    def __init__(
        self,
        source: SessionSource,
        cache: SummaryCache | None = None,
        executor: Executor | None = None,
        max_trackers: int = DEFAULT_MAX_TRACKERS,
    ):
        """Initialize registry.

        Args:
            source: Observable session source shared by all trackers.
            cache: Optional summary cache shared by all trackers.
            executor: Runs cache writes for all trackers.
            max_trackers: Live trackers kept before the least recently
                used one is stopped.
        """
        if max_trackers < 1:
            raise ValueError("max_trackers must be at least 1")
        self._source = source
        self._cache = cache
        self._executor = executor
        self._max_trackers = max_trackers
        self._trackers: OrderedDict[tuple[str, str | None], CognitiveMetricsTracker] = (
            OrderedDict()
        )
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._trackers)

    def get(self, user_id: str, game_id: str | None = None) -> CognitiveMetricsTracker:
        """Return the tracker for a filter, starting it on first use."""
        key = (user_id, game_id or None)
        with self._lock:
            tracker = self._trackers.get(key)
            if tracker is not None:
                self._trackers.move_to_end(key)
                return tracker

            while len(self._trackers) >= self._max_trackers:
                evicted_key, evicted = self._trackers.popitem(last=False)
                evicted.stop()
                logger.debug(f"Stopped idle tracker for {evicted_key}")

            tracker = CognitiveMetricsTracker(self._source, self._cache, self._executor)
            tracker.start(user_id, game_id)
            self._trackers[key] = tracker
        return tracker

    def close(self) -> None:
        """Stop every tracker."""
        with self._lock:
            for tracker in self._trackers.values():
                tracker.stop()
            self._trackers.clear()
