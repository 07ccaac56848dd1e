"""Advisory summary cache.

A cached summary is shown while a fresh computation is pending and is
never treated as authoritative. Reads never raise: a storage failure is
logged and reported as "no cache". Writes raise, and callers decide
whether to surface the failure.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from cognimirror.core.identity import summary_cache_key
from cognimirror.db import repo
from cognimirror.db.repo import DbSession
from cognimirror.models.domain import SummaryCacheEntity
from cognimirror.models.types import CognitiveSummary

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], DbSession]


class SummaryCache:
    """Keyed summary store over the summary_metrics table."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize cache.

        Args:
            session_factory: Callable returning a new database session.
                Each read/write opens and closes its own session.
        """
        self._session_factory = session_factory

    def read(self, user_id: str, game_id: str | None = None) -> CognitiveSummary | None:
        """Return the cached summary for a filter, or None."""
        key = summary_cache_key(user_id, game_id)
        try:
            session = self._session_factory()
            try:
                entity = repo.get_summary_cache(session, key)
            finally:
                session.close()
        except Exception as e:
            logger.warning(f"Summary cache read failed for {key}: {e}")
            return None

        if entity is None:
            return None
        return entity_to_summary(entity)

    def write(
        self,
        user_id: str,
        game_id: str | None,
        summary: CognitiveSummary,
    ) -> None:
        """Upsert the summary for a filter with a fresh last_updated stamp."""
        entity = summary_to_entity(user_id, game_id, summary)
        session = self._session_factory()
        try:
            repo.upsert_summary_cache(session, entity)
            repo.commit(session)
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
        logger.debug(f"Cached summary for {entity.cache_key}")


def summary_to_entity(
    user_id: str, game_id: str | None, summary: CognitiveSummary
) -> SummaryCacheEntity:
    """Build a cache entity from a computed summary."""
    return SummaryCacheEntity(
        cache_key=summary_cache_key(user_id, game_id),
        user_id=user_id,
        game_id=game_id or None,
        accuracy=summary.accuracy,
        avg_rt=summary.avg_rt,
        max_span=summary.max_span,
        fatigue=summary.fatigue,
        self_correction_rate=summary.self_correction_rate,
        fluency=summary.fluency,
        score_max=summary.score_max,
        score_avg=summary.score_avg,
        error_rate=summary.error_rate,
        retry_count=summary.retry_count,
        last_updated=datetime.now(timezone.utc),
    )


def entity_to_summary(entity: SummaryCacheEntity) -> CognitiveSummary:
    """Rebuild a summary from a cache row, filling absent fields.

    A missing error_rate falls back to 100 - accuracy when accuracy is cached.
    """
    error_rate = entity.error_rate
    if error_rate is None:
        error_rate = max(0.0, 100.0 - entity.accuracy) if entity.accuracy is not None else 0.0

    return CognitiveSummary(
        accuracy=_or_zero(entity.accuracy),
        avg_rt=_or_zero(entity.avg_rt),
        max_span=_or_zero(entity.max_span),
        fatigue=_or_zero(entity.fatigue),
        self_correction_rate=_or_zero(entity.self_correction_rate),
        fluency=_or_zero(entity.fluency),
        score_max=_or_zero(entity.score_max),
        score_avg=_or_zero(entity.score_avg),
        error_rate=error_rate,
        retry_count=entity.retry_count or 0,
    )


def _or_zero(value: float | None) -> float:
    return value if value is not None else 0.0
