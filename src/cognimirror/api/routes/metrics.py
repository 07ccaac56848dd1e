"""Metrics API endpoint.

GET /api/users/{user_id}/metrics - Summary, trend and counts
GET /api/users/{user_id}/metrics/cached - Last cached summary
GET /api/users/{user_id}/metrics/live - Live tracker state
GET /api/users/{user_id}/evolution - Long-run evolution statistics
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from cognimirror.aggregation.cache import SummaryCache
from cognimirror.aggregation.evolution import compute_evolution_stats
from cognimirror.aggregation.summary import summarize_sessions
from cognimirror.api.app import get_db_session, get_summary_cache, get_tracker_registry
from cognimirror.db import repo
from cognimirror.db.repo import DbSession
from cognimirror.live.tracker import TrackerRegistry
from cognimirror.models.types import (
    CognitiveSummary,
    EvolutionStats,
    MetricsReport,
    TrackerSnapshot,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _write_cache_quietly(
    cache: SummaryCache,
    user_id: str,
    game_id: str | None,
    summary: CognitiveSummary,
) -> None:
    """Best-effort cache write; failures are logged, never raised."""
    try:
        cache.write(user_id, game_id, summary)
    except Exception as e:
        logger.warning(f"Summary cache write failed for user {user_id}: {e}")


@router.get("/users/{user_id}/metrics", response_model=MetricsReport)
def get_metrics(
    user_id: str,
    background_tasks: BackgroundTasks,
    game_id: str | None = None,
    session: DbSession = Depends(get_db_session),
    cache: SummaryCache = Depends(get_summary_cache),
) -> MetricsReport:
    """Compute the metrics report for a user.

    The summary is cached after the response is sent.

    Args:
        user_id: User to summarize.
        background_tasks: Post-response tasks (injected).
        game_id: Optional game filter.
        session: Database session (injected).
        cache: Summary cache (injected).

    Returns:
        MetricsReport (all-zero summary for users without sessions).
    """
    report = summarize_sessions(session, user_id, game_id)
    background_tasks.add_task(_write_cache_quietly, cache, user_id, game_id, report.summary)
    return report


@router.get("/users/{user_id}/metrics/cached", response_model=CognitiveSummary)
def get_cached_metrics(
    user_id: str,
    game_id: str | None = None,
    cache: SummaryCache = Depends(get_summary_cache),
) -> CognitiveSummary:
    """Get the last cached summary for fast initial display.

    Raises:
        HTTPException: 404 if nothing is cached.
    """
    cached = cache.read(user_id, game_id)
    if cached is None:
        raise HTTPException(status_code=404, detail="No cached summary")
    return cached


@router.get("/users/{user_id}/metrics/live", response_model=TrackerSnapshot)
def get_live_metrics(
    user_id: str,
    game_id: str | None = None,
    trackers: TrackerRegistry = Depends(get_tracker_registry),
) -> TrackerSnapshot:
    """Get the live tracker state for a filter, starting the tracker if needed."""
    tracker = trackers.get(user_id, game_id)
    state = tracker.state
    return TrackerSnapshot(
        user_id=user_id,
        game_id=game_id,
        status=state.status,
        error=state.error,
        summary=state.summary,
        trend=list(state.trend),
        filtered_sessions_count=state.filtered_sessions_count,
        from_cache=state.from_cache,
    )


@router.get("/users/{user_id}/evolution", response_model=EvolutionStats)
def get_evolution(
    user_id: str,
    session: DbSession = Depends(get_db_session),
) -> EvolutionStats:
    """Get evolution statistics over all of a user's sessions."""
    records = repo.get_sessions_for_user(session, user_id)
    return compute_evolution_stats(records)
