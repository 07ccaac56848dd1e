"""Metrics report for a user's sessions.

Loads the filtered session set through the repository and runs the pure
aggregation in cognimirror.aggregation.cognitive.
"""

from __future__ import annotations

from cognimirror.aggregation.cognitive import compute_metrics
from cognimirror.db import repo
from cognimirror.db.repo import DbSession
from cognimirror.models.types import MetricsReport


def summarize_sessions(
    session: DbSession,
    user_id: str,
    game_id: str | None = None,
) -> MetricsReport:
    """Compute the metrics report for a user, optionally one game.

    Args:
        session: Database session.
        user_id: User whose sessions are summarized.
        game_id: Optional game filter.

    Returns:
        MetricsReport with summary, trend and session counts. A user with
        no sessions gets an all-zero summary rather than an error.
    """
    records = repo.get_sessions_for_user(session, user_id, game_id)
    summary, trend = compute_metrics(records)

    # Counts always span every game, regardless of the filter
    per_game_counts = repo.count_sessions_by_game(session, user_id)

    return MetricsReport(
        user_id=user_id,
        game_id=game_id,
        summary=summary,
        trend=trend,
        filtered_sessions_count=len(records),
        total_sessions=sum(per_game_counts.values()),
        per_game_counts=per_game_counts,
    )
