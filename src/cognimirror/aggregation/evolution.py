"""Evolution statistics over a user's full session history.

Pure function - no database access.
"""

from __future__ import annotations

from typing import Sequence

from cognimirror.aggregation.cognitive import (
    as_number,
    finite_or_zero,
    format_session_date,
    round_half_up,
    safe_mean,
)
from cognimirror.models.domain import SessionRecord
from cognimirror.models.types import EvolutionStats, ProgressionPoint


def compute_evolution_stats(sessions: Sequence[SessionRecord]) -> EvolutionStats:
    """Compute averages and a chronological progression from recorded metrics.

    Unlike compute_metrics, nothing is derived from taps: a session without
    a recorded value contributes 0.

    Args:
        sessions: Session records ascending by start time.

    Returns:
        EvolutionStats (zeros and empty progression for no sessions).
    """
    if not sessions:
        return EvolutionStats(
            total_sessions=0,
            average_max_span=0.0,
            average_cognitive_fluency=0.0,
            total_persistence=0.0,
            average_error_rate=0.0,
            progression=[],
        )

    total = len(sessions)
    max_spans = [_metric(s, "maxSpan") for s in sessions]
    fluencies = [_metric(s, "cognitiveFluency") for s in sessions]

    progression = [
        ProgressionPoint(
            date=format_session_date(s.start_time),
            max_span=span,
            fluency=int(round_half_up(fluency, 0)),
        )
        for s, span, fluency in zip(sessions, max_spans, fluencies)
    ]

    return EvolutionStats(
        total_sessions=total,
        average_max_span=safe_mean(max_spans),
        average_cognitive_fluency=safe_mean(fluencies),
        total_persistence=finite_or_zero(sum(_metric(s, "persistence") for s in sessions)),
        average_error_rate=safe_mean([_metric(s, "errorRate") for s in sessions]),
        progression=progression,
    )


def _metric(record: SessionRecord, name: str) -> float:
    value = as_number((record.metrics or {}).get(name))
    return value if value is not None else 0.0
