"""Cognitive metric derivation from raw game sessions.

Turns an ordered list of session records into a CognitiveSummary and a
per-session trend series. Pure functions - no database access.

Per-session rules take values recorded by the game (metrics.errorRate,
metrics.maxSpan, metrics.cognitiveFluency, metrics.score) in preference to
values derived from tap events.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Sequence

import numpy as np

from cognimirror.models.domain import UNKNOWN_GAME, SessionRecord, TapEvent
from cognimirror.models.types import CognitiveSummary, TrendPoint

# Fluency fallback: accuracy * 10 - avg_rt / 100
FLUENCY_ACCURACY_WEIGHT = 10.0
FLUENCY_RT_DIVISOR = 100.0


@dataclass
class SessionPoint:
    """Metrics derived from a single session."""

    accuracy: float
    avg_rt: float
    max_span: float
    self_correction_rate: float
    fluency: float
    error_rate: float
    date: str
    score: float | None = None
    game_id: str | None = None


def compute_metrics(
    sessions: Sequence[SessionRecord],
) -> tuple[CognitiveSummary, list[TrendPoint]]:
    """Compute summary metrics and trend points for a session sequence.

    Args:
        sessions: Session records ascending by start time, already filtered
            to one user (and optionally one game).

    Returns:
        Tuple of (summary, trend). Empty input gives an all-zero summary
        and an empty trend.
    """
    points = [derive_session_point(s) for s in sessions]
    return summarize_points(points), build_trend(points)


def derive_session_point(record: SessionRecord) -> SessionPoint:
    """Derive per-session metrics from one record.

    Args:
        record: Raw session record.

    Returns:
        SessionPoint for the record.
    """
    metrics = record.metrics or {}
    taps = list(record.all_taps or [])

    recorded_error_rate = as_number(metrics.get("errorRate"))
    if recorded_error_rate is not None:
        accuracy = _clamp(100.0 - recorded_error_rate, 0.0, 100.0)
    elif taps:
        correct = sum(1 for t in taps if t.is_correct)
        accuracy = correct / len(taps) * 100.0
    else:
        accuracy = 0.0

    avg_rt = _average_reaction_time(taps)

    max_span = as_number(metrics.get("maxSpan"))
    if max_span is None:
        max_span = 0.0

    fluency = as_number(metrics.get("cognitiveFluency"))
    if fluency is None:
        fluency = max(0.0, accuracy * FLUENCY_ACCURACY_WEIGHT - avg_rt / FLUENCY_RT_DIVISOR)

    error_rate = recorded_error_rate
    if error_rate is None:
        error_rate = max(0.0, 100.0 - accuracy)

    return SessionPoint(
        accuracy=accuracy,
        avg_rt=avg_rt,
        max_span=max_span,
        self_correction_rate=_self_correction_rate(taps),
        fluency=fluency,
        error_rate=error_rate,
        date=format_session_date(record.start_time),
        score=as_number(metrics.get("score")),
        game_id=record.game_id,
    )


def summarize_points(points: Sequence[SessionPoint]) -> CognitiveSummary:
    """Aggregate session points into a CognitiveSummary.

    Args:
        points: Session points in chronological order.

    Returns:
        CognitiveSummary with all fields finite.
    """
    scores = [p.score for p in points if p.score is not None]

    return CognitiveSummary(
        accuracy=safe_mean([p.accuracy for p in points]),
        avg_rt=safe_mean([p.avg_rt for p in points]),
        max_span=max([0.0, *(p.max_span for p in points)]),
        fatigue=compute_slope([p.accuracy for p in points]),
        self_correction_rate=safe_mean([p.self_correction_rate for p in points]),
        fluency=safe_mean([p.fluency for p in points]),
        score_max=max(scores) if scores else 0.0,
        score_avg=safe_mean(scores) if scores else 0.0,
        error_rate=safe_mean([p.error_rate for p in points]),
        retry_count=count_retries(p.game_id for p in points),
    )


def build_trend(points: Sequence[SessionPoint]) -> list[TrendPoint]:
    """Build one chart point per session, preserving order."""
    return [
        TrendPoint(
            date=p.date,
            accuracy=round_half_up(p.accuracy, 1),
            avg_rt=round_half_up(p.avg_rt / 1000.0, 2),
        )
        for p in points
    ]


def count_retries(game_ids) -> int:
    """Sum of (sessions - 1) per game; missing game ids share one group."""
    counts = Counter(g or UNKNOWN_GAME for g in game_ids)
    return sum(max(0, n - 1) for n in counts.values())


def compute_slope(values: Sequence[float]) -> float:
    """Ordinary least squares slope of values against indices 1..n.

    Returns 0 for fewer than two values, zero index variance, or a
    non-finite result.
    """
    if len(values) < 2:
        return 0.0
    ys = np.asarray(values, dtype=float)
    xs = np.arange(1, len(ys) + 1, dtype=float)
    dx = xs - xs.mean()
    den = float(np.sum(dx * dx))
    if den == 0:
        return 0.0
    with np.errstate(over="ignore", invalid="ignore"):
        slope = float(np.sum(dx * (ys - safe_mean(ys)))) / den
    return finite_or_zero(slope)


def safe_mean(values: Sequence[float]) -> float:
    """Arithmetic mean ignoring non-finite values; 0 when nothing is left.

    Each value is divided by the count before summing, so large finite
    inputs do not overflow.
    """
    arr = np.asarray(values, dtype=float)
    arr = arr[np.isfinite(arr)]
    if arr.size == 0:
        return 0.0
    with np.errstate(over="ignore"):
        mean = float(np.sum(arr / arr.size))
    return finite_or_zero(mean)


def finite_or_zero(value: float) -> float:
    """Return value, or 0 when it is inf or nan."""
    return value if math.isfinite(value) else 0.0


def round_half_up(value: float, digits: int) -> float:
    """Round with halves going up (2.25 -> 2.3), unlike built-in round().

    Non-finite input rounds to 0. Values too large to scale are returned
    unchanged.
    """
    if not math.isfinite(value):
        return 0.0
    factor = 10**digits
    scaled = value * factor
    if not math.isfinite(scaled):
        return value
    return math.floor(scaled + 0.5) / factor


def format_session_date(start_time: datetime) -> str:
    """Format a start time as a D/M/YYYY day label (UTC)."""
    if start_time.tzinfo is not None:
        start_time = start_time.astimezone(timezone.utc)
    return f"{start_time.day}/{start_time.month}/{start_time.year}"


def _average_reaction_time(taps: list[TapEvent]) -> float:
    """Mean of non-negative, finite deltas between consecutive taps (ms)."""
    if len(taps) < 2:
        return 0.0
    deltas = []
    for prev, curr in zip(taps, taps[1:]):
        dt = _timestamp(curr) - _timestamp(prev)
        if math.isfinite(dt) and dt >= 0:
            deltas.append(dt)
    return safe_mean(deltas)


def _self_correction_rate(taps: list[TapEvent]) -> float:
    """Fraction of taps following an incorrect tap that are correct."""
    transitions = 0
    incorrect_to_correct = 0
    for prev, curr in zip(taps, taps[1:]):
        if prev.is_correct is False:
            transitions += 1
            if curr.is_correct is True:
                incorrect_to_correct += 1
    return incorrect_to_correct / transitions if transitions else 0.0


def _timestamp(tap: TapEvent) -> float:
    value = as_number(tap.timestamp)
    if value is None:
        # inf/nan pass through so the delta gets discarded
        if isinstance(tap.timestamp, float):
            return tap.timestamp
        return 0.0
    return value


def as_number(value: Any) -> float | None:
    """Return value as float when it is a finite real number (not bool)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
