"""Pydantic models for the CogniMirror API.

Field names are snake_case versions of the dashboard document fields
(avgRT -> avg_rt, allTaps -> all_taps, isCorrect -> is_correct).
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel


class CognitiveSummary(BaseModel):
    """Derived cognitive metrics over a set of sessions.

    Every field is a finite number; empty input yields zeros.
    """

    accuracy: float  # 0-100
    avg_rt: float  # milliseconds
    max_span: float
    fatigue: float  # OLS slope of accuracy over session index
    self_correction_rate: float  # 0-1
    fluency: float
    score_max: float
    score_avg: float
    error_rate: float  # 0-100
    retry_count: int


class TrendPoint(BaseModel):
    """One chart point per session."""

    date: str
    accuracy: float  # 0-100, one decimal
    avg_rt: float  # seconds, two decimals


class MetricsReport(BaseModel):
    """Summary, trend and session counts for a user (optionally one game)."""

    user_id: str
    game_id: str | None
    summary: CognitiveSummary
    trend: list[TrendPoint]
    filtered_sessions_count: int
    total_sessions: int
    per_game_counts: dict[str, int]


class TapSubmission(BaseModel):
    """Tap event as submitted by a game."""

    timestamp: float | None = None
    is_correct: bool | None = None


class SessionSubmission(BaseModel):
    """Completed game session submission."""

    user_id: str
    game_id: str | None = None
    user_name: str | None = None
    start_time: datetime
    end_time: datetime | None = None
    metrics: dict[str, Any] = {}
    all_taps: list[TapSubmission] = []


class SessionDetail(BaseModel):
    """Stored game session for API response."""

    session_id: str
    user_id: str
    game_id: str | None
    user_name: str | None
    start_time: datetime
    end_time: datetime | None
    metrics: dict[str, Any]
    tap_count: int


class CoachAdvice(BaseModel):
    """Rule-based coach messages for a summary."""

    user_id: str
    game_id: str | None
    messages: list[str]


class ProgressionPoint(BaseModel):
    """Per-session evolution point."""

    date: str
    max_span: float
    fluency: int


class EvolutionStats(BaseModel):
    """Long-run evolution statistics over all of a user's sessions."""

    total_sessions: int
    average_max_span: float
    average_cognitive_fluency: float
    total_persistence: float
    average_error_rate: float
    progression: list[ProgressionPoint]


class TrackerSnapshot(BaseModel):
    """Current state of a live metrics tracker."""

    user_id: str
    game_id: str | None
    status: Literal["loading", "success", "error"]
    error: str | None
    summary: CognitiveSummary | None
    trend: list[TrendPoint]
    filtered_sessions_count: int
    from_cache: bool
