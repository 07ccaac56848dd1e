"""Domain models for CogniMirror.

Pure Python dataclasses representing domain entities.
These models are independent of SQLAlchemy and used throughout
the application for clean separation from the database layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

# Group for sessions recorded without a game id
UNKNOWN_GAME = "unknown"


# ============================================================================
# Game Session Domain
# ============================================================================


@dataclass
class TapEvent:
    """A single timestamped interaction within a game session.

    Either field may be missing on legacy records; `is_correct` is only
    meaningful when explicitly True or False.
    """

    timestamp: float | None = None
    is_correct: bool | None = None


@dataclass
class SessionRecord:
    """Domain model for one completed game session (read-only input)."""

    session_id: str
    user_id: str
    start_time: datetime
    game_id: str | None = None
    user_name: str | None = None
    end_time: datetime | None = None
    metrics: dict[str, Any] = field(default_factory=dict)
    all_taps: list[TapEvent] = field(default_factory=list)


@dataclass
class SessionQuery:
    """Filter for a user's session set, optionally narrowed to one game."""

    user_id: str
    game_id: str | None = None


# ============================================================================
# Summary Cache Domain
# ============================================================================


@dataclass
class SummaryCacheEntity:
    """Domain model for a cached cognitive summary.

    Every metric is nullable because older cache rows may predate a field.
    """

    cache_key: str
    user_id: str
    game_id: str | None = None
    accuracy: float | None = None
    avg_rt: float | None = None
    max_span: float | None = None
    fatigue: float | None = None
    self_correction_rate: float | None = None
    fluency: float | None = None
    score_max: float | None = None
    score_avg: float | None = None
    error_rate: float | None = None
    retry_count: int | None = None
    last_updated: datetime | None = None


# ============================================================================
# Tracker Domain
# ============================================================================

TrackerStatus = Literal["loading", "success", "error"]
