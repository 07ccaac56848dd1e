"""Database schema for CogniMirror.

Two collections: raw game sessions (append-only) and the advisory
summary cache (upserted by key).
"""

from datetime import datetime, timezone

from sqlalchemy import (
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class GameSession(Base):
    """One completed game session.

    session_id is "{user_id}_{start_ms}", so a session can be recorded once.
    """

    __tablename__ = "analysis_game_sessions"

    session_id: Mapped[str] = mapped_column(String(160), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    game_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    metrics_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    taps_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("ix_sessions_user_game_start", "user_id", "game_id", "start_time"),
    )


class SummaryMetrics(Base):
    """Cached cognitive summary keyed by user or user:game.

    Advisory only: never read in place of a fresh computation once one exists.
    """

    __tablename__ = "summary_metrics"

    cache_key: Mapped[str] = mapped_column(String(200), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    game_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    accuracy: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_rt: Mapped[float | None] = mapped_column(Float, nullable=True)
    max_span: Mapped[float | None] = mapped_column(Float, nullable=True)
    fatigue: Mapped[float | None] = mapped_column(Float, nullable=True)
    self_correction_rate: Mapped[float | None] = mapped_column(Float, nullable=True)
    fluency: Mapped[float | None] = mapped_column(Float, nullable=True)
    score_max: Mapped[float | None] = mapped_column(Float, nullable=True)
    score_avg: Mapped[float | None] = mapped_column(Float, nullable=True)
    error_rate: Mapped[float | None] = mapped_column(Float, nullable=True)
    retry_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )
