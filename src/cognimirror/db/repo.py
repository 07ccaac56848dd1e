"""Repository pattern for database operations.

Encapsulates all SQLAlchemy queries, keeping domain logic pure.
Returns domain models (not SQLAlchemy entities) to external callers.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import func
from sqlalchemy.orm import Session

from cognimirror.db.schema import GameSession, SummaryMetrics
from cognimirror.models.domain import UNKNOWN_GAME, SessionRecord, SummaryCacheEntity, TapEvent

if TYPE_CHECKING:
    from sqlalchemy.orm import Session as DbSession
else:
    DbSession = Session

# Re-export for external use
__all__ = ["DbSession"]


# ============================================================================
# Converters: SQLAlchemy -> Domain
# ============================================================================


def _taps_from_json(taps_json: str | None) -> list[TapEvent]:
    """Decode stored tap events."""
    if not taps_json:
        return []
    return [
        TapEvent(timestamp=tap.get("timestamp"), is_correct=tap.get("is_correct"))
        for tap in json.loads(taps_json)
    ]


def _taps_to_json(taps: list[TapEvent]) -> str:
    """Encode tap events for storage."""
    return json.dumps([{"timestamp": t.timestamp, "is_correct": t.is_correct} for t in taps])


def _session_to_record(row: GameSession) -> SessionRecord:
    """Convert SQLAlchemy GameSession to domain record."""
    return SessionRecord(
        session_id=row.session_id,
        user_id=row.user_id,
        game_id=row.game_id,
        user_name=row.user_name,
        start_time=row.start_time,
        end_time=row.end_time,
        metrics=json.loads(row.metrics_json) if row.metrics_json else {},
        all_taps=_taps_from_json(row.taps_json),
    )


def _cache_to_entity(row: SummaryMetrics) -> SummaryCacheEntity:
    """Convert SQLAlchemy SummaryMetrics to domain entity."""
    return SummaryCacheEntity(
        cache_key=row.cache_key,
        user_id=row.user_id,
        game_id=row.game_id,
        accuracy=row.accuracy,
        avg_rt=row.avg_rt,
        max_span=row.max_span,
        fatigue=row.fatigue,
        self_correction_rate=row.self_correction_rate,
        fluency=row.fluency,
        score_max=row.score_max,
        score_avg=row.score_avg,
        error_rate=row.error_rate,
        retry_count=row.retry_count,
        last_updated=row.last_updated,
    )


# ============================================================================
# Game Session Repository
# ============================================================================


def get_session_record(session: DbSession, session_id: str) -> SessionRecord | None:
    """Get a game session by ID."""
    row = session.query(GameSession).filter(GameSession.session_id == session_id).first()
    return _session_to_record(row) if row else None


def get_sessions_for_user(
    session: DbSession, user_id: str, game_id: str | None = None
) -> list[SessionRecord]:
    """Get a user's sessions, optionally for one game, ascending by start time."""
    query = session.query(GameSession).filter(GameSession.user_id == user_id)
    if game_id:
        query = query.filter(GameSession.game_id == game_id)
    rows = query.order_by(GameSession.start_time.asc(), GameSession.session_id.asc()).all()
    return [_session_to_record(r) for r in rows]


def count_sessions_by_game(session: DbSession, user_id: str) -> dict[str, int]:
    """Count a user's sessions per game; sessions without a game count as 'unknown'."""
    rows = (
        session.query(GameSession.game_id, func.count(GameSession.session_id))
        .filter(GameSession.user_id == user_id)
        .group_by(GameSession.game_id)
        .all()
    )
    counts: dict[str, int] = {}
    for game_id, count in rows:
        key = game_id or UNKNOWN_GAME
        counts[key] = counts.get(key, 0) + count
    return counts


def create_session_record(session: DbSession, record: SessionRecord) -> SessionRecord:
    """Create a new game session."""
    row = GameSession(
        session_id=record.session_id,
        user_id=record.user_id,
        game_id=record.game_id,
        user_name=record.user_name,
        start_time=record.start_time,
        end_time=record.end_time,
        metrics_json=json.dumps(record.metrics),
        taps_json=_taps_to_json(record.all_taps),
    )
    session.add(row)
    return record


# ============================================================================
# Summary Cache Repository
# ============================================================================


def get_summary_cache(session: DbSession, cache_key: str) -> SummaryCacheEntity | None:
    """Get cached summary by key."""
    row = session.query(SummaryMetrics).filter(SummaryMetrics.cache_key == cache_key).first()
    return _cache_to_entity(row) if row else None


def upsert_summary_cache(session: DbSession, entity: SummaryCacheEntity) -> SummaryCacheEntity:
    """Insert or overwrite the cached summary for entity.cache_key."""
    row = session.query(SummaryMetrics).filter(SummaryMetrics.cache_key == entity.cache_key).first()
    if row is None:
        row = SummaryMetrics(cache_key=entity.cache_key, user_id=entity.user_id)
        session.add(row)

    row.user_id = entity.user_id
    row.game_id = entity.game_id
    row.accuracy = entity.accuracy
    row.avg_rt = entity.avg_rt
    row.max_span = entity.max_span
    row.fatigue = entity.fatigue
    row.self_correction_rate = entity.self_correction_rate
    row.fluency = entity.fluency
    row.score_max = entity.score_max
    row.score_avg = entity.score_avg
    row.error_rate = entity.error_rate
    row.retry_count = entity.retry_count
    row.last_updated = entity.last_updated or datetime.now(timezone.utc)
    return entity


# ============================================================================
# Batch Operations
# ============================================================================


def commit(session: DbSession) -> None:
    """Commit current transaction."""
    session.commit()
