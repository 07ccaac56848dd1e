"""Game session recording.

Handles validation of identity and storage of completed sessions.
Domain logic is pure - database operations go through repo.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cognimirror.core.identity import compute_session_id
from cognimirror.db import repo
from cognimirror.models.domain import SessionRecord, TapEvent


class DuplicateSessionError(ValueError):
    """Raised when a session with the same identity is already stored."""


@dataclass
class SessionInput:
    """Input for session recording."""

    user_id: str
    start_time: datetime
    game_id: str | None = None
    user_name: str | None = None
    end_time: datetime | None = None
    metrics: dict[str, Any] = field(default_factory=dict)
    all_taps: list[TapEvent] = field(default_factory=list)


def record_session(session: Session, session_input: SessionInput) -> SessionRecord:
    """Store a completed game session.

    Args:
        session: Database session.
        session_input: Session data.

    Returns:
        The stored SessionRecord.

    Raises:
        ValueError: If user_id is blank.
        DuplicateSessionError: If the session was already recorded.
    """
    if not session_input.user_id.strip():
        raise ValueError("user_id must not be empty")

    record = _build_record(session_input)

    if repo.get_session_record(session, record.session_id) is not None:
        raise DuplicateSessionError(f"Session already recorded: {record.session_id}")

    repo.create_session_record(session, record)
    try:
        repo.commit(session)
    except IntegrityError as e:
        session.rollback()
        raise DuplicateSessionError(f"Session already recorded: {record.session_id}") from e

    return record


def _build_record(session_input: SessionInput) -> SessionRecord:
    """Create a domain record from input.

    Pure function - no database access. Times are stored as naive UTC.
    """
    start_time = _as_naive_utc(session_input.start_time)
    return SessionRecord(
        session_id=compute_session_id(session_input.user_id, start_time),
        user_id=session_input.user_id,
        game_id=session_input.game_id or None,
        user_name=session_input.user_name,
        start_time=start_time,
        end_time=_as_naive_utc(session_input.end_time) if session_input.end_time else None,
        metrics=dict(session_input.metrics),
        all_taps=list(session_input.all_taps),
    )


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
