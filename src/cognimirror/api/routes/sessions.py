"""Sessions API endpoint.

POST /api/sessions - Record a completed game session
GET /api/users/{user_id}/sessions - List a user's sessions
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from cognimirror.api.app import get_db_session, get_session_source
from cognimirror.db import repo
from cognimirror.db.repo import DbSession
from cognimirror.ingest.sessions import DuplicateSessionError, SessionInput, record_session
from cognimirror.live.source import RepoSessionSource
from cognimirror.models.domain import SessionRecord, TapEvent
from cognimirror.models.types import SessionDetail, SessionSubmission

router = APIRouter()


def _build_session_detail(record: SessionRecord) -> SessionDetail:
    """Build SessionDetail from SessionRecord."""
    return SessionDetail(
        session_id=record.session_id,
        user_id=record.user_id,
        game_id=record.game_id,
        user_name=record.user_name,
        start_time=record.start_time,
        end_time=record.end_time,
        metrics=record.metrics,
        tap_count=len(record.all_taps),
    )


@router.post("/sessions", response_model=SessionDetail, status_code=201)
def create_session(
    submission: SessionSubmission,
    session: DbSession = Depends(get_db_session),
    source: RepoSessionSource = Depends(get_session_source),
) -> SessionDetail:
    """Record a completed game session.

    Live trackers for the user are refreshed once the session is stored.

    Args:
        submission: Session submission data.
        session: Database session (injected).
        source: Live session source (injected).

    Returns:
        SessionDetail of the stored session.

    Raises:
        HTTPException: 409 if the session was already recorded,
            422 if the user id is blank.
    """
    session_input = SessionInput(
        user_id=submission.user_id,
        game_id=submission.game_id,
        user_name=submission.user_name,
        start_time=submission.start_time,
        end_time=submission.end_time,
        metrics=submission.metrics,
        all_taps=[
            TapEvent(timestamp=tap.timestamp, is_correct=tap.is_correct)
            for tap in submission.all_taps
        ],
    )

    try:
        record = record_session(session=session, session_input=session_input)
    except DuplicateSessionError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    source.notify(record.user_id)

    return _build_session_detail(record)


@router.get("/users/{user_id}/sessions", response_model=list[SessionDetail])
def list_sessions(
    user_id: str,
    game_id: str | None = None,
    session: DbSession = Depends(get_db_session),
) -> list[SessionDetail]:
    """List a user's sessions ascending by start time.

    Args:
        user_id: User to list.
        game_id: Optional game filter.
        session: Database session (injected).

    Returns:
        List of SessionDetail (empty for unknown users).
    """
    records = repo.get_sessions_for_user(session, user_id, game_id)
    return [_build_session_detail(r) for r in records]
