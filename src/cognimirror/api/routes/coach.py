"""Coach API endpoint.

GET /api/users/{user_id}/coach - Rule-based coach messages
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from cognimirror.aggregation.summary import summarize_sessions
from cognimirror.api.app import get_db_session
from cognimirror.coach.rules import get_coach_messages
from cognimirror.db.repo import DbSession
from cognimirror.models.types import CoachAdvice

router = APIRouter()


@router.get("/users/{user_id}/coach", response_model=CoachAdvice)
def get_coach(
    user_id: str,
    game_id: str | None = None,
    session: DbSession = Depends(get_db_session),
) -> CoachAdvice:
    """Get coach messages for a user's current summary.

    Args:
        user_id: User to coach.
        game_id: Optional game filter.
        session: Database session (injected).

    Returns:
        CoachAdvice; users without sessions get the "not enough data" message.
    """
    report = summarize_sessions(session, user_id, game_id)
    summary = report.summary if report.filtered_sessions_count else None
    return CoachAdvice(
        user_id=user_id,
        game_id=game_id,
        messages=get_coach_messages(summary),
    )
