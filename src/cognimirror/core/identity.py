"""Identity utilities for deterministic keys.

- session_id: one stored record per (user, start instant)
- summary_cache_key: one cached summary per user or per user/game pair
"""

from datetime import datetime, timezone


def to_epoch_ms(value: datetime) -> int:
    """Convert a datetime to integer epoch milliseconds.

    Naive datetimes are interpreted as UTC.

    Args:
        value: Datetime to convert.

    Returns:
        Milliseconds since the Unix epoch.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(round(value.timestamp() * 1000))


def compute_session_id(user_id: str, start_time: datetime) -> str:
    """Compute deterministic session_id.

    session_id = "{user_id}_{start_ms}"

    Args:
        user_id: Owner of the session.
        start_time: Session start.

    Returns:
        Session identifier string.
    """
    return f"{user_id}_{to_epoch_ms(start_time)}"


def summary_cache_key(user_id: str, game_id: str | None = None) -> str:
    """Compute the cache key for a user's summary.

    Args:
        user_id: User the summary belongs to.
        game_id: Optional game filter.

    Returns:
        "user_id" or "user_id:game_id".
    """
    if game_id:
        return f"{user_id}:{game_id}"
    return user_id
