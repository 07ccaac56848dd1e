"""Observable session sources.

A source answers two kinds of request for a SessionQuery:
- fetch: one-shot, point-in-time list ascending by start time
- subscribe: the full matching list now, and again after every change

Sources must NOT compute metrics or touch the summary cache.
"""

from __future__ import annotations

import itertools
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

from cognimirror.db import repo
from cognimirror.db.repo import DbSession
from cognimirror.models.domain import SessionQuery, SessionRecord

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[list[SessionRecord]], None]
ErrorCallback = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


class SessionSource(ABC):
    """Abstract base class for session sources."""

    @abstractmethod
    def fetch(self, query: SessionQuery) -> list[SessionRecord]:
        """Fetch the matching sessions once.

        Args:
            query: User (and optional game) filter.

        Returns:
            Matching records ascending by start time.
        """
        pass

    @abstractmethod
    def subscribe(
        self,
        query: SessionQuery,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        """Subscribe to the matching session set.

        on_snapshot receives the complete matching list on every delivery;
        on_error receives a delivery failure instead of a snapshot.

        Returns:
            Callable that cancels the subscription. Safe to call twice.
        """
        pass


@dataclass
class _Subscription:
    query: SessionQuery
    on_snapshot: SnapshotCallback
    on_error: ErrorCallback


class RepoSessionSource(SessionSource):
    """Session source backed by the database repository.

    Writers call notify(user_id) after committing a change; every
    subscription for that user is re-delivered its full matching set.
    Callback failures are logged per subscription and never propagate.
    """

    def __init__(self, session_factory: Callable[[], DbSession]):
        """Initialize source.

        Args:
            session_factory: Callable returning a new database session.
        """
        self._session_factory = session_factory
        self._subscriptions: dict[int, _Subscription] = {}
        self._ids = itertools.count(1)

    def fetch(self, query: SessionQuery) -> list[SessionRecord]:
        session = self._session_factory()
        try:
            return repo.get_sessions_for_user(session, query.user_id, query.game_id)
        finally:
            session.close()

    def subscribe(
        self,
        query: SessionQuery,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        sub_id = next(self._ids)
        subscription = _Subscription(query=query, on_snapshot=on_snapshot, on_error=on_error)
        self._subscriptions[sub_id] = subscription

        def unsubscribe() -> None:
            self._subscriptions.pop(sub_id, None)

        self._deliver(subscription)
        return unsubscribe

    def notify(self, user_id: str) -> None:
        """Re-deliver snapshots to every subscription for user_id."""
        for subscription in list(self._subscriptions.values()):
            if subscription.query.user_id == user_id:
                self._deliver(subscription)

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    def _deliver(self, subscription: _Subscription) -> None:
        try:
            records = self.fetch(subscription.query)
        except Exception as e:
            logger.warning(f"Snapshot delivery failed for {subscription.query}: {e}")
            self._notify_subscriber(subscription.on_error, e)
            return
        self._notify_subscriber(subscription.on_snapshot, records)

    def _notify_subscriber(self, callback, payload) -> None:
        # One failing subscriber must not reach the writer or skip the rest
        try:
            callback(payload)
        except Exception as e:
            logger.warning(f"Subscriber callback failed: {e}")
