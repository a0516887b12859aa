"""Subscription hub — pushes the full scoped delivery set to every subscriber.

Each subscription receives its complete filtered set immediately on subscribe
and again after every change to a delivery inside its scope. The set is
re-queried once per scope per change and shared by all subscribers of that
scope. A failed query degrades the affected subscriptions: they keep their
last good snapshot, are flagged with the error, and recover on the next
change that queries successfully. There is no retry loop.
"""

from collections.abc import Callable
from itertools import count
from threading import RLock

import structlog

from logistics.fanout.queries import fetch_scope
from logistics.fanout.scope import Scope

logger = structlog.get_logger(__name__)

Listener = Callable[[list[dict]], None]
ErrorListener = Callable[[Exception], None]

_ids = count(1)


class Subscription:
    def __init__(self, hub: "SubscriptionHub", scope: Scope, listener: Listener, on_error: ErrorListener | None = None):
        self.id = next(_ids)
        self.hub = hub
        self.scope = scope
        self.listener = listener
        self.on_error = on_error
        self.latest: list[dict] | None = None
        self.error: Exception | None = None
        self.closed = False

    @property
    def degraded(self) -> bool:
        return self.error is not None

    def close(self) -> None:
        self.hub.unsubscribe(self)

    def refresh(self) -> None:
        """Re-query this subscription's scope on demand (user-triggered retry)."""
        self.hub.refresh(self.scope, only=[self])

    def _deliver(self, snapshot: list[dict]) -> None:
        if self.closed:
            return
        self.latest = snapshot
        self.error = None
        try:
            self.listener(snapshot)
        except Exception:
            logger.exception("subscriber_failed", subscription_id=self.id, scope=str(self.scope))

    def _degrade(self, error: Exception) -> None:
        if self.closed:
            return
        self.error = error
        if self.on_error is not None:
            try:
                self.on_error(error)
            except Exception:
                logger.exception("subscriber_failed", subscription_id=self.id, scope=str(self.scope))


class SubscriptionHub:
    def __init__(self, fetch: Callable[[Scope], list[dict]] | None = None):
        self._fetch = fetch or fetch_scope
        self._subscriptions: dict[int, Subscription] = {}
        self._lock = RLock()

    def subscribe(self, scope: Scope, listener: Listener, on_error: ErrorListener | None = None) -> Subscription:
        subscription = Subscription(self, scope, listener, on_error)
        with self._lock:
            self._subscriptions[subscription.id] = subscription
        logger.debug("subscription_opened", subscription_id=subscription.id, scope=str(scope))
        self.refresh(scope, only=[subscription])
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            removed = self._subscriptions.pop(subscription.id, None)
            subscription.closed = True
        if removed is not None:
            logger.debug("subscription_closed", subscription_id=subscription.id, scope=str(subscription.scope))

    def subscriptions(self, scope: Scope | None = None) -> list[Subscription]:
        with self._lock:
            subs = list(self._subscriptions.values())
        if scope is None:
            return subs
        return [sub for sub in subs if sub.scope == scope]

    def notify(self, keys: dict) -> None:
        """A delivery with these scope keys changed; refresh every matching scope."""
        with self._lock:
            scopes = {sub.scope for sub in self._subscriptions.values() if sub.scope.matches(keys)}
        for scope in scopes:
            self.refresh(scope)

    def refresh(self, scope: Scope, only: list[Subscription] | None = None) -> None:
        targets = only if only is not None else self.subscriptions(scope)
        if not targets:
            return

        try:
            snapshot = self._fetch(scope)
        except Exception as exc:
            logger.warning("subscription_degraded", scope=str(scope), error=str(exc))
            for subscription in targets:
                subscription._degrade(exc)
            return

        for subscription in targets:
            subscription._deliver(list(snapshot))

    def close_all(self) -> None:
        for subscription in self.subscriptions():
            self.unsubscribe(subscription)


_hub_instance: SubscriptionHub | None = None


def get_hub() -> SubscriptionHub:
    """Return the process-wide hub (singleton)."""
    global _hub_instance
    if _hub_instance is None:
        _hub_instance = SubscriptionHub()
    return _hub_instance


def reset_hub() -> None:
    """Close every subscription and drop the singleton (useful for testing)."""
    global _hub_instance
    if _hub_instance is not None:
        _hub_instance.close_all()
    _hub_instance = None
