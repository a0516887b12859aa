"""Change-notice transport between the process that writes a delivery and the
processes that hold subscriptions.

With synchronous event processing both sides share one process and the
notice goes straight to the local hub. When the Engine runs the event
handlers in its own process, the notice travels over a Redis channel and
every web process relays it to its own hub.
"""

import json
import os
import threading

import redis
import structlog

from logistics.config import setting
from logistics.domain import logistics
from logistics.fanout.hub import get_hub

logger = structlog.get_logger(__name__)


class LocalTransport:
    """Notify the hub of this process directly."""

    def publish(self, keys: dict) -> None:
        get_hub().notify(keys)

    def start(self) -> None:
        pass

    def stop(self) -> None:
        pass


class RedisTransport:
    """Publish change notices on a Redis channel and relay received ones to the local hub.

    Every process may publish. Only processes that hold subscriptions call
    ``start()`` to listen.
    """

    def __init__(self, url: str | None = None, channel: str | None = None, client=None, domain=None):
        self.channel = channel or setting("FANOUT_CHANNEL")
        self._client = client or redis.Redis.from_url(url or os.environ.get("REDIS_URL", "redis://localhost:6379/0"))
        self._domain = domain or logistics
        self._pubsub = None
        self._listener = None
        self._lock = threading.Lock()

    def publish(self, keys: dict) -> None:
        try:
            self._client.publish(self.channel, json.dumps(keys))
        except redis.RedisError as exc:
            logger.error("fanout_publish_failed", channel=self.channel, error=str(exc))

    def start(self) -> None:
        with self._lock:
            if self._listener is not None:
                return
            self._pubsub = self._client.pubsub(ignore_subscribe_messages=True)
            self._pubsub.subscribe(**{self.channel: self._on_message})
            self._listener = self._pubsub.run_in_thread(sleep_time=0.1, daemon=True)
        logger.info("fanout_listening", channel=self.channel)

    def stop(self) -> None:
        with self._lock:
            listener, pubsub = self._listener, self._pubsub
            self._listener = self._pubsub = None
        if listener is not None:
            listener.stop()
        if pubsub is not None:
            pubsub.close()

    def _on_message(self, message: dict) -> None:
        try:
            keys = json.loads(message["data"])
        except (TypeError, ValueError):
            logger.warning("fanout_notice_unreadable", channel=self.channel)
            return

        with self._domain.domain_context():
            get_hub().notify(keys)


_TRANSPORTS = {
    "local": LocalTransport,
    "redis": RedisTransport,
}

_transport_instance = None


def get_transport():
    """Return the configured transport (singleton).

    Selection is controlled by the ``FANOUT_TRANSPORT`` environment variable.
    Defaults to ``"local"``.
    """
    global _transport_instance
    if _transport_instance is None:
        name = os.environ.get("FANOUT_TRANSPORT", "local")
        if name not in _TRANSPORTS:
            raise ValueError(f"Unknown fan-out transport: {name}")
        _transport_instance = _TRANSPORTS[name]()
    return _transport_instance


def reset_transport() -> None:
    """Stop and drop the singleton (useful for testing)."""
    global _transport_instance
    if _transport_instance is not None:
        _transport_instance.stop()
    _transport_instance = None
