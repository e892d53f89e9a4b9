import json
import logging
import threading
from typing import Callable, Dict, List

import redis
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.utils import timezone

from .event_bus_interface import EventBus
from .memory_event_bus import InMemoryEventBus


logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "events."


class RedisEventBus(EventBus):
    """
    Redis pub/sub event bus.

    Each event type gets its own channel (``events.<event_type>``); the message
    body is the JSON envelope ``{"event_type", "occurred_at", "payload"}``.
    """

    def __init__(self, redis_url: str = None):
        self.redis_url = redis_url or getattr(settings, "REDIS_URL", "redis://localhost:6379/0")
        self._subscribers: Dict[str, List[Callable]] = {}
        self._listener = None

        try:
            self.redis_client = redis.from_url(self.redis_url)
        except (redis.RedisError, ValueError) as e:
            logger.error(f"Invalid Redis configuration {self.redis_url}: {e}")
            self.redis_client = None

    def publish(self, event_type: str, payload: dict):
        if self.redis_client is None:
            logger.warning(f"Redis unavailable, dropping event {event_type}")
            return

        envelope = {"event_type": event_type, "occurred_at": timezone.now().isoformat(), "payload": payload}
        try:
            self.redis_client.publish(CHANNEL_PREFIX + event_type, json.dumps(envelope, cls=DjangoJSONEncoder))
            logger.info(f"Published event: {event_type}")
        except Exception as e:
            # The order transaction has already committed
            logger.error(f"Failed to publish event {event_type}: {e}")

    def subscribe(self, event_type: str, handler: Callable):
        self._subscribers.setdefault(event_type, []).append(handler)
        logger.info(f"Registered handler for event: {event_type}")

    def start_listening(self):
        """Dispatch subscribed channels to handlers from a daemon thread."""
        if self._listener is not None or self.redis_client is None or not self._subscribers:
            return

        channels = [CHANNEL_PREFIX + event_type for event_type in self._subscribers]

        def listen():
            try:
                pubsub = self.redis_client.pubsub(ignore_subscribe_messages=True)
                pubsub.subscribe(*channels)
                logger.info(f"EventBus listening on: {channels}")
                for message in pubsub.listen():
                    self._handle_message(message)
            except redis.RedisError as e:
                logger.error(f"EventBus listener stopped: {e}")
                self._listener = None

        self._listener = threading.Thread(target=listen, name="event-bus-listener", daemon=True)
        self._listener.start()

    def _handle_message(self, message):
        if message.get("type") != "message":
            return
        try:
            envelope = json.loads(message["data"])
            event_type = envelope["event_type"]
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Discarding malformed event message: {e}")
            return

        for handler in self._subscribers.get(event_type, []):
            try:
                handler(envelope)
            except Exception as e:
                logger.error(f"Handler error for {event_type}: {e}")


_event_bus_instance = None


def get_event_bus() -> EventBus:
    """Process-wide event bus selected by ``EVENT_BUS_BACKEND`` (``redis`` or ``memory``)."""
    global _event_bus_instance
    if _event_bus_instance is None:
        backend = getattr(settings, "EVENT_BUS_BACKEND", "redis")
        if backend == "memory":
            _event_bus_instance = InMemoryEventBus()
        elif backend == "redis":
            _event_bus_instance = RedisEventBus()
        else:
            raise ValueError(f"Invalid event bus backend: {backend}. Use 'redis' or 'memory'")
    return _event_bus_instance


def reset_event_bus():
    """Drop the cached bus so the next call re-reads settings."""
    global _event_bus_instance
    _event_bus_instance = None
