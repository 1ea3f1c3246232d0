"""Synchronous event bus between the device pipelines and their consumers.

The wrist pipeline publishes impacts, the camera pipeline publishes clock
sync results, toss apexes and fused impacts. Consumers (CLI, scoring, a UI)
subscribe per event class.
"""

from __future__ import annotations

import threading
from collections import Counter, defaultdict
from typing import Any, Callable, DefaultDict, Dict, List, Type, TypeVar

from log_config.logger import get_logger

logger = get_logger(__name__)

EventType = TypeVar('EventType')
EventHandler = Callable[[EventType], None]


class EventBus:
    """Routes each published event to the handlers registered for its class.

    Handlers run on the publishing thread, which for impacts and apexes is the
    sample-ingestion path, so they must return quickly. A handler that raises
    is logged and counted; the remaining handlers still run and the pipeline
    never sees the error.
    """

    def __init__(self):
        self._subscribers: DefaultDict[Type, List[EventHandler]] = defaultdict(list)
        self._published: Counter = Counter()
        self._failures = 0
        self._lock = threading.Lock()

    def subscribe(self, event_type: Type[EventType], handler: EventHandler) -> None:
        with self._lock:
            self._subscribers[event_type].append(handler)
            count = len(self._subscribers[event_type])
        logger.debug(f"Subscribed to {event_type.__name__} ({count} handlers)")

    def unsubscribe(self, event_type: Type[EventType], handler: EventHandler) -> bool:
        """Returns False if ``handler`` was not subscribed to ``event_type``."""
        with self._lock:
            handlers = self._subscribers.get(event_type)
            if not handlers or handler not in handlers:
                return False
            handlers.remove(handler)
        logger.debug(f"Unsubscribed from {event_type.__name__}")
        return True

    def publish(self, event: EventType) -> None:
        event_type = type(event)
        with self._lock:
            handlers = list(self._subscribers.get(event_type, ()))
            self._published[event_type.__name__] += 1

        failed = 0
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                failed += 1
                logger.exception(f"{event_type.__name__} handler failed: {e.__class__.__name__}: {e}")

        if failed:
            with self._lock:
                self._failures += failed
            logger.warning(f"{failed}/{len(handlers)} handlers failed for {event_type.__name__}")

    def get_subscriber_count(self, event_type: Type[EventType]) -> int:
        with self._lock:
            return len(self._subscribers.get(event_type, ()))

    def get_stats(self) -> Dict[str, Any]:
        """Subscription and delivery counters, keyed by event class name."""
        with self._lock:
            return {
                "event_types": sum(1 for handlers in self._subscribers.values() if handlers),
                "total_subscribers": sum(len(handlers) for handlers in self._subscribers.values()),
                "event_counts": dict(self._published),
                "handler_failures": self._failures,
            }

    def clear_all_subscribers(self) -> None:
        with self._lock:
            self._subscribers.clear()
        logger.debug("Cleared all EventBus subscribers")

    def __repr__(self) -> str:
        stats = self.get_stats()
        return f"EventBus(event_types={stats['event_types']}, subscribers={stats['total_subscribers']})"
