"""A small publish/subscribe bus connecting the core to its hosts."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]

# Topics published by the core
PHASE = "phase"
SESSION_REPORT = "session-report"
INJECTED = "injected"
CORRECTION_LEARNED = "correction-learned"
AMPLITUDE = "amplitude"
KEY = "key"


class EventBus:
    """Topic-based fan-out. Handlers run synchronously on the publishing thread."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` for ``topic``; returns a function that unsubscribes it."""
        with self._lock:
            self._handlers[topic].append(handler)

        def unsubscribe() -> None:
            with self._lock:
                try:
                    self._handlers[topic].remove(handler)
                except ValueError:
                    pass

        return unsubscribe

    def publish(self, topic: str, payload: Any = None) -> None:
        with self._lock:
            handlers = list(self._handlers.get(topic, ()))
        for handler in handlers:
            try:
                handler(payload)
            except Exception:
                # One failing subscriber must not starve the others
                logger.exception("Event handler for %r failed", topic)
