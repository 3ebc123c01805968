"""In-process realtime fan-out of persisted messages to thread subscribers.

Delivery is at-least-once and unordered from the client's point of view;
clients reconcile with :mod:`fairway.messages.reconciler`.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Callable

from fairway.messages.models import Message
from fairway.utils.logger import get_logger

logger = get_logger(__name__)

Subscriber = Callable[[Message], None]


class RealtimeBroker:
    """Publish/subscribe keyed by thread id."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[str, list[Subscriber]] = defaultdict(list)

    def subscribe(self, thread_id: str, callback: Subscriber) -> Callable[[], None]:
        """Register *callback* for new messages of *thread_id*.  Returns an unsubscribe function."""
        with self._lock:
            self._subscribers[thread_id].append(callback)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(thread_id, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return unsubscribe

    def publish(self, message: Message) -> int:
        """Deliver *message* to every subscriber of its thread.

        A failing subscriber is logged and skipped.  Returns the number of
        successful deliveries.
        """
        with self._lock:
            callbacks = list(self._subscribers.get(message.thread_id, []))

        delivered = 0
        for callback in callbacks:
            try:
                callback(message)
            except Exception:
                logger.exception(
                    "realtime delivery failed (thread=%s message=%s)", message.thread_id, message.id
                )
                continue
            delivered += 1
        return delivered
