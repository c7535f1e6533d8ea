"""Fan-out of progress events to live observers.

``ProgressBroadcaster`` is fire-and-forget telemetry with at-most-once
delivery and nothing replayed.  Each observer holds a
``Subscription`` backed by a bounded queue that it drains on its own thread.
A subscriber that is closed or has fallen too far behind is dropped on the
next publish without affecting the publisher or any other subscriber.
"""

from __future__ import annotations

import logging
import queue
import threading
import uuid

from ingestkit_checklist.models import ProgressEvent

logger = logging.getLogger("ingestkit_checklist")


class SubscriptionClosed(Exception):
    """Raised when delivering to a subscription that has been closed."""


class Subscription:
    """Handle returned by :meth:`ProgressBroadcaster.subscribe`."""

    def __init__(self, maxsize: int = 256) -> None:
        self.id = uuid.uuid4().hex
        self._queue: queue.Queue[ProgressEvent] = queue.Queue(maxsize=maxsize)
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        self._closed.set()

    def deliver(self, event: ProgressEvent) -> None:
        """Enqueue *event* without blocking.

        Raises:
            SubscriptionClosed: If the subscription was closed.
            queue.Full: If the consumer has fallen behind.
        """
        if self.closed:
            raise SubscriptionClosed(self.id)
        self._queue.put_nowait(event)

    def get(self, timeout: float | None = None) -> ProgressEvent | None:
        """Next event, or *None* if none arrives within *timeout*."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> list[ProgressEvent]:
        """All events currently queued, oldest first."""
        events: list[ProgressEvent] = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events


class ProgressBroadcaster:
    """Publish/subscribe fan-out satisfying the ``ProgressSink`` protocol."""

    def __init__(self, default_maxsize: int = 256) -> None:
        self._default_maxsize = default_maxsize
        self._subscribers: dict[str, Subscription] = {}
        self._lock = threading.Lock()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self, maxsize: int | None = None) -> Subscription:
        subscription = Subscription(maxsize or self._default_maxsize)
        with self._lock:
            self._subscribers[subscription.id] = subscription
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.close()
        with self._lock:
            self._subscribers.pop(subscription.id, None)

    def publish(self, event: ProgressEvent) -> None:
        """Attempt delivery of *event* to every current subscriber. Never raises."""
        with self._lock:
            current = list(self._subscribers.values())

        dropped: list[Subscription] = []
        for subscription in current:
            try:
                subscription.deliver(event)
            except Exception as exc:
                dropped.append(subscription)
                logger.warning(
                    "Dropping progress subscriber %s: %s",
                    subscription.id,
                    type(exc).__name__,
                )

        if dropped:
            with self._lock:
                for subscription in dropped:
                    self._subscribers.pop(subscription.id, None)
            for subscription in dropped:
                subscription.close()


def format_sse(event: ProgressEvent) -> str:
    """Render *event* as a server-sent-events ``data:`` frame."""
    return f"data: {event.model_dump_json()}\n\n"
