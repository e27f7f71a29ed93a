"""Ordered pub/sub bus between the poll scheduler and its consumers."""

import inspect
import logging
import queue
import threading
import uuid
from typing import Any

from killmonitor.events.models import MONITOR_TOPICS, EventHandler

logger = logging.getLogger(__name__)


class EventBus:
    """
    Topic-based event bus with ordered delivery.

    The poll scheduler publishes session events, notices and terminal errors
    here. Handlers for a topic run one after another in subscription order,
    and ``publish`` returns only when all of them are done, so payloads reach
    every subscriber in the order they were published.

    Thread Safety:
        - subscribe/unsubscribe may be called from any thread
        - publish runs on the scheduler's event loop

    Example:
        bus = EventBus()

        def handler(payload: SessionEvent) -> None:
            print(f"#{payload.sequence} {payload.classification.value}")

        sub_id = bus.subscribe(SESSION_EVENT, handler)
        await bus.publish(SESSION_EVENT, session_event)
        bus.unsubscribe(sub_id)
    """

    def __init__(self) -> None:
        """Initialize the event bus with empty subscriber registry."""
        # Map of topic -> list of (subscription_id, handler) tuples
        self._subscribers: dict[str, list[tuple[str, EventHandler]]] = {}
        self._lock = threading.Lock()
        logger.debug("EventBus initialized")

    def subscribe(self, topic: str, handler: EventHandler) -> str:
        """
        Subscribe to a topic.

        Args:
            topic: Topic to receive (e.g., "session.event")
            handler: Callable or coroutine function taking the payload

        Returns:
            Subscription ID for unsubscribing
        """
        if topic not in MONITOR_TOPICS:
            logger.warning("Subscribing to unknown topic", extra={"topic": topic})

        subscription_id = str(uuid.uuid4())

        with self._lock:
            self._subscribers.setdefault(topic, []).append((subscription_id, handler))
            total = len(self._subscribers[topic])

        logger.debug(
            "Subscribed to topic",
            extra={
                "topic": topic,
                "subscription_id": subscription_id,
                "total_subscribers": total,
            },
        )

        return subscription_id

    def unsubscribe(self, subscription_id: str) -> bool:
        """
        Remove a subscription.

        Args:
            subscription_id: ID returned from subscribe()

        Returns:
            True if unsubscribed, False if ID not found
        """
        with self._lock:
            for topic, subscribers in self._subscribers.items():
                for i, (sub_id, _) in enumerate(subscribers):
                    if sub_id == subscription_id:
                        subscribers.pop(i)
                        logger.debug(
                            "Unsubscribed from topic",
                            extra={"topic": topic, "subscription_id": subscription_id},
                        )
                        return True

        logger.warning(
            "Subscription ID not found",
            extra={"subscription_id": subscription_id},
        )
        return False

    async def publish(self, topic: str, payload: Any) -> None:
        """
        Deliver a payload to every subscriber of ``topic``.

        Handlers are called in subscription order. Coroutine handlers are
        awaited before the next handler runs. If a handler raises, the error
        is logged and the remaining handlers still run.

        Args:
            topic: Topic to publish on
            payload: Immutable value handed to each handler
        """
        with self._lock:
            subscribers = list(self._subscribers.get(topic, []))

        if not subscribers:
            logger.debug("No subscribers for topic", extra={"topic": topic})
            return

        for subscription_id, handler in subscribers:
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    "Handler raised exception",
                    extra={
                        "topic": topic,
                        "subscription_id": subscription_id,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )

    def get_subscriber_count(self, topic: str | None = None) -> int:
        """
        Get the number of subscribers.

        Args:
            topic: Optional topic to count. If None, returns the total count
                   across all topics.
        """
        with self._lock:
            if topic is not None:
                return len(self._subscribers.get(topic, []))
            return sum(len(subs) for subs in self._subscribers.values())


class QueueSubscriber:
    """
    Hands bus payloads to another thread through a ``queue.Queue``.

    A GUI usually runs its own loop on the main thread. It can drain this
    queue on a timer instead of being called from the scheduler's loop.
    Items are ``(topic, payload)`` tuples in publication order.

    Example:
        feed = QueueSubscriber(bus)
        ...
        while True:
            topic, payload = feed.queue.get_nowait()
    """

    def __init__(self, bus: EventBus, topics: tuple[str, ...] | None = None, maxsize: int = 0):
        self.bus = bus
        self.queue: queue.Queue[tuple[str, Any]] = queue.Queue(maxsize=maxsize)
        self._subscription_ids = [
            bus.subscribe(topic, self._make_handler(topic))
            for topic in (topics or tuple(MONITOR_TOPICS))
        ]

    def _make_handler(self, topic: str) -> EventHandler:
        def handler(payload: Any) -> None:
            self.queue.put((topic, payload))

        return handler

    def close(self) -> None:
        """Unsubscribe from the bus; already queued items stay available."""
        for subscription_id in self._subscription_ids:
            self.bus.unsubscribe(subscription_id)
        self._subscription_ids = []
