"""Topic-based pub/sub event bus with bounded message history."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
from threading import RLock
from collections import defaultdict
import time
import uuid

from deepdive.entities.events import SimulationEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventBusMessage:
    """Envelope for a simulation event published on a topic."""

    message_id: str
    topic: str
    agent_id: str
    event: SimulationEvent
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


# Type alias for message handlers
MessageHandler = Callable[[EventBusMessage], None]


def _new_message_id() -> str:
    return f"msg-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


class EventBus:
    """
    Publish/subscribe router keyed by topic name.

    Handlers run synchronously on the publisher's stack, in subscription
    order. History keeps at most ``history_limit`` messages; once exceeded,
    the oldest messages are dropped in one batch so that at most
    ``history_limit - eviction_batch`` remain.
    """

    def __init__(
        self,
        history_limit: int = 1000,
        eviction_batch: int = 100,
        active: bool = True,
    ) -> None:
        self._handlers: Dict[str, List[MessageHandler]] = defaultdict(list)
        # Reentrant: finalizers of collected subscribers may unsubscribe mid-call
        self._lock = RLock()
        self._active = active
        self._message_history: List[EventBusMessage] = []
        self._history_limit = history_limit
        self._eviction_batch = max(1, eviction_batch)

    def subscribe(self, topic: str, handler: MessageHandler) -> Callable[[], None]:
        """
        Subscribe a handler to a topic.

        Returns:
            Callable that removes this registration; calling it again is a no-op
        """
        with self._lock:
            self._handlers[topic].append(handler)
        logger.debug(f"New subscriber for topic: {topic}")

        removed = False

        def unsubscribe() -> None:
            nonlocal removed
            if not removed:
                self.unsubscribe(topic, handler)
                removed = True

        return unsubscribe

    def unsubscribe(self, topic: str, handler: MessageHandler) -> None:
        """Remove one registration of a handler from a topic."""
        with self._lock:
            handlers = self._handlers.get(topic, [])
            if handler in handlers:
                handlers.remove(handler)

    def publish(
        self,
        topic: str,
        agent_id: str,
        event: SimulationEvent,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[EventBusMessage]:
        """
        Publish an event and dispatch it to the topic's handlers.

        Returns:
            The stored message, or None while the bus is inactive
        """
        if not self._active:
            return None

        message = EventBusMessage(
            message_id=_new_message_id(),
            topic=topic,
            agent_id=agent_id,
            event=event,
            metadata=dict(metadata or {}),
        )

        with self._lock:
            self._message_history.append(message)
            if len(self._message_history) > self._history_limit:
                keep = max(0, self._history_limit - self._eviction_batch)
                del self._message_history[:len(self._message_history) - keep]

            handlers = list(self._handlers.get(topic, []))

        # Call handlers outside lock so they can publish in turn
        for handler in handlers:
            try:
                handler(message)
            except Exception:
                logger.exception(f"Event handler error for topic {topic}")

        logger.debug(
            f"Published to {topic}: agent={agent_id} type={event.event_type.value} "
            f"details={event.details[:50]}"
        )
        return message

    def get_agent_event_history(self, agent_id: str) -> List[EventBusMessage]:
        """Retained messages about an agent, oldest first."""
        with self._lock:
            return [m for m in self._message_history if m.agent_id == agent_id]

    def get_topic_messages(self, topic: str, limit: int = 50) -> List[EventBusMessage]:
        """Most recent ``limit`` messages for a topic, oldest first."""
        if limit <= 0:
            return []
        with self._lock:
            messages = [m for m in self._message_history if m.topic == topic]
        return messages[-limit:]

    def get_statistics(self) -> Dict[str, Any]:
        """Message and subscriber counts."""
        with self._lock:
            topic_counts: Dict[str, int] = defaultdict(int)
            for message in self._message_history:
                topic_counts[message.topic] += 1

            return {
                "total_messages": len(self._message_history),
                "subscriber_counts": {
                    topic: len(handlers) for topic, handlers in self._handlers.items()
                },
                "topic_message_counts": dict(topic_counts),
                "is_active": self._active,
            }

    def set_active(self, active: bool) -> None:
        """Enable or disable publishing. History and subscribers are kept."""
        self._active = active
        logger.info(f"EventBus {'activated' if active else 'deactivated'}")

    @property
    def is_active(self) -> bool:
        return self._active

    def clear_history(self) -> None:
        """Drop all retained messages."""
        with self._lock:
            self._message_history.clear()
        logger.info("EventBus message history cleared")

    @property
    def history_size(self) -> int:
        """Number of retained messages."""
        with self._lock:
            return len(self._message_history)


# Global event bus instance
_event_bus: EventBus | None = None


def _bus_from_settings() -> EventBus:
    from config.settings import get_settings

    bus_settings = get_settings().event_bus
    return EventBus(
        history_limit=bus_settings.history_limit,
        eviction_batch=bus_settings.eviction_batch,
        active=bus_settings.active,
    )


def get_event_bus() -> EventBus:
    """Get the global event bus instance."""
    global _event_bus
    if _event_bus is None:
        _event_bus = _bus_from_settings()
    return _event_bus


def reset_event_bus() -> None:
    """Reset the global event bus (for testing)."""
    global _event_bus
    _event_bus = _bus_from_settings()
