"""Core simulation components."""

from .event_bus import EventBus, EventBusMessage, get_event_bus, reset_event_bus
from .state import GlobalMetrics, MetricsSnapshot, SimulationState
from .clock import SimulationClock
from .event_producer import RandomEventProducer
from .simulation import SimulationEngine

__all__ = [
    "EventBus",
    "EventBusMessage",
    "get_event_bus",
    "reset_event_bus",
    "GlobalMetrics",
    "MetricsSnapshot",
    "SimulationState",
    "SimulationClock",
    "RandomEventProducer",
    "SimulationEngine",
]
