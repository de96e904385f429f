"""Simulation events observed by agents."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple
import uuid

from .persona import utc_now_iso


class SimulationEventType(Enum):
    """Kinds of events an agent can take part in."""

    POLICY_SUPPORT = "policy_support"
    TECHNOLOGY_ADOPTION = "technology_adoption"
    SOCIAL_INTERACTION = "social_interaction"
    RESOURCE_ALLOCATION = "resource_allocation"
    CONFLICT_RESOLUTION = "conflict_resolution"
    COMMUNITY_PARTICIPATION = "community_participation"


class EventOutcome(Enum):
    """How an event turned out for the agent."""

    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class SimulationEvent:
    """Immutable fact about something that happened in the simulation."""

    event_type: SimulationEventType
    details: str
    impact_tags: Tuple[str, ...] = ()
    participants: Optional[Tuple[str, ...]] = None
    outcome: Optional[EventOutcome] = None
    magnitude: Optional[float] = None  # 0.0-1.0, None means unset
    event_id: str = field(default_factory=lambda: f"event-{uuid.uuid4().hex[:12]}")
    timestamp: str = field(default_factory=utc_now_iso)

    def __post_init__(self) -> None:
        # Accept plain strings and lists from callers, store enums and tuples
        if not isinstance(self.event_type, SimulationEventType):
            object.__setattr__(self, "event_type", SimulationEventType(self.event_type))
        if self.outcome is not None and not isinstance(self.outcome, EventOutcome):
            object.__setattr__(self, "outcome", EventOutcome(self.outcome))
        object.__setattr__(self, "impact_tags", tuple(self.impact_tags or ()))
        if self.participants is not None:
            object.__setattr__(self, "participants", tuple(self.participants))
        if self.magnitude is not None and not 0.0 <= self.magnitude <= 1.0:
            raise ValueError(f"magnitude must be within [0, 1], got {self.magnitude}")

    def to_dict(self) -> dict:
        return {
            "event_id": self.event_id,
            "timestamp": self.timestamp,
            "event_type": self.event_type.value,
            "details": self.details,
            "impact_tags": list(self.impact_tags),
            "participants": list(self.participants) if self.participants is not None else None,
            "outcome": self.outcome.value if self.outcome is not None else None,
            "magnitude": self.magnitude,
        }
