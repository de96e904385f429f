"""Per-agent simulation event generation hooked into the step loop."""

from typing import Callable, Dict, List, Optional, Tuple
import numpy as np

from deepdive.entities.agent import Agent
from deepdive.entities.events import EventOutcome, SimulationEvent, SimulationEventType

# Signature the engine calls once per agent per step
EventProducer = Callable[[Agent, int, np.random.Generator], Optional[SimulationEvent]]

EVENT_TEMPLATES: Dict[SimulationEventType, List[str]] = {
    SimulationEventType.POLICY_SUPPORT: [
        "Backed a universal basic services proposal",
        "Signed a petition for equality in data access",
        "Supported stricter public safety regulation",
        "Voted for a community security charter",
    ],
    SimulationEventType.TECHNOLOGY_ADOPTION: [
        "Started using a personal AI assistant",
        "Joined a decentralized identity network",
        "Tried a new neural interface prototype",
    ],
    SimulationEventType.SOCIAL_INTERACTION: [
        "Had a long conversation with a neighbour",
        "Met new people at a local gathering",
    ],
    SimulationEventType.RESOURCE_ALLOCATION: [
        "Rebalanced household energy budget",
        "Shared spare compute with a local cooperative",
    ],
    SimulationEventType.CONFLICT_RESOLUTION: [
        "Mediated a dispute between connected agents",
        "Resolved a disagreement over shared data",
    ],
    SimulationEventType.COMMUNITY_PARTICIPATION: [
        "Volunteered on a community building project",
        "Helped organize a neighbourhood assembly",
    ],
}

IMPACT_TAGS: Dict[SimulationEventType, Tuple[str, ...]] = {
    SimulationEventType.POLICY_SUPPORT: ("civic", "policy"),
    SimulationEventType.TECHNOLOGY_ADOPTION: ("technology", "growth"),
    SimulationEventType.SOCIAL_INTERACTION: ("social",),
    SimulationEventType.RESOURCE_ALLOCATION: ("resources", "planning"),
    SimulationEventType.CONFLICT_RESOLUTION: ("cooperation", "trust"),
    SimulationEventType.COMMUNITY_PARTICIPATION: ("community", "cooperation"),
}

_EVENT_TYPES = list(SimulationEventType)


def outcome_for_satisfaction(satisfaction: float) -> EventOutcome:
    """Satisfied agents tend to report positive outcomes."""
    if satisfaction >= 0.6:
        return EventOutcome.POSITIVE
    if satisfaction < 0.4:
        return EventOutcome.NEGATIVE
    return EventOutcome.NEUTRAL


class RandomEventProducer:
    """
    Randomly emits life events for agents.

    Each call produces an event with the configured probability; the type
    is uniform over all event types and the outcome follows the agent's
    current satisfaction.
    """

    def __init__(self, probability: float = 0.1, max_participants: int = 2) -> None:
        if not 0.0 <= probability <= 1.0:
            raise ValueError(f"probability must be within [0, 1], got {probability}")
        self.probability = probability
        self.max_participants = max_participants

    def __call__(
        self, agent: Agent, step: int, rng: np.random.Generator
    ) -> Optional[SimulationEvent]:
        if self.probability <= 0.0 or rng.random() >= self.probability:
            return None

        event_type = _EVENT_TYPES[int(rng.integers(len(_EVENT_TYPES)))]
        templates = EVENT_TEMPLATES[event_type]
        details = templates[int(rng.integers(len(templates)))]

        others = list(agent.connections)
        rng.shuffle(others)
        participants = (agent.id, *others[:self.max_participants])

        return SimulationEvent(
            event_type=event_type,
            details=f"{details} (step {step})",
            impact_tags=IMPACT_TAGS[event_type],
            participants=participants,
            outcome=outcome_for_satisfaction(agent.satisfaction_level),
            magnitude=float(rng.uniform(0.3, 1.0)),
        )
