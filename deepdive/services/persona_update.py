"""Turns simulation events into personality and value deltas."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
import time

from config.constants import (
    CONFIDENCE_BASE,
    CONFIDENCE_PER_IMPACT,
    CONFIDENCE_PER_TAG,
    OUTCOME_MULTIPLIERS,
    PERSONA_UPDATE_TAGS,
    PERSONA_UPDATES_TOPIC,
    SIMULATION_EVENTS_TOPIC,
    UNSET_OUTCOME_MULTIPLIER,
)
from deepdive.core.event_bus import EventBus, EventBusMessage, get_event_bus
from deepdive.entities.events import EventOutcome, SimulationEvent, SimulationEventType
from deepdive.entities.persona import utc_now_iso

logger = logging.getLogger(__name__)


class ImpactCategory(Enum):
    """Which part of the persona an impact touches."""
    PERSONALITY = "personality"
    VALUE = "value"


@dataclass(frozen=True)
class TraitImpact:
    """Change to a single trait or value."""
    trait: str
    change: float
    category: ImpactCategory


@dataclass
class PersonaUpdateRequest:
    """An event judged significant enough to update a persona."""
    agent_id: str
    events: List[SimulationEvent]
    update_reason: str
    confidence_score: float


@dataclass
class PersonaUpdateResult:
    """Interpreted persona change for one agent."""
    agent_id: str
    updated_traits: Dict[str, float]
    updated_values: Dict[str, float]
    changes_summary: str
    confidence_score: float
    source_event_id: str = ""
    timestamp: str = field(default_factory=utc_now_iso)


_P = ImpactCategory.PERSONALITY
_V = ImpactCategory.VALUE

# Base changes before outcome and magnitude scaling
IMPACT_TABLE: Dict[SimulationEventType, List[TraitImpact]] = {
    SimulationEventType.COMMUNITY_PARTICIPATION: [
        TraitImpact("agreeableness", 0.02, _P),
        TraitImpact("universalism", 0.015, _V),
        TraitImpact("benevolence", 0.01, _V),
    ],
    SimulationEventType.TECHNOLOGY_ADOPTION: [
        TraitImpact("openness", 0.015, _P),
        TraitImpact("self_direction", 0.01, _V),
        TraitImpact("stimulation", 0.01, _V),
    ],
    SimulationEventType.CONFLICT_RESOLUTION: [
        TraitImpact("agreeableness", 0.025, _P),
        TraitImpact("conscientiousness", 0.015, _P),
        TraitImpact("benevolence", 0.02, _V),
    ],
    SimulationEventType.RESOURCE_ALLOCATION: [
        TraitImpact("conscientiousness", 0.01, _P),
        TraitImpact("achievement", 0.015, _V),
        TraitImpact("security", 0.01, _V),
    ],
    SimulationEventType.SOCIAL_INTERACTION: [
        TraitImpact("extraversion", 0.01, _P),
        TraitImpact("agreeableness", 0.005, _P),
    ],
}


def _policy_impacts(details: str) -> List[TraitImpact]:
    """Policy support moves different values depending on the policy."""
    impacts = []
    if "universal" in details or "equality" in details:
        impacts.append(TraitImpact("universalism", 0.02, _V))
    if "security" in details or "safety" in details:
        impacts.append(TraitImpact("security", 0.015, _V))
    return impacts


def outcome_multiplier(outcome: Optional[EventOutcome]) -> float:
    if outcome is None:
        return UNSET_OUTCOME_MULTIPLIER
    return OUTCOME_MULTIPLIERS[outcome.value]


def get_event_impact_mapping(event: SimulationEvent) -> List[TraitImpact]:
    """
    Scaled trait/value impacts implied by an event.

    Args:
        event: Observed simulation event

    Only a missing magnitude defaults to 1.0. An explicit ``magnitude=0.0``
    is honoured, so every change scales to zero (and confidence drops to
    the per-impact bonus alone).

    Returns:
        Impacts with changes multiplied by the outcome and magnitude factors;
        empty for event types without a mapping
    """
    if event.event_type == SimulationEventType.POLICY_SUPPORT:
        impacts = _policy_impacts(event.details)
    else:
        impacts = IMPACT_TABLE.get(event.event_type, [])

    magnitude = event.magnitude if event.magnitude is not None else 1.0
    scale = outcome_multiplier(event.outcome) * magnitude

    return [
        TraitImpact(impact.trait, impact.change * scale, impact.category)
        for impact in impacts
    ]


def calculate_update_confidence(event: SimulationEvent, impacts: List[TraitImpact]) -> float:
    """Confidence in [0, 1] that an event should change the persona."""
    confidence = CONFIDENCE_BASE

    if event.impact_tags:
        confidence += len(event.impact_tags) * CONFIDENCE_PER_TAG

    if event.magnitude is not None:
        confidence *= event.magnitude

    confidence += len(impacts) * CONFIDENCE_PER_IMPACT

    return min(1.0, max(0.0, confidence))


def summarize_impacts(impacts: List[TraitImpact]) -> str:
    """Human readable list such as ``openness: +1.5%, stimulation: +1.0%``."""
    parts = []
    for impact in impacts:
        sign = "+" if impact.change > 0 else ""
        parts.append(f"{impact.trait}: {sign}{impact.change * 100:.1f}%")
    return ", ".join(parts)


class PersonaUpdateService:
    """
    Listens on ``simulation-events`` and emits ``persona-updates``.

    Inactive by default: messages keep arriving but are dropped before
    analysis until ``set_active(True)``. ``destroy`` unsubscribes for good.
    """

    def __init__(
        self,
        event_bus: Optional[EventBus] = None,
        confidence_threshold: float = 0.3,
        active: bool = False,
    ) -> None:
        self.event_bus = event_bus if event_bus is not None else get_event_bus()
        self.confidence_threshold = confidence_threshold
        self._active = active
        self._destroyed = False
        self._update_history: List[PersonaUpdateResult] = []
        self._unsubscribe: Optional[Callable[[], None]] = self.event_bus.subscribe(
            SIMULATION_EVENTS_TOPIC, self._on_simulation_event
        )

    def _on_simulation_event(self, message: EventBusMessage) -> None:
        """Handle one simulation event; failures stay local to this message."""
        if not self._active:
            return

        try:
            request = self.analyze_event(message)
            if request is None:
                return

            result = self.build_update(request)
            if result is None:
                return

            self._update_history.append(result)
            self._publish_update(message, result)
            logger.info(f"Updated persona for {result.agent_id}: {result.changes_summary}")
        except Exception:
            logger.exception(
                f"Error processing simulation event {message.message_id} for persona update"
            )

    def analyze_event(self, message: EventBusMessage) -> Optional[PersonaUpdateRequest]:
        """Decide whether an event warrants a persona update."""
        event = message.event
        impacts = get_event_impact_mapping(event)
        if not impacts:
            return None

        confidence = calculate_update_confidence(event, impacts)
        if confidence < self.confidence_threshold:
            logger.debug(
                f"Dropping {event.event_type.value} for {message.agent_id}: "
                f"confidence {confidence:.2f} below {self.confidence_threshold}"
            )
            return None

        return PersonaUpdateRequest(
            agent_id=message.agent_id,
            events=[event],
            update_reason=f"Event {event.event_type.value}: {event.details}",
            confidence_score=confidence,
        )

    def build_update(self, request: PersonaUpdateRequest) -> Optional[PersonaUpdateResult]:
        """Accumulate trait and value deltas for a request."""
        updated_traits: Dict[str, float] = {}
        updated_values: Dict[str, float] = {}
        impacts: List[TraitImpact] = []

        for event in request.events:
            for impact in get_event_impact_mapping(event):
                target = updated_traits if impact.category == _P else updated_values
                target[impact.trait] = target.get(impact.trait, 0.0) + impact.change
                impacts.append(impact)

        if not impacts:
            return None

        return PersonaUpdateResult(
            agent_id=request.agent_id,
            updated_traits=updated_traits,
            updated_values=updated_values,
            changes_summary=summarize_impacts(impacts),
            confidence_score=request.confidence_score,
            source_event_id=request.events[-1].event_id,
        )

    def _publish_update(self, message: EventBusMessage, result: PersonaUpdateResult) -> None:
        metadata: Dict[str, Any] = {
            "source_event_id": result.source_event_id,
            "source_event_type": message.event.event_type.value,
            "updated_traits": dict(result.updated_traits),
            "updated_values": dict(result.updated_values),
            "confidence_score": result.confidence_score,
        }
        # Route the update back to the engine that produced the event
        if "engine_id" in message.metadata:
            metadata["engine_id"] = message.metadata["engine_id"]

        derived = SimulationEvent(
            event_type=SimulationEventType.SOCIAL_INTERACTION,
            details=f"Persona updated: {result.changes_summary}",
            impact_tags=PERSONA_UPDATE_TAGS,
            outcome=EventOutcome.POSITIVE,
            magnitude=result.confidence_score,
            event_id=f"persona-update-{int(time.time() * 1000)}",
        )
        self.event_bus.publish(
            PERSONA_UPDATES_TOPIC,
            message.agent_id,
            derived,
            metadata=metadata,
        )

    def get_agent_update_history(self, agent_id: str) -> List[PersonaUpdateResult]:
        return [u for u in self._update_history if u.agent_id == agent_id]

    def get_statistics(self) -> Dict[str, Any]:
        """Update counts and mean confidence."""
        agent_counts: Dict[str, int] = {}
        for update in self._update_history:
            agent_counts[update.agent_id] = agent_counts.get(update.agent_id, 0) + 1

        total = len(self._update_history)
        average = (
            sum(u.confidence_score for u in self._update_history) / total if total else 0.0
        )
        return {
            "total_updates": total,
            "agent_update_counts": agent_counts,
            "average_confidence": average,
            "is_active": self._active,
        }

    def set_active(self, active: bool) -> None:
        if active and self._destroyed:
            logger.warning("PersonaUpdateService was destroyed and cannot be reactivated")
            return
        self._active = active
        logger.info(f"PersonaUpdateService {'activated' if active else 'deactivated'}")

    @property
    def is_active(self) -> bool:
        return self._active

    def destroy(self) -> None:
        """Unsubscribe from the bus and stay inactive."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._active = False
        self._destroyed = True


# Global service instance
_service: PersonaUpdateService | None = None


def get_persona_update_service() -> PersonaUpdateService:
    """Get the global persona update service, bound to the global bus."""
    global _service
    if _service is None:
        from config.settings import get_settings

        persona_settings = get_settings().persona
        _service = PersonaUpdateService(
            event_bus=get_event_bus(),
            confidence_threshold=persona_settings.confidence_threshold,
            active=persona_settings.active,
        )
    return _service


def reset_persona_update_service() -> None:
    """Tear down the global service (for testing)."""
    global _service
    if _service is not None:
        _service.destroy()
    _service = None
