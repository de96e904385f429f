"""Simulated agent and its life log."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List
import uuid

from config.constants import RESOURCE_MAX, RESOURCE_MIN
from .events import SimulationEvent
from .persona import UPDM, utc_now_iso


class AgentType(Enum):
    """Kind of social actor an agent represents."""
    INDIVIDUAL = "individual"
    COMMUNITY = "community"
    INSTITUTION = "institution"


class AgentStatus(Enum):
    """Agent lifecycle status."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    TRANSITIONING = "transitioning"


@dataclass
class Position:
    """Screen position, used only by renderers."""
    x: float
    y: float


@dataclass
class AgentEvent:
    """Entry in an agent's life log."""

    agent_id: str
    action: str
    context: str
    impact_metrics: Dict[str, float] = field(default_factory=dict)
    philosophical_reasoning: str = ""
    affected_agents: List[str] = field(default_factory=list)
    id: str = field(default_factory=lambda: f"agent-event-{uuid.uuid4().hex[:12]}")
    timestamp: str = field(default_factory=utc_now_iso)

    @classmethod
    def from_simulation_event(
        cls, agent: "Agent", event: SimulationEvent, step: int
    ) -> "AgentEvent":
        """Record a simulation event from the point of view of one agent."""
        participants = event.participants or ()
        return cls(
            agent_id=agent.id,
            action=event.event_type.value,
            context=event.details,
            impact_metrics={
                "magnitude": event.magnitude if event.magnitude is not None else 1.0,
                "satisfaction": agent.satisfaction_level,
                "step": float(step),
            },
            philosophical_reasoning=f"Acting under {agent.philosophical_alignment}",
            affected_agents=[p for p in participants if p != agent.id],
            id=event.event_id,
            timestamp=event.timestamp,
        )


@dataclass
class Agent:
    """
    Unit of simulation.

    ``connections`` is kept symmetric by ``connect_agents``; the engine is
    the only writer. ``philosophical_alignment`` is chosen once at creation.
    """

    id: str
    type: AgentType
    position: Position
    updm: UPDM
    philosophical_alignment: str
    resources: Dict[str, float] = field(default_factory=dict)
    connections: List[str] = field(default_factory=list)
    status: AgentStatus = AgentStatus.ACTIVE
    life_log: List[AgentEvent] = field(default_factory=list)
    satisfaction_level: float = 0.5
    influence_network: Dict[str, float] = field(default_factory=dict)

    def is_connected_to(self, other_id: str) -> bool:
        return other_id in self.connections

    def adjust_resource(self, name: str, delta: float) -> float:
        """Shift a resource by delta, clamped to the resource range."""
        new_value = max(RESOURCE_MIN, min(RESOURCE_MAX, self.resources.get(name, 0.0) + delta))
        self.resources[name] = new_value
        return new_value

    def record_event(self, event: AgentEvent) -> None:
        self.life_log.append(event)


def connect_agents(a: Agent, b: Agent) -> bool:
    """
    Connect two agents in both directions.

    Returns:
        True if a new edge was added, False for self-loops or existing edges
    """
    if a.id == b.id or a.is_connected_to(b.id):
        return False
    a.connections.append(b.id)
    if not b.is_connected_to(a.id):
        b.connections.append(a.id)
    return True
