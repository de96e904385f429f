"""Simulation entities."""

from .persona import UPDM, PersonalityTraits, SchwartzValueSystem, TraitScore, EvidenceSnippet
from .agent import Agent, AgentEvent, AgentStatus, AgentType, Position, connect_agents
from .events import SimulationEvent, SimulationEventType, EventOutcome

__all__ = [
    "UPDM",
    "PersonalityTraits",
    "SchwartzValueSystem",
    "TraitScore",
    "EvidenceSnippet",
    "Agent",
    "AgentEvent",
    "AgentStatus",
    "AgentType",
    "Position",
    "connect_agents",
    "SimulationEvent",
    "SimulationEventType",
    "EventOutcome",
]
