"""Simulation engine: owns agents and global metrics, advances steps."""

import copy
import logging
import uuid
import weakref
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

import numpy as np

from .event_bus import EventBus, EventBusMessage, get_event_bus
from .event_producer import EventProducer, RandomEventProducer
from .state import MetricsSnapshot, SimulationState
from config.settings import Settings, get_settings
from config.constants import (
    DEFAULT_ENVIRONMENT_SATISFACTION,
    GLOBAL_METRIC_RULES,
    PERSONA_UPDATES_TOPIC,
    PERSONALITY_SATISFACTION_SHARE,
    PERSONALITY_SATISFACTION_WEIGHTS,
    PHIL_COMMUNITARIANISM,
    PHIL_DEONTOLOGY,
    PHIL_EXISTENTIALISM,
    PHIL_UTILITARIANISM,
    PHILOSOPHIES,
    RESOURCE_NAMES,
    SIMULATION_EVENTS_TOPIC,
    TECH_ACCESSIBILITY_BONUS,
    TECH_ACCESSIBILITY_THRESHOLD,
    TECH_SOCIAL_IMPACT_SPREAD,
    TECH_SOCIAL_IMPACT_THRESHOLD,
    VALUE_NAMES,
)
from deepdive.catalog.scenarios import ScenarioCatalog, ScenarioConfig, get_scenario_catalog
from deepdive.catalog.variables import VariableCatalog, get_variable_catalog
from deepdive.entities.agent import Agent, AgentEvent, AgentType, Position, connect_agents
from deepdive.entities.persona import UPDM, EvidenceSnippet, utc_now_iso

if TYPE_CHECKING:
    from deepdive.services.persona_update import PersonaUpdateService

logger = logging.getLogger(__name__)

FALLBACK_SCENARIO = "empathic"


@dataclass
class SimulationEngine:
    """
    Sole authority over simulation state.

    Every ``step`` runs the same phases in order: agent satisfaction and
    reconnection, resource drift, global metric update, technology effects,
    optional event production. Randomness comes from a numpy generator
    seeded at construction so runs can be reproduced.

    Events the engine publishes carry its ``engine_id`` in their metadata.
    Persona updates are applied only when they carry the same id, so
    engines sharing a bus never touch each other's agents.
    """

    scenario_id: str = ""
    settings: Settings = field(default_factory=get_settings)
    variable_catalog: VariableCatalog = field(default_factory=get_variable_catalog)
    scenario_catalog: ScenarioCatalog = field(default_factory=get_scenario_catalog)
    event_bus: Optional[EventBus] = field(default_factory=get_event_bus)
    persona_service: Optional["PersonaUpdateService"] = None
    event_producer: Optional[EventProducer] = None
    seed: Optional[int] = None

    engine_id: str = field(init=False)
    scenario: ScenarioConfig = field(init=False)
    _state: SimulationState = field(init=False)
    _rng: np.random.Generator = field(init=False)
    _unsubscribe: Optional[Callable[[], None]] = field(default=None, init=False)

    def __post_init__(self) -> None:
        """Resolve scenario, build state and wire the event bus."""
        sim_settings = self.settings.simulation
        self.engine_id = f"engine-{uuid.uuid4().hex[:12]}"
        if self.seed is None:
            self.seed = sim_settings.seed
        self._rng = np.random.default_rng(self.seed)

        if self.event_producer is None and sim_settings.event_probability > 0:
            self.event_producer = RandomEventProducer(sim_settings.event_probability)

        self.scenario = self._resolve_scenario(self.scenario_id or sim_settings.default_scenario)
        self.scenario_id = self.scenario.id
        self._state = self._initialize_state()

        if self.event_bus is not None and self.settings.persona.apply_updates:
            self._subscribe_persona_updates(self.event_bus)

        if self.persona_service is not None and self.settings.persona.activate_with_engine:
            self.persona_service.set_active(True)

        logger.info(
            f"SimulationEngine initialized: scenario={self.scenario.id} "
            f"agents={len(self._state.agents)} seed={self.seed}"
        )

    def _resolve_scenario(self, scenario_id: str) -> ScenarioConfig:
        scenario = self.scenario_catalog.get_scenario_config(scenario_id)
        if scenario is not None:
            return scenario

        fallback_id = self.settings.simulation.default_scenario or FALLBACK_SCENARIO
        fallback = (
            self.scenario_catalog.get_scenario_config(fallback_id)
            or self.scenario_catalog.get_scenario_config(FALLBACK_SCENARIO)
        )
        if fallback is None:
            raise ValueError(f"Unknown scenario '{scenario_id}' and no fallback scenario available")

        logger.warning(f"Unknown scenario '{scenario_id}', falling back to '{fallback.id}'")
        return fallback

    def set_seed(self, seed: int) -> None:
        """
        Reseed the engine's random generator.

        Args:
            seed: Random seed value
        """
        self.seed = seed
        self._rng = np.random.default_rng(seed)
        logger.debug(f"Simulation random seed set to {seed}")

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def _initialize_state(self) -> SimulationState:
        return SimulationState(
            is_running=False,
            current_step=0,
            total_steps=self.settings.simulation.total_steps,
            selected_scenario=self.scenario.id,
            agents=self._generate_agents(),
            variable_state=self.variable_catalog.snapshot(),
        )

    def _generate_agents(self) -> List[Agent]:
        sim = self.settings.simulation
        agents: List[Agent] = []

        for i in range(sim.agent_count):
            agent_id = f"agent-{i + 1}"
            is_community = self._rng.random() < sim.community_probability
            agents.append(Agent(
                id=agent_id,
                type=AgentType.COMMUNITY if is_community else AgentType.INDIVIDUAL,
                position=Position(
                    x=float(self._rng.uniform(*sim.position_x_range)),
                    y=float(self._rng.uniform(*sim.position_y_range)),
                ),
                updm=UPDM.generate(agent_id, self.get_influenced_random),
                philosophical_alignment=self._select_philosophy(),
                resources={name: float(self._rng.uniform(0.0, 100.0)) for name in RESOURCE_NAMES},
                satisfaction_level=float(self._rng.random()),
            ))

        self._generate_connections(agents)
        return agents

    def get_influenced_random(self) -> float:
        """Uniform draw in [0, 1] biased by the scenario's philosophy."""
        value = float(self._rng.random())
        philosophy = self.scenario.dominant_philosophy

        if philosophy == PHIL_COMMUNITARIANISM:
            value = min(1.0, value + 0.2)
        elif philosophy == PHIL_EXISTENTIALISM:
            value = max(0.3, value)
        elif philosophy == PHIL_DEONTOLOGY:
            value = 0.4 + value * 0.4
        elif philosophy == PHIL_UTILITARIANISM:
            value = 0.3 + value * 0.5

        return max(0.0, min(1.0, value))

    def _select_philosophy(self) -> str:
        if self._rng.random() < self.settings.simulation.dominant_alignment_probability:
            return self.scenario.dominant_philosophy
        return PHILOSOPHIES[int(self._rng.integers(len(PHILOSOPHIES)))]

    def _generate_connections(self, agents: List[Agent]) -> None:
        """Greedy random graph: each agent links to a few unconnected peers."""
        sim = self.settings.simulation
        for agent in agents:
            count = int(self._rng.integers(sim.min_initial_connections, sim.max_initial_connections + 1))
            candidates = [
                a for a in agents if a.id != agent.id and not agent.is_connected_to(a.id)
            ]
            for _ in range(min(count, len(candidates))):
                target = candidates.pop(int(self._rng.integers(len(candidates))))
                connect_agents(agent, target)

    # ------------------------------------------------------------------
    # Stepping
    # ------------------------------------------------------------------

    def step(self) -> None:
        """Advance the simulation by one step; no-op once finished."""
        state = self._state
        if state.current_step >= state.total_steps:
            return

        self._update_agent_behaviors()
        self._update_agent_resources()
        self._update_global_metrics()
        self._apply_technology_effects()
        self._produce_events()

        state.current_step += 1
        state.record_metrics()

        logger.debug(
            f"Step {state.current_step}/{state.total_steps}: "
            f"avg_satisfaction={state.average_satisfaction():.3f}"
        )

    def calculate_satisfaction(self, agent: Agent) -> float:
        """
        Satisfaction in [0, 1] from values and personality.

        Each Schwartz value contributes the environment satisfaction of the
        matching ``phil-<value>`` parameter, weighted by the agent's score.
        The personality term always contributes with a fixed weight.
        """
        satisfaction = 0.0
        weight_sum = 0.0

        values = agent.updm.value_system
        for value_name in VALUE_NAMES:
            param = self.variable_catalog.get_parameter_by_variable_id(f"phil-{value_name}")
            if param is None:
                continue
            weight = values.get(value_name)
            environment = param.metrics.get("satisfaction_level", DEFAULT_ENVIRONMENT_SATISFACTION)
            satisfaction += environment * weight
            weight_sum += weight

        traits = agent.updm.personality_traits.scores()
        personality = sum(
            (1.0 - traits[name] if name == "neuroticism" else traits[name]) * weight
            for name, weight in PERSONALITY_SATISFACTION_WEIGHTS.items()
        )
        satisfaction += personality * PERSONALITY_SATISFACTION_SHARE
        weight_sum += PERSONALITY_SATISFACTION_SHARE

        if weight_sum <= 0:
            return agent.satisfaction_level
        return max(0.0, min(1.0, satisfaction / weight_sum))

    def _update_agent_behaviors(self) -> None:
        sim = self.settings.simulation
        for agent in self._state.agents:
            agent.satisfaction_level = self.calculate_satisfaction(agent)

            # Dissatisfied agents sometimes reach out to someone new
            if agent.satisfaction_level < sim.low_satisfaction_threshold:
                if self._rng.random() < sim.reconnect_probability:
                    self._form_random_connection(agent)

    def _form_random_connection(self, agent: Agent) -> bool:
        unconnected = [
            a for a in self._state.agents
            if a.id != agent.id and not agent.is_connected_to(a.id)
        ]
        if not unconnected:
            return False
        target = unconnected[int(self._rng.integers(len(unconnected)))]
        return connect_agents(agent, target)

    def _update_agent_resources(self) -> None:
        sim = self.settings.simulation
        for agent in self._state.agents:
            network_bonus = len(agent.connections) * sim.network_bonus
            for name in list(agent.resources):
                drift = (self._rng.random() - sim.resource_drift_offset) * sim.resource_drift_scale
                agent.adjust_resource(name, drift + network_bonus)

    def _update_global_metrics(self) -> None:
        state = self._state
        if not state.agents:
            return

        avg_satisfaction = float(np.mean([a.satisfaction_level for a in state.agents]))
        rules = GLOBAL_METRIC_RULES.get(self.scenario.dominant_philosophy, [])
        for metric, baseline, gain in rules:
            state.global_metrics.adjust(metric, (avg_satisfaction - baseline) * gain)

        state.global_metrics.clamp()

    def _apply_technology_effects(self) -> None:
        metrics = self._state.global_metrics
        for tech_id in self.scenario.key_technologies:
            param = self.variable_catalog.get_parameter_by_variable_id(tech_id)
            if param is None:
                continue

            if param.metrics.get("accessibility", 0.0) > TECH_ACCESSIBILITY_THRESHOLD:
                metrics.adjust("resource_efficiency", TECH_ACCESSIBILITY_BONUS)

            if param.metrics.get("social_impact", 0.0) > TECH_SOCIAL_IMPACT_THRESHOLD:
                metrics.adjust(
                    "social_trust", (self._rng.random() - 0.5) * TECH_SOCIAL_IMPACT_SPREAD
                )

        metrics.clamp()

    def _produce_events(self) -> None:
        if self.event_producer is None or self.event_bus is None:
            return

        step = self._state.current_step
        for agent in self._state.agents:
            event = self.event_producer(agent, step, self._rng)
            if event is None:
                continue

            agent.record_event(AgentEvent.from_simulation_event(agent, event, step))
            self.event_bus.publish(
                SIMULATION_EVENTS_TOPIC,
                agent.id,
                event,
                metadata={"step": step, "scenario": self.scenario.id, "engine_id": self.engine_id},
            )

    def run_steps(self, n_steps: int) -> List[MetricsSnapshot]:
        """
        Run up to ``n_steps`` steps (headless mode).

        Returns:
            Metrics snapshots for the steps actually run
        """
        snapshots: List[MetricsSnapshot] = []
        for _ in range(n_steps):
            if self._state.is_finished:
                break
            self.step()
            snapshots.append(copy.deepcopy(self._state.metrics_history[-1]))
        return snapshots

    # ------------------------------------------------------------------
    # Persona updates
    # ------------------------------------------------------------------

    def _subscribe_persona_updates(self, bus: EventBus) -> None:
        """Listen on ``persona-updates`` without keeping the engine alive."""
        method_ref = weakref.WeakMethod(self._on_persona_update)

        def handler(message: EventBusMessage) -> None:
            method = method_ref()
            if method is not None:
                method(message)

        # Unsubscribes on close() or when the engine is garbage collected
        self._unsubscribe = weakref.finalize(self, bus.subscribe(PERSONA_UPDATES_TOPIC, handler))

    def _on_persona_update(self, message: EventBusMessage) -> None:
        """Apply deltas published by the persona update service."""
        metadata = message.metadata
        if metadata.get("engine_id") != self.engine_id:
            return

        applied = self.apply_persona_update(
            message.agent_id,
            metadata.get("updated_traits", {}),
            metadata.get("updated_values", {}),
            event_id=metadata.get("source_event_id", message.event.event_id),
            evidence_text=message.event.details,
        )
        if not applied:
            logger.debug(f"Persona update for unknown agent {message.agent_id} ignored")

    def apply_persona_update(
        self,
        agent_id: str,
        trait_deltas: Dict[str, float],
        value_deltas: Dict[str, float],
        event_id: str = "",
        evidence_text: str = "",
    ) -> bool:
        """
        Shift an agent's traits and values, clamped to [0, 1].

        Returns:
            False if the agent does not exist
        """
        agent = self._state.get_agent(agent_id)
        if agent is None:
            return False

        timestamp = utc_now_iso()
        for trait, delta in trait_deltas.items():
            agent.updm.adjust_trait(
                trait, delta, evidence=EvidenceSnippet(event_id, evidence_text, timestamp)
            )
        for value, delta in value_deltas.items():
            agent.updm.adjust_value(value, delta)
        return True

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    def get_state(self) -> SimulationState:
        """Deep copy of the current state."""
        return copy.deepcopy(self._state)

    def set_state(self, changes: Optional[Dict[str, Any]] = None, **kwargs: Any) -> None:
        """Shallow-merge fields into the state; unknown keys are ignored."""
        updates = {**(changes or {}), **kwargs}
        for key, value in updates.items():
            if key.startswith("_") or not hasattr(self._state, key) or key == "is_finished":
                logger.warning(f"Ignoring unknown state field '{key}'")
                continue
            setattr(self._state, key, copy.deepcopy(value))

    def get_agent(self, agent_id: str) -> Optional[Agent]:
        """Copy of a single agent."""
        agent = self._state.get_agent(agent_id)
        return copy.deepcopy(agent) if agent is not None else None

    @property
    def is_running(self) -> bool:
        return self._state.is_running

    @property
    def current_step(self) -> int:
        return self._state.current_step

    def change_scenario(self, scenario_id: str) -> bool:
        """Discard all state and start over under another scenario."""
        scenario = self.scenario_catalog.get_scenario_config(scenario_id)
        if scenario is None:
            logger.warning(f"Unknown scenario '{scenario_id}', keeping '{self.scenario.id}'")
            return False

        self.scenario = scenario
        self.scenario_id = scenario.id
        self._state = self._initialize_state()
        logger.info(f"Scenario changed to {scenario.id}")
        return True

    def get_metrics_dict(self) -> Dict[str, float]:
        """
        Get current simulation metrics as a dictionary.

        Returns:
            Dictionary mapping metric names to values
        """
        state = self._state
        return {
            "step": float(state.current_step),
            **state.global_metrics.as_dict(),
            "average_satisfaction": state.average_satisfaction(),
            "total_connections": float(state.total_connections()),
        }

    def close(self) -> None:
        """Stop listening for persona updates."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
