"""Simulation state container."""

from dataclasses import dataclass, field, fields, asdict
from typing import Any, Dict, List, Optional
import numpy as np

from config.constants import BASELINE_GLOBAL_METRICS, METRIC_MAX, METRIC_MIN
from deepdive.entities.agent import Agent


@dataclass
class GlobalMetrics:
    """Society-wide indicators, each in [0, 100]."""

    social_trust: float = BASELINE_GLOBAL_METRICS["social_trust"]
    resource_efficiency: float = BASELINE_GLOBAL_METRICS["resource_efficiency"]
    individual_autonomy: float = BASELINE_GLOBAL_METRICS["individual_autonomy"]
    community_wellbeing: float = BASELINE_GLOBAL_METRICS["community_wellbeing"]
    total_happiness: float = BASELINE_GLOBAL_METRICS["total_happiness"]
    privacy_score: float = BASELINE_GLOBAL_METRICS["privacy_score"]
    freedom_index: float = BASELINE_GLOBAL_METRICS["freedom_index"]

    def adjust(self, name: str, delta: float) -> None:
        setattr(self, name, getattr(self, name) + delta)

    def clamp(self) -> None:
        """Clamp every metric to [0, 100]."""
        for f in fields(self):
            value = getattr(self, f.name)
            setattr(self, f.name, max(METRIC_MIN, min(METRIC_MAX, value)))

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def names(cls) -> List[str]:
        return [f.name for f in fields(cls)]


@dataclass
class MetricsSnapshot:
    """Global metrics and aggregates at one step."""

    step: int = 0
    metrics: Dict[str, float] = field(default_factory=dict)
    average_satisfaction: float = 0.0
    total_connections: int = 0

    def get(self, name: str, default: float = 0.0) -> float:
        if name in self.metrics:
            return self.metrics[name]
        return float(getattr(self, name, default))


@dataclass
class SimulationState:
    """
    Full externally visible simulation state.

    The engine owns the live instance; callers only ever see copies.
    """

    is_running: bool = False
    current_step: int = 0
    total_steps: int = 100
    selected_scenario: str = ""
    agents: List[Agent] = field(default_factory=list)
    global_metrics: GlobalMetrics = field(default_factory=GlobalMetrics)
    variable_state: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    # Metrics tracking
    metrics_history: List[MetricsSnapshot] = field(default_factory=list)
    metrics_history_limit: int = 1000

    @property
    def is_finished(self) -> bool:
        return self.current_step >= self.total_steps

    def get_agent(self, agent_id: str) -> Optional[Agent]:
        """Get an agent by ID."""
        for agent in self.agents:
            if agent.id == agent_id:
                return agent
        return None

    def average_satisfaction(self) -> float:
        if not self.agents:
            return 0.0
        return float(np.mean([a.satisfaction_level for a in self.agents]))

    def total_connections(self) -> int:
        """Number of undirected edges."""
        return sum(len(a.connections) for a in self.agents) // 2

    def record_metrics(self) -> MetricsSnapshot:
        """Append a snapshot of the current metrics to history."""
        snapshot = MetricsSnapshot(
            step=self.current_step,
            metrics=self.global_metrics.as_dict(),
            average_satisfaction=self.average_satisfaction(),
            total_connections=self.total_connections(),
        )
        self.metrics_history.append(snapshot)

        # Trim history
        if len(self.metrics_history) > self.metrics_history_limit:
            self.metrics_history = self.metrics_history[-self.metrics_history_limit:]

        return snapshot

    def get_metrics_array(self, metric_name: str, limit: int = 300) -> np.ndarray:
        """Values of one metric over the most recent ``limit`` recorded steps."""
        if limit <= 0:
            return np.array([], dtype=float)
        history = self.metrics_history[-limit:]
        return np.array([m.get(metric_name) for m in history], dtype=float)
