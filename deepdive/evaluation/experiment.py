"""
Experiment configuration and runner for headless batches.

Runs the engine under controlled seeds, collects global metric time
series and summarizes them for comparison across scenarios.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional
import copy
import logging

import numpy as np
import pandas as pd
import yaml

from config.constants import BASELINE_GLOBAL_METRICS

logger = logging.getLogger(__name__)

DEFAULT_METRICS = list(BASELINE_GLOBAL_METRICS) + ["average_satisfaction"]


@dataclass
class ExperimentConfig:
    """Configuration for a single experiment."""

    name: str
    seed: int
    scenario: str
    steps: int = 100
    event_probability: float = 0.0
    persona_updates: bool = True
    metrics_to_track: List[str] = field(default_factory=lambda: list(DEFAULT_METRICS))

    @classmethod
    def from_dict(cls, data: Dict[str, Any], seed: int) -> "ExperimentConfig":
        """Create config from dictionary with a specific seed."""
        return cls(
            name=data["name"],
            seed=seed,
            scenario=data.get("scenario", "empathic"),
            steps=data.get("steps", 100),
            event_probability=data.get("event_probability", 0.0),
            persona_updates=data.get("persona_updates", True),
            metrics_to_track=data.get("metrics", list(DEFAULT_METRICS)),
        )


@dataclass
class ExperimentResult:
    """Result from a single experiment run."""

    config: ExperimentConfig
    time_series: Dict[str, np.ndarray]  # metric -> values over steps
    summary: Dict[str, float]  # mean, std, min, max, final per metric
    persona_statistics: Dict[str, Any] = field(default_factory=dict)
    bus_statistics: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "config_name": self.config.name,
            "seed": self.config.seed,
            "scenario": self.config.scenario,
            "steps": self.config.steps,
            "summary": self.summary,
            "persona_updates": self.persona_statistics.get("total_updates", 0),
            "bus_messages": self.bus_statistics.get("total_messages", 0),
        }


class ExperimentRunner:
    """
    Runs headless experiments.

    Every run gets its own event bus and persona update service so runs
    never observe each other's messages.
    """

    def __init__(self) -> None:
        self._results: List[ExperimentResult] = []

    def run(self, config: ExperimentConfig) -> ExperimentResult:
        """
        Run a single experiment.

        Args:
            config: Experiment configuration

        Returns:
            ExperimentResult with time series and summary statistics
        """
        from deepdive.core.event_bus import EventBus
        from deepdive.core.event_producer import RandomEventProducer
        from deepdive.core.simulation import SimulationEngine
        from deepdive.services.persona_update import PersonaUpdateService
        from config.settings import get_settings

        logger.info(f"Running experiment: {config.name} (seed={config.seed})")

        settings = copy.deepcopy(get_settings())
        settings.simulation.total_steps = config.steps

        bus = EventBus(
            history_limit=settings.event_bus.history_limit,
            eviction_batch=settings.event_bus.eviction_batch,
        )
        persona_service = None
        if config.persona_updates:
            persona_service = PersonaUpdateService(
                event_bus=bus,
                confidence_threshold=settings.persona.confidence_threshold,
            )

        producer = (
            RandomEventProducer(config.event_probability)
            if config.event_probability > 0 else None
        )

        engine = SimulationEngine(
            scenario_id=config.scenario,
            settings=settings,
            event_bus=bus,
            persona_service=persona_service,
            event_producer=producer,
            seed=config.seed,
        )

        try:
            engine.run_steps(config.steps)
        finally:
            engine.close()
            if persona_service is not None:
                persona_service.destroy()

        state = engine.get_state()
        time_series = {
            metric: state.get_metrics_array(metric, limit=config.steps)
            for metric in config.metrics_to_track
        }

        result = ExperimentResult(
            config=config,
            time_series=time_series,
            summary=self._compute_summary(time_series),
            persona_statistics=persona_service.get_statistics() if persona_service else {},
            bus_statistics=bus.get_statistics(),
        )

        self._results.append(result)
        return result

    def _compute_summary(
        self, time_series: Dict[str, np.ndarray]
    ) -> Dict[str, float]:
        """Compute summary statistics for each metric."""
        summary = {}

        for metric, values in time_series.items():
            if len(values) > 0:
                summary[f"{metric}_mean"] = float(np.mean(values))
                summary[f"{metric}_std"] = float(np.std(values))
                summary[f"{metric}_min"] = float(np.min(values))
                summary[f"{metric}_max"] = float(np.max(values))
                # Final value (last 10% average for stability)
                tail_size = max(1, len(values) // 10)
                summary[f"{metric}_final"] = float(np.mean(values[-tail_size:]))

        return summary

    def run_comparison(
        self,
        configs: List[Dict[str, Any]],
        n_runs: int = 10,
        base_seed: int = 0,
    ) -> pd.DataFrame:
        """
        Run multiple configs with multiple seeds, return comparison table.

        Args:
            configs: List of experiment configuration dictionaries
            n_runs: Number of runs per configuration (each with different seed)
            base_seed: Starting seed (seeds will be base_seed, base_seed+1, ...)

        Returns:
            DataFrame with one row per run
        """
        all_results: List[Dict[str, Any]] = []

        for config_dict in configs:
            for run_idx in range(n_runs):
                seed = base_seed + run_idx
                config = ExperimentConfig.from_dict(config_dict, seed)

                try:
                    result = self.run(config)
                except Exception as e:
                    logger.error(
                        f"Experiment {config.name} run {run_idx} failed: {e}"
                    )
                    continue

                row = {
                    "experiment": config.name,
                    "scenario": config.scenario,
                    "run": run_idx,
                    "seed": seed,
                    "persona_updates": result.persona_statistics.get("total_updates", 0),
                    **result.summary,
                }
                all_results.append(row)

        return pd.DataFrame(all_results)

    def get_all_results(self) -> List[ExperimentResult]:
        """Get all results from this runner."""
        return self._results

    def clear_results(self) -> None:
        """Clear all stored results."""
        self._results.clear()


def load_experiment_config(path: str) -> Dict[str, Any]:
    """
    Load experiment configuration from YAML file.

    Args:
        path: Path to YAML configuration file

    Returns:
        Configuration dictionary
    """
    with open(path, "r") as f:
        return yaml.safe_load(f)
