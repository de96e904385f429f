#!/usr/bin/env python3
"""
Deep Dive - agent-based social simulation with dynamic personas.

Headless driver: builds an engine for one scenario, advances it on a
fixed-interval clock and logs global metrics every step.

Run with: python main.py --scenario optimized --steps 50 --seed 7
"""

import sys
import argparse
import copy
import logging
import time
from pathlib import Path
from typing import List, Optional

import yaml

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from config.settings import Settings, get_settings
from deepdive.catalog import ScenarioCatalog, VariableCatalog
from deepdive.core.clock import SimulationClock
from deepdive.core.event_bus import EventBus
from deepdive.core.event_producer import RandomEventProducer
from deepdive.core.simulation import SimulationEngine
from deepdive.services.persona_update import PersonaUpdateService

logger = logging.getLogger(__name__)


class Application:
    """Headless application: engine, bus and persona service for one run."""

    def __init__(self, args: argparse.Namespace) -> None:
        self.args = args
        self.settings = (
            Settings.load(Path(args.config)) if args.config else copy.deepcopy(get_settings())
        )
        self._apply_overrides()

        self.clock = SimulationClock(step_interval=self.settings.simulation.step_interval)
        self.event_bus: EventBus | None = None
        self.persona_service: PersonaUpdateService | None = None
        self.engine: SimulationEngine | None = None

    def _apply_overrides(self) -> None:
        """Command line values win over the settings file."""
        sim = self.settings.simulation
        if self.args.steps is not None:
            sim.total_steps = self.args.steps
        if self.args.seed is not None:
            sim.seed = self.args.seed
        if self.args.interval is not None:
            sim.step_interval = self.args.interval
        if self.args.events is not None:
            sim.event_probability = self.args.events
        if self.args.no_persona:
            self.settings.persona.activate_with_engine = False
            self.settings.persona.apply_updates = False

    def initialize(self) -> None:
        """Build catalogs, bus, persona service and engine."""
        catalog = self.settings.catalog
        variable_catalog = VariableCatalog.from_yaml(
            Path(catalog.variables_path) if catalog.variables_path else None,
            catalog.reference_date,
        )
        scenario_catalog = ScenarioCatalog.from_yaml(
            Path(catalog.scenarios_path) if catalog.scenarios_path else None
        )
        if self.args.scenario and scenario_catalog.get_scenario_config(self.args.scenario) is None:
            raise ValueError(
                f"Unknown scenario '{self.args.scenario}' "
                f"(available: {', '.join(scenario_catalog.list_ids())})"
            )

        bus_settings = self.settings.event_bus
        self.event_bus = EventBus(
            history_limit=bus_settings.history_limit,
            eviction_batch=bus_settings.eviction_batch,
            active=bus_settings.active,
        )

        if not self.args.no_persona:
            self.persona_service = PersonaUpdateService(
                event_bus=self.event_bus,
                confidence_threshold=self.settings.persona.confidence_threshold,
                active=self.settings.persona.active,
            )

        sim = self.settings.simulation
        producer = RandomEventProducer(sim.event_probability) if sim.event_probability > 0 else None

        self.engine = SimulationEngine(
            scenario_id=self.args.scenario or sim.default_scenario,
            settings=self.settings,
            variable_catalog=variable_catalog,
            scenario_catalog=scenario_catalog,
            event_bus=self.event_bus,
            persona_service=self.persona_service,
            event_producer=producer,
        )

    def run(self) -> None:
        """Main loop: step while running, then write the summary."""
        self.initialize()
        engine = self.engine

        engine.set_state(is_running=True)
        last_time = time.time()

        try:
            while engine.is_running:
                current_time = time.time()
                dt = current_time - last_time
                last_time = current_time

                for _ in range(self.clock.update(dt)):
                    engine.step()
                    self._log_metrics()
                    if engine.get_state().is_finished:
                        engine.set_state(is_running=False)
                        break

                if engine.is_running and self.clock.step_interval > 0:
                    time.sleep(min(self.clock.step_interval, 0.05))
        finally:
            self.shutdown()

        if self.args.output:
            self.write_summary(Path(self.args.output))

    def _log_metrics(self) -> None:
        metrics = self.engine.get_metrics_dict()
        parts = " ".join(
            f"{name}={value:.2f}" for name, value in metrics.items() if name != "step"
        )
        logger.info(f"step {int(metrics['step'])}/{self.settings.simulation.total_steps} {parts}")

    def summary(self) -> dict:
        """Final state summary as plain data."""
        state = self.engine.get_state()
        summary = {
            "scenario": state.selected_scenario,
            "seed": self.engine.seed,
            "steps": state.current_step,
            "total_steps": state.total_steps,
            "metrics": {k: float(v) for k, v in self.engine.get_metrics_dict().items()},
            "agents": [
                {
                    "id": agent.id,
                    "type": agent.type.value,
                    "philosophy": agent.philosophical_alignment,
                    "satisfaction": round(agent.satisfaction_level, 4),
                    "connections": sorted(agent.connections),
                    "traits": {k: round(v, 4) for k, v in agent.updm.personality_traits.scores().items()},
                }
                for agent in state.agents
            ],
        }
        if self.persona_service is not None:
            summary["persona_updates"] = self.persona_service.get_statistics()
        if self.event_bus is not None:
            summary["event_bus"] = self.event_bus.get_statistics()
        return summary

    def write_summary(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(self.summary(), f, default_flow_style=False, sort_keys=False)
        logger.info(f"Summary written to {path}")

    def shutdown(self) -> None:
        if self.engine is not None:
            self.engine.close()
        if self.persona_service is not None:
            self.persona_service.set_active(False)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Deep Dive - agent-based social simulation with dynamic personas"
    )

    parser.add_argument(
        "-s", "--scenario",
        type=str,
        default=None,
        help="Scenario id from the configured scenario catalog (default: from settings)"
    )

    parser.add_argument(
        "--steps",
        type=int,
        default=None,
        help="Total number of steps"
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible runs"
    )

    parser.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        help="Path to settings YAML file"
    )

    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between steps (0 runs as fast as possible)"
    )

    parser.add_argument(
        "--events",
        type=float,
        default=None,
        help="Per-agent event probability per step"
    )

    parser.add_argument(
        "--no-persona",
        action="store_true",
        help="Disable the persona update service"
    )

    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        help="Write a final state summary YAML to this path"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    return parser.parse_args(argv)


def main() -> None:
    """Main entry point."""
    args = parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        app = Application(args)
        app.run()
    except KeyboardInterrupt:
        print("\nExiting...")
    except Exception as e:
        print(f"Error: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
