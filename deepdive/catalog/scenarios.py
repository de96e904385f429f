"""Scenario presets: dominant philosophy, key technologies, global rules."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
import yaml

from config.constants import BASELINE_GLOBAL_METRICS

logger = logging.getLogger(__name__)

DEFAULT_SCENARIOS_PATH = Path(__file__).parent / "data" / "scenarios.yaml"


@dataclass
class ScenarioConfig:
    """Configuration for a social future scenario."""
    id: str
    name: str
    dominant_philosophy: str
    description: str = ""
    key_technologies: List[str] = field(default_factory=list)
    global_rules: Dict[str, Any] = field(default_factory=dict)
    success_metrics: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, scenario_id: str, data: Dict[str, Any]) -> "ScenarioConfig":
        """Create from dictionary."""
        success_metrics = list(data.get("success_metrics", []))
        for metric in success_metrics:
            if metric not in BASELINE_GLOBAL_METRICS:
                logger.warning(
                    f"Scenario '{scenario_id}': success metric '{metric}' is not a global metric"
                )
        return cls(
            id=scenario_id,
            name=data.get("name", scenario_id),
            dominant_philosophy=data["dominant_philosophy"],
            description=data.get("description", ""),
            key_technologies=list(data.get("key_technologies", [])),
            global_rules=dict(data.get("global_rules", {})),
            success_metrics=success_metrics,
        )


class ScenarioCatalog:
    """Read-only lookup of scenario configurations by id."""

    def __init__(self, scenarios: Dict[str, ScenarioConfig]) -> None:
        self.scenarios = scenarios

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "ScenarioCatalog":
        """Load scenarios from YAML file (packaged data by default)."""
        with open(path or DEFAULT_SCENARIOS_PATH) as f:
            data = yaml.safe_load(f) or {}

        scenarios = {
            scenario_id: ScenarioConfig.from_dict(scenario_id, scenario_data)
            for scenario_id, scenario_data in data.get("scenarios", {}).items()
        }
        return cls(scenarios)

    def get_scenario_config(self, scenario_id: str) -> Optional[ScenarioConfig]:
        return self.scenarios.get(scenario_id)

    def get_all_scenarios(self) -> List[ScenarioConfig]:
        return list(self.scenarios.values())

    def list_ids(self) -> List[str]:
        return list(self.scenarios.keys())


# Global catalog instance
_catalog: Optional[ScenarioCatalog] = None


def get_scenario_catalog() -> ScenarioCatalog:
    """Get the global scenario catalog, loaded per settings."""
    global _catalog
    if _catalog is None:
        from config.settings import get_settings

        scenarios_path = get_settings().catalog.scenarios_path
        _catalog = ScenarioCatalog.from_yaml(Path(scenarios_path) if scenarios_path else None)
    return _catalog


def reset_scenario_catalog() -> None:
    """Drop the cached catalog (for testing)."""
    global _catalog
    _catalog = None
