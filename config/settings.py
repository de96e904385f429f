"""Global settings for the Deep Dive simulation."""

from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any, Dict, Optional
import yaml

@dataclass
class SimulationSettings:
    """Core simulation parameters."""
    agent_count: int = 24
    total_steps: int = 100
    default_scenario: str = "empathic"
    community_probability: float = 0.2
    dominant_alignment_probability: float = 0.7
    position_x_range: tuple = (100.0, 900.0)
    position_y_range: tuple = (100.0, 700.0)
    min_initial_connections: int = 1
    max_initial_connections: int = 4
    low_satisfaction_threshold: float = 0.4
    reconnect_probability: float = 0.3
    resource_drift_offset: float = 0.45
    resource_drift_scale: float = 2.0
    network_bonus: float = 0.1
    step_interval: float = 0.3  # Seconds between steps in the run loop
    event_probability: float = 0.0
    seed: Optional[int] = None


@dataclass
class EventBusSettings:
    """Event bus history and activation."""
    history_limit: int = 1000
    eviction_batch: int = 100
    active: bool = True


@dataclass
class PersonaSettings:
    """Persona update service behaviour."""
    confidence_threshold: float = 0.3
    active: bool = False
    activate_with_engine: bool = True
    apply_updates: bool = True


@dataclass
class CatalogSettings:
    """Static catalog locations and reference date."""
    reference_date: str = "2025-08-31"
    variables_path: Optional[str] = None  # None uses the packaged data
    scenarios_path: Optional[str] = None


@dataclass
class Settings:
    """Main settings container."""
    simulation: SimulationSettings = field(default_factory=SimulationSettings)
    event_bus: EventBusSettings = field(default_factory=EventBusSettings)
    persona: PersonaSettings = field(default_factory=PersonaSettings)
    catalog: CatalogSettings = field(default_factory=CatalogSettings)

    @classmethod
    def load(cls, config_path: Path | None = None) -> "Settings":
        """Load settings from YAML file, falling back to defaults."""
        settings = cls()

        if config_path and config_path.exists():
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
            settings.update(data)

        return settings

    def update(self, data: Dict[str, Any]) -> None:
        """Merge a nested mapping of overrides into the current settings."""
        for section in fields(self):
            values = data.get(section.name)
            if not values:
                continue
            target = getattr(self, section.name)
            for key, value in values.items():
                if hasattr(target, key):
                    current = getattr(target, key)
                    if isinstance(current, tuple) and isinstance(value, list):
                        value = tuple(value)
                    setattr(target, key, value)

    def to_dict(self) -> Dict[str, Any]:
        """Plain nested dictionary, tuples converted to lists for YAML."""
        data = asdict(self)
        for section in data.values():
            for key, value in section.items():
                if isinstance(value, tuple):
                    section[key] = list(value)
        return data

    def save(self, config_path: Path) -> None:
        """Save current settings to YAML file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get global settings instance."""
    global _settings
    if _settings is None:
        config_path = Path(__file__).parent / "simulation.yaml"
        _settings = Settings.load(config_path)
    return _settings


def reset_settings() -> None:
    """Drop the cached settings (for testing)."""
    global _settings
    _settings = None
