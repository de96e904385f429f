"""Shared fixtures: fresh globals, an isolated event bus and seeded engines."""

import pytest

from config.settings import Settings, reset_settings
from deepdive.catalog import reset_scenario_catalog, reset_variable_catalog
from deepdive.core.event_bus import EventBus, reset_event_bus
from deepdive.core.simulation import SimulationEngine
from deepdive.services.persona_update import (
    PersonaUpdateService,
    reset_persona_update_service,
)


@pytest.fixture(autouse=True)
def fresh_globals():
    """Every test starts from default settings and empty singletons."""
    reset_settings()
    reset_variable_catalog()
    reset_scenario_catalog()
    reset_persona_update_service()
    reset_event_bus()
    yield
    reset_persona_update_service()
    reset_settings()


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def persona_service(event_bus):
    service = PersonaUpdateService(event_bus=event_bus, active=True)
    yield service
    service.destroy()


@pytest.fixture
def make_engine(settings, event_bus):
    """Factory for seeded engines wired to the test's event bus."""
    engines = []

    def _make(scenario_id="empathic", seed=42, **kwargs):
        kwargs.setdefault("settings", settings)
        kwargs.setdefault("event_bus", event_bus)
        engine = SimulationEngine(scenario_id=scenario_id, seed=seed, **kwargs)
        engines.append(engine)
        return engine

    yield _make

    for engine in engines:
        engine.close()


@pytest.fixture
def engine(make_engine):
    return make_engine()
