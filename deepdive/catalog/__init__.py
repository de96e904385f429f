"""Static variable, parameter and scenario catalogs."""

from .variables import (
    CatalogError,
    Parameter,
    Variable,
    VariableCatalog,
    VariableCategory,
    get_variable_catalog,
    reset_variable_catalog,
)
from .scenarios import (
    ScenarioCatalog,
    ScenarioConfig,
    get_scenario_catalog,
    reset_scenario_catalog,
)

__all__ = [
    "CatalogError",
    "Parameter",
    "Variable",
    "VariableCatalog",
    "VariableCategory",
    "get_variable_catalog",
    "reset_variable_catalog",
    "ScenarioCatalog",
    "ScenarioConfig",
    "get_scenario_catalog",
    "reset_scenario_catalog",
]
