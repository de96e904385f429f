"""Variable and parameter catalog with typed per-category metrics."""

import logging
from dataclasses import dataclass, field, fields, asdict
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import yaml

from config.constants import (
    PHIL_COMMUNITARIANISM,
    PHIL_DEONTOLOGY,
    PHIL_EXISTENTIALISM,
    PHIL_UTILITARIANISM,
)

logger = logging.getLogger(__name__)

DEFAULT_VARIABLES_PATH = Path(__file__).parent / "data" / "variables.yaml"
DEFAULT_REFERENCE_DATE = "2025-08-31"


class CatalogError(ValueError):
    """Raised when catalog data is inconsistent."""


class VariableCategory(Enum):
    """Variable categories."""
    TECHNOLOGY = "technology"
    RESOURCE = "resource"
    PSYCHOLOGY = "psychology"
    PHILOSOPHY = "philosophy"


@dataclass
class Variable:
    """A modelled dimension of the simulated society."""
    id: str
    name: str
    category: VariableCategory
    description: str = ""
    created_at: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Variable":
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            category=VariableCategory(data["category"]),
            description=data.get("description", ""),
            created_at=str(data.get("created_at", "")),
        )


class _MetricsMixin:
    """Lookup helpers shared by every metrics type."""

    def get(self, name: str, default: Any = None) -> Any:
        value = getattr(self, name, None)
        return default if value is None else value

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"{cls.__name__}: ignoring unknown metrics {sorted(unknown)}")
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class TechnologyMetrics(_MetricsMixin):
    """Technology readiness and reach."""
    trl: int = 1  # 1-9
    accessibility: float = 0.0
    social_impact: float = 0.0
    resource_dependency: Dict[str, float] = field(default_factory=dict)


@dataclass
class PsychologyMetrics(_MetricsMixin):
    """Psychological driver strength."""
    base_value: float = 0.5
    satisfaction_level: float = 0.5
    tech_stimulus_map: Dict[str, float] = field(default_factory=dict)


@dataclass
class ResourceMetrics(_MetricsMixin):
    """Open set of resource figures."""
    values: Dict[str, Any] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.values)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResourceMetrics":
        return cls(values=dict(data))


@dataclass
class PhilosophyMetrics(_MetricsMixin):
    """Base metrics for a philosophical lens."""
    objective_function: str = ""
    satisfaction_level: Optional[float] = None


@dataclass
class UtilitarianismMetrics(PhilosophyMetrics):
    happiness_factors: Dict[str, float] = field(default_factory=dict)


@dataclass
class DeontologyMetrics(PhilosophyMetrics):
    constraints: List[str] = field(default_factory=list)
    penalty_factor: float = 0.0


@dataclass
class ExistentialismMetrics(PhilosophyMetrics):
    choice_metrics: List[str] = field(default_factory=list)


@dataclass
class CommunitarianismMetrics(PhilosophyMetrics):
    balance_weights: Dict[str, float] = field(
        default_factory=lambda: {"individual": 0.5, "community": 0.5}
    )


Metrics = Union[
    TechnologyMetrics,
    PsychologyMetrics,
    ResourceMetrics,
    PhilosophyMetrics,
]

_PHILOSOPHY_METRICS = {
    PHIL_UTILITARIANISM: UtilitarianismMetrics,
    PHIL_DEONTOLOGY: DeontologyMetrics,
    PHIL_EXISTENTIALISM: ExistentialismMetrics,
    PHIL_COMMUNITARIANISM: CommunitarianismMetrics,
}

_CATEGORY_METRICS = {
    VariableCategory.TECHNOLOGY: TechnologyMetrics,
    VariableCategory.PSYCHOLOGY: PsychologyMetrics,
    VariableCategory.RESOURCE: ResourceMetrics,
}


def metrics_from_dict(variable: Variable, data: Dict[str, Any]) -> Metrics:
    """Build the metrics variant that matches the variable's category."""
    if variable.category == VariableCategory.PHILOSOPHY:
        metrics_cls = _PHILOSOPHY_METRICS.get(variable.id, PhilosophyMetrics)
    else:
        metrics_cls = _CATEGORY_METRICS[variable.category]
    return metrics_cls.from_dict(data or {})


@dataclass
class Parameter:
    """Metrics for a variable, valid from an effective date."""
    id: str
    variable_id: str
    effective_date: str
    metrics: Metrics
    source: str = ""
    created_at: str = ""


class VariableCatalog:
    """
    Read-only lookup of variables and their dated parameters.

    Lookups select the parameter whose effective date matches the
    reference date; missing entries come back as None.
    """

    def __init__(
        self,
        variables: List[Variable],
        parameters: List[Parameter],
        reference_date: str = DEFAULT_REFERENCE_DATE,
    ) -> None:
        self.variables: Dict[str, Variable] = {v.id: v for v in variables}
        self.parameters = list(parameters)
        self.reference_date = reference_date

        for param in self.parameters:
            if param.variable_id not in self.variables:
                raise CatalogError(
                    f"Parameter '{param.id}' references unknown variable '{param.variable_id}'"
                )

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], reference_date: str = DEFAULT_REFERENCE_DATE
    ) -> "VariableCatalog":
        variables = [Variable.from_dict(v) for v in data.get("variables", [])]
        by_id = {v.id: v for v in variables}

        parameters = []
        for param_data in data.get("parameters", []):
            variable = by_id.get(param_data["variable_id"])
            if variable is None:
                raise CatalogError(
                    f"Parameter '{param_data.get('id')}' references unknown variable "
                    f"'{param_data['variable_id']}'"
                )
            parameters.append(Parameter(
                id=param_data["id"],
                variable_id=variable.id,
                effective_date=str(param_data["effective_date"]),
                metrics=metrics_from_dict(variable, param_data.get("metrics", {})),
                source=param_data.get("source", ""),
                created_at=str(param_data.get("created_at", "")),
            ))

        return cls(variables, parameters, reference_date)

    @classmethod
    def from_yaml(
        cls, path: Path | None = None, reference_date: str = DEFAULT_REFERENCE_DATE
    ) -> "VariableCatalog":
        """Load catalog from YAML file (packaged data by default)."""
        with open(path or DEFAULT_VARIABLES_PATH) as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data, reference_date)

    def get_variable(self, variable_id: str) -> Optional[Variable]:
        return self.variables.get(variable_id)

    def get_variables_by_category(self, category: VariableCategory | str) -> List[Variable]:
        category = VariableCategory(category)
        return [v for v in self.variables.values() if v.category == category]

    def get_parameter_by_variable_id(
        self, variable_id: str, date: str | None = None
    ) -> Optional[Parameter]:
        date = date or self.reference_date
        for param in self.parameters:
            if param.variable_id == variable_id and param.effective_date == date:
                return param
        return None

    def get_all_current_parameters(self) -> List[Parameter]:
        return [p for p in self.parameters if p.effective_date == self.reference_date]

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        """Current metrics keyed by variable id."""
        return {p.variable_id: p.metrics.to_dict() for p in self.get_all_current_parameters()}


# Global catalog instance
_catalog: Optional[VariableCatalog] = None


def get_variable_catalog() -> VariableCatalog:
    """Get the global variable catalog, loaded per settings."""
    global _catalog
    if _catalog is None:
        from config.settings import get_settings

        catalog_settings = get_settings().catalog
        path = Path(catalog_settings.variables_path) if catalog_settings.variables_path else None
        _catalog = VariableCatalog.from_yaml(path, catalog_settings.reference_date)
    return _catalog


def reset_variable_catalog() -> None:
    """Drop the cached catalog (for testing)."""
    global _catalog
    _catalog = None
