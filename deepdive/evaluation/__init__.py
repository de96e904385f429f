"""
Evaluation package for headless experiments.

Modules:
    experiment: ExperimentConfig, ExperimentResult, ExperimentRunner
    analysis: Statistical analysis and export functions
"""

from .experiment import (
    ExperimentConfig,
    ExperimentResult,
    ExperimentRunner,
    load_experiment_config,
)
from .analysis import (
    compute_statistics,
    paired_comparison,
    compute_improvement_summary,
    export_csv_summary,
    format_comparison_results,
)

__all__ = [
    # Experiment
    "ExperimentConfig",
    "ExperimentResult",
    "ExperimentRunner",
    "load_experiment_config",
    # Analysis
    "compute_statistics",
    "paired_comparison",
    "compute_improvement_summary",
    "export_csv_summary",
    "format_comparison_results",
]
