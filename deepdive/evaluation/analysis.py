"""
Statistical analysis functions for experiment results.

Summary statistics with confidence intervals per experiment, Welch
comparisons between two experiments, and CSV export.
"""

from typing import Dict, List, Optional
import numpy as np
import pandas as pd
from scipy import stats

METADATA_COLUMNS = {"experiment", "scenario", "run", "seed", "description"}


def _metric_columns(df: pd.DataFrame) -> List[str]:
    return [
        col for col in df.columns
        if col not in METADATA_COLUMNS and pd.api.types.is_numeric_dtype(df[col])
    ]


def compute_statistics(df: pd.DataFrame) -> pd.DataFrame:
    """
    Compute mean, std, 95% CI for each metric grouped by experiment.

    Args:
        df: DataFrame with columns: experiment, run, seed, and metric columns

    Returns:
        DataFrame with aggregated statistics per experiment
    """
    if df.empty:
        return pd.DataFrame()

    metric_cols = _metric_columns(df)
    results = []

    for exp_name, group in df.groupby("experiment", sort=False):
        row = {"experiment": exp_name, "n_runs": len(group)}
        if "scenario" in group.columns:
            row["scenario"] = group["scenario"].iloc[0]

        for metric in metric_cols:
            values = group[metric].dropna()
            if len(values) == 0:
                continue

            n = len(values)
            mean = values.mean()
            std = values.std() if n > 1 else 0.0
            ci = stats.t.ppf(0.975, n - 1) * std / np.sqrt(n) if n > 1 else 0.0

            row[f"{metric}_mean"] = mean
            row[f"{metric}_std"] = std
            row[f"{metric}_ci95"] = ci
            row[f"{metric}_min"] = values.min()
            row[f"{metric}_max"] = values.max()

        results.append(row)

    return pd.DataFrame(results)


def paired_comparison(
    baseline_df: pd.DataFrame,
    treatment_df: pd.DataFrame,
    metrics: Optional[List[str]] = None,
) -> Dict[str, Dict[str, float]]:
    """
    Welch's t-test between baseline and treatment conditions.

    Metrics with fewer than two observations on either side are skipped.

    Returns:
        Dictionary with p-values and effect sizes for each metric
    """
    if metrics is None:
        metrics = _metric_columns(baseline_df)

    results = {}

    for metric in metrics:
        if metric not in baseline_df.columns or metric not in treatment_df.columns:
            continue

        baseline_vals = baseline_df[metric].dropna()
        treatment_vals = treatment_df[metric].dropna()

        if len(baseline_vals) < 2 or len(treatment_vals) < 2:
            continue

        baseline_mean = baseline_vals.mean()
        treatment_mean = treatment_vals.mean()
        pooled_std = np.sqrt(
            (baseline_vals.std() ** 2 + treatment_vals.std() ** 2) / 2
        )

        if pooled_std > 0:
            t_stat, p_value = stats.ttest_ind(
                baseline_vals, treatment_vals, equal_var=False
            )
            cohens_d = (treatment_mean - baseline_mean) / pooled_std
        else:
            # Identical constant samples
            t_stat = 0.0
            p_value = 1.0 if treatment_mean == baseline_mean else 0.0
            cohens_d = 0.0

        if baseline_mean != 0:
            pct_change = (treatment_mean - baseline_mean) / abs(baseline_mean) * 100
        else:
            pct_change = 0.0

        results[metric] = {
            "baseline_mean": float(baseline_mean),
            "baseline_std": float(baseline_vals.std()),
            "treatment_mean": float(treatment_mean),
            "treatment_std": float(treatment_vals.std()),
            "t_statistic": float(t_stat),
            "p_value": float(p_value),
            "cohens_d": float(cohens_d),
            "pct_change": float(pct_change),
            "significant": bool(p_value < 0.05),
        }

    return results


def compute_improvement_summary(
    raw_df: pd.DataFrame,
    baseline_name: str,
    treatment_names: Optional[List[str]] = None,
) -> pd.DataFrame:
    """
    Percent change and significance of every treatment against a baseline.

    Raises:
        ValueError: If the baseline experiment is missing from raw_df
    """
    baseline_df = raw_df[raw_df["experiment"] == baseline_name]
    if baseline_df.empty:
        raise ValueError(f"Baseline experiment '{baseline_name}' not found")

    if treatment_names is None:
        treatment_names = [
            exp for exp in raw_df["experiment"].unique()
            if exp != baseline_name
        ]

    results = []
    for treatment_name in treatment_names:
        treatment_df = raw_df[raw_df["experiment"] == treatment_name]
        comparison = paired_comparison(baseline_df, treatment_df)

        row = {"treatment": treatment_name}
        for metric, stats_dict in comparison.items():
            row[f"{metric}_pct_change"] = stats_dict["pct_change"]
            row[f"{metric}_p_value"] = stats_dict["p_value"]
            row[f"{metric}_significant"] = stats_dict["significant"]
        results.append(row)

    return pd.DataFrame(results)


def export_csv_summary(summary_df: pd.DataFrame, path: str) -> None:
    """Export summary statistics to CSV file."""
    summary_df.to_csv(path, index=False)


def format_comparison_results(
    comparison: Dict[str, Dict[str, float]]
) -> pd.DataFrame:
    """Format paired comparison results as a DataFrame with star markers."""
    rows = [{"metric": metric, **stats_dict} for metric, stats_dict in comparison.items()]
    df = pd.DataFrame(rows)

    if "p_value" in df.columns:
        df["significance"] = df["p_value"].apply(
            lambda p: "***" if p < 0.001 else (
                "**" if p < 0.01 else ("*" if p < 0.05 else "")
            )
        )

    return df
