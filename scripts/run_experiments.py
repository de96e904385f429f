#!/usr/bin/env python3
"""
CLI for running Deep Dive scenario experiments.

Usage:
    python scripts/run_experiments.py --config config/experiments/scenario_comparison.yaml --output results/

Outputs:
    results/raw_data.csv         - Full data from all runs
    results/summary_table.csv    - Aggregated statistics
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


def main():
    parser = argparse.ArgumentParser(
        description="Run Deep Dive scenario experiments"
    )
    parser.add_argument(
        "--config",
        type=str,
        required=True,
        help="Path to experiment configuration YAML file",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="results/",
        help="Output directory for results (default: results/)",
    )
    parser.add_argument(
        "--n-runs",
        type=int,
        default=None,
        help="Override number of runs per experiment (default: from config)",
    )
    parser.add_argument(
        "--base-seed",
        type=int,
        default=0,
        help="Base seed for random number generation (default: 0)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    logger = logging.getLogger(__name__)

    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)

    from deepdive.evaluation.experiment import load_experiment_config, ExperimentRunner
    from deepdive.evaluation.analysis import compute_statistics, export_csv_summary

    logger.info(f"Loading configuration from {args.config}")
    config = load_experiment_config(args.config)

    experiments = config.get("experiments", [])
    settings = config.get("settings", {})

    n_runs = args.n_runs or settings.get("n_runs", 10)
    steps = settings.get("steps", 100)
    event_probability = settings.get("event_probability", 0.0)
    metrics = config.get("metrics")

    # Shared settings apply unless an experiment overrides them
    for exp in experiments:
        exp.setdefault("steps", steps)
        exp.setdefault("event_probability", event_probability)
        if metrics and "metrics" not in exp:
            exp["metrics"] = metrics

    runner = ExperimentRunner()

    logger.info(f"Running {len(experiments)} experiments, {n_runs} runs each")
    logger.info(f"Duration: {steps} steps per run")

    df = runner.run_comparison(
        configs=experiments,
        n_runs=n_runs,
        base_seed=args.base_seed,
    )

    raw_path = output_dir / "raw_data.csv"
    df.to_csv(raw_path, index=False)
    logger.info(f"Raw data saved to {raw_path}")

    summary_df = compute_statistics(df)
    summary_path = output_dir / "summary_table.csv"
    export_csv_summary(summary_df, str(summary_path))
    logger.info(f"Summary table saved to {summary_path}")

    print("\n" + "=" * 60)
    print("EXPERIMENT SUMMARY")
    print("=" * 60)
    print(summary_df.to_string())
    print("=" * 60 + "\n")

    logger.info("Experiments completed successfully!")


if __name__ == "__main__":
    main()
