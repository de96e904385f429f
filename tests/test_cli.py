"""Tests for the headless command line driver."""

import pytest
import yaml

import main
from deepdive.core.state import GlobalMetrics


class TestParseArgs:
    def test_defaults(self):
        args = main.parse_args([])

        assert args.scenario is None
        assert args.steps is None
        assert args.no_persona is False
        assert args.verbose is False

    def test_all_flags(self):
        args = main.parse_args([
            "--scenario", "sovereign", "--steps", "12", "--seed", "9",
            "--interval", "0", "--events", "0.2", "--no-persona",
            "--output", "out.yaml", "-v",
        ])

        assert args.scenario == "sovereign"
        assert args.steps == 12
        assert args.seed == 9
        assert args.interval == 0.0
        assert args.events == 0.2
        assert args.no_persona is True
        assert args.output == "out.yaml"
        assert args.verbose is True

    def test_scenario_is_not_validated_at_parse_time(self):
        assert main.parse_args(["--scenario", "harbor"]).scenario == "harbor"


class TestApplication:
    def test_headless_run_writes_summary(self, tmp_path):
        output = tmp_path / "summary.yaml"
        args = main.parse_args([
            "--scenario", "optimized", "--steps", "5", "--seed", "3",
            "--interval", "0", "--events", "0.5", "--output", str(output),
        ])

        main.Application(args).run()

        summary = yaml.safe_load(output.read_text())
        assert summary["scenario"] == "optimized"
        assert summary["steps"] == 5
        assert summary["seed"] == 3
        assert len(summary["agents"]) == 24
        for name in GlobalMetrics.names():
            assert 0.0 <= summary["metrics"][name] <= 100.0
        assert summary["event_bus"]["total_messages"] > 0
        assert "persona_updates" in summary

    def test_no_persona(self, tmp_path):
        args = main.parse_args(["--steps", "2", "--interval", "0", "--no-persona"])
        app = main.Application(args)

        app.run()

        assert app.persona_service is None
        assert app.engine.current_step == 2
        assert app.engine.is_running is False

    def test_unknown_scenario_rejected(self):
        app = main.Application(main.parse_args(["--scenario", "atlantis", "--interval", "0"]))

        with pytest.raises(ValueError, match="atlantis"):
            app.run()
        assert app.engine is None

    def test_scenario_from_configured_catalog(self, tmp_path):
        scenarios = tmp_path / "scenarios.yaml"
        scenarios.write_text(
            "scenarios:\n"
            "  harbor:\n"
            "    name: Harbor Town\n"
            "    dominant_philosophy: phil-communitarianism\n"
            "    key_technologies: [tech-ai]\n"
            "    success_metrics: [social_trust]\n"
        )
        config = tmp_path / "settings.yaml"
        config.write_text(f"catalog:\n  scenarios_path: {scenarios}\n")
        args = main.parse_args([
            "--config", str(config), "--scenario", "harbor", "--steps", "2", "--interval", "0",
        ])
        app = main.Application(args)

        app.run()

        assert app.engine.scenario.id == "harbor"
        assert app.engine.current_step == 2

    def test_overrides_do_not_touch_global_settings(self):
        from config.settings import get_settings

        main.Application(main.parse_args(["--steps", "3"]))

        assert get_settings().simulation.total_steps == 100
