"""Tests for YAML-backed settings."""

from pathlib import Path

from config.settings import Settings, get_settings, reset_settings


class TestSettings:
    def test_defaults(self):
        settings = Settings()

        assert settings.simulation.agent_count == 24
        assert settings.simulation.total_steps == 100
        assert settings.simulation.position_x_range == (100, 900)
        assert settings.event_bus.history_limit == 1000
        assert settings.persona.confidence_threshold == 0.3
        assert settings.persona.active is False
        assert settings.catalog.reference_date == "2025-08-31"

    def test_round_trip(self, tmp_path):
        settings = Settings()
        settings.simulation.agent_count = 10
        settings.simulation.position_x_range = (0, 50)
        settings.persona.active = True
        path = tmp_path / "nested" / "settings.yaml"

        settings.save(path)
        loaded = Settings.load(path)

        assert loaded == settings

    def test_partial_file_merges_over_defaults(self, tmp_path):
        path = tmp_path / "partial.yaml"
        path.write_text("simulation:\n  total_steps: 7\n  unknown_key: 1\n")

        settings = Settings.load(path)

        assert settings.simulation.total_steps == 7
        assert settings.simulation.agent_count == 24
        assert not hasattr(settings.simulation, "unknown_key")

    def test_missing_file_gives_defaults(self, tmp_path):
        assert Settings.load(tmp_path / "absent.yaml") == Settings()
        assert Settings.load(None) == Settings()

    def test_global_settings_cached(self):
        settings = get_settings()
        assert settings is get_settings()
        assert settings.simulation.default_scenario == "empathic"

        reset_settings()
        assert get_settings() is not settings

    def test_packaged_file_matches_defaults(self):
        path = Path(__file__).parent.parent / "config" / "simulation.yaml"
        assert Settings.load(path) == Settings()
