"""Unit tests for settings and selection configuration files."""

import pytest

from knot.core.config import Settings, clear_settings_cache, get_settings
from knot.core.errors import ConfigurationError
from knot.selection.models import (
    CONFIG_TEMPLATES,
    SelectionConfig,
    Strategy,
    load_selection_config,
    save_selection_config,
)


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test default limits."""
        monkeypatch.delenv("KNOT_STRATEGY", raising=False)
        settings = Settings()

        assert settings.knot_complexity_threshold == 8
        assert settings.knot_max_depth == 5
        assert settings.knot_strategy is None

    def test_environment_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that environment variables override defaults."""
        monkeypatch.setenv("KNOT_COMPLEXITY_THRESHOLD", "6")
        monkeypatch.setenv("KNOT_STRATEGY", "priority")
        monkeypatch.setenv("KNOT_MAX_ALTERNATIVES", "2")

        settings = Settings()

        assert settings.breakdown_config().complexity_threshold == 6
        selection = settings.selection_config()
        assert selection.strategy == Strategy.PRIORITY
        assert selection.max_alternatives == 2

    def test_unknown_strategy_falls_back(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that a misspelled strategy does not break configuration."""
        monkeypatch.setenv("KNOT_STRATEGY", "fastest")

        assert Settings().selection_config().strategy == Strategy.DEPENDENCY_AWARE

    def test_cached(self, mock_settings) -> None:
        """Test that get_settings is cached until cleared."""
        first = get_settings()

        assert get_settings() is first

        clear_settings_cache()
        assert get_settings() is not first


class TestSelectionConfigFiles:
    """Tests for templates and JSON configuration files."""

    @pytest.mark.parametrize("name", sorted(CONFIG_TEMPLATES))
    def test_templates_valid(self, name: str) -> None:
        """Test that every built-in template builds a usable config."""
        config = SelectionConfig.from_template(name)

        assert config.weights.total == pytest.approx(1.0)

    def test_unknown_template(self) -> None:
        """Test that unknown template names are rejected."""
        with pytest.raises(ConfigurationError, match="available"):
            SelectionConfig.from_template("turbo")

    def test_save_and_load(self, tmp_path) -> None:
        """Test writing a config and reading it back."""
        path = tmp_path / "config" / "selection.json"
        config = SelectionConfig.from_template("critical-path")

        save_selection_config(config, path)

        assert load_selection_config(path) == config

    def test_load_invalid(self, tmp_path) -> None:
        """Test that malformed files raise ConfigurationError."""
        path = tmp_path / "selection.json"
        path.write_text('{"strategy": "fastest"}', encoding="utf-8")

        with pytest.raises(ConfigurationError):
            load_selection_config(path)

        with pytest.raises(ConfigurationError):
            load_selection_config(tmp_path / "missing.json")


class TestLogging:
    """Tests for configure_logging."""

    def test_file_sink(self, tmp_path) -> None:
        """Test that a configured log file receives messages."""
        from loguru import logger

        from knot.core.logging import configure_logging

        log_file = tmp_path / "logs" / "knot.log"
        configure_logging(Settings(knot_log_file=str(log_file), knot_log_level="INFO"))

        logger.info("selection finished")
        logger.remove()

        assert "selection finished" in log_file.read_text(encoding="utf-8")
