"""Tests for configuration management."""

from __future__ import annotations

from pathlib import Path

import pytest

from pf1_engine.core.config import (
    EngineSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from pf1_engine.core.exceptions import ConfigurationError


class TestEngineSettings:
    """Tests for EngineSettings configuration."""

    def test_default_values(self) -> None:
        """Test default engine settings."""
        settings = EngineSettings()

        assert settings.tie_policy == "first"
        assert settings.warn_on_formula_error is True
        assert settings.ruleset_path is None

    def test_tie_policy_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test tie policy read from the environment."""
        monkeypatch.setenv("PF1_ENGINE_ENGINE_TIE_POLICY", "merge")

        settings = EngineSettings()

        assert settings.tie_policy == "merge"

    def test_missing_ruleset_file(self, tmp_path: Path) -> None:
        """Test that a ruleset override must exist."""
        with pytest.raises(ConfigurationError) as exc_info:
            EngineSettings(ruleset_path=tmp_path / "missing.json")

        assert exc_info.value.details["config_key"] == "ruleset_path"

    def test_existing_ruleset_file(self, tmp_path: Path) -> None:
        """Test an existing ruleset override is accepted."""
        path = tmp_path / "ruleset.json"
        path.write_text("{}", encoding="utf-8")

        settings = EngineSettings(ruleset_path=path)

        assert settings.ruleset_path == path


class TestSettings:
    """Tests for main Settings configuration."""

    def test_default_settings(self) -> None:
        """Test default settings initialization."""
        settings = Settings()

        assert settings.debug is False
        assert settings.log_level == "INFO"
        assert settings.json_logs is False
        assert settings.log_file is None

    def test_env_overrides(self, mock_env_vars: dict[str, str]) -> None:
        """Test settings picked up from environment variables."""
        settings = Settings()

        assert settings.debug is True
        assert settings.log_level == "DEBUG"
        assert settings.engine.tie_policy == "merge"

    def test_effective_log_level(self) -> None:
        """Test the debug switch overrides the configured level."""
        assert Settings(log_level="WARNING").effective_log_level == "WARNING"
        assert Settings(debug=True, log_level="WARNING").effective_log_level == "DEBUG"


class TestGetSettings:
    """Tests for get_settings singleton function."""

    def test_returns_settings_instance(self) -> None:
        """Test that get_settings returns a Settings instance."""
        assert isinstance(get_settings(), Settings)

    def test_caching(self) -> None:
        """Test that settings are cached."""
        settings1 = get_settings()
        settings2 = get_settings()

        assert settings1 is settings2

    def test_cache_clear(self) -> None:
        """Test that cache can be cleared."""
        settings1 = get_settings()
        clear_settings_cache()
        settings2 = get_settings()

        assert settings1 is not settings2

    def test_invalid_value_raises_configuration_error(
        self,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test that invalid environment values are wrapped."""
        monkeypatch.setenv("PF1_ENGINE_LOG_LEVEL", "LOUD")

        with pytest.raises(ConfigurationError):
            get_settings()
