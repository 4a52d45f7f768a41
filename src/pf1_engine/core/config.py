"""Configuration management for the statistics engine.

Settings are read with pydantic-settings from environment variables and
``.env`` files. They only tune engine behavior (tie policy, logging, an
optional ruleset override); the rules tables themselves are a separate
immutable ``Ruleset`` value passed into each recompute.

Example:
    >>> from pf1_engine.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.engine.tie_policy
    'first'

Environment Variables:
    PF1_ENGINE_DEBUG: Force debug-level logging
    PF1_ENGINE_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    PF1_ENGINE_JSON_LOGS: Emit JSON log lines instead of console output
    PF1_ENGINE_LOG_FILE: Also write log lines to this file
    PF1_ENGINE_ENGINE_TIE_POLICY: "first" or "merge"
    PF1_ENGINE_ENGINE_RULESET_PATH: JSON file overriding the default ruleset
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pf1_engine.core.exceptions import ConfigurationError


class EngineSettings(BaseSettings):
    """Configuration for resolution behavior.

    Attributes:
        tie_policy: What happens to the source list when two typed bonuses
            of the same kind tie. "first" keeps only the first-seen source,
            "merge" lists both. The numeric value is identical either way.
        warn_on_formula_error: Log failed formulas at warning level
            (debug level when disabled).
        ruleset_path: Optional JSON file that replaces the default ruleset.
    """

    model_config = SettingsConfigDict(
        env_prefix="PF1_ENGINE_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    tie_policy: Literal["first", "merge"] = Field(
        default="first",
        description="Source-list behavior on typed bonus ties",
    )
    warn_on_formula_error: bool = Field(
        default=True,
        description="Surface formula failures as warnings",
    )
    ruleset_path: Path | None = Field(
        default=None,
        description="JSON ruleset override",
    )

    @field_validator("ruleset_path", mode="after")
    @classmethod
    def ensure_ruleset_exists(cls, value: Path | None) -> Path | None:
        """Reject a ruleset override that points at a missing file.

        Args:
            value: The configured path, if any.

        Returns:
            The validated path.

        Raises:
            ConfigurationError: If the file does not exist.
        """
        if value is not None and not value.is_file():
            raise ConfigurationError(
                f"Ruleset file not found: {value}",
                config_key="ruleset_path",
            )
        return value


class Settings(BaseSettings):
    """Top-level settings aggregating all configuration domains.

    Attributes:
        debug: Force debug-level logging regardless of log_level.
        log_level: Engine logging level.
        json_logs: Emit JSON logs.
        log_file: Optional file that also receives log lines.
        engine: Resolution settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="PF1_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    json_logs: bool = Field(
        default=False,
        description="Emit JSON log lines",
    )
    log_file: Path | None = Field(
        default=None,
        description="Additional log file",
    )

    engine: EngineSettings = Field(default_factory=EngineSettings)

    @property
    def effective_log_level(self) -> str:
        """Logging level after applying the debug switch."""
        return "DEBUG" if self.debug else self.log_level


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the settings singleton.

    Returns:
        The cached Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load engine settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()


__all__ = [
    "EngineSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
