"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        Pf1EngineError: Base exception for all engine errors.
        ConfigurationError: Configuration-related errors.
        ValidationError: Snapshot validation errors.
        RulesetError: Malformed ruleset tables.
        ResolutionError: Errors raised during resolution.
        FormulaError: Change formula evaluation failures.

    Configuration:
        Settings: Top-level settings class.
        EngineSettings: Resolution behavior settings.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up engine logging.
        configure_logging_from_settings: Set up logging from PF1_ENGINE_* settings.
        get_logger: Get a configured logger instance.
        bind_context / unbind_context / clear_context: Log context helpers.
"""

from __future__ import annotations

from pf1_engine.core.config import (
    EngineSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from pf1_engine.core.exceptions import (
    ConfigurationError,
    FormulaError,
    Pf1EngineError,
    ResolutionError,
    RulesetError,
    ValidationError,
)
from pf1_engine.core.logging import (
    bind_context,
    clear_context,
    configure_logging,
    configure_logging_from_settings,
    get_logger,
    unbind_context,
)


__all__ = [
    # Exceptions
    "Pf1EngineError",
    "ConfigurationError",
    "ValidationError",
    "RulesetError",
    "ResolutionError",
    "FormulaError",
    # Configuration
    "Settings",
    "EngineSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "configure_logging_from_settings",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
]
