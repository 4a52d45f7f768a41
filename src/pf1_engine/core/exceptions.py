"""Custom exception hierarchy for the Pathfinder 1E statistics engine.

All exceptions inherit from Pf1EngineError, so the host layer can catch a
single type at the boundary while still receiving domain-specific context
through the ``details`` mapping.

Example:
    >>> from pf1_engine.core.exceptions import FormulaError
    >>> raise FormulaError("Unknown reference", formula="@abilities.foo.mod")
"""

from __future__ import annotations

from typing import Any


class Pf1EngineError(Exception):
    """Base exception for all engine errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Configuration & Validation Exceptions
# =============================================================================


class ConfigurationError(Pf1EngineError):
    """Raised when engine settings are invalid or cannot be loaded."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


class ValidationError(Pf1EngineError):
    """Raised when an actor snapshot or pending edit fails validation.

    The engine never repairs malformed input; callers get this error at the
    boundary before any resolution work starts.
    """

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        invalid_value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error with field context.

        Args:
            message: Human-readable error description.
            field_name: Name of the field that failed validation.
            invalid_value: The value that failed validation.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if field_name:
            combined_details["field_name"] = field_name
        if invalid_value is not None:
            combined_details["invalid_value"] = invalid_value
        super().__init__(message, details=combined_details)


class RulesetError(ConfigurationError):
    """Raised when a ruleset table is malformed or cannot be read."""

    def __init__(
        self,
        message: str,
        *,
        ruleset_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize ruleset error.

        Args:
            message: Human-readable error description.
            ruleset_key: The ruleset table or entry at fault.
            details: Optional dictionary containing additional error context.
        """
        super().__init__(message, config_key=ruleset_key, details=details)


# =============================================================================
# Resolution Domain Exceptions
# =============================================================================


class ResolutionError(Pf1EngineError):
    """Base exception for errors raised while resolving derived statistics."""


class FormulaError(ResolutionError):
    """Raised when a change formula cannot be evaluated.

    This covers malformed expressions and references to roll data that
    does not exist. The recompute pass catches it per change.
    """

    def __init__(
        self,
        message: str,
        *,
        formula: str | None = None,
        target: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize formula error with expression context.

        Args:
            message: Human-readable error description.
            formula: The formula that failed to evaluate.
            target: The change target the formula was evaluated for.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if formula:
            combined_details["formula"] = formula
        if target:
            combined_details["target"] = target
        super().__init__(message, details=combined_details)


__all__ = [
    "Pf1EngineError",
    "ConfigurationError",
    "ValidationError",
    "RulesetError",
    "ResolutionError",
    "FormulaError",
]
