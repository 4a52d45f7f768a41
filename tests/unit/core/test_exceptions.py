"""Tests for the exception hierarchy."""

from __future__ import annotations

import pytest

from pf1_engine.core.exceptions import (
    ConfigurationError,
    FormulaError,
    Pf1EngineError,
    ResolutionError,
    RulesetError,
    ValidationError,
)


class TestPf1EngineError:
    """Tests for the base Pf1EngineError exception."""

    def test_basic_message(self) -> None:
        """Test exception with basic message."""
        exc = Pf1EngineError("Test error message")
        assert exc.message == "Test error message"
        assert exc.details == {}
        assert str(exc) == "Test error message"

    def test_with_details(self) -> None:
        """Test exception with additional details."""
        exc = Pf1EngineError(
            "Test error",
            details={"key": "value", "count": 42},
        )
        assert exc.details == {"key": "value", "count": 42}
        assert "key='value'" in str(exc)
        assert "count=42" in str(exc)

    def test_repr(self) -> None:
        """Test exception repr output."""
        exc = Pf1EngineError("Test", details={"x": 1})
        repr_str = repr(exc)
        assert "Pf1EngineError" in repr_str
        assert "Test" in repr_str
        assert "x" in repr_str


class TestConfigurationExceptions:
    """Tests for configuration exceptions."""

    def test_configuration_error(self) -> None:
        """Test ConfigurationError with config key."""
        exc = ConfigurationError(
            "Unknown tie policy",
            config_key="tie_policy",
        )
        assert exc.details["config_key"] == "tie_policy"

    def test_ruleset_error_uses_config_key(self) -> None:
        """Test RulesetError records the ruleset key as config key."""
        exc = RulesetError("Missing size", ruleset_key="size_mods")
        assert exc.details["config_key"] == "size_mods"
        assert isinstance(exc, ConfigurationError)

    def test_validation_error(self) -> None:
        """Test ValidationError with field info."""
        exc = ValidationError(
            "Invalid value",
            field_name="abilities.str.value",
            invalid_value=-5,
        )
        assert exc.details["field_name"] == "abilities.str.value"
        assert exc.details["invalid_value"] == -5


class TestResolutionExceptions:
    """Tests for resolution exceptions."""

    def test_formula_error(self) -> None:
        """Test FormulaError with formula and target."""
        exc = FormulaError("Bad formula", formula="1 +", target="ac")
        assert exc.details["formula"] == "1 +"
        assert exc.details["target"] == "ac"

    def test_formula_error_inheritance(self) -> None:
        """Test resolution exception inheritance."""
        exc = FormulaError("Error")
        assert isinstance(exc, ResolutionError)
        assert isinstance(exc, Pf1EngineError)
        assert exc.details == {}


class TestExceptionChaining:
    """Tests for exception chaining behavior."""

    def test_raise_from(self) -> None:
        """Test that exceptions can be properly chained."""
        original = ValueError("Original error")

        with pytest.raises(FormulaError) as exc_info:
            try:
                raise original
            except ValueError as e:
                raise FormulaError("Wrapped error") from e

        assert exc_info.value.__cause__ is original
