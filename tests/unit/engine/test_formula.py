"""Tests for formula evaluation and roll data helpers."""

from __future__ import annotations

from typing import Any

import pytest

from pf1_engine.core.exceptions import FormulaError
from pf1_engine.engine.formula import (
    FormulaEvaluator,
    build_roll_data,
    redact_roll_data,
    redaction_paths,
)
from pf1_engine.models.actor import ActorSnapshot
from pf1_engine.models.enums import Ability


@pytest.fixture
def roll_data() -> dict[str, Any]:
    """Provide nested roll data."""
    return {
        "abilities": {
            "str": {"mod": 3},
            "dex": {"mod": -1},
        },
        "attributes": {"hd": {"total": 4}, "hp": {"max": None}},
    }


class TestFormulaEvaluator:
    """Tests for the FormulaEvaluator class."""

    def test_plain_numbers(self, evaluator: FormulaEvaluator) -> None:
        """Test numeric formulas are floored."""
        assert evaluator.evaluate(2, {}) == 2
        assert evaluator.evaluate(3.7, {}) == 3
        assert evaluator.evaluate("5", {}) == 5

    def test_empty_formula(self, evaluator: FormulaEvaluator) -> None:
        """Test an empty formula contributes nothing."""
        assert evaluator.evaluate("", {}) == 0
        assert evaluator.evaluate("   ", {}) == 0

    def test_references(self, evaluator: FormulaEvaluator, roll_data: dict[str, Any]) -> None:
        """Test reference substitution."""
        assert evaluator.evaluate("@abilities.str.mod * @attributes.hd.total", roll_data) == 12

    def test_negative_reference(self, evaluator: FormulaEvaluator, roll_data: dict[str, Any]) -> None:
        """Test negative values substitute safely."""
        assert evaluator.substitute("2 - @abilities.dex.mod", roll_data) == "2 - (-1)"
        assert evaluator.evaluate("2 - @abilities.dex.mod", roll_data) == 3

    def test_floor_division(self, evaluator: FormulaEvaluator) -> None:
        """Test integer division used by progression formulas."""
        assert evaluator.evaluate("@level * 3 // 4", {"level": 3}) == 2
        assert evaluator.evaluate("2 + @level // 2", {"level": 5}) == 4

    def test_division_floors(self, evaluator: FormulaEvaluator) -> None:
        """Test fractional results are floored."""
        assert evaluator.evaluate("7 / 2", {}) == 3

    def test_min_via_set(self, evaluator: FormulaEvaluator, roll_data: dict[str, Any]) -> None:
        """Test keep-lowest set notation as a minimum."""
        assert evaluator.evaluate("(0, @abilities.str.mod)kl1", roll_data) == 0
        assert evaluator.evaluate("(0, @abilities.dex.mod)kl1", roll_data) == -1

    def test_redacted_reference(self, evaluator: FormulaEvaluator, roll_data: dict[str, Any]) -> None:
        """Test redacted (None) values evaluate as 0."""
        assert evaluator.evaluate("@attributes.hp.max + 1", roll_data) == 1

    def test_redacted_subtree(self, evaluator: FormulaEvaluator) -> None:
        """Test references below a redacted subtree evaluate as 0."""
        assert evaluator.evaluate("@skills.ste.rank + 2", {"skills": None}) == 2

    def test_unknown_reference(self, evaluator: FormulaEvaluator, roll_data: dict[str, Any]) -> None:
        """Test unknown references raise FormulaError."""
        with pytest.raises(FormulaError) as exc_info:
            evaluator.evaluate("@abilities.con.mod", roll_data, target="mhp")

        assert exc_info.value.details["target"] == "mhp"
        assert exc_info.value.details["formula"] == "@abilities.con.mod"

    def test_non_numeric_reference(self, evaluator: FormulaEvaluator, roll_data: dict[str, Any]) -> None:
        """Test references to subtrees are rejected."""
        with pytest.raises(FormulaError):
            evaluator.evaluate("@abilities.str", roll_data)

    def test_malformed_formula(self, evaluator: FormulaEvaluator) -> None:
        """Test malformed expressions raise FormulaError."""
        with pytest.raises(FormulaError):
            evaluator.evaluate("1 +", {})

    def test_division_by_zero(self, evaluator: FormulaEvaluator) -> None:
        """Test division by zero raises FormulaError."""
        with pytest.raises(FormulaError):
            evaluator.evaluate("1/0", {})

        assert evaluator.safe_evaluate("1/0", {}) == 0
        assert evaluator.safe_evaluate("10 / @abilities.str.total", {"abilities": {"str": {"total": None}}}) == 0

    def test_safe_evaluate(self, evaluator: FormulaEvaluator) -> None:
        """Test failures degrade to 0."""
        assert evaluator.safe_evaluate("1 +", {}, target="ac") == 0
        assert evaluator.safe_evaluate("@missing.path", {}) == 0
        assert evaluator.safe_evaluate("4", {}) == 4

    def test_quiet_mode(self) -> None:
        """Test the evaluator can log failures at debug level."""
        evaluator = FormulaEvaluator(warn_on_error=False)

        assert evaluator.safe_evaluate("1 +", {}) == 0


class TestRollData:
    """Tests for roll data construction and redaction."""

    def test_build_roll_data(self) -> None:
        """Test flat paths expand into nested data."""
        actor = ActorSnapshot(abilities={"str": {"value": 16, "damage": 2}}, energy_drain=1)
        data = build_roll_data({"abilities.str.mod": 3, "attributes.ac.normal.total": 12}, actor)

        assert data["abilities"]["str"]["mod"] == 3
        assert data["abilities"]["str"]["value"] == 16
        assert data["abilities"]["str"]["damage"] == 2
        assert data["attributes"]["ac"]["normal"]["total"] == 12
        assert data["attributes"]["energyDrain"] == 1
        assert data["traits"]["size"] == "med"
        assert data["skills"]["ste"]["rank"] == 0

    def test_redact_copies(self) -> None:
        """Test redaction does not touch the original."""
        data = {"attributes": {"ac": {"normal": {"total": 12}}}}
        redacted = redact_roll_data(data, ["attributes.ac.normal.total"])

        assert redacted["attributes"]["ac"]["normal"]["total"] is None
        assert data["attributes"]["ac"]["normal"]["total"] == 12

    def test_redaction_paths(self) -> None:
        """Test ability changes hide the ability, skills and saves."""
        assert redaction_paths(["attributes.init.total"]) == ["attributes.init.total"]
        assert redaction_paths(["abilities.str.total"], Ability.STR) == [
            "abilities.str",
            "skills",
            "attributes.savingThrows",
        ]
        assert redaction_paths(["abilities.dex.mod"]) == [
            "abilities.dex.mod",
            "skills",
            "attributes.savingThrows",
        ]
