"""Formula evaluation for change values.

Change formulas use the d20 dice notation with ``@dotted.path`` references
into a roll-data mapping, e.g. ``@abilities.con.mod * @attributes.hd.total``.
References are substituted first and the resulting expression is handed to
the d20 library. Set notation doubles as min/max: ``(0, @abilities.dex.mod)kl1``
is the lower of the two values.
"""

from __future__ import annotations

import copy
import math
import re
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

import d20

from pf1_engine.core.exceptions import FormulaError
from pf1_engine.core.logging import get_logger
from pf1_engine.models.enums import Ability


if TYPE_CHECKING:
    from pf1_engine.models.actor import ActorSnapshot


logger = get_logger(__name__)

REFERENCE_PATTERN = re.compile(r"@([A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z0-9_]+)*)")
"""Roll data reference such as ``@abilities.str.mod``."""

ABILITY_REDACTED_ROOTS: tuple[str, ...] = ("skills", "attributes.savingThrows")
"""Roll data subtrees hidden from changes that modify an ability score."""

ABILITY_MOD_PATH_PATTERN = re.compile(r"^abilities\.[a-z]{3}\.mod$")


# =============================================================================
# Roll Data
# =============================================================================


def _set_path(data: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    node = data
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value


def build_roll_data(
    attributes: Mapping[str, int],
    actor: ActorSnapshot | None = None,
) -> dict[str, Any]:
    """Expand flat attribute paths into a nested roll-data mapping.

    Args:
        attributes: Flat ``path -> value`` map of the current state.
        actor: Snapshot supplying raw inputs formulas may reference
            (ability damage and drain, skill ranks, energy drain).

    Returns:
        Nested mapping suitable for ``@path`` references.
    """
    data: dict[str, Any] = {}
    if actor is not None:
        for ability, score in actor.abilities.items():
            _set_path(data, f"abilities.{ability}.value", score.value)
            _set_path(data, f"abilities.{ability}.damage", score.damage)
            _set_path(data, f"abilities.{ability}.drain", score.drain)
        for key, skill in actor.skills.items():
            _set_path(data, f"skills.{key}.rank", skill.rank)
        _set_path(data, "attributes.energyDrain", actor.energy_drain)
        _set_path(data, "traits.size", actor.size.value)
    for path, value in attributes.items():
        _set_path(data, path, value)
    return data


def redact_roll_data(roll_data: Mapping[str, Any], paths: Iterable[str]) -> dict[str, Any]:
    """Null out the given paths in a copy of the roll data.

    A change must not read the value it is about to modify. References into
    a redacted subtree evaluate as 0.

    Args:
        roll_data: Nested roll data.
        paths: Dotted paths (leaves or whole subtrees) to null out.

    Returns:
        A redacted deep copy.
    """
    redacted = copy.deepcopy(dict(roll_data))
    for path in paths:
        _set_path(redacted, path, None)
    return redacted


def redaction_paths(target_paths: Iterable[str], ability: Ability | None = None) -> list[str]:
    """Paths to redact before evaluating a change.

    A change to an ability score hides the whole ability. Changes to a
    score or a modifier also hide the skill and save subtrees, which are
    derived from modifiers that are still being resolved.

    Args:
        target_paths: Flattened paths the change modifies.
        ability: The ability score the change modifies, if any.

    Returns:
        Paths to pass to ``redact_roll_data``.
    """
    if ability is not None:
        return [f"abilities.{ability}", *ABILITY_REDACTED_ROOTS]
    paths = list(target_paths)
    if any(ABILITY_MOD_PATH_PATTERN.match(path) for path in paths):
        paths.extend(ABILITY_REDACTED_ROOTS)
    return paths


# =============================================================================
# Evaluator
# =============================================================================


class FormulaEvaluator:
    """Evaluate change formulas against roll data using d20.

    Example:
        >>> evaluator = FormulaEvaluator()
        >>> evaluator.evaluate("@abilities.str.mod * 2", {"abilities": {"str": {"mod": 3}}})
        6
    """

    def __init__(self, *, warn_on_error: bool = True) -> None:
        """Initialize the evaluator.

        Args:
            warn_on_error: Log failures from ``safe_evaluate`` at warning
                level instead of debug.
        """
        self.warn_on_error = warn_on_error

    def substitute(self, formula: str, roll_data: Mapping[str, Any]) -> str:
        """Replace every ``@path`` reference with its numeric value.

        Args:
            formula: Formula containing references.
            roll_data: Nested roll data.

        Returns:
            The formula with numbers in place of references.

        Raises:
            FormulaError: If a reference does not exist or is not numeric.
        """

        def replace(match: re.Match[str]) -> str:
            value = self._lookup(match.group(1), roll_data, formula)
            return f"({value})" if value < 0 else str(value)

        return REFERENCE_PATTERN.sub(replace, formula)

    def _lookup(self, path: str, roll_data: Mapping[str, Any], formula: str) -> int | float:
        node: Any = roll_data
        for part in path.split("."):
            if node is None:
                return 0
            if not isinstance(node, Mapping) or part not in node:
                raise FormulaError(
                    f"Unknown roll data reference: @{path}",
                    formula=formula,
                )
            node = node[part]
        if node is None:
            return 0
        if isinstance(node, bool):
            return int(node)
        if not isinstance(node, int | float):
            raise FormulaError(
                f"Roll data reference is not a number: @{path}",
                formula=formula,
            )
        return node

    def evaluate(
        self,
        formula: str | float,
        roll_data: Mapping[str, Any],
        *,
        target: str | None = None,
    ) -> int:
        """Evaluate a formula to an integer.

        Args:
            formula: Formula string or plain number.
            roll_data: Nested roll data for references.
            target: Change target, for error context.

        Returns:
            The floored result.

        Raises:
            FormulaError: If the formula is malformed or references
                missing data.
        """
        if isinstance(formula, int | float):
            return math.floor(formula)

        expression = formula.strip()
        if not expression:
            return 0

        try:
            substituted = self.substitute(expression, roll_data)
        except FormulaError as exc:
            raise FormulaError(exc.message, formula=expression, target=target) from exc

        try:
            result = d20.roll(substituted)
            total = result.expr.total
        except (d20.RollError, ZeroDivisionError) as exc:
            raise FormulaError(
                f"Invalid formula: {exc}",
                formula=expression,
                target=target,
            ) from exc

        return math.floor(total)

    def safe_evaluate(
        self,
        formula: str | float,
        roll_data: Mapping[str, Any],
        *,
        target: str | None = None,
    ) -> int:
        """Evaluate a formula, returning 0 on failure.

        One bad formula must not abort a recompute, so failures are logged
        and the change contributes nothing.

        Args:
            formula: Formula string or plain number.
            roll_data: Nested roll data for references.
            target: Change target, for log context.

        Returns:
            The floored result, or 0 if evaluation failed.
        """
        try:
            return self.evaluate(formula, roll_data, target=target)
        except FormulaError as exc:
            log = logger.warning if self.warn_on_error else logger.debug
            log(
                "Formula evaluation failed",
                formula=str(formula),
                target=target,
                error=exc.message,
            )
            return 0


__all__ = [
    "REFERENCE_PATTERN",
    "ABILITY_REDACTED_ROOTS",
    "ABILITY_MOD_PATH_PATTERN",
    "build_roll_data",
    "redact_roll_data",
    "redaction_paths",
    "FormulaEvaluator",
]
