"""Change records: the single currency of the resolution pipeline.

A Change is a modifier declaration (formula, target, bonus type) plus the
descriptor of whatever produced it. Changes are rebuilt from source data on
every recompute pass and are never persisted in resolved form.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pf1_engine.models.enums import ChangeCategory, ChangeOperator, ChangeTarget, ModifierKind


SKILL_TARGET_PATTERN = re.compile(r"^skill\.(?P<skill>[a-zA-Z0-9]+)$")
"""Targets addressing a single skill, e.g. ``skill.ste``."""

OPERATOR_ALIASES: dict[str, str] = {"+": "add", "=": "set"}


class ChangeSource(BaseModel):
    """Descriptor of what produced a change.

    ``type`` and ``subtype`` drive both the stacking merge key and the
    display category; ``name`` is the individual source (item name or
    condition label).

    Attributes:
        type: Source type, usually an item type ("buff", "feat") or a
            built-in source ("size", "condition", "class").
        subtype: Source subtype, e.g. the buff type ("temp", "perm").
        name: Display name of the source.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: str = Field(default="", description="Source type")
    subtype: str = Field(default="", description="Source subtype")
    name: str = Field(default="", description="Source display name")

    @property
    def key(self) -> tuple[str, str]:
        """Merge key for stacking bonus kinds."""
        return (self.type, self.subtype)


class Change(BaseModel):
    """A single modifier declaration.

    Attributes:
        formula: Formula string (d20 syntax with ``@path`` references) or a
            number.
        category: Broad target category.
        target: Specific target, a ChangeTarget value or ``skill.<key>``.
        modifier: Bonus type governing stacking.
        operator: "add" to stack with other changes, "set" to replace the
            target value.
        priority: Optional ordering hint; higher resolves first.
        source: What produced the change.

    Example:
        >>> Change(formula="2", category="ac", target="ac", modifier="deflection")
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    formula: str | int | float = Field(default="0", description="Change formula")
    category: ChangeCategory = Field(description="Target category")
    target: str = Field(description="Change target")
    modifier: ModifierKind = Field(default=ModifierKind.UNTYPED, description="Bonus type")
    operator: ChangeOperator = Field(default=ChangeOperator.ADD, description="add or set")
    priority: int = Field(default=0, description="Ordering hint")
    source: ChangeSource = Field(default_factory=ChangeSource)

    @field_validator("target", mode="after")
    @classmethod
    def validate_target_syntax(cls, value: str) -> str:
        """Ensure the target is non-empty.

        Unknown targets are accepted here and skipped at resolution time,
        since a ruleset may legitimately omit rarely used targets.

        Args:
            value: The raw target string.

        Returns:
            The stripped target.

        Raises:
            ValueError: If the target is blank.
        """
        value = value.strip()
        if not value:
            msg = "Change target must not be empty"
            raise ValueError(msg)
        return value

    @field_validator("operator", mode="before")
    @classmethod
    def normalize_operator(cls, value: Any) -> Any:
        """Accept the "+" and "=" shorthands for add and set."""
        return OPERATOR_ALIASES.get(value, value) if isinstance(value, str) else value

    @property
    def fixed_target(self) -> ChangeTarget | None:
        """The target as a ChangeTarget member, or None for skill/unknown targets."""
        try:
            return ChangeTarget(self.target)
        except ValueError:
            return None

    @property
    def skill_key(self) -> str | None:
        """The skill key for ``skill.<key>`` targets."""
        match = SKILL_TARGET_PATTERN.match(self.target)
        return match.group("skill") if match else None

    @property
    def is_ability_change(self) -> bool:
        """Whether this change modifies an ability score or modifier."""
        target = self.fixed_target
        return target is not None and (target.ability is not None or target.modifier_ability is not None)

    @property
    def is_override(self) -> bool:
        """Whether this change replaces its target value."""
        return self.operator is ChangeOperator.SET

    def with_source(self, **kwargs: Any) -> Change:
        """Return a copy with the source descriptor replaced.

        Args:
            **kwargs: ChangeSource fields.

        Returns:
            New Change instance.
        """
        return self.model_copy(update={"source": ChangeSource(**kwargs)})


class ResolvedChange(BaseModel):
    """A change paired with its evaluated numeric value for one pass.

    Attributes:
        change: The evaluated change.
        value: Numeric result of the formula.
        order: Position in collection order, used as the final tie-breaker.
    """

    model_config = ConfigDict(frozen=True)

    change: Change
    value: int
    order: int = 0

    @property
    def source(self) -> ChangeSource:
        """Shortcut to the change's source descriptor."""
        return self.change.source


class SourceDetail(BaseModel):
    """One line of a per-attribute source breakdown.

    Attributes:
        name: Display label of the contributing source.
        value: Signed contribution, or a narrative note such as
            "Lose Dex to AC" that carries no number.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    value: int | str

    @property
    def is_numeric(self) -> bool:
        """Whether the line contributes to the attribute total."""
        return isinstance(self.value, int)


__all__ = [
    "SKILL_TARGET_PATTERN",
    "OPERATOR_ALIASES",
    "ChangeSource",
    "Change",
    "ResolvedChange",
    "SourceDetail",
]
