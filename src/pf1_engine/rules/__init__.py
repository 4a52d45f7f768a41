"""Rules tables and target resolution.

Exports:
    Ruleset: Immutable rules configuration.
    ConditionEffect: One row of the condition effect table.
    default_ruleset: Cached Pathfinder 1E ruleset.
    load_ruleset: Load a ruleset override from JSON.
    TargetMapper: Change target to flattened path resolution.
"""

from __future__ import annotations

from pf1_engine.rules.ruleset import (
    ConditionEffect,
    Ruleset,
    default_ruleset,
    load_ruleset,
)
from pf1_engine.rules.targets import TargetMapper


__all__ = [
    "Ruleset",
    "ConditionEffect",
    "default_ruleset",
    "load_ruleset",
    "TargetMapper",
]
