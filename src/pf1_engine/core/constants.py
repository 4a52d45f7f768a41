"""Rules constants for the Pathfinder 1E statistics engine.

Values that are fixed by the core rules rather than by a ruleset table.
Anything a homebrew ruleset may reasonably change lives in
``pf1_engine.rules.ruleset`` instead.
"""

from __future__ import annotations

# =============================================================================
# Base Values
# =============================================================================

BASE_ARMOR_CLASS = 10
"""Armor class before any modifiers (normal, touch and flat-footed)."""

BASE_CMD = 10
"""Combat maneuver defense before any modifiers."""

BASE_ABILITY_SCORE = 10
"""Ability score that yields a +0 modifier."""

MIN_ABILITY_MODIFIER = -5
"""Lowest possible ability modifier; also forced by noStr/noDex flags."""

NULLIFIED_ABILITY_SCORE = 0
"""Ability total used when a flag removes the ability entirely."""

# =============================================================================
# Skills
# =============================================================================

CLASS_SKILL_BONUS = 3
"""Bonus for a class skill with at least one rank."""

# =============================================================================
# Energy Drain
# =============================================================================

ENERGY_DRAIN_HP_PER_LEVEL = 5
"""Maximum hit points lost per negative level."""

# =============================================================================
# Display Labels
# =============================================================================

BASE_LABEL = "Base"
"""Label for synthetic base entries in source details."""

ABILITY_DAMAGE_LABEL = "Ability Damage"
ABILITY_DRAIN_LABEL = "Ability Drain"
ABILITY_PENALTY_LABEL = "Ability Penalty"
ENERGY_DRAIN_LABEL = "Energy Drain"
BAB_LABEL = "Base Attack Bonus"
ARMOR_CHECK_PENALTY_LABEL = "Armor Check Penalty"
CLASS_SKILL_LABEL = "Class Skill"
SKILL_RANKS_LABEL = "Skill Ranks"

LOSE_DEX_TO_AC_NOTE = "Lose Dex to AC"
NO_STR_NOTE = "No Strength"
NO_DEX_NOTE = "No Dexterity"


__all__ = [
    "BASE_ARMOR_CLASS",
    "BASE_CMD",
    "BASE_ABILITY_SCORE",
    "MIN_ABILITY_MODIFIER",
    "NULLIFIED_ABILITY_SCORE",
    "CLASS_SKILL_BONUS",
    "ENERGY_DRAIN_HP_PER_LEVEL",
    "BASE_LABEL",
    "ABILITY_DAMAGE_LABEL",
    "ABILITY_DRAIN_LABEL",
    "ABILITY_PENALTY_LABEL",
    "ENERGY_DRAIN_LABEL",
    "BAB_LABEL",
    "ARMOR_CHECK_PENALTY_LABEL",
    "CLASS_SKILL_LABEL",
    "SKILL_RANKS_LABEL",
    "LOSE_DEX_TO_AC_NOTE",
    "NO_STR_NOTE",
    "NO_DEX_NOTE",
]
