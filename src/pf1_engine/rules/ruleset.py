"""Read-only rules tables consumed by the resolution pipeline.

The ruleset is the engine's static configuration: target to path mapping,
ordering lists, stacking kinds, size tables and the condition effect table.
It is an immutable value passed into each recompute rather than a global,
so tests and homebrew variants can supply their own.

Example:
    >>> from pf1_engine.rules import default_ruleset
    >>> ruleset = default_ruleset()
    >>> ruleset.size_mods[Size.SMALL]
    1
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from pf1_engine.core.constants import LOSE_DEX_TO_AC_NOTE, NO_DEX_NOTE, NO_STR_NOTE
from pf1_engine.core.exceptions import RulesetError
from pf1_engine.core.logging import get_logger
from pf1_engine.models.change import SKILL_TARGET_PATTERN, Change
from pf1_engine.models.enums import (
    STACKING_MODIFIER_KINDS,
    Ability,
    ChangeCategory,
    ChangeFlag,
    ChangeTarget,
    Condition,
    ModifierKind,
    SaveType,
    Size,
)
from pf1_engine.rules.targets import (
    AC_ARMOR,
    AC_FLAT_FOOTED,
    AC_NATURAL,
    AC_NORMAL,
    AC_PATHS,
    AC_SHIELD,
    AC_TOUCH,
    ATTACK_GENERAL,
    ATTACK_MELEE,
    ATTACK_RANGED,
    BAB_TOTAL,
    CMB_TOTAL,
    CMD_FLAT_FOOTED,
    CMD_PATHS,
    CMD_TOTAL,
    DAMAGE_GENERAL,
    DAMAGE_SPELL,
    DAMAGE_WEAPON,
    HP_MAX,
    INIT_TOTAL,
    SPEED_MODES,
    ability_path,
    save_path,
    speed_path,
)


logger = get_logger(__name__)


# =============================================================================
# Condition Effects
# =============================================================================


class ConditionEffect(BaseModel):
    """What an active condition does to an actor.

    Attributes:
        label: Display name for the condition's changes; defaults to the
            condition's own label.
        changes: Changes applied while the condition is active.
        flags: Flags switched on while the condition is active.
        supersedes: Conditions whose effects are suppressed while this one
            is active.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    label: str | None = None
    changes: tuple[Change, ...] = ()
    flags: tuple[ChangeFlag, ...] = ()
    supersedes: tuple[Condition, ...] = ()


def _penalty(value: int, category: ChangeCategory, target: ChangeTarget) -> Change:
    return Change(
        formula=value,
        category=category,
        target=target,
        modifier=ModifierKind.PENALTY,
    )


def _fear_effect() -> ConditionEffect:
    return ConditionEffect(
        label="Fear",
        changes=(
            _penalty(-2, ChangeCategory.ATTACK, ChangeTarget.ATTACK),
            _penalty(-2, ChangeCategory.SAVING_THROWS, ChangeTarget.ALL_SAVING_THROWS),
            _penalty(-2, ChangeCategory.SKILLS, ChangeTarget.SKILLS),
            _penalty(-2, ChangeCategory.ABILITY_CHECKS, ChangeTarget.ALL_CHECKS),
        ),
    )


def pf1_condition_effects() -> dict[Condition, ConditionEffect]:
    """Build the Pathfinder 1E condition effect table.

    Conditions without mechanical effects on derived statistics (confused,
    nauseated, ...) are absent and contribute nothing.

    Returns:
        Mapping of condition to its effect.
    """
    lose_dex = (ChangeFlag.LOSE_DEX_TO_AC,)
    return {
        Condition.BLIND: ConditionEffect(
            changes=(_penalty(-2, ChangeCategory.AC, ChangeTarget.AC),),
            flags=lose_dex,
        ),
        Condition.DAZZLED: ConditionEffect(
            changes=(_penalty(-1, ChangeCategory.ATTACK, ChangeTarget.ATTACK),),
        ),
        Condition.DEAF: ConditionEffect(
            changes=(_penalty(-4, ChangeCategory.MISC, ChangeTarget.INIT),),
        ),
        Condition.ENTANGLED: ConditionEffect(
            changes=(
                _penalty(-4, ChangeCategory.ABILITY, ChangeTarget.DEX),
                _penalty(-2, ChangeCategory.ATTACK, ChangeTarget.ATTACK),
            ),
        ),
        Condition.GRAPPLED: ConditionEffect(
            changes=(
                _penalty(-4, ChangeCategory.ABILITY, ChangeTarget.DEX),
                _penalty(-2, ChangeCategory.ATTACK, ChangeTarget.ATTACK),
                _penalty(-2, ChangeCategory.MISC, ChangeTarget.CMB),
            ),
        ),
        Condition.HELPLESS: ConditionEffect(flags=(ChangeFlag.NO_DEX,)),
        Condition.SLEEP: ConditionEffect(label="Sleeping", flags=(ChangeFlag.NO_DEX,)),
        Condition.PARALYZED: ConditionEffect(flags=(ChangeFlag.NO_DEX, ChangeFlag.NO_STR)),
        Condition.PRONE: ConditionEffect(
            changes=(_penalty(-4, ChangeCategory.ATTACK, ChangeTarget.MELEE_ATTACK),),
        ),
        Condition.PINNED: ConditionEffect(
            changes=(
                _penalty(-4, ChangeCategory.AC, ChangeTarget.AC),
                _penalty(-4, ChangeCategory.MISC, ChangeTarget.CMD),
            ),
            flags=lose_dex,
        ),
        Condition.SHAKEN: _fear_effect(),
        Condition.FRIGHTENED: _fear_effect(),
        Condition.PANICKED: _fear_effect(),
        Condition.SICKENED: ConditionEffect(
            changes=(
                _penalty(-2, ChangeCategory.ATTACK, ChangeTarget.ATTACK),
                _penalty(-2, ChangeCategory.DAMAGE, ChangeTarget.WEAPON_DAMAGE),
                _penalty(-2, ChangeCategory.SAVING_THROWS, ChangeTarget.ALL_SAVING_THROWS),
                _penalty(-2, ChangeCategory.SKILLS, ChangeTarget.SKILLS),
                _penalty(-2, ChangeCategory.ABILITY_CHECKS, ChangeTarget.ALL_CHECKS),
            ),
        ),
        Condition.STUNNED: ConditionEffect(
            changes=(_penalty(-2, ChangeCategory.AC, ChangeTarget.AC),),
            flags=lose_dex,
        ),
        Condition.FATIGUED: ConditionEffect(
            changes=(
                _penalty(-2, ChangeCategory.ABILITY, ChangeTarget.STR),
                _penalty(-2, ChangeCategory.ABILITY, ChangeTarget.DEX),
            ),
        ),
        Condition.EXHAUSTED: ConditionEffect(
            changes=(
                _penalty(-6, ChangeCategory.ABILITY, ChangeTarget.STR),
                _penalty(-6, ChangeCategory.ABILITY, ChangeTarget.DEX),
            ),
            supersedes=(Condition.FATIGUED,),
        ),
    }


# =============================================================================
# Target Tables
# =============================================================================


def pf1_target_paths() -> dict[str, tuple[str, ...]]:
    """Build the fixed target to flattened path table.

    Skill and speed group targets are actor dependent and are expanded by
    ``TargetMapper`` instead.
    """
    paths: dict[str, tuple[str, ...]] = {
        ChangeTarget.AC: AC_PATHS,
        ChangeTarget.ARMOR_AC: (AC_ARMOR,),
        ChangeTarget.SHIELD_AC: (AC_SHIELD,),
        ChangeTarget.NATURAL_AC: (AC_NATURAL,),
        ChangeTarget.TOUCH_AC: (AC_TOUCH,),
        ChangeTarget.FLAT_FOOTED_AC: (AC_FLAT_FOOTED,),
        ChangeTarget.ATTACK: (ATTACK_GENERAL,),
        ChangeTarget.BAB: (BAB_TOTAL,),
        ChangeTarget.MELEE_ATTACK: (ATTACK_MELEE,),
        ChangeTarget.RANGED_ATTACK: (ATTACK_RANGED,),
        ChangeTarget.DAMAGE: (DAMAGE_GENERAL,),
        ChangeTarget.WEAPON_DAMAGE: (DAMAGE_WEAPON,),
        ChangeTarget.SPELL_DAMAGE: (DAMAGE_SPELL,),
        ChangeTarget.ALL_SAVING_THROWS: tuple(save_path(save) for save in SaveType),
        ChangeTarget.CMB: (CMB_TOTAL,),
        ChangeTarget.CMD: CMD_PATHS,
        ChangeTarget.FLAT_FOOTED_CMD: (CMD_FLAT_FOOTED,),
        ChangeTarget.INIT: (INIT_TOTAL,),
        ChangeTarget.MHP: (HP_MAX,),
        ChangeTarget.ALL_CHECKS: tuple(ability_path(a, "checkMod") for a in Ability),
    }
    for save in SaveType:
        paths[save.value] = (save_path(save),)
    for ability in Ability:
        paths[ability.value] = (ability_path(ability),)
        paths[f"{ability}Mod"] = (ability_path(ability, "mod"),)
        paths[f"{ability}Checks"] = (ability_path(ability, "checkMod"),)
    for mode in SPEED_MODES:
        paths[f"{mode}Speed"] = (speed_path(mode),)
    return {str(key): value for key, value in paths.items()}


def pf1_kind_target_paths() -> dict[str, dict[ModifierKind, tuple[str, ...]]]:
    """Build the targets whose paths depend on the modifier kind.

    Dodge AC bonuses also protect against maneuvers but not while
    flat-footed; deflection and the morale-like kinds apply everywhere.
    Ability penalties only reduce the modifier.
    """
    everywhere = AC_PATHS + CMD_PATHS
    ac_routes: dict[ModifierKind, tuple[str, ...]] = {
        ModifierKind.DODGE: (AC_NORMAL, AC_TOUCH, CMD_TOTAL),
    }
    for kind in (
        ModifierKind.DEFLECTION,
        ModifierKind.CIRCUMSTANCE,
        ModifierKind.INSIGHT,
        ModifierKind.LUCK,
        ModifierKind.MORALE,
        ModifierKind.PROFANE,
        ModifierKind.SACRED,
    ):
        ac_routes[kind] = everywhere

    routes: dict[str, dict[ModifierKind, tuple[str, ...]]] = {
        ChangeTarget.AC.value: ac_routes,
        ChangeTarget.CMD.value: {ModifierKind.DODGE: (CMD_TOTAL,)},
    }
    for ability in Ability:
        routes[ability.value] = {ModifierKind.PENALTY: (ability_path(ability, "penalty"),)}
    return routes


# =============================================================================
# Ruleset
# =============================================================================


class Ruleset(BaseModel):
    """Immutable rules configuration for one recompute.

    Attributes:
        name: Ruleset name, for logs.
        category_priority: Change categories in resolution order.
        target_priority: Change targets in resolution order. Individual
            skill targets sort right after ``chaSkills``.
        modifier_priority: Modifier kinds in resolution order.
        stacking_kinds: Kinds whose same-sign contributions add up.
        target_paths: Fixed target to flattened paths table.
        kind_target_paths: Per-kind overrides of ``target_paths``.
        dex_masked_targets: Targets whose positive dodge bonuses are dropped
            while the actor loses its Dexterity bonus to AC.
        size_mods: Size modifier to AC.
        size_special_mods: Size modifier to CMB and CMD.
        size_fly_mods: Size modifier to the Fly skill.
        size_stealth_mods: Size modifier to the Stealth skill.
        fly_maneuverability: Fly skill modifier per maneuverability class.
        movement_skill_bonus: Racial bonus to Climb/Swim for actors with a
            climb/swim speed.
        condition_effects: Condition to effect table.
        save_abilities: Governing ability of each saving throw.
        bab_formulas: BAB per progression, as formulas over ``@level``.
        save_formulas: Base save per progression, as formulas over ``@level``.
        flag_note_paths: Paths receiving a narrative note per flag.
        flag_notes: Narrative note text per flag.
        source_categories: Display category per source type.
        source_subcategories: Display category per source type and subtype.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = "Pathfinder 1E"
    category_priority: tuple[ChangeCategory, ...] = tuple(ChangeCategory)
    target_priority: tuple[str, ...] = tuple(target.value for target in ChangeTarget)
    modifier_priority: tuple[ModifierKind, ...] = tuple(ModifierKind)
    stacking_kinds: frozenset[ModifierKind] = STACKING_MODIFIER_KINDS

    target_paths: dict[str, tuple[str, ...]] = Field(default_factory=pf1_target_paths)
    kind_target_paths: dict[str, dict[ModifierKind, tuple[str, ...]]] = Field(
        default_factory=pf1_kind_target_paths
    )
    dex_masked_targets: frozenset[str] = frozenset({"ac", "aac", "sac", "nac", "tac", "ffac"})

    size_mods: dict[Size, int] = Field(
        default_factory=lambda: dict(zip(Size, (8, 4, 2, 1, 0, -1, -2, -4, -8), strict=True))
    )
    size_special_mods: dict[Size, int] = Field(
        default_factory=lambda: dict(zip(Size, (-8, -4, -2, -1, 0, 1, 2, 4, 8), strict=True))
    )
    size_fly_mods: dict[Size, int] = Field(
        default_factory=lambda: dict(zip(Size, (8, 6, 4, 2, 0, -2, -4, -6, -8), strict=True))
    )
    size_stealth_mods: dict[Size, int] = Field(
        default_factory=lambda: dict(zip(Size, (16, 12, 8, 4, 0, -4, -8, -12, -16), strict=True))
    )
    fly_maneuverability: dict[str, int] = Field(
        default_factory=lambda: {"clumsy": -8, "poor": -4, "average": 0, "good": 4, "perfect": 8}
    )
    movement_skill_bonus: int = 8

    condition_effects: dict[Condition, ConditionEffect] = Field(
        default_factory=pf1_condition_effects
    )
    save_abilities: dict[SaveType, Ability] = Field(
        default_factory=lambda: {
            SaveType.FORT: Ability.CON,
            SaveType.REF: Ability.DEX,
            SaveType.WILL: Ability.WIS,
        }
    )
    bab_formulas: dict[str, str] = Field(
        default_factory=lambda: {"high": "@level", "med": "@level * 3 // 4", "low": "@level // 2"}
    )
    save_formulas: dict[str, str] = Field(
        default_factory=lambda: {"high": "2 + @level // 2", "low": "@level // 3"}
    )

    flag_note_paths: dict[ChangeFlag, tuple[str, ...]] = Field(
        default_factory=lambda: {ChangeFlag.LOSE_DEX_TO_AC: (AC_NORMAL, AC_TOUCH, CMD_TOTAL)}
    )
    flag_notes: dict[ChangeFlag, str] = Field(
        default_factory=lambda: {
            ChangeFlag.LOSE_DEX_TO_AC: LOSE_DEX_TO_AC_NOTE,
            ChangeFlag.NO_STR: NO_STR_NOTE,
            ChangeFlag.NO_DEX: NO_DEX_NOTE,
        }
    )
    source_categories: dict[str, str] = Field(
        default_factory=lambda: {
            "size": "Size",
            "buff": "Buffs",
            "equipment": "Equipment",
            "weapon": "Weapons",
            "feat": "Feats",
            "race": "Race",
        }
    )
    source_subcategories: dict[str, dict[str, str]] = Field(
        default_factory=lambda: {
            "buff": {
                "temp": "Temporary Buffs",
                "perm": "Permanent Buffs",
                "item": "Item Buffs",
                "misc": "Miscellaneous Buffs",
            },
            "feat": {
                "classFeat": "Class Features",
                "trait": "Traits",
                "racial": "Racial Traits",
                "misc": "Miscellaneous Features",
                "template": "Template",
            },
        }
    )

    @model_validator(mode="after")
    def validate_tables(self) -> Ruleset:
        """Ensure ordering lists and size tables are complete.

        Returns:
            The validated ruleset.

        Raises:
            ValueError: If a kind, category or size is missing from a table.
        """
        missing_kinds = set(ModifierKind) - set(self.modifier_priority)
        if missing_kinds:
            msg = f"modifier_priority is missing {sorted(missing_kinds)}"
            raise ValueError(msg)
        missing_categories = set(ChangeCategory) - set(self.category_priority)
        if missing_categories:
            msg = f"category_priority is missing {sorted(missing_categories)}"
            raise ValueError(msg)
        for table_name in ("size_mods", "size_special_mods", "size_fly_mods", "size_stealth_mods"):
            missing_sizes = set(Size) - set(getattr(self, table_name))
            if missing_sizes:
                msg = f"{table_name} is missing {sorted(missing_sizes)}"
                raise ValueError(msg)
        return self

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def stacks(self, kind: ModifierKind) -> bool:
        """Whether contributions of a modifier kind add up."""
        return kind in self.stacking_kinds

    def kind_rank(self, kind: ModifierKind) -> int:
        """Position of a modifier kind in the resolution order."""
        return self.modifier_priority.index(kind)

    def category_rank(self, category: ChangeCategory) -> int:
        """Position of a change category in the resolution order."""
        return self.category_priority.index(category)

    def target_rank(self, target: str) -> float:
        """Position of a change target in the resolution order.

        Individual skills sort together right after the ability skill
        groups; unknown targets sort last.
        """
        if target in self.target_priority:
            return float(self.target_priority.index(target))
        if SKILL_TARGET_PATTERN.match(target) and ChangeTarget.CHA_SKILLS in self.target_priority:
            return self.target_priority.index(ChangeTarget.CHA_SKILLS) + 0.5
        return float(len(self.target_priority))

    def condition_label(self, condition: Condition) -> str:
        """Display name used for a condition's changes and notes."""
        effect = self.condition_effects.get(condition)
        if effect is not None and effect.label:
            return effect.label
        return condition.label


# =============================================================================
# Factories
# =============================================================================


@lru_cache(maxsize=1)
def default_ruleset() -> Ruleset:
    """Get the cached Pathfinder 1E ruleset.

    Returns:
        The default Ruleset instance.
    """
    ruleset = Ruleset()
    logger.debug("Default ruleset built", conditions=len(ruleset.condition_effects))
    return ruleset


def load_ruleset(path: Path | str) -> Ruleset:
    """Load a ruleset from a JSON file.

    Top-level tables omitted from the file keep their Pathfinder 1E
    defaults; tables that are present replace the default wholesale.

    Args:
        path: Path to the JSON file.

    Returns:
        The validated Ruleset.

    Raises:
        RulesetError: If the file cannot be read or fails validation.
    """
    path = Path(path)
    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise RulesetError(
            f"Failed to read ruleset file: {path}",
            ruleset_key=str(path),
            details={"original_error": str(exc)},
        ) from exc

    if not isinstance(data, dict):
        raise RulesetError("Ruleset file must contain a JSON object", ruleset_key=str(path))

    try:
        ruleset = Ruleset.model_validate(data)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        raise RulesetError(
            f"Invalid ruleset: {first['msg']}",
            ruleset_key=".".join(str(part) for part in first["loc"]) or None,
            details={"error_count": exc.error_count()},
        ) from exc

    logger.info("Ruleset loaded", path=str(path), name=ruleset.name)
    return ruleset


__all__ = [
    "ConditionEffect",
    "Ruleset",
    "pf1_condition_effects",
    "pf1_target_paths",
    "pf1_kind_target_paths",
    "default_ruleset",
    "load_ruleset",
]
