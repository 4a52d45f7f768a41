"""Change target to flattened attribute path resolution.

Every change names a target (``ac``, ``fort``, ``skill.ste``, ...). The
engine resolves it into one or more flattened attribute paths such as
``attributes.ac.normal.total``. Fixed targets come from the ruleset's lookup
tables; skill and speed groups depend on the actor and are expanded here.

Example:
    >>> mapper = TargetMapper(default_ruleset(), actor)
    >>> mapper.paths_for("ac", ModifierKind.DODGE)
    ('attributes.ac.normal.total', 'attributes.ac.touch.total', 'attributes.cmd.total')
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pf1_engine.core.logging import get_logger
from pf1_engine.models.change import SKILL_TARGET_PATTERN, Change
from pf1_engine.models.enums import Ability, ModifierKind, SaveType


if TYPE_CHECKING:
    from pf1_engine.models.actor import ActorSnapshot
    from pf1_engine.rules.ruleset import Ruleset


logger = get_logger(__name__)


# =============================================================================
# Attribute Paths
# =============================================================================

AC_NORMAL = "attributes.ac.normal.total"
AC_TOUCH = "attributes.ac.touch.total"
AC_FLAT_FOOTED = "attributes.ac.flatFooted.total"
AC_ARMOR = "attributes.ac.armor"
AC_SHIELD = "attributes.ac.shield"
AC_NATURAL = "attributes.ac.natural"
CMB_TOTAL = "attributes.cmb.total"
CMD_TOTAL = "attributes.cmd.total"
CMD_FLAT_FOOTED = "attributes.cmd.flatFootedTotal"
INIT_TOTAL = "attributes.init.total"
BAB_TOTAL = "attributes.bab.total"
HD_TOTAL = "attributes.hd.total"
HP_MAX = "attributes.hp.max"
ACP_TOTAL = "attributes.acp.total"
ATTACK_GENERAL = "attributes.attack.general"
ATTACK_MELEE = "attributes.attack.melee"
ATTACK_RANGED = "attributes.attack.ranged"
DAMAGE_GENERAL = "attributes.damage.general"
DAMAGE_WEAPON = "attributes.damage.weapon"
DAMAGE_SPELL = "attributes.damage.spell"

AC_PATHS: tuple[str, ...] = (AC_NORMAL, AC_TOUCH, AC_FLAT_FOOTED)
CMD_PATHS: tuple[str, ...] = (CMD_TOTAL, CMD_FLAT_FOOTED)
ARMOR_SUBTOTAL_PATHS: tuple[str, ...] = (AC_ARMOR, AC_SHIELD, AC_NATURAL)
"""Intermediate AC paths folded into normal and flat-footed AC."""

SPEED_MODES: tuple[str, ...] = ("land", "climb", "swim", "burrow", "fly")


def ability_path(ability: Ability | str, field: str = "total") -> str:
    """Path of an ability score field (``total``, ``mod``, ``penalty``, ``checkMod``)."""
    return f"abilities.{ability}.{field}"


def save_path(save: SaveType | str) -> str:
    """Path of a saving throw total."""
    return f"attributes.savingThrows.{save}.total"


def speed_path(mode: str) -> str:
    """Path of a movement speed total."""
    return f"attributes.speed.{mode}.total"


def skill_path(skill_key: str, field: str = "changeBonus") -> str:
    """Path of a skill field (``changeBonus`` or ``mod``)."""
    return f"skills.{skill_key}.{field}"


# =============================================================================
# Target Mapper
# =============================================================================


class TargetMapper:
    """Resolve change targets into flattened paths for one actor.

    Attributes:
        ruleset: Lookup tables for fixed targets.
        actor: Actor whose skills and speeds expand group targets.
    """

    def __init__(self, ruleset: Ruleset, actor: ActorSnapshot) -> None:
        self.ruleset = ruleset
        self.actor = actor

    def paths_for(self, target: str, kind: ModifierKind) -> tuple[str, ...]:
        """Resolve a target into flattened paths.

        Args:
            target: The change target.
            kind: The change's modifier kind; some targets route by kind.

        Returns:
            Flattened paths, empty when the target is unknown.
        """
        skill_match = SKILL_TARGET_PATTERN.match(target)
        if skill_match:
            skill_key = skill_match.group("skill")
            if skill_key in self.actor.skills:
                return (skill_path(skill_key),)
            return ()

        if target == "skills":
            return tuple(skill_path(key) for key in self.actor.skills)

        if target.endswith("Skills"):
            ability = target.removesuffix("Skills")
            if ability in {member.value for member in Ability}:
                return tuple(
                    skill_path(key)
                    for key, skill in self.actor.skills.items()
                    if skill.ability == ability
                )

        if target == "allSpeeds":
            return tuple(
                speed_path(mode)
                for mode in SPEED_MODES
                if self.actor.speeds.get(mode, 0) > 0
            )

        by_kind = self.ruleset.kind_target_paths.get(target, {})
        if kind in by_kind:
            return by_kind[kind]
        return self.ruleset.target_paths.get(target, ())

    def paths_for_change(self, change: Change) -> tuple[str, ...]:
        """Resolve a change's target, logging unknown targets."""
        paths = self.paths_for(change.target, change.modifier)
        if not paths:
            logger.debug(
                "Skipping change with unmapped target",
                target=change.target,
                source=change.source.name,
            )
        return paths


__all__ = [
    "AC_NORMAL",
    "AC_TOUCH",
    "AC_FLAT_FOOTED",
    "AC_ARMOR",
    "AC_SHIELD",
    "AC_NATURAL",
    "CMB_TOTAL",
    "CMD_TOTAL",
    "CMD_FLAT_FOOTED",
    "INIT_TOTAL",
    "BAB_TOTAL",
    "HD_TOTAL",
    "HP_MAX",
    "ACP_TOTAL",
    "ATTACK_GENERAL",
    "ATTACK_MELEE",
    "ATTACK_RANGED",
    "DAMAGE_GENERAL",
    "DAMAGE_WEAPON",
    "DAMAGE_SPELL",
    "AC_PATHS",
    "CMD_PATHS",
    "ARMOR_SUBTOTAL_PATHS",
    "SPEED_MODES",
    "ability_path",
    "save_path",
    "speed_path",
    "skill_path",
    "TargetMapper",
]
