"""Enumeration types for the Pathfinder 1E statistics engine.

Declaration order of modifier kinds, categories and targets is the default
resolution order; stacking behavior and ordering live on the ``Ruleset``
so an override file can change them.
"""

from __future__ import annotations

from enum import StrEnum


class Ability(StrEnum):
    """The six Pathfinder ability scores."""

    STR = "str"
    DEX = "dex"
    CON = "con"
    INT = "int"
    WIS = "wis"
    CHA = "cha"

    @property
    def full_name(self) -> str:
        """Get the full name of the ability.

        Returns:
            Full ability name (e.g., 'Strength' for STR).
        """
        names: dict[Ability, str] = {
            Ability.STR: "Strength",
            Ability.DEX: "Dexterity",
            Ability.CON: "Constitution",
            Ability.INT: "Intelligence",
            Ability.WIS: "Wisdom",
            Ability.CHA: "Charisma",
        }
        return names[self]


class SaveType(StrEnum):
    """Saving throws."""

    FORT = "fort"
    REF = "ref"
    WILL = "will"

    @property
    def full_name(self) -> str:
        """Get the display name of the saving throw."""
        return {"fort": "Fortitude", "ref": "Reflex", "will": "Will"}[self.value]


class ModifierKind(StrEnum):
    """Bonus types, declared in default resolution priority order."""

    UNTYPED = "untyped"
    BASE = "base"
    ENH = "enh"
    DODGE = "dodge"
    INHERENT = "inherent"
    DEFLECTION = "deflection"
    MORALE = "morale"
    LUCK = "luck"
    SACRED = "sacred"
    INSIGHT = "insight"
    RESIST = "resist"
    PROFANE = "profane"
    TRAIT = "trait"
    RACIAL = "racial"
    SIZE = "size"
    COMPETENCE = "competence"
    CIRCUMSTANCE = "circumstance"
    ALCHEMICAL = "alchemical"
    PENALTY = "penalty"


STACKING_MODIFIER_KINDS: frozenset[ModifierKind] = frozenset(
    {ModifierKind.UNTYPED, ModifierKind.DODGE, ModifierKind.PENALTY}
)
"""Modifier kinds whose contributions accumulate."""


class ChangeCategory(StrEnum):
    """Broad target categories, declared in resolution priority order."""

    ABILITY = "ability"
    MISC = "misc"
    AC = "ac"
    ATTACK = "attack"
    DAMAGE = "damage"
    SAVING_THROWS = "savingThrows"
    SKILLS = "skills"
    SKILL = "skill"
    ABILITY_CHECKS = "abilityChecks"
    SPEED = "speed"


class ChangeTarget(StrEnum):
    """Fixed change targets, declared in resolution priority order.

    Individual skills are addressed as ``skill.<key>`` and are not members
    of this enum; see ``pf1_engine.rules.targets``.
    """

    STR = "str"
    DEX = "dex"
    CON = "con"
    INT = "int"
    WIS = "wis"
    CHA = "cha"
    STR_MOD = "strMod"
    DEX_MOD = "dexMod"
    CON_MOD = "conMod"
    INT_MOD = "intMod"
    WIS_MOD = "wisMod"
    CHA_MOD = "chaMod"
    SKILLS = "skills"
    STR_SKILLS = "strSkills"
    DEX_SKILLS = "dexSkills"
    CON_SKILLS = "conSkills"
    INT_SKILLS = "intSkills"
    WIS_SKILLS = "wisSkills"
    CHA_SKILLS = "chaSkills"
    ALL_CHECKS = "allChecks"
    STR_CHECKS = "strChecks"
    DEX_CHECKS = "dexChecks"
    CON_CHECKS = "conChecks"
    INT_CHECKS = "intChecks"
    WIS_CHECKS = "wisChecks"
    CHA_CHECKS = "chaChecks"
    LAND_SPEED = "landSpeed"
    CLIMB_SPEED = "climbSpeed"
    SWIM_SPEED = "swimSpeed"
    BURROW_SPEED = "burrowSpeed"
    FLY_SPEED = "flySpeed"
    ALL_SPEEDS = "allSpeeds"
    AC = "ac"
    ARMOR_AC = "aac"
    SHIELD_AC = "sac"
    NATURAL_AC = "nac"
    TOUCH_AC = "tac"
    FLAT_FOOTED_AC = "ffac"
    ATTACK = "attack"
    BAB = "bab"
    MELEE_ATTACK = "mattack"
    RANGED_ATTACK = "rattack"
    DAMAGE = "damage"
    WEAPON_DAMAGE = "wdamage"
    SPELL_DAMAGE = "sdamage"
    ALL_SAVING_THROWS = "allSavingThrows"
    FORT = "fort"
    REF = "ref"
    WILL = "will"
    CMB = "cmb"
    CMD = "cmd"
    FLAT_FOOTED_CMD = "ffcmd"
    INIT = "init"
    MHP = "mhp"

    @property
    def ability(self) -> Ability | None:
        """The ability score this target modifies, if it is an ability target."""
        try:
            return Ability(self.value)
        except ValueError:
            return None

    @property
    def modifier_ability(self) -> Ability | None:
        """The ability whose modifier this target changes directly, if any."""
        if not self.value.endswith("Mod"):
            return None
        return Ability(self.value.removesuffix("Mod"))


class ChangeOperator(StrEnum):
    """How a change combines with its target.

    ``add`` contributes through the stacking rules; ``set`` replaces the
    target's value outright.
    """

    ADD = "add"
    SET = "set"


class ChangeFlag(StrEnum):
    """Boolean switches set by conditions or item change flags."""

    LOSE_DEX_TO_AC = "loseDexToAC"
    NO_STR = "noStr"
    NO_DEX = "noDex"


class ItemType(StrEnum):
    """Item document types that may carry changes."""

    BUFF = "buff"
    EQUIPMENT = "equipment"
    WEAPON = "weapon"
    FEAT = "feat"
    CLASS = "class"
    RACE = "race"
    CONSUMABLE = "consumable"
    LOOT = "loot"
    SPELL = "spell"
    ATTACK = "attack"

    @property
    def gate(self) -> str | None:
        """Name of the item flag that must be set for its changes to apply.

        Returns:
            "active" for buffs, "equipped" for equipment and weapons,
            None for types that always contribute.
        """
        gates: dict[ItemType, str] = {
            ItemType.BUFF: "active",
            ItemType.EQUIPMENT: "equipped",
            ItemType.WEAPON: "equipped",
        }
        return gates.get(self)


class Size(StrEnum):
    """Creature sizes from smallest to largest."""

    FINE = "fine"
    DIMINUTIVE = "dim"
    TINY = "tiny"
    SMALL = "sm"
    MEDIUM = "med"
    LARGE = "lg"
    HUGE = "huge"
    GARGANTUAN = "grg"
    COLOSSAL = "col"


class Condition(StrEnum):
    """Conditions that can be toggled on an actor."""

    BLIND = "blind"
    BLEED = "bleed"
    CONFUSED = "confused"
    COWERING = "cowering"
    DAZED = "dazed"
    DAZZLED = "dazzled"
    DEAF = "deaf"
    ENTANGLED = "entangled"
    EXHAUSTED = "exhausted"
    FATIGUED = "fatigued"
    FRIGHTENED = "frightened"
    GRAPPLED = "grappled"
    HELPLESS = "helpless"
    INCORPOREAL = "incorporeal"
    INVISIBLE = "invisible"
    NAUSEATED = "nauseated"
    PANICKED = "panicked"
    PARALYZED = "paralyzed"
    PINNED = "pinned"
    PRONE = "prone"
    SHAKEN = "shaken"
    SICKENED = "sickened"
    SLEEP = "sleep"
    SQUEEZING = "squeezing"
    STAGGERED = "staggered"
    STUNNED = "stunned"

    @property
    def label(self) -> str:
        """Display name used in source details."""
        return self.value.capitalize()


class EquipmentType(StrEnum):
    """Armor slots for equipment items."""

    ARMOR = "armor"
    SHIELD = "shield"
    NATURAL = "natural"
    MISC = "misc"


__all__ = [
    "Ability",
    "SaveType",
    "ModifierKind",
    "STACKING_MODIFIER_KINDS",
    "ChangeCategory",
    "ChangeTarget",
    "ChangeOperator",
    "ChangeFlag",
    "ItemType",
    "Size",
    "Condition",
    "EquipmentType",
]
