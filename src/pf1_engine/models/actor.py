"""Actor snapshot models for the statistics engine.

The host application owns the actor document; the engine receives an
immutable, validated snapshot of it. Snapshots are pydantic models so the
host can hand over plain JSON-compatible dicts and get schema validation at
the boundary.

Models:
    AbilityData: One ability score with damage, drain and penalty.
    SkillData: One skill's ranks and configuration.
    ClassData: Class progression carried by class items.
    ArmorData: Armor block carried by armor/shield items.
    Item: A modifier-producing sub-entity owned by the actor.
    ActorSnapshot: The root aggregate passed to recompute().
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from pf1_engine.core.exceptions import ValidationError
from pf1_engine.models.change import Change
from pf1_engine.models.enums import (
    Ability,
    ChangeFlag,
    Condition,
    EquipmentType,
    ItemType,
    SaveType,
    Size,
)


# =============================================================================
# Ability Scores and Skills
# =============================================================================


class AbilityData(BaseModel):
    """One ability score.

    Attributes:
        value: The raw score as entered on the sheet.
        damage: Ability damage; reduces the modifier only.
        drain: Ability drain; reduces the score itself.
        penalty: Ability penalty; reduces the modifier only.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    value: int = Field(default=10, ge=0, description="Raw ability score")
    damage: int = Field(default=0, ge=0, description="Ability damage")
    drain: int = Field(default=0, ge=0, description="Ability drain")
    penalty: int = Field(default=0, ge=0, description="Ability penalty")


class SkillData(BaseModel):
    """One skill entry.

    Attributes:
        ability: Governing ability.
        rank: Ranks invested.
        class_skill: Whether the skill is a class skill regardless of classes.
        acp: Whether the armor check penalty applies.
        name: Display name.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    ability: Ability
    rank: int = Field(default=0, ge=0)
    class_skill: bool = False
    acp: bool = False
    name: str = ""


def _skill(name: str, ability: Ability, acp: bool = False) -> dict[str, Any]:
    return {"name": name, "ability": ability, "acp": acp}


PF1_SKILLS: dict[str, dict[str, Any]] = {
    "acr": _skill("Acrobatics", Ability.DEX, acp=True),
    "apr": _skill("Appraise", Ability.INT),
    "blf": _skill("Bluff", Ability.CHA),
    "clm": _skill("Climb", Ability.STR, acp=True),
    "crf": _skill("Craft", Ability.INT),
    "dip": _skill("Diplomacy", Ability.CHA),
    "dev": _skill("Disable Device", Ability.DEX, acp=True),
    "dis": _skill("Disguise", Ability.CHA),
    "esc": _skill("Escape Artist", Ability.DEX, acp=True),
    "fly": _skill("Fly", Ability.DEX, acp=True),
    "han": _skill("Handle Animal", Ability.CHA),
    "hea": _skill("Heal", Ability.WIS),
    "int": _skill("Intimidate", Ability.CHA),
    "kar": _skill("Knowledge (Arcana)", Ability.INT),
    "kdu": _skill("Knowledge (Dungeoneering)", Ability.INT),
    "ken": _skill("Knowledge (Engineering)", Ability.INT),
    "kge": _skill("Knowledge (Geography)", Ability.INT),
    "khi": _skill("Knowledge (History)", Ability.INT),
    "klo": _skill("Knowledge (Local)", Ability.INT),
    "kna": _skill("Knowledge (Nature)", Ability.INT),
    "kno": _skill("Knowledge (Nobility)", Ability.INT),
    "kpl": _skill("Knowledge (Planes)", Ability.INT),
    "kre": _skill("Knowledge (Religion)", Ability.INT),
    "lin": _skill("Linguistics", Ability.INT),
    "per": _skill("Perception", Ability.WIS),
    "prf": _skill("Perform", Ability.CHA),
    "pro": _skill("Profession", Ability.WIS),
    "rid": _skill("Ride", Ability.DEX, acp=True),
    "sen": _skill("Sense Motive", Ability.WIS),
    "slt": _skill("Sleight of Hand", Ability.DEX, acp=True),
    "spl": _skill("Spellcraft", Ability.INT),
    "ste": _skill("Stealth", Ability.DEX, acp=True),
    "sur": _skill("Survival", Ability.WIS),
    "swm": _skill("Swim", Ability.STR, acp=True),
    "umd": _skill("Use Magic Device", Ability.CHA),
}
"""Core Pathfinder skills keyed by their short key."""


def default_skills() -> dict[str, SkillData]:
    """Build the default, unranked skill list.

    Returns:
        Mapping of skill key to SkillData.
    """
    return {key: SkillData(**data) for key, data in PF1_SKILLS.items()}


# =============================================================================
# Items
# =============================================================================


class ClassData(BaseModel):
    """Class progression data carried by a class item.

    Attributes:
        level: Levels taken in the class.
        hp: Hit points gained from the class (rolled or fixed).
        bab: Base attack bonus progression.
        saves: Good or poor progression per saving throw.
        class_type: Class category; mythic paths grant no hit dice.
        class_skills: Skill keys that are class skills for this class.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    level: int = Field(default=1, ge=0)
    hp: int = Field(default=0, ge=0)
    bab: Literal["high", "med", "low"] = "med"
    saves: dict[SaveType, Literal["high", "low"]] = Field(default_factory=dict)
    class_type: Literal["base", "prestige", "npc", "racial", "mythic"] = "base"
    class_skills: frozenset[str] = Field(default_factory=frozenset)

    @property
    def hit_dice(self) -> int:
        """Hit dice granted by this class."""
        return 0 if self.class_type == "mythic" else self.level


class ArmorData(BaseModel):
    """Armor block carried by armor, shield and natural-armor items.

    Attributes:
        value: Base armor bonus.
        enh: Enhancement bonus.
        max_dex: Maximum Dexterity bonus, or None for no limit.
        acp: Armor check penalty as a positive number.
        broken: Broken items grant half their base armor bonus.
        equipment_type: Which AC slot the item occupies.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    value: int = Field(default=0, ge=0)
    enh: int = Field(default=0, ge=0)
    max_dex: int | None = Field(default=None, ge=0)
    acp: int = Field(default=0, ge=0)
    broken: bool = False
    equipment_type: EquipmentType = EquipmentType.ARMOR


class Item(BaseModel):
    """A modifier-producing sub-entity owned by an actor.

    Attributes:
        id: Stable identifier used by pending edits.
        name: Display name.
        type: Item type; decides which activity flag gates its changes.
        subtype: Buff type or feat type used for source classification.
        active: Activity gate for buffs.
        equipped: Activity gate for equipment and weapons.
        changes: Declared changes.
        change_flags: Boolean flags the item switches on while active.
        armor: Armor block for armor-like equipment.
        class_data: Progression block for class items.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default_factory=lambda: uuid4().hex[:16])
    name: str = Field(default="", max_length=200)
    type: ItemType
    subtype: str = ""
    active: bool = False
    equipped: bool = False
    changes: tuple[Change, ...] = ()
    change_flags: dict[ChangeFlag, bool] = Field(default_factory=dict)
    armor: ArmorData | None = None
    class_data: ClassData | None = None

    @property
    def is_active(self) -> bool:
        """Whether the item's changes currently apply."""
        gate = self.type.gate
        if gate is None:
            return True
        return bool(getattr(self, gate))


# =============================================================================
# Actor Snapshot
# =============================================================================


class ActorSnapshot(BaseModel):
    """Serializable snapshot of an actor, the input to recompute().

    Attributes:
        name: Actor name, used for log context.
        abilities: Ability scores; missing abilities default to 10.
        size: Creature size.
        conditions: Condition toggles.
        items: Owned items.
        skills: Skill entries keyed by skill key.
        energy_drain: Number of negative levels.
        base_hp: Hit points not tied to a class (e.g. manual adjustments).
        natural_ac: Natural armor not tied to an item.
        speeds: Base movement speeds keyed by mode (land, climb, ...).
        fly_maneuverability: Fly maneuverability class, if the actor flies.
        hp_ability: Ability added to hit points per hit die.
        init_ability: Ability added to initiative.
        cmb_ability: Ability added to CMB.
        cmd_ability: Ability added to CMD alongside Dexterity.

    Example:
        >>> actor = ActorSnapshot(name="Valeros", abilities={"str": {"value": 16}})
        >>> actor.abilities[Ability.STR].value
        16
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(default="Unnamed", max_length=200)
    abilities: dict[Ability, AbilityData] = Field(default_factory=dict, validate_default=True)
    size: Size = Size.MEDIUM
    conditions: dict[Condition, bool] = Field(default_factory=dict)
    items: tuple[Item, ...] = ()
    skills: dict[str, SkillData] = Field(default_factory=default_skills)
    energy_drain: int = Field(default=0, ge=0)
    base_hp: int = Field(default=0, ge=0)
    natural_ac: int = Field(default=0, ge=0)
    speeds: dict[str, int] = Field(default_factory=lambda: {"land": 30})
    fly_maneuverability: Literal["clumsy", "poor", "average", "good", "perfect"] | None = None
    hp_ability: Ability | None = Ability.CON
    init_ability: Ability | None = Ability.DEX
    cmb_ability: Ability = Ability.STR
    cmd_ability: Ability = Ability.STR

    @field_validator("abilities", mode="after")
    @classmethod
    def fill_missing_abilities(cls, value: dict[Ability, AbilityData]) -> dict[Ability, AbilityData]:
        """Give every ability an entry so downstream code never branches on absence.

        Args:
            value: Abilities as provided.

        Returns:
            Abilities with defaults for missing scores.
        """
        return {ability: value.get(ability, AbilityData()) for ability in Ability}

    def has_condition(self, condition: Condition) -> bool:
        """Check whether a condition is toggled on."""
        return self.conditions.get(condition, False)

    @property
    def active_items(self) -> list[Item]:
        """Items whose changes currently apply, in snapshot order."""
        return [item for item in self.items if item.is_active]

    @property
    def class_items(self) -> list[Item]:
        """Items carrying class progression data."""
        return [item for item in self.items if item.class_data is not None]

    @property
    def hit_dice(self) -> int:
        """Total hit dice across all classes."""
        return sum(item.class_data.hit_dice for item in self.class_items if item.class_data)

    def is_class_skill(self, skill_key: str) -> bool:
        """Whether a skill is a class skill, explicitly or from any class."""
        skill = self.skills.get(skill_key)
        if skill is not None and skill.class_skill:
            return True
        return any(
            skill_key in item.class_data.class_skills
            for item in self.class_items
            if item.class_data
        )


# =============================================================================
# Pending Edits
# =============================================================================


def expand_dotted_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    """Expand ``{"a.b": 1}`` style keys into nested dictionaries.

    Args:
        data: Mapping that may mix dotted and nested keys.

    Returns:
        Fully nested dictionary.
    """
    result: dict[str, Any] = {}
    for raw_key, value in data.items():
        if isinstance(value, Mapping):
            value = expand_dotted_keys(value)
        parts = str(raw_key).split(".")
        node = result
        for part in parts[:-1]:
            existing = node.get(part)
            if not isinstance(existing, dict):
                existing = {}
                node[part] = existing
            node = existing
        leaf = parts[-1]
        if isinstance(value, dict) and isinstance(node.get(leaf), dict):
            node[leaf] = _deep_merge(node[leaf], value)
        else:
            node[leaf] = value
    return result


def _deep_merge(base: Mapping[Any, Any], overlay: Mapping[Any, Any]) -> dict[Any, Any]:
    merged = dict(base)
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _merge_items(items: list[dict[str, Any]], overlay: Any) -> Any:
    # A list replaces the item collection; a mapping edits items by id
    if not isinstance(overlay, Mapping):
        return overlay
    merged = []
    for item in items:
        if item["id"] not in overlay:
            merged.append(item)
            continue
        edit = overlay[item["id"]]
        if isinstance(edit, Mapping):
            merged.append(_deep_merge(item, edit))
        # An explicit non-mapping edit (e.g. None) deletes the item
    return merged


def load_snapshot(data: ActorSnapshot | Mapping[str, Any]) -> ActorSnapshot:
    """Validate host data into an ActorSnapshot.

    Args:
        data: A snapshot instance or its JSON-compatible dict form.

    Returns:
        The validated snapshot.

    Raises:
        ValidationError: If the data is not a valid snapshot.
    """
    if isinstance(data, ActorSnapshot):
        return data
    try:
        return ActorSnapshot.model_validate(data)
    except PydanticValidationError as exc:
        raise _wrap_validation_error("Invalid actor snapshot", exc) from exc


def _wrap_validation_error(message: str, exc: PydanticValidationError) -> ValidationError:
    errors = exc.errors()
    first = errors[0] if errors else {}
    return ValidationError(
        f"{message}: {exc.error_count()} error(s)",
        field_name=".".join(str(part) for part in first.get("loc", ())) or None,
        details={"errors": [err.get("msg") for err in errors]},
    )


def apply_pending_edits(
    snapshot: ActorSnapshot,
    pending_edits: Mapping[str, Any] | None,
) -> ActorSnapshot:
    """Merge a partial update overlay over a snapshot.

    Edits may be nested dicts or dotted keys (``"abilities.str.value"``).
    Items are edited by id under ``items.<id>``; a list under ``items``
    replaces the collection.

    Args:
        snapshot: The current snapshot.
        pending_edits: The data being written by the triggering transaction.

    Returns:
        A new, re-validated snapshot reflecting the post-edit state.

    Raises:
        ValidationError: If the merged data is not a valid snapshot.
    """
    if not pending_edits:
        return snapshot

    edits = expand_dotted_keys(pending_edits)
    base = snapshot.model_dump(mode="json")
    item_edits = edits.pop("items", None)
    merged = _deep_merge(base, edits)
    if item_edits is not None:
        merged["items"] = _merge_items(base["items"], item_edits)

    try:
        return ActorSnapshot.model_validate(merged)
    except PydanticValidationError as exc:
        raise _wrap_validation_error("Pending edits produce an invalid actor", exc) from exc


__all__ = [
    "AbilityData",
    "SkillData",
    "PF1_SKILLS",
    "default_skills",
    "ClassData",
    "ArmorData",
    "Item",
    "ActorSnapshot",
    "expand_dotted_keys",
    "load_snapshot",
    "apply_pending_edits",
]
