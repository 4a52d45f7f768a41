"""Change collection for the recompute pass.

The collector walks an actor's active items and the built-in rule sources
(hit points, armor, size, conditions, energy drain, movement) and produces a
flat, ordered list of changes together with the flags they switch on and
the narrative notes that accompany those flags.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from pf1_engine.core.constants import ENERGY_DRAIN_HP_PER_LEVEL, ENERGY_DRAIN_LABEL
from pf1_engine.core.logging import get_logger
from pf1_engine.models.actor import ActorSnapshot, Item
from pf1_engine.models.change import Change, ChangeSource, SourceDetail
from pf1_engine.models.enums import (
    ChangeCategory,
    ChangeFlag,
    ChangeTarget,
    Condition,
    EquipmentType,
    ItemType,
    ModifierKind,
    Size,
)
from pf1_engine.rules.ruleset import Ruleset


logger = get_logger(__name__)

CONDITION_SOURCE_TYPE = "condition"
SIZE_SOURCE_TYPE = "size"

_ARMOR_TARGETS: dict[EquipmentType, ChangeTarget] = {
    EquipmentType.ARMOR: ChangeTarget.ARMOR_AC,
    EquipmentType.SHIELD: ChangeTarget.SHIELD_AC,
    EquipmentType.NATURAL: ChangeTarget.NATURAL_AC,
}


@dataclass(frozen=True)
class CollectedChanges:
    """Everything the collector produces for one pass.

    Attributes:
        changes: Changes in collection order.
        flags: Final flag values (last applied wins).
        flag_sources: Names of the sources that switched each flag on, in
            application order.
        source_info: Narrative notes per flattened path.
    """

    changes: tuple[Change, ...] = ()
    flags: Mapping[ChangeFlag, bool] = field(default_factory=dict)
    flag_sources: Mapping[ChangeFlag, tuple[str, ...]] = field(default_factory=dict)
    source_info: Mapping[str, tuple[SourceDetail, ...]] = field(default_factory=dict)

    def has_flag(self, flag: ChangeFlag) -> bool:
        """Whether a flag ended up switched on."""
        return self.flags.get(flag, False)


class _FlagTracker:
    """Accumulates flag assignments in application order."""

    def __init__(self) -> None:
        self.flags: dict[ChangeFlag, bool] = {}
        self.sources: dict[ChangeFlag, list[str]] = {}

    def set(self, flag: ChangeFlag, value: bool, source_name: str) -> None:
        previous = self.flags.get(flag)
        if previous is not None and previous != value:
            logger.debug(
                "Conflicting flag values, last applied wins",
                flag=flag.value,
                previous=previous,
                value=value,
                source=source_name,
            )
        self.flags[flag] = value
        if value:
            self.sources.setdefault(flag, []).append(source_name)
        else:
            self.sources.pop(flag, None)


class ChangeCollector:
    """Produce the ordered change list for an actor.

    Attributes:
        ruleset: Rules tables supplying size, condition and movement data.

    Example:
        >>> collected = ChangeCollector(default_ruleset()).collect(actor)
        >>> len(collected.changes)
        3
    """

    def __init__(self, ruleset: Ruleset) -> None:
        self.ruleset = ruleset

    def collect(self, actor: ActorSnapshot) -> CollectedChanges:
        """Collect all changes active for the actor's current state.

        Args:
            actor: The actor snapshot.

        Returns:
            Changes, flags and narrative notes for this pass.
        """
        changes: list[Change] = []
        tracker = _FlagTracker()

        for item in actor.active_items:
            changes.extend(self._item_changes(item))
            for flag, value in item.change_flags.items():
                tracker.set(flag, value, item.name)

        changes.extend(self._hit_point_changes(actor))
        changes.extend(self._armor_changes(actor))
        changes.extend(self._size_changes(actor.size))
        changes.extend(self._movement_changes(actor))
        changes.extend(self._condition_changes(actor, tracker))

        collected = CollectedChanges(
            changes=tuple(changes),
            flags=dict(tracker.flags),
            flag_sources={flag: tuple(names) for flag, names in tracker.sources.items()},
            source_info=self._flag_notes(tracker),
        )
        logger.debug(
            "Changes collected",
            changes=len(collected.changes),
            flags=[flag.value for flag, value in collected.flags.items() if value],
        )
        return collected

    # -------------------------------------------------------------------------
    # Item Sources
    # -------------------------------------------------------------------------

    @staticmethod
    def _item_changes(item: Item) -> list[Change]:
        source = ChangeSource(type=item.type.value, subtype=item.subtype, name=item.name)
        return [change.model_copy(update={"source": source}) for change in item.changes]

    def _armor_changes(self, actor: ActorSnapshot) -> list[Change]:
        changes: list[Change] = []
        if actor.natural_ac > 0:
            changes.append(
                Change(
                    formula=actor.natural_ac,
                    category=ChangeCategory.AC,
                    target=ChangeTarget.NATURAL_AC,
                    modifier=ModifierKind.BASE,
                    source=ChangeSource(name="Natural Armor"),
                )
            )

        for item in actor.active_items:
            if item.type is not ItemType.EQUIPMENT or item.armor is None:
                continue
            target = _ARMOR_TARGETS.get(item.armor.equipment_type)
            if target is None:
                continue
            source = ChangeSource(type=item.type.value, subtype=item.subtype, name=item.name)
            base = item.armor.value // 2 if item.armor.broken else item.armor.value
            if base:
                changes.append(
                    Change(
                        formula=base,
                        category=ChangeCategory.AC,
                        target=target,
                        modifier=ModifierKind.BASE,
                        source=source,
                    )
                )
            if item.armor.enh:
                changes.append(
                    Change(
                        formula=item.armor.enh,
                        category=ChangeCategory.AC,
                        target=target,
                        modifier=ModifierKind.ENH,
                        source=source,
                    )
                )
        return changes

    # -------------------------------------------------------------------------
    # Built-in Sources
    # -------------------------------------------------------------------------

    @staticmethod
    def _hit_point_changes(actor: ActorSnapshot) -> list[Change]:
        changes: list[Change] = []
        if actor.hp_ability is not None:
            ability = actor.hp_ability
            changes.append(
                Change(
                    formula=f"@abilities.{ability}.mod * @attributes.hd.total",
                    category=ChangeCategory.MISC,
                    target=ChangeTarget.MHP,
                    modifier=ModifierKind.BASE,
                    source=ChangeSource(name=ability.full_name),
                )
            )
        if actor.energy_drain > 0:
            changes.append(
                Change(
                    formula=-actor.energy_drain * ENERGY_DRAIN_HP_PER_LEVEL,
                    category=ChangeCategory.MISC,
                    target=ChangeTarget.MHP,
                    modifier=ModifierKind.UNTYPED,
                    priority=-750,
                    source=ChangeSource(name=ENERGY_DRAIN_LABEL),
                )
            )
        return changes

    def _size_changes(self, size: Size) -> list[Change]:
        if size is Size.MEDIUM:
            return []
        source = ChangeSource(type=SIZE_SOURCE_TYPE)
        table = (
            (self.ruleset.size_mods, ChangeCategory.AC, ChangeTarget.AC),
            (self.ruleset.size_special_mods, ChangeCategory.MISC, ChangeTarget.CMB),
            (self.ruleset.size_special_mods, ChangeCategory.MISC, ChangeTarget.CMD),
            (self.ruleset.size_stealth_mods, ChangeCategory.SKILL, "skill.ste"),
            (self.ruleset.size_fly_mods, ChangeCategory.SKILL, "skill.fly"),
        )
        return [
            Change(
                formula=mods[size],
                category=category,
                target=target,
                modifier=ModifierKind.SIZE,
                source=source,
            )
            for mods, category, target in table
            if mods[size]
        ]

    def _movement_changes(self, actor: ActorSnapshot) -> list[Change]:
        changes: list[Change] = []
        if actor.fly_maneuverability is not None:
            value = self.ruleset.fly_maneuverability.get(actor.fly_maneuverability, 0)
            if value:
                changes.append(
                    Change(
                        formula=value,
                        category=ChangeCategory.SKILL,
                        target="skill.fly",
                        modifier=ModifierKind.RACIAL,
                        source=ChangeSource(name="Fly Maneuverability"),
                    )
                )
        for mode, skill_key, label in (("climb", "clm", "Climb Speed"), ("swim", "swm", "Swim Speed")):
            if actor.speeds.get(mode, 0) > 0:
                changes.append(
                    Change(
                        formula=self.ruleset.movement_skill_bonus,
                        category=ChangeCategory.SKILL,
                        target=f"skill.{skill_key}",
                        modifier=ModifierKind.RACIAL,
                        priority=-1,
                        source=ChangeSource(name=label),
                    )
                )
        return changes

    def _condition_changes(self, actor: ActorSnapshot, tracker: _FlagTracker) -> list[Change]:
        active = [condition for condition in Condition if actor.has_condition(condition)]
        superseded = {
            suppressed
            for condition in active
            if condition in self.ruleset.condition_effects
            for suppressed in self.ruleset.condition_effects[condition].supersedes
        }

        changes: list[Change] = []
        for condition in active:
            effect = self.ruleset.condition_effects.get(condition)
            if effect is None:
                continue
            if condition in superseded:
                logger.debug("Condition superseded", condition=condition.value)
                continue
            label = self.ruleset.condition_label(condition)
            source = ChangeSource(type=CONDITION_SOURCE_TYPE, subtype=condition.value, name=label)
            changes.extend(
                change.model_copy(update={"source": source}) for change in effect.changes
            )
            for flag in effect.flags:
                tracker.set(flag, True, label)
        return changes

    def _flag_notes(self, tracker: _FlagTracker) -> dict[str, tuple[SourceDetail, ...]]:
        notes: dict[str, list[SourceDetail]] = {}
        for flag, paths in self.ruleset.flag_note_paths.items():
            if not tracker.flags.get(flag):
                continue
            text = self.ruleset.flag_notes.get(flag, flag.value)
            for source_name in tracker.sources.get(flag, []):
                for path in paths:
                    notes.setdefault(path, []).append(SourceDetail(name=source_name, value=text))
        return {path: tuple(entries) for path, entries in notes.items()}


__all__ = [
    "CONDITION_SOURCE_TYPE",
    "SIZE_SOURCE_TYPE",
    "CollectedChanges",
    "ChangeCollector",
]
