"""Dependency propagation between ability scores and derived attributes.

Ability modifiers feed CMB, CMD, initiative, saves, AC and skills, but the
ability scores are themselves subject to changes. The propagator therefore
works in steps over an immutable ``ResolutionState``:

1. ``reset`` seeds every attribute with its baseline and the unmodified
   ability modifiers.
2. ``apply_ability_changes`` adds the ability buckets and set-overrides,
   recomputes the modifiers, then applies changes aimed at the modifiers.
3. ``propagate_ability_deltas`` pushes the modifier deltas into dependents.
4. ``apply_changes`` adds every remaining bucket and set-override and folds
   armor sub-totals.
5. ``finalize_skills`` recomputes skill totals.

Each step returns a new state; step order is load-bearing.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from pf1_engine.core.constants import (
    ABILITY_DRAIN_LABEL,
    ABILITY_PENALTY_LABEL,
    ARMOR_CHECK_PENALTY_LABEL,
    BAB_LABEL,
    BASE_ABILITY_SCORE,
    BASE_ARMOR_CLASS,
    BASE_CMD,
    BASE_LABEL,
    CLASS_SKILL_BONUS,
    CLASS_SKILL_LABEL,
    ENERGY_DRAIN_LABEL,
    MIN_ABILITY_MODIFIER,
    NULLIFIED_ABILITY_SCORE,
    SKILL_RANKS_LABEL,
)
from pf1_engine.core.logging import get_logger
from pf1_engine.engine.collector import CollectedChanges
from pf1_engine.engine.formula import FormulaEvaluator
from pf1_engine.engine.stacking import SourceEntry, StackingBucket, bucket_total, merge_buckets
from pf1_engine.models.actor import ActorSnapshot, Item
from pf1_engine.models.change import SourceDetail
from pf1_engine.models.enums import Ability, ChangeFlag, EquipmentType, ModifierKind, SaveType
from pf1_engine.rules.ruleset import Ruleset
from pf1_engine.rules.targets import (
    AC_FLAT_FOOTED,
    AC_NORMAL,
    AC_PATHS,
    AC_TOUCH,
    ACP_TOTAL,
    ARMOR_SUBTOTAL_PATHS,
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
    HD_TOTAL,
    HP_MAX,
    INIT_TOTAL,
    SPEED_MODES,
    ability_path,
    save_path,
    skill_path,
    speed_path,
)


logger = get_logger(__name__)

NULLIFYING_FLAGS: dict[ChangeFlag, Ability] = {
    ChangeFlag.NO_STR: Ability.STR,
    ChangeFlag.NO_DEX: Ability.DEX,
}
"""Flags that remove an ability score, and the ability they remove."""

ABILITY_PATH_PATTERN = re.compile(r"^abilities\.(?P<ability>[a-z]{3})\.(?P<field>total|penalty|mod)$")

Details = dict[str, tuple[SourceDetail, ...]]


def ability_modifier(total: int, *, penalty: int = 0, damage: int = 0) -> int:
    """Compute an ability modifier.

    Penalty and damage reduce the modifier by half their magnitude, rounded
    down, and the result never drops below -5.

    Args:
        total: Ability score total.
        penalty: Ability penalty (sign is ignored).
        damage: Ability damage (sign is ignored).

    Returns:
        The ability modifier.
    """
    mod = (total - BASE_ABILITY_SCORE) // 2 - abs(penalty) // 2 - abs(damage) // 2
    return max(MIN_ABILITY_MODIFIER, mod)


# =============================================================================
# Resolution State
# =============================================================================


@dataclass(frozen=True)
class ResolutionState:
    """Immutable snapshot of one recompute pass between steps.

    Attributes:
        attributes: Flat ``path -> value`` map of derived attributes.
        base_details: Baseline contributions per path (Base entries,
            class progressions, drains).
        ability_details: Ability-modifier contributions per path.
        buckets: Stacking buckets applied so far.
        overrides: Set-overrides applied so far, keyed by path.
        flags: Active flags.
        base_mods: Ability modifiers before any ability change.
        nullified: Abilities removed by noStr/noDex.
        ability_damage: Ability damage per ability, for modifiers.
        max_dex: Maximum Dexterity bonus to AC from armor, if limited.
    """

    attributes: Mapping[str, int] = field(default_factory=dict)
    base_details: Mapping[str, tuple[SourceDetail, ...]] = field(default_factory=dict)
    ability_details: Mapping[str, tuple[SourceDetail, ...]] = field(default_factory=dict)
    buckets: Mapping[str, Mapping[ModifierKind, StackingBucket]] = field(default_factory=dict)
    overrides: Mapping[str, SourceEntry] = field(default_factory=dict)
    flags: Mapping[ChangeFlag, bool] = field(default_factory=dict)
    base_mods: Mapping[Ability, int] = field(default_factory=dict)
    nullified: frozenset[Ability] = frozenset()
    ability_damage: Mapping[Ability, int] = field(default_factory=dict)
    max_dex: int | None = None

    def get(self, path: str, default: int = 0) -> int:
        """Value of a flattened path."""
        return self.attributes.get(path, default)

    def mod(self, ability: Ability) -> int:
        """Current modifier of an ability."""
        return self.get(ability_path(ability, "mod"))

    def has_flag(self, flag: ChangeFlag) -> bool:
        """Whether a flag is switched on."""
        return self.flags.get(flag, False)

    def evolve(self, **changes: Any) -> ResolutionState:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


class _Seeder:
    """Builds baseline attributes whose values equal the sum of their lines."""

    def __init__(self) -> None:
        self.attributes: dict[str, int] = {}
        self.details: dict[str, tuple[SourceDetail, ...]] = {}

    def seed(self, path: str, *entries: tuple[str, int]) -> None:
        self.attributes[path] = sum(value for _, value in entries)
        lines = tuple(SourceDetail(name=name, value=value) for name, value in entries if value)
        if lines:
            self.details[path] = lines


# =============================================================================
# Propagator
# =============================================================================


class DependencyPropagator:
    """Step functions of the recompute pass.

    Attributes:
        ruleset: Save abilities and class progression formulas.
        evaluator: Evaluates class progression formulas.
    """

    def __init__(self, ruleset: Ruleset, evaluator: FormulaEvaluator) -> None:
        self.ruleset = ruleset
        self.evaluator = evaluator

    # -------------------------------------------------------------------------
    # Step 1: Reset
    # -------------------------------------------------------------------------

    def reset(self, actor: ActorSnapshot, collected: CollectedChanges) -> ResolutionState:
        """Seed every attribute with its unmodified baseline.

        Args:
            actor: The actor snapshot.
            collected: Collector output supplying flags.

        Returns:
            The initial state.
        """
        flags = dict(collected.flags)
        nullified = frozenset(
            ability for flag, ability in NULLIFYING_FLAGS.items() if flags.get(flag, False)
        )
        seeder = _Seeder()

        base_mods: dict[Ability, int] = {}
        for ability, score in actor.abilities.items():
            total = score.value - score.drain
            entries = [(BASE_LABEL, score.value), (ABILITY_DRAIN_LABEL, -score.drain)]
            if ability in nullified:
                entries.append((self._nullifier_name(ability, collected), NULLIFIED_ABILITY_SCORE - total))
            seeder.seed(ability_path(ability), *entries)
            seeder.seed(ability_path(ability, "penalty"), (ABILITY_PENALTY_LABEL, -score.penalty))
            seeder.seed(ability_path(ability, "checkMod"))
            if ability in nullified:
                base_mods[ability] = MIN_ABILITY_MODIFIER
            else:
                base_mods[ability] = ability_modifier(total, penalty=score.penalty, damage=score.damage)
            seeder.attributes[ability_path(ability, "mod")] = base_mods[ability]

        self._seed_classes(actor, seeder)
        energy_drain = actor.energy_drain
        bab = seeder.attributes[BAB_TOTAL]
        seeder.seed(CMB_TOTAL, (BAB_LABEL, bab), (ENERGY_DRAIN_LABEL, -energy_drain))
        for path in CMD_PATHS:
            seeder.seed(path, (BASE_LABEL, BASE_CMD), (BAB_LABEL, bab), (ENERGY_DRAIN_LABEL, -energy_drain))
        for path in AC_PATHS:
            seeder.seed(path, (BASE_LABEL, BASE_ARMOR_CLASS))
        for path in (
            *ARMOR_SUBTOTAL_PATHS,
            INIT_TOTAL,
            ATTACK_GENERAL,
            ATTACK_MELEE,
            ATTACK_RANGED,
            DAMAGE_GENERAL,
            DAMAGE_WEAPON,
            DAMAGE_SPELL,
        ):
            seeder.seed(path)
        for mode in SPEED_MODES:
            seeder.seed(speed_path(mode), (BASE_LABEL, actor.speeds.get(mode, 0)))

        armor = [item for item in actor.active_items if _is_worn_armor(item)]
        seeder.seed(ACP_TOTAL, *((item.name, item.armor.acp) for item in armor if item.armor))
        limits = [item.armor.max_dex for item in armor if item.armor and item.armor.max_dex is not None]
        max_dex = min(limits) if limits else None

        for key in actor.skills:
            seeder.seed(skill_path(key))

        ability_details = self._ability_details(actor, base_mods, flags, max_dex)
        for path, lines in ability_details.items():
            seeder.attributes[path] = seeder.attributes.get(path, 0) + _sum_lines(lines)

        state = ResolutionState(
            attributes=seeder.attributes,
            base_details=seeder.details,
            ability_details=ability_details,
            flags=flags,
            base_mods=base_mods,
            nullified=nullified,
            ability_damage={ability: score.damage for ability, score in actor.abilities.items()},
            max_dex=max_dex,
        )
        logger.debug("State reset", nullified=sorted(nullified), max_dex=max_dex)
        return self.finalize_skills(state, actor)

    def _seed_classes(self, actor: ActorSnapshot, seeder: _Seeder) -> None:
        bab_entries: list[tuple[str, int]] = []
        hd_entries: list[tuple[str, int]] = []
        hp_entries: list[tuple[str, int]] = [(BASE_LABEL, actor.base_hp)]
        save_entries: dict[SaveType, list[tuple[str, int]]] = {save: [] for save in SaveType}

        for item in actor.class_items:
            data = item.class_data
            if data is None:
                continue
            hd_entries.append((item.name, data.hit_dice))
            hp_entries.append((item.name, data.hp))
            if data.class_type == "mythic":
                continue
            level = {"level": data.level}
            bab_entries.append(
                (item.name, self.evaluator.safe_evaluate(self.ruleset.bab_formulas.get(data.bab, "0"), level))
            )
            for save, progression in data.saves.items():
                formula = self.ruleset.save_formulas.get(progression, "0")
                save_entries[save].append((item.name, self.evaluator.safe_evaluate(formula, level)))

        seeder.seed(BAB_TOTAL, *bab_entries)
        seeder.seed(HD_TOTAL, *hd_entries)
        seeder.seed(HP_MAX, *hp_entries)
        for save, entries in save_entries.items():
            seeder.seed(save_path(save), *entries, (ENERGY_DRAIN_LABEL, -actor.energy_drain))

    def _nullifier_name(self, ability: Ability, collected: CollectedChanges) -> str:
        flag = next(flag for flag, target in NULLIFYING_FLAGS.items() if target is ability)
        sources = collected.flag_sources.get(flag, ())
        if sources:
            return sources[-1]
        return self.ruleset.flag_notes.get(flag, flag.value)

    # -------------------------------------------------------------------------
    # Steps 2 and 3: Abilities
    # -------------------------------------------------------------------------

    def apply_ability_changes(
        self,
        state: ResolutionState,
        buckets: Mapping[str, Mapping[ModifierKind, StackingBucket]],
        overrides: Mapping[str, SourceEntry] | None = None,
    ) -> ResolutionState:
        """Apply ability-target changes and recompute modifiers.

        Score and penalty changes land first, then modifiers are recomputed,
        then changes aimed directly at a modifier (``strMod`` ...) apply on
        top. Within each stage set-overrides replace the stacked value.
        Changes to an ability removed by noStr/noDex are ignored.

        Args:
            state: State after reset.
            buckets: Buckets resolved from ability-target changes.
            overrides: Winning set-overrides of ability-target changes.

        Returns:
            State with updated ability totals and modifiers.
        """
        attributes = dict(state.attributes)
        applied: dict[str, Mapping[ModifierKind, StackingBucket]] = {}
        applied_overrides: dict[str, SourceEntry] = {}
        staged_buckets = self._stage_ability_paths(state, buckets)
        staged_overrides = self._stage_ability_paths(state, overrides or {})

        def apply(stage: str) -> None:
            for path, by_kind in staged_buckets[stage].items():
                attributes[path] = attributes.get(path, 0) + bucket_total(by_kind)
                applied[path] = by_kind
            for path, entry in staged_overrides[stage].items():
                attributes[path] = entry.value
                applied_overrides[path] = entry

        apply("score")
        for ability in Ability:
            if ability in state.nullified:
                modifier = MIN_ABILITY_MODIFIER
            else:
                modifier = ability_modifier(
                    attributes[ability_path(ability)],
                    penalty=attributes[ability_path(ability, "penalty")],
                    damage=state.ability_damage.get(ability, 0),
                )
            attributes[ability_path(ability, "mod")] = modifier
        apply("mod")

        return state.evolve(
            attributes=attributes,
            buckets=merge_buckets(state.buckets, applied),
            overrides={**state.overrides, **applied_overrides},
        )

    @staticmethod
    def _stage_ability_paths(state: ResolutionState, by_path: Mapping[str, Any]) -> dict[str, dict[str, Any]]:
        stages: dict[str, dict[str, Any]] = {"score": {}, "mod": {}}
        for path, value in by_path.items():
            match = ABILITY_PATH_PATTERN.match(path)
            if match is None:
                continue
            if Ability(match.group("ability")) in state.nullified:
                logger.debug("Ignoring changes to nullified ability", path=path)
                continue
            stages["mod" if match.group("field") == "mod" else "score"][path] = value
        return stages

    def propagate_ability_deltas(self, state: ResolutionState, actor: ActorSnapshot) -> ResolutionState:
        """Push ability modifier deltas into CMB, CMD, initiative, saves and AC.

        Args:
            state: State after ability changes.
            actor: The actor snapshot (ability substitutions).

        Returns:
            State whose dependents reflect the resolved modifiers.
        """
        modifiers = {ability: state.mod(ability) for ability in Ability}
        updated = self._ability_details(actor, modifiers, state.flags, state.max_dex)
        attributes = dict(state.attributes)
        for path in {*state.ability_details, *updated}:
            delta = _sum_lines(updated.get(path, ())) - _sum_lines(state.ability_details.get(path, ()))
            if delta:
                attributes[path] = attributes.get(path, 0) + delta

        deltas = {
            ability.value: modifiers[ability] - state.base_mods.get(ability, 0)
            for ability in Ability
            if modifiers[ability] != state.base_mods.get(ability, 0)
        }
        if deltas:
            logger.debug("Ability modifier deltas propagated", deltas=deltas)
        return state.evolve(attributes=attributes, ability_details=updated)

    def _ability_details(
        self,
        actor: ActorSnapshot,
        modifiers: Mapping[Ability, int],
        flags: Mapping[ChangeFlag, bool],
        max_dex: int | None,
    ) -> Details:
        lines: dict[str, list[SourceDetail]] = {}

        def add(path: str, ability: Ability, value: int) -> None:
            if value:
                lines.setdefault(path, []).append(SourceDetail(name=ability.full_name, value=value))

        lose_dex = flags.get(ChangeFlag.LOSE_DEX_TO_AC, False)
        dex = modifiers[Ability.DEX]

        add(CMB_TOTAL, actor.cmb_ability, modifiers[actor.cmb_ability])
        for path in CMD_PATHS:
            add(path, actor.cmd_ability, modifiers[actor.cmd_ability])
        add(CMD_TOTAL, Ability.DEX, min(dex, 0) if lose_dex else dex)
        add(CMD_FLAT_FOOTED, Ability.DEX, min(dex, 0))

        if actor.init_ability is not None:
            add(INIT_TOTAL, actor.init_ability, modifiers[actor.init_ability])

        for save, ability in self.ruleset.save_abilities.items():
            add(save_path(save), ability, modifiers[ability])

        dex_to_ac = dex if max_dex is None else min(dex, max_dex)
        if lose_dex:
            dex_to_ac = min(dex_to_ac, 0)
        add(AC_NORMAL, Ability.DEX, dex_to_ac)
        add(AC_TOUCH, Ability.DEX, dex_to_ac)
        add(AC_FLAT_FOOTED, Ability.DEX, min(dex, 0))

        return {path: tuple(entries) for path, entries in lines.items()}

    # -------------------------------------------------------------------------
    # Step 4: Remaining Changes
    # -------------------------------------------------------------------------

    def apply_changes(
        self,
        state: ResolutionState,
        buckets: Mapping[str, Mapping[ModifierKind, StackingBucket]],
        overrides: Mapping[str, SourceEntry] | None = None,
    ) -> ResolutionState:
        """Add every non-ability bucket to its path and fold armor sub-totals.

        Set-overrides replace the stacked value of their path. Overrides of
        an armor sub-total are applied before folding, so they flow into
        normal and flat-footed AC.

        Args:
            state: State after ability propagation.
            buckets: Buckets resolved from the remaining changes.
            overrides: Winning set-overrides of the remaining changes.

        Returns:
            State with all changes applied.
        """
        overrides = overrides or {}
        attributes = dict(state.attributes)
        for path, by_kind in buckets.items():
            attributes[path] = attributes.get(path, 0) + bucket_total(by_kind)

        for path in ARMOR_SUBTOTAL_PATHS:
            if path in overrides:
                attributes[path] = overrides[path].value
            subtotal = attributes.get(path, 0)
            if subtotal:
                attributes[AC_NORMAL] += subtotal
                attributes[AC_FLAT_FOOTED] += subtotal

        for path, entry in overrides.items():
            if path not in ARMOR_SUBTOTAL_PATHS:
                attributes[path] = entry.value

        return state.evolve(
            attributes=attributes,
            buckets=merge_buckets(state.buckets, buckets),
            overrides={**state.overrides, **overrides},
        )

    # -------------------------------------------------------------------------
    # Step 5: Skills
    # -------------------------------------------------------------------------

    def finalize_skills(self, state: ResolutionState, actor: ActorSnapshot) -> ResolutionState:
        """Recompute every skill total from its parts.

        A skill's total is ranks, plus the class skill bonus when ranked,
        plus the ability modifier and change bonus, minus the armor check
        penalty (for affected skills) and energy drain.

        Args:
            state: Current state.
            actor: The actor snapshot.

        Returns:
            State with skill totals and their baseline lines.
        """
        attributes = dict(state.attributes)
        details = dict(state.base_details)
        acp = attributes.get(ACP_TOTAL, 0)

        for key, skill in actor.skills.items():
            class_bonus = CLASS_SKILL_BONUS if skill.rank > 0 and actor.is_class_skill(key) else 0
            entries = (
                (SKILL_RANKS_LABEL, skill.rank),
                (CLASS_SKILL_LABEL, class_bonus),
                (skill.ability.full_name, attributes.get(ability_path(skill.ability, "mod"), 0)),
                (ARMOR_CHECK_PENALTY_LABEL, -acp if skill.acp else 0),
                (ENERGY_DRAIN_LABEL, -actor.energy_drain),
            )
            path = skill_path(key, "mod")
            attributes[path] = sum(value for _, value in entries) + attributes.get(skill_path(key), 0)
            lines = tuple(SourceDetail(name=name, value=value) for name, value in entries if value)
            if lines:
                details[path] = lines
            else:
                details.pop(path, None)

        return state.evolve(attributes=attributes, base_details=details)


def _is_worn_armor(item: Item) -> bool:
    return item.armor is not None and item.armor.equipment_type in (
        EquipmentType.ARMOR,
        EquipmentType.SHIELD,
    )


def _sum_lines(lines: tuple[SourceDetail, ...] | list[SourceDetail]) -> int:
    return sum(line.value for line in lines if isinstance(line.value, int))


__all__ = [
    "NULLIFYING_FLAGS",
    "ability_modifier",
    "ResolutionState",
    "DependencyPropagator",
]
