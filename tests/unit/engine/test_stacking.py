"""Tests for bonus stacking resolution."""

from __future__ import annotations

import pytest

from pf1_engine.engine.stacking import (
    StackingBucket,
    StackingResolver,
    bucket_total,
    merge_buckets,
)
from pf1_engine.models.actor import ActorSnapshot
from pf1_engine.models.change import Change, ChangeSource, ResolvedChange
from pf1_engine.models.enums import ChangeFlag, ModifierKind
from pf1_engine.rules.ruleset import Ruleset
from pf1_engine.rules.targets import AC_ARMOR, AC_NORMAL, AC_TOUCH, CMD_TOTAL, TargetMapper


def _resolved(
    value: int,
    name: str,
    *,
    target: str = "ac",
    modifier: str = "untyped",
    source_type: str = "buff",
    subtype: str = "temp",
    priority: int = 0,
    order: int = 0,
    operator: str = "add",
) -> ResolvedChange:
    change = Change(
        formula=value,
        category="ac",
        target=target,
        modifier=modifier,
        operator=operator,
        priority=priority,
        source=ChangeSource(type=source_type, subtype=subtype, name=name),
    )
    return ResolvedChange(change=change, value=value, order=order)


@pytest.fixture
def mapper(ruleset: Ruleset) -> TargetMapper:
    """Provide a mapper for a default actor."""
    return TargetMapper(ruleset, ActorSnapshot())


class TestStackingBucket:
    """Tests for the StackingBucket accumulator."""

    def test_typed_keeps_highest_bonus(self) -> None:
        """Test typed bonuses keep only the highest."""
        bucket = StackingBucket(kind=ModifierKind.ENH, stacks=False)
        bucket.add(1, ChangeSource(type="equipment", name="+1 Armor"))
        bucket.add(2, ChangeSource(type="buff", name="Magic Vestment"))

        assert bucket.total == 2
        assert [entry.source.name for entry in bucket.sources] == ["Magic Vestment"]

    def test_typed_keeps_lowest_penalty(self) -> None:
        """Test typed penalties keep only the lowest."""
        bucket = StackingBucket(kind=ModifierKind.MORALE, stacks=False)
        bucket.add(-2, ChangeSource(name="Crushing Despair"))
        bucket.add(-1, ChangeSource(name="Demoralized"))

        assert bucket.total == -2

    def test_typed_bonus_and_penalty_coexist(self) -> None:
        """Test a typed bonus and penalty of the same kind both apply."""
        bucket = StackingBucket(kind=ModifierKind.LUCK, stacks=False)
        bucket.add(2, ChangeSource(name="Prayer"))
        bucket.add(-1, ChangeSource(name="Bane"))

        assert bucket.positive == 2
        assert bucket.negative == -1
        assert bucket.total == 1
        assert [entry.value for entry in bucket.sources] == [2, -1]

    def test_typed_tie_first_wins(self) -> None:
        """Test ties keep the first source by default."""
        bucket = StackingBucket(kind=ModifierKind.DEFLECTION, stacks=False)
        bucket.add(1, ChangeSource(name="Ring"))
        bucket.add(1, ChangeSource(name="Shield of Faith"))

        assert bucket.total == 1
        assert [entry.source.name for entry in bucket.sources] == ["Ring"]

    def test_typed_tie_merge(self) -> None:
        """Test the merge policy lists tied sources without changing the value."""
        bucket = StackingBucket(kind=ModifierKind.DEFLECTION, stacks=False)
        bucket.add(1, ChangeSource(name="Ring"), tie_policy="merge")
        bucket.add(1, ChangeSource(name="Shield of Faith"), tie_policy="merge")

        assert bucket.total == 1
        assert [entry.source.name for entry in bucket.sources] == ["Ring", "Shield of Faith"]

    def test_stacking_sums(self) -> None:
        """Test stacking kinds add up."""
        bucket = StackingBucket(kind=ModifierKind.DODGE, stacks=True)
        bucket.add(1, ChangeSource(type="feat", name="Dodge"))
        bucket.add(1, ChangeSource(type="buff", subtype="temp", name="Haste"))

        assert bucket.total == 2
        assert len(bucket.sources) == 2

    def test_stacking_merges_same_key(self) -> None:
        """Test same type and subtype merge into one entry."""
        bucket = StackingBucket(kind=ModifierKind.UNTYPED, stacks=True)
        bucket.add(1, ChangeSource(type="buff", subtype="temp", name="A"))
        bucket.add(2, ChangeSource(type="buff", subtype="temp", name="B"))

        assert bucket.total == 3
        assert len(bucket.sources) == 1
        assert bucket.sources[0].value == 3
        assert bucket.sources[0].merged is True
        assert bucket.sources[0].display_name == ""

    def test_stacking_same_name_not_marked_merged(self) -> None:
        """Test repeated contributions from one source keep its name."""
        bucket = StackingBucket(kind=ModifierKind.PENALTY, stacks=True)
        bucket.add(-2, ChangeSource(type="condition", subtype="sickened", name="Sickened"))
        bucket.add(-2, ChangeSource(type="condition", subtype="sickened", name="Sickened"))

        assert bucket.total == -4
        assert bucket.sources[0].display_name == "Sickened"

    def test_zero_ignored(self) -> None:
        """Test zero contributions are dropped."""
        bucket = StackingBucket(kind=ModifierKind.ENH, stacks=False)
        bucket.add(0, ChangeSource(name="Nothing"))

        assert bucket.total == 0
        assert bucket.sources == []


class TestStackingResolver:
    """Tests for the StackingResolver class."""

    def test_enhancement_to_armor(self, ruleset: Ruleset, mapper: TargetMapper) -> None:
        """Test +1 and +2 enhancement to armor keep only +2."""
        resolver = StackingResolver(ruleset)
        buckets = resolver.resolve(
            [
                _resolved(1, "+1 Armor", target="aac", modifier="enh", order=0),
                _resolved(2, "Magic Vestment", target="aac", modifier="enh", order=1),
            ],
            mapper,
        )

        bucket = buckets[AC_ARMOR][ModifierKind.ENH]
        assert bucket.total == 2
        assert [entry.source.name for entry in bucket.sources] == ["Magic Vestment"]

    def test_priority_orders_ties(self, ruleset: Ruleset, mapper: TargetMapper) -> None:
        """Test higher priority changes are applied first."""
        resolver = StackingResolver(ruleset)
        buckets = resolver.resolve(
            [
                _resolved(1, "Late", modifier="deflection", order=0),
                _resolved(1, "Early", modifier="deflection", priority=5, order=1),
            ],
            mapper,
        )

        assert buckets[AC_NORMAL][ModifierKind.DEFLECTION].sources[0].source.name == "Early"

    def test_collection_order_breaks_ties(self, ruleset: Ruleset, mapper: TargetMapper) -> None:
        """Test collection order decides equal-priority ties."""
        resolver = StackingResolver(ruleset)
        changes = [
            _resolved(1, "Second", modifier="deflection", order=1),
            _resolved(1, "First", modifier="deflection", order=0),
        ]

        buckets = resolver.resolve(changes, mapper)

        assert buckets[AC_NORMAL][ModifierKind.DEFLECTION].sources[0].source.name == "First"

    def test_dodge_masked_when_losing_dex(self, ruleset: Ruleset, mapper: TargetMapper) -> None:
        """Test positive dodge AC bonuses are dropped without Dex to AC."""
        resolver = StackingResolver(ruleset)
        dodge = _resolved(1, "Dodge", modifier="dodge", source_type="feat", subtype="")

        assert resolver.resolve([dodge], mapper, {ChangeFlag.LOSE_DEX_TO_AC: True}) == {}
        buckets = resolver.resolve([dodge], mapper, {})
        assert set(buckets) == {AC_NORMAL, AC_TOUCH, CMD_TOTAL}

    def test_dodge_penalty_not_masked(self, ruleset: Ruleset, mapper: TargetMapper) -> None:
        """Test dodge penalties still apply without Dex to AC."""
        resolver = StackingResolver(ruleset)
        penalty = _resolved(-1, "Clumsy", modifier="dodge")

        buckets = resolver.resolve([penalty], mapper, {ChangeFlag.LOSE_DEX_TO_AC: True})

        assert buckets[AC_NORMAL][ModifierKind.DODGE].total == -1

    def test_unknown_targets_skipped(self, ruleset: Ruleset, mapper: TargetMapper) -> None:
        """Test changes with unmapped targets produce no buckets."""
        resolver = StackingResolver(ruleset)

        assert resolver.resolve([_resolved(2, "Odd", target="mythicPower")], mapper) == {}

    def test_buckets_ordered_by_kind(self, ruleset: Ruleset, mapper: TargetMapper) -> None:
        """Test buckets on one path follow modifier priority."""
        resolver = StackingResolver(ruleset)
        buckets = resolver.resolve(
            [
                _resolved(1, "Ring", modifier="deflection"),
                _resolved(-2, "Blind", modifier="penalty", source_type="condition"),
                _resolved(1, "Haste", modifier="dodge"),
            ],
            mapper,
        )

        assert list(buckets[AC_NORMAL]) == [
            ModifierKind.DODGE,
            ModifierKind.DEFLECTION,
            ModifierKind.PENALTY,
        ]
        assert bucket_total(buckets[AC_NORMAL]) == 0

    def test_overrides_excluded_from_buckets(self, ruleset: Ruleset, mapper: TargetMapper) -> None:
        """Test set-overrides never enter the stacking buckets."""
        resolver = StackingResolver(ruleset)
        changes = [_resolved(1, "Ring", modifier="deflection"), _resolved(5, "Fixed", operator="set")]

        buckets = resolver.resolve(changes, mapper)

        assert bucket_total(buckets[AC_NORMAL]) == 1
        assert list(buckets[AC_NORMAL]) == [ModifierKind.DEFLECTION]

    def test_override_priority_wins(self, ruleset: Ruleset, mapper: TargetMapper) -> None:
        """Test the highest-priority set-override wins, then the first applied."""
        resolver = StackingResolver(ruleset)
        changes = [
            _resolved(3, "Low", target="tac", operator="set", order=0),
            _resolved(0, "High", target="tac", operator="set", priority=5, order=1),
            _resolved(7, "Late", target="tac", operator="set", order=2),
            _resolved(2, "Additive", target="tac"),
        ]

        overrides = resolver.resolve_overrides(changes, mapper)

        assert list(overrides) == [AC_TOUCH]
        assert overrides[AC_TOUCH].source.name == "High"
        assert overrides[AC_TOUCH].value == 0

    def test_override_ties_first_applied(self, ruleset: Ruleset, mapper: TargetMapper) -> None:
        """Test equal-priority set-overrides keep the first in application order."""
        resolver = StackingResolver(ruleset)
        changes = [
            _resolved(7, "Late", target="tac", operator="set", order=2),
            _resolved(3, "Early", target="tac", operator="set", order=0),
        ]

        assert resolver.resolve_overrides(changes, mapper)[AC_TOUCH].value == 3


class TestBucketHelpers:
    """Tests for bucket map helpers."""

    def test_merge_buckets(self) -> None:
        """Test merging bucket maps from separate phases."""
        first = {"a": {ModifierKind.ENH: StackingBucket(kind=ModifierKind.ENH, stacks=False, positive=2)}}
        second = {
            "a": {ModifierKind.LUCK: StackingBucket(kind=ModifierKind.LUCK, stacks=False, positive=1)},
            "b": {ModifierKind.UNTYPED: StackingBucket(kind=ModifierKind.UNTYPED, stacks=True, negative=-1)},
        }

        merged = merge_buckets(first, second)

        assert bucket_total(merged["a"]) == 3
        assert bucket_total(merged["b"]) == -1
