"""Bonus stacking resolution.

Resolved changes are grouped by ``(flattened path, modifier kind)``. Within
a group, stacking kinds (untyped, dodge, penalty) add up per sign, while
every other kind keeps only its highest bonus and its lowest penalty. Each
group tracks the sources that produced its surviving value so the reporter
can attribute the result.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Literal

from pf1_engine.core.logging import get_logger
from pf1_engine.models.change import ChangeSource, ResolvedChange
from pf1_engine.models.enums import ChangeFlag, ModifierKind
from pf1_engine.rules.ruleset import Ruleset
from pf1_engine.rules.targets import TargetMapper


logger = get_logger(__name__)

TiePolicy = Literal["first", "merge"]

Buckets = dict[str, dict[ModifierKind, "StackingBucket"]]
"""Stacking buckets keyed by flattened path, then modifier kind."""

Overrides = dict[str, "SourceEntry"]
"""Winning set-override per flattened path."""


@dataclass
class SourceEntry:
    """One attributed contribution inside a bucket.

    Attributes:
        source: Descriptor of the contributing source.
        value: Signed contribution.
        merged: True when several differently named sources with the same
            ``(type, subtype)`` key were folded into this entry.
    """

    source: ChangeSource
    value: int
    merged: bool = False

    @property
    def display_name(self) -> str:
        """Source name, dropped once several names are merged."""
        return "" if self.merged else self.source.name


@dataclass
class StackingBucket:
    """Accumulator for one ``(path, kind)`` pair.

    Attributes:
        kind: The modifier kind.
        stacks: Whether same-sign contributions add up.
        positive: Resolved bonus.
        negative: Resolved penalty.
        positive_sources: Sources behind ``positive``.
        negative_sources: Sources behind ``negative``.
    """

    kind: ModifierKind
    stacks: bool
    positive: int = 0
    negative: int = 0
    positive_sources: list[SourceEntry] = field(default_factory=list)
    negative_sources: list[SourceEntry] = field(default_factory=list)

    @property
    def total(self) -> int:
        """Net contribution of the bucket."""
        return self.positive + self.negative

    @property
    def sources(self) -> list[SourceEntry]:
        """All surviving source entries, bonuses first."""
        return [*self.positive_sources, *self.negative_sources]

    def add(self, value: int, source: ChangeSource, *, tie_policy: TiePolicy = "first") -> None:
        """Apply one contribution.

        Args:
            value: Signed contribution; zero is ignored.
            source: Descriptor of the contributing source.
            tie_policy: For typed kinds, whether an equal contribution is
                listed alongside the current one ("merge") or dropped.
        """
        if value == 0:
            return
        if value > 0:
            self.positive = self._apply(self.positive, self.positive_sources, value, source, tie_policy)
        else:
            self.negative = self._apply(self.negative, self.negative_sources, value, source, tie_policy)

    def _apply(
        self,
        current: int,
        sources: list[SourceEntry],
        value: int,
        source: ChangeSource,
        tie_policy: TiePolicy,
    ) -> int:
        if self.stacks:
            for entry in sources:
                if entry.source.key == source.key:
                    entry.value += value
                    if entry.source.name != source.name:
                        entry.merged = True
                    break
            else:
                sources.append(SourceEntry(source=source, value=value))
            return current + value

        exceeds = value > current if value > 0 else value < current
        if exceeds or not sources:
            sources[:] = [SourceEntry(source=source, value=value)]
            return value
        if value == current and tie_policy == "merge":
            sources.append(SourceEntry(source=source, value=value))
        return current


class StackingResolver:
    """Group resolved changes and apply stacking rules.

    Attributes:
        ruleset: Supplies ordering lists, stacking kinds and masked targets.
        tie_policy: Source-list behavior on typed-kind ties.
    """

    def __init__(self, ruleset: Ruleset, *, tie_policy: TiePolicy = "first") -> None:
        self.ruleset = ruleset
        self.tie_policy = tie_policy

    def order_key(self, resolved: ResolvedChange) -> tuple[int, int, float, int, int]:
        """Deterministic application order within a group.

        Higher change priority first, then category, target and modifier
        kind in ruleset order, then collection order.
        """
        change = resolved.change
        return (
            -change.priority,
            self.ruleset.category_rank(change.category),
            self.ruleset.target_rank(change.target),
            self.ruleset.kind_rank(change.modifier),
            resolved.order,
        )

    def is_masked(self, resolved: ResolvedChange, flags: Mapping[ChangeFlag, bool]) -> bool:
        """Whether a dodge bonus is suppressed by the loss of Dex to AC."""
        change = resolved.change
        return (
            flags.get(ChangeFlag.LOSE_DEX_TO_AC, False)
            and change.modifier is ModifierKind.DODGE
            and resolved.value > 0
            and change.target in self.ruleset.dex_masked_targets
        )

    def group(
        self,
        resolved_changes: Iterable[ResolvedChange],
        mapper: TargetMapper,
    ) -> dict[tuple[str, ModifierKind], list[ResolvedChange]]:
        """Group changes by ``(path, kind)``, each group in application order.

        Args:
            resolved_changes: Evaluated changes.
            mapper: Target to path resolution for the actor.

        Returns:
            Ordered change lists per group.
        """
        groups: dict[tuple[str, ModifierKind], list[ResolvedChange]] = {}
        for resolved in resolved_changes:
            if resolved.value == 0:
                continue
            for path in mapper.paths_for_change(resolved.change):
                groups.setdefault((path, resolved.change.modifier), []).append(resolved)
        for members in groups.values():
            members.sort(key=self.order_key)
        return groups

    def resolve(
        self,
        resolved_changes: Iterable[ResolvedChange],
        mapper: TargetMapper,
        flags: Mapping[ChangeFlag, bool] | None = None,
    ) -> Buckets:
        """Resolve evaluated changes into stacking buckets.

        Args:
            resolved_changes: Evaluated changes.
            mapper: Target to path resolution for the actor.
            flags: Active flags; ``loseDexToAC`` masks dodge bonuses to AC.

        Returns:
            Buckets keyed by path, then kind in ruleset order.
        """
        flags = flags or {}
        unmasked = []
        for resolved in resolved_changes:
            if resolved.change.is_override:
                continue
            if self.is_masked(resolved, flags):
                logger.debug(
                    "Dodge bonus suppressed",
                    target=resolved.change.target,
                    source=resolved.source.name,
                )
                continue
            unmasked.append(resolved)

        groups = self.group(unmasked, mapper)
        buckets: Buckets = {}
        for (path, kind), members in sorted(
            groups.items(), key=lambda item: (item[0][0], self.ruleset.kind_rank(item[0][1]))
        ):
            bucket = StackingBucket(kind=kind, stacks=self.ruleset.stacks(kind))
            for resolved in members:
                bucket.add(resolved.value, resolved.source, tie_policy=self.tie_policy)
            if bucket.sources:
                buckets.setdefault(path, {})[kind] = bucket
        return buckets

    def resolve_overrides(
        self,
        resolved_changes: Iterable[ResolvedChange],
        mapper: TargetMapper,
    ) -> Overrides:
        """Pick the set-override that wins on each path.

        The highest-priority override wins; remaining ties go to the first
        in application order. Zero is a valid override value.

        Args:
            resolved_changes: Evaluated changes; additive ones are ignored.
            mapper: Target to path resolution for the actor.

        Returns:
            The winning override entry per path.
        """
        overrides: Overrides = {}
        candidates = sorted(
            (resolved for resolved in resolved_changes if resolved.change.is_override),
            key=self.order_key,
        )
        for resolved in candidates:
            for path in mapper.paths_for_change(resolved.change):
                if path in overrides:
                    logger.debug(
                        "Set override superseded",
                        path=path,
                        source=resolved.source.name,
                    )
                    continue
                overrides[path] = SourceEntry(source=resolved.source, value=resolved.value)
        return overrides


def merge_buckets(*bucket_sets: Mapping[str, Mapping[ModifierKind, StackingBucket]]) -> Buckets:
    """Combine bucket maps from separate resolution phases."""
    merged: Buckets = {}
    for bucket_set in bucket_sets:
        for path, by_kind in bucket_set.items():
            merged.setdefault(path, {}).update(by_kind)
    return merged


def bucket_total(by_kind: Mapping[ModifierKind, StackingBucket]) -> int:
    """Net contribution of all buckets on one path."""
    return sum(bucket.total for bucket in by_kind.values())


__all__ = [
    "TiePolicy",
    "Buckets",
    "Overrides",
    "SourceEntry",
    "StackingBucket",
    "StackingResolver",
    "merge_buckets",
    "bucket_total",
]
