"""Source detail reporting.

Every reported path gets an ordered list of ``{"name", "value"}`` lines
explaining its total. Numeric lines always sum to the resolved value;
string lines (``"Lose Dex to AC"``, ``"-1 (Mod only)"``) are narrative and
do not count.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from pf1_engine.core.constants import ABILITY_DAMAGE_LABEL
from pf1_engine.core.logging import get_logger
from pf1_engine.engine.collector import CollectedChanges
from pf1_engine.engine.propagation import ResolutionState
from pf1_engine.engine.stacking import SourceEntry
from pf1_engine.models.change import SourceDetail
from pf1_engine.models.enums import Ability
from pf1_engine.rules.ruleset import Ruleset, default_ruleset
from pf1_engine.rules.targets import AC_FLAT_FOOTED, AC_NORMAL, ARMOR_SUBTOTAL_PATHS, ability_path, skill_path


logger = get_logger(__name__)

ABILITY_MOD_PATTERN = re.compile(r"^abilities\.[a-z]{3}\.mod$")
SKILL_MOD_PATTERN = re.compile(r"^skills\.(?P<skill>[A-Za-z0-9_]+)\.mod$")

FOLDED_PATHS: dict[str, tuple[str, ...]] = {
    AC_NORMAL: ARMOR_SUBTOTAL_PATHS,
    AC_FLAT_FOOTED: ARMOR_SUBTOTAL_PATHS,
}
"""Paths whose totals include the buckets of other paths."""


def translate_source(
    source_type: str,
    subtype: str = "",
    name: str = "",
    ruleset: Ruleset | None = None,
) -> str:
    """Build the display label for a bucket source.

    Args:
        source_type: Source type, e.g. "buff" or "size".
        subtype: Source subtype, e.g. "temp".
        name: Source name; empty when several sources were merged.
        ruleset: Supplies the category tables; the default ruleset if None.

    Returns:
        ``"<Category> (<name>)"``, or whichever part is present.

    Example:
        >>> translate_source("buff", "temp", "Bless")
        'Temporary Buffs (Bless)'
    """
    ruleset = ruleset or default_ruleset()
    category = ruleset.source_subcategories.get(source_type, {}).get(subtype) or ruleset.source_categories.get(
        source_type, ""
    )
    if not name:
        return category
    if not category:
        return name
    return f"{category} ({name})"


class SourceDetailReporter:
    """Build per-path source detail lists from a finished resolution.

    Attributes:
        ruleset: Supplies source category labels.
    """

    def __init__(self, ruleset: Ruleset) -> None:
        self.ruleset = ruleset

    def report(self, state: ResolutionState, collected: CollectedChanges) -> dict[str, list[dict[str, int | str]]]:
        """Attribute every reported path.

        Args:
            state: The finished resolution state.
            collected: Collector output supplying narrative notes.

        Returns:
            ``path -> [{"name": ..., "value": ...}]`` for every path except
            ability modifiers. Paths without contributions map to an
            empty list.
        """
        details: dict[str, list[dict[str, int | str]]] = {}
        for path in state.attributes:
            if ABILITY_MOD_PATTERN.match(path):
                continue
            lines = list(self.lines_for(path, state, collected))
            details[path] = [line.model_dump() for line in lines]
        logger.debug("Source details built", paths=len(details))
        return details

    def lines_for(self, path: str, state: ResolutionState, collected: CollectedChanges) -> Iterator[SourceDetail]:
        """Yield the source lines of one path in display order.

        A path replaced by a set-override lists only the override and its
        narrative notes.
        """
        if path in state.overrides:
            yield self._entry_line(state.overrides[path])
            yield from collected.source_info.get(path, ())
            return
        yield from state.base_details.get(path, ())
        damage_line = self._damage_line(path, state)
        if damage_line is not None:
            yield damage_line
        yield from state.ability_details.get(path, ())
        for bucket_path in (path, *self._folded_into(path)):
            yield from self._bucket_lines(bucket_path, state)
        yield from collected.source_info.get(path, ())

    def _bucket_lines(self, path: str, state: ResolutionState) -> Iterator[SourceDetail]:
        if path in state.overrides:
            yield self._entry_line(state.overrides[path])
            return
        by_kind = state.buckets.get(path, {})
        for kind in sorted(by_kind, key=self.ruleset.kind_rank):
            for entry in by_kind[kind].sources:
                yield self._entry_line(entry)

    def _entry_line(self, entry: SourceEntry) -> SourceDetail:
        label = translate_source(entry.source.type, entry.source.subtype, entry.display_name, self.ruleset)
        return SourceDetail(name=label, value=entry.value)

    @staticmethod
    def _folded_into(path: str) -> tuple[str, ...]:
        match = SKILL_MOD_PATTERN.match(path)
        if match:
            return (skill_path(match.group("skill")),)
        return FOLDED_PATHS.get(path, ())

    @staticmethod
    def _damage_line(path: str, state: ResolutionState) -> SourceDetail | None:
        for ability in Ability:
            if path == ability_path(ability):
                damage = state.ability_damage.get(ability, 0)
                if damage and ability not in state.nullified:
                    return SourceDetail(name=ABILITY_DAMAGE_LABEL, value=f"-{damage // 2} (Mod only)")
                return None
        return None


__all__ = [
    "FOLDED_PATHS",
    "translate_source",
    "SourceDetailReporter",
]
