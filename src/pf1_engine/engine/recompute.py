"""Recompute entry point.

``recompute`` runs one full resolution pass for an actor:

1. Merge pending edits over the snapshot.
2. Collect changes and flags.
3. Evaluate, resolve and apply ability score and modifier changes, then
   propagate the resulting modifier deltas.
4. Evaluate every remaining change against roll data containing the
   resolved modifiers, resolve and apply them, then finalize skills.
5. Build source details.

The pass works on an immutable snapshot and returns a new result; nothing
is mutated and no I/O is performed.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pf1_engine.core.config import Settings, get_settings
from pf1_engine.core.logging import bind_context, get_logger, unbind_context
from pf1_engine.engine.collector import ChangeCollector
from pf1_engine.engine.formula import FormulaEvaluator, build_roll_data, redact_roll_data, redaction_paths
from pf1_engine.engine.propagation import DependencyPropagator, ResolutionState
from pf1_engine.engine.reporter import SourceDetailReporter
from pf1_engine.engine.stacking import StackingResolver
from pf1_engine.models.actor import ActorSnapshot, apply_pending_edits, load_snapshot
from pf1_engine.models.change import Change, ResolvedChange
from pf1_engine.rules.ruleset import Ruleset, default_ruleset, load_ruleset
from pf1_engine.rules.targets import TargetMapper


logger = get_logger(__name__)


@dataclass(frozen=True)
class RecomputeResult:
    """Output of one recompute pass.

    Attributes:
        resolved_attributes: Flat ``path -> value`` map of derived attributes.
        source_details: ``path -> [{"name", "value"}]`` attribution lines.
        flags: Final flag values keyed by flag name.
    """

    resolved_attributes: dict[str, int] = field(default_factory=dict)
    source_details: dict[str, list[dict[str, int | str]]] = field(default_factory=dict)
    flags: dict[str, bool] = field(default_factory=dict)

    def total(self, path: str) -> int:
        """Resolved value of a path (0 when absent)."""
        return self.resolved_attributes.get(path, 0)

    def details(self, path: str) -> list[dict[str, int | str]]:
        """Source detail lines of a path."""
        return self.source_details.get(path, [])


def evaluate_changes(
    indexed_changes: Iterable[tuple[int, Change]],
    roll_data: Mapping[str, Any],
    mapper: TargetMapper,
    evaluator: FormulaEvaluator,
) -> list[ResolvedChange]:
    """Evaluate changes, each against roll data without its own targets.

    Changes with unknown targets are skipped; failing formulas contribute 0.
    Zero results are dropped except for set-overrides.

    Args:
        indexed_changes: ``(collection index, change)`` pairs.
        roll_data: Nested roll data for the current state.
        mapper: Target to path resolution for the actor.
        evaluator: The formula evaluator.

    Returns:
        Resolved changes in collection order.
    """
    resolved: list[ResolvedChange] = []
    for order, change in indexed_changes:
        paths = mapper.paths_for_change(change)
        if not paths:
            continue
        context = roll_data
        if isinstance(change.formula, str) and "@" in change.formula:
            ability = change.fixed_target.ability if change.fixed_target else None
            context = redact_roll_data(roll_data, redaction_paths(paths, ability))
        value = evaluator.safe_evaluate(change.formula, context, target=change.target)
        if value or change.is_override:
            resolved.append(ResolvedChange(change=change, value=value, order=order))
    return resolved


def _resolve_ruleset(settings: Settings) -> Ruleset:
    if settings.engine.ruleset_path is not None:
        return load_ruleset(settings.engine.ruleset_path)
    return default_ruleset()


def recompute(
    actor_snapshot: ActorSnapshot | Mapping[str, Any],
    pending_edits: Mapping[str, Any] | None = None,
    *,
    ruleset: Ruleset | None = None,
    settings: Settings | None = None,
    evaluator: FormulaEvaluator | None = None,
) -> RecomputeResult:
    """Fully recompute an actor's derived statistics.

    Args:
        actor_snapshot: The actor, as a snapshot or raw mapping.
        pending_edits: Partial update overlay (nested or dotted keys)
            merged over the snapshot before resolution.
        ruleset: Rules tables; defaults to the configured ruleset.
        settings: Engine settings; defaults to ``get_settings()``.
        evaluator: Formula evaluator; built from settings if omitted.

    Returns:
        Resolved attributes, source details and flags.

    Raises:
        ValidationError: If the snapshot or merged edits are invalid.
        RulesetError: If a configured ruleset file cannot be loaded.

    Example:
        >>> result = recompute({"abilities": {"str": {"value": 16}}})
        >>> result.total("attributes.cmd.total")
        13
    """
    settings = settings or get_settings()
    ruleset = ruleset or _resolve_ruleset(settings)
    evaluator = evaluator or FormulaEvaluator(warn_on_error=settings.engine.warn_on_formula_error)

    actor = apply_pending_edits(load_snapshot(actor_snapshot), pending_edits)

    bind_context(actor=actor.name)
    try:
        collected = ChangeCollector(ruleset).collect(actor)
        mapper = TargetMapper(ruleset, actor)
        resolver = StackingResolver(ruleset, tie_policy=settings.engine.tie_policy)
        propagator = DependencyPropagator(ruleset, evaluator)

        indexed = list(enumerate(collected.changes))
        ability_changes = [(order, change) for order, change in indexed if change.is_ability_change]
        other_changes = [(order, change) for order, change in indexed if not change.is_ability_change]

        state: ResolutionState = propagator.reset(actor, collected)

        resolved = evaluate_changes(
            ability_changes, build_roll_data(state.attributes, actor), mapper, evaluator
        )
        state = propagator.apply_ability_changes(
            state,
            resolver.resolve(resolved, mapper, collected.flags),
            resolver.resolve_overrides(resolved, mapper),
        )
        state = propagator.propagate_ability_deltas(state, actor)

        resolved = evaluate_changes(
            other_changes, build_roll_data(state.attributes, actor), mapper, evaluator
        )
        state = propagator.apply_changes(
            state,
            resolver.resolve(resolved, mapper, collected.flags),
            resolver.resolve_overrides(resolved, mapper),
        )
        state = propagator.finalize_skills(state, actor)

        source_details = SourceDetailReporter(ruleset).report(state, collected)
        result = RecomputeResult(
            resolved_attributes=dict(state.attributes),
            source_details=source_details,
            flags={flag.value: value for flag, value in collected.flags.items()},
        )
        logger.info(
            "Recompute complete",
            changes=len(collected.changes),
            attributes=len(result.resolved_attributes),
        )
        return result
    finally:
        unbind_context("actor")


__all__ = [
    "RecomputeResult",
    "evaluate_changes",
    "recompute",
]
