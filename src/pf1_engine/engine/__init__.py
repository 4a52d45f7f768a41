"""Resolution engine for derived statistics.

Submodules:
    formula: Change formula evaluation (d20 library)
    collector: Change collection from items and built-in rules
    stacking: Bonus stacking per modifier kind
    propagation: Ability modifier propagation into dependents
    reporter: Per-attribute source details
    recompute: The ``recompute`` entry point

Example:
    >>> from pf1_engine.engine import recompute
    >>> result = recompute({"name": "Valeros", "abilities": {"str": {"value": 16}}})
    >>> result.total("attributes.cmb.total")
    3
"""

from __future__ import annotations

# =============================================================================
# Formula Evaluation
# =============================================================================
from pf1_engine.engine.formula import (
    FormulaEvaluator,
    build_roll_data,
    redact_roll_data,
    redaction_paths,
)

# =============================================================================
# Collection and Stacking
# =============================================================================
from pf1_engine.engine.collector import ChangeCollector, CollectedChanges
from pf1_engine.engine.stacking import (
    SourceEntry,
    StackingBucket,
    StackingResolver,
    TiePolicy,
)

# =============================================================================
# Propagation and Reporting
# =============================================================================
from pf1_engine.engine.propagation import (
    DependencyPropagator,
    ResolutionState,
    ability_modifier,
)
from pf1_engine.engine.reporter import SourceDetailReporter, translate_source

# =============================================================================
# Entry Point
# =============================================================================
from pf1_engine.engine.recompute import RecomputeResult, evaluate_changes, recompute


__all__ = [
    # Formula
    "FormulaEvaluator",
    "build_roll_data",
    "redact_roll_data",
    "redaction_paths",
    # Collection and stacking
    "ChangeCollector",
    "CollectedChanges",
    "SourceEntry",
    "StackingBucket",
    "StackingResolver",
    "TiePolicy",
    # Propagation and reporting
    "DependencyPropagator",
    "ResolutionState",
    "ability_modifier",
    "SourceDetailReporter",
    "translate_source",
    # Entry point
    "RecomputeResult",
    "evaluate_changes",
    "recompute",
]
