"""pf1_engine - Pathfinder 1E derived statistics engine.

Recomputes an actor's derived statistics (armor class, saves, attack
bonuses, CMB/CMD, skills, hit points) from its ability scores, items and
conditions, applying the bonus stacking rules and reporting where every
point came from.

DESIGN:
- Every recompute is a full pass over an immutable snapshot
- Typed bonuses keep the extreme per sign; untyped, dodge and penalty stack
- Source details always add up to the resolved totals

Example:
    >>> from pf1_engine import recompute
    >>> result = recompute(
    ...     {"name": "Merisiel", "conditions": {"blind": True}},
    ... )
    >>> result.total("attributes.ac.normal.total")
    8

Modules:
    core: Configuration, logging, and base exceptions.
    models: Pydantic V2 schemas for actors, items and changes.
    rules: Ruleset tables and target resolution.
    engine: Collection, stacking, propagation and reporting.
"""

from __future__ import annotations

# Core
from pf1_engine.core.config import Settings, get_settings
from pf1_engine.core.exceptions import Pf1EngineError
from pf1_engine.core.logging import configure_logging, configure_logging_from_settings, get_logger

# Models
from pf1_engine.models import (
    Ability,
    ActorSnapshot,
    Change,
    ChangeSource,
    Condition,
    Item,
    ItemType,
    ModifierKind,
    SourceDetail,
    apply_pending_edits,
)

# Rules
from pf1_engine.rules import Ruleset, default_ruleset, load_ruleset

# Engine
from pf1_engine.engine import RecomputeResult, recompute, translate_source


__version__ = "0.1.0"

__all__ = [
    # Core
    "Settings",
    "get_settings",
    "Pf1EngineError",
    "configure_logging",
    "configure_logging_from_settings",
    "get_logger",
    # Models
    "Ability",
    "ActorSnapshot",
    "Change",
    "ChangeSource",
    "Condition",
    "Item",
    "ItemType",
    "ModifierKind",
    "SourceDetail",
    "apply_pending_edits",
    # Rules
    "Ruleset",
    "default_ruleset",
    "load_ruleset",
    # Engine
    "RecomputeResult",
    "recompute",
    "translate_source",
    "__version__",
]
