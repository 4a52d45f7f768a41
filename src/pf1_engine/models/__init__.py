"""Pydantic V2 schemas for the statistics engine.

Submodules:
    enums: Enumeration types (Ability, ModifierKind, ChangeTarget, Condition, etc.)
    change: Change records and their source descriptors
    actor: Actor snapshot, items and pending-edit merging

Example:
    >>> from pf1_engine.models import ActorSnapshot, Item, Change, ItemType
    >>> ring = Item(
    ...     name="Ring of Protection +1",
    ...     type=ItemType.EQUIPMENT,
    ...     equipped=True,
    ...     changes=(Change(formula="1", category="ac", target="ac", modifier="deflection"),),
    ... )
    >>> actor = ActorSnapshot(name="Valeros", items=(ring,))
"""

from __future__ import annotations

# =============================================================================
# Enumerations
# =============================================================================
from pf1_engine.models.enums import (
    STACKING_MODIFIER_KINDS,
    Ability,
    ChangeCategory,
    ChangeFlag,
    ChangeOperator,
    ChangeTarget,
    Condition,
    EquipmentType,
    ItemType,
    ModifierKind,
    SaveType,
    Size,
)

# =============================================================================
# Changes
# =============================================================================
from pf1_engine.models.change import (
    SKILL_TARGET_PATTERN,
    Change,
    ChangeSource,
    ResolvedChange,
    SourceDetail,
)

# =============================================================================
# Actor
# =============================================================================
from pf1_engine.models.actor import (
    PF1_SKILLS,
    AbilityData,
    ActorSnapshot,
    ArmorData,
    ClassData,
    Item,
    SkillData,
    apply_pending_edits,
    default_skills,
    expand_dotted_keys,
    load_snapshot,
)


__all__ = [
    # Enums
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
    # Changes
    "SKILL_TARGET_PATTERN",
    "ChangeSource",
    "Change",
    "ResolvedChange",
    "SourceDetail",
    # Actor
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
