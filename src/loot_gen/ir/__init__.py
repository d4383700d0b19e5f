"""Intermediate Representation (IR) schema for loot_gen content.

All catalog content -- rarity tiers, thing templates, size attributes, mods,
perks, bosses and consumables -- is represented as Pydantic models that
serialise cleanly to/from JSON.  The :class:`ContentSet` is the top-level
container handed to the content registry.
"""

from .consumables import ConsumableDefinition, ConsumableEffect
from .content_set import ContentSet
from .perks import (
    GUARANTEED_MOD_PREFIX,
    BonusTriggerCondition,
    BossDefinition,
    ForgingCondition,
    ItemCollected,
    ModifyOp,
    PerkCondition,
    PerkDefinition,
    PerkProperties,
    RequiresPerkCondition,
    StatOp,
    StatOpKind,
    StatThreshold,
    UnlockCondition,
)
from .things import (
    AttributeDefinition,
    ModDefinition,
    RarityBucket,
    ThingTemplate,
    TierDefinition,
)

__all__ = [
    # consumables
    "ConsumableDefinition",
    "ConsumableEffect",
    # content_set
    "ContentSet",
    # perks
    "GUARANTEED_MOD_PREFIX",
    "BonusTriggerCondition",
    "BossDefinition",
    "ForgingCondition",
    "ItemCollected",
    "ModifyOp",
    "PerkCondition",
    "PerkDefinition",
    "PerkProperties",
    "RequiresPerkCondition",
    "StatOp",
    "StatOpKind",
    "StatThreshold",
    "UnlockCondition",
    # things
    "AttributeDefinition",
    "ModDefinition",
    "RarityBucket",
    "ThingTemplate",
    "TierDefinition",
]
