"""Perks module -- folding owned perks into an attributes snapshot."""

from loot_gen.sim.perks.aggregator import AttributeAggregator, apply_stat_block
from loot_gen.sim.perks.rules import DEFAULT_DYNAMIC_PERKS, DEFAULT_POST_RULES, RuleContext
from loot_gen.sim.perks.snapshot import AttributesSnapshot

__all__ = [
    "AttributeAggregator",
    "AttributesSnapshot",
    "DEFAULT_DYNAMIC_PERKS",
    "DEFAULT_POST_RULES",
    "RuleContext",
    "apply_stat_block",
]
