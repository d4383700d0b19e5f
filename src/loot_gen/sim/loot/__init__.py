"""Loot module -- tier-weighted rolls and their modifications."""

from loot_gen.sim.loot.modifications import (
    ModificationOptions,
    apply_modifications,
    keep_better_roll,
    pick_attribute,
    pick_mods,
)
from loot_gen.sim.loot.roller import (
    apply_luck_to_weights,
    get_round_rarity_weights,
    roll_thing,
)

__all__ = [
    "ModificationOptions",
    "apply_luck_to_weights",
    "apply_modifications",
    "get_round_rarity_weights",
    "keep_better_roll",
    "pick_attribute",
    "pick_mods",
    "roll_thing",
]
