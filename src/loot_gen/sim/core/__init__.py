"""Core primitives for the loot engine: streams, weighted selection, run state."""

from loot_gen.sim.core.game_state import BossReward, RolledThing, RoundState
from loot_gen.sim.core.numeric import linear_transform, round_half_up
from loot_gen.sim.core.results import ActionError, ActionResult
from loot_gen.sim.core.rng import RngStream, RngStreamFactory, fnv1a_32
from loot_gen.sim.core.selection import WeightedEntry, select_by_weight

__all__ = [
    # rng
    "RngStream",
    "RngStreamFactory",
    "fnv1a_32",
    # selection
    "WeightedEntry",
    "select_by_weight",
    # numeric
    "round_half_up",
    "linear_transform",
    # game_state
    "RolledThing",
    "BossReward",
    "RoundState",
    # results
    "ActionError",
    "ActionResult",
]
