"""Economy module -- currency, round costs and shop offers."""

from loot_gen.sim.economy.costs import (
    boss_round_cost,
    is_boss_round,
    normal_round_cost,
    round_entry_cost,
    route_index,
)
from loot_gen.sim.economy.currency import CurrencyLedger, RewardBreakdown
from loot_gen.sim.economy.shop import is_perk_available, roll_shop_consumables, roll_shop_offers

__all__ = [
    "CurrencyLedger",
    "RewardBreakdown",
    "boss_round_cost",
    "is_boss_round",
    "is_perk_available",
    "normal_round_cost",
    "roll_shop_consumables",
    "roll_shop_offers",
    "round_entry_cost",
    "route_index",
]
