"""Round entry costs in chips.

Normal rounds follow the piecewise-linear tiers of
:attr:`EngineConfig.normal_cost_tiers` with an optional compounding tail.
Every ``boss_round_interval``-th round is a boss round whose cost grows per
route (the block of rounds between two bosses).
"""

from __future__ import annotations

import math

from loot_gen.config import DEFAULT_CONFIG, EngineConfig


def is_boss_round(round_number: int, config: EngineConfig = DEFAULT_CONFIG) -> bool:
    return round_number > 0 and round_number % config.boss_round_interval == 0


def route_index(round_number: int, config: EngineConfig = DEFAULT_CONFIG) -> int:
    """0-based route: rounds 1-5 are route 0, 6-10 route 1, ..."""
    return max(0, (round_number - 1) // config.boss_round_interval)


def normal_round_cost(round_number: int, config: EngineConfig = DEFAULT_CONFIG) -> int:
    """Chip cost of entering normal round *round_number*.

    Examples with the default tiers: round 2 -> 15, round 5 -> 30,
    round 8 -> 50.
    """
    tier = config.normal_cost_tiers[-1]
    for candidate in config.normal_cost_tiers:
        if candidate.max_round is None or round_number <= candidate.max_round:
            tier = candidate
            break

    cost: float = tier.base + tier.per_round * max(0, round_number - tier.start_round)
    start = config.exponential_start_round
    if start is not None and round_number > start:
        cost *= config.normal_exponent ** (round_number - start)

    step = config.normal_cost_step
    return int(math.floor(cost / step) * step)


def boss_round_cost(round_number: int, config: EngineConfig = DEFAULT_CONFIG) -> int:
    """``floor((base + route * per_route * exponent ** route) / step) * step``."""
    route = route_index(round_number, config)
    cost = config.boss_base_cost + route * config.boss_cost_per_route * config.boss_exponent ** route
    step = config.boss_cost_step
    return int(math.floor(cost / step) * step)


def round_entry_cost(round_number: int, config: EngineConfig = DEFAULT_CONFIG) -> int:
    """Cost of entering *round_number*, boss or normal."""
    if is_boss_round(round_number, config):
        return boss_round_cost(round_number, config)
    return normal_round_cost(round_number, config)
