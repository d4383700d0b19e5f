"""Shop offers -- which perks may be offered and a weighted draw among them.

Availability filters (all must pass):

- no conflicting perk owned,
- every required perk owned,
- every unlock requirement met (``stat_threshold`` against run stats,
  ``item_collected`` against the item history or current inventory),
- not a forged or boss-exclusive perk, not hidden,
- fewer stacks owned than the stack limit,
- the current round inside the perk's round window.

A perk with the ``lock_shop`` special flag empties the shop while owned.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Iterable, Mapping

from loot_gen.config import DEFAULT_CONFIG, EngineConfig
from loot_gen.ir.perks import ItemCollected, PerkDefinition, StatThreshold
from loot_gen.sim.core.selection import WeightedEntry, select_by_weight
from loot_gen.sim.telemetry import RunStats

if TYPE_CHECKING:
    from loot_gen.ir.consumables import ConsumableDefinition
    from loot_gen.sim.content.registry import ContentRegistry
    from loot_gen.sim.core.game_state import RolledThing

logger = logging.getLogger(__name__)

LOCK_SHOP_FLAG = "lock_shop"


def is_unlocked(
    perk: PerkDefinition,
    stats: RunStats,
    round_number: int,
    inventory: Iterable[RolledThing] = (),
) -> bool:
    """True when every unlock requirement of *perk* holds."""
    inventory_ids = {thing.id for thing in inventory}
    for requirement in perk.unlock_requirements:
        if isinstance(requirement, StatThreshold):
            if not requirement.is_met(stats.get_stat(requirement.stat, round_number)):
                return False
        elif isinstance(requirement, ItemCollected):
            if not (stats.has_collected(requirement.item_id) or requirement.item_id in inventory_ids):
                return False
    return True


def is_perk_available(
    perk: PerkDefinition,
    owned_perks: Mapping[str, int],
    round_number: int,
    stats: RunStats | None = None,
    inventory: Iterable[RolledThing] = (),
) -> bool:
    """Whether *perk* may appear in the shop right now."""
    stats = stats if stats is not None else RunStats()
    props = perk.properties

    if perk.source is not None or perk.is_forgeable or props.hidden:
        return False
    if any(owned_perks.get(conflict_id, 0) > 0 for conflict_id in props.conflict):
        return False
    if not all(owned_perks.get(req_id, 0) > 0 for req_id in perk.required_perks):
        return False
    if not is_unlocked(perk, stats, round_number, inventory):
        return False
    if owned_perks.get(perk.id, 0) >= perk.stack_limit:
        return False
    if props.round_min is not None and round_number < props.round_min:
        return False
    if props.round_max is not None and round_number > props.round_max:
        return False
    return True


def shop_weight(perk: PerkDefinition, luck: float, config: EngineConfig = DEFAULT_CONFIG) -> float:
    """Tier weight, boosted by luck for every tier but ``common``."""
    weight = config.shop_tier_weights.get(perk.tier, 100.0)
    if luck > 0 and perk.tier != "common":
        weight *= 1 + luck * config.shop_luck_factor
    return weight


def roll_shop_offers(
    round_number: int,
    stream: Callable[[], float],
    owned_perks: Mapping[str, int],
    *,
    registry: ContentRegistry,
    config: EngineConfig = DEFAULT_CONFIG,
    luck: float = 0.0,
    stats: RunStats | None = None,
    inventory: Iterable[RolledThing] = (),
    count: int | None = None,
) -> list[PerkDefinition]:
    """Draw up to *count* shop offers from the ``shop`` stream.

    A perk stays in the pool until it has been drawn ``shop_limit`` times,
    so subperks such as ``VIRUS`` can fill several slots of one shop.

    Parameters
    ----------
    round_number:
        Current round, for round windows and ``round`` unlocks.
    stream:
        The ``shop`` stream.  One draw per offer.
    owned_perks:
        Perk id -> stacks owned.
    luck:
        Snapshot luck.
    count:
        Number of offers; defaults to ``config.shop_offer_count``.
    """
    count = config.shop_offer_count if count is None else count
    stats = stats if stats is not None else RunStats()
    inventory = list(inventory)

    for perk_id, stacks in owned_perks.items():
        perk = registry.get_perk(perk_id)
        if stacks > 0 and perk is not None and LOCK_SHOP_FLAG in perk.special:
            logger.debug("Shop locked by %r", perk_id)
            return []

    pool = [
        WeightedEntry(perk, shop_weight(perk, luck, config))
        for perk in registry.perks.values()
        if is_perk_available(perk, owned_perks, round_number, stats, inventory)
    ]

    offers: list[PerkDefinition] = []
    picks: dict[str, int] = {}
    while len(offers) < count and pool:
        perk = select_by_weight(pool, stream)
        if perk is None:
            break
        offers.append(perk)
        picks[perk.id] = picks.get(perk.id, 0) + 1
        if picks[perk.id] >= perk.properties.shop_limit:
            pool = [entry for entry in pool if entry.item.id != perk.id]
    return offers


def roll_shop_consumables(
    stream: Callable[[], float],
    *,
    registry: ContentRegistry,
    config: EngineConfig = DEFAULT_CONFIG,
    count: int | None = None,
) -> list[ConsumableDefinition]:
    """Draw *count* consumables uniformly, duplicates allowed."""
    count = config.shop_consumable_count if count is None else count
    catalog = list(registry.consumables.values())
    if not catalog:
        return []
    offers = []
    for _ in range(count):
        index = min(int(stream() * len(catalog)), len(catalog) - 1)
        offers.append(catalog[index])
    return offers
