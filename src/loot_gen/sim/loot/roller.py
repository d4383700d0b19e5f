"""Loot roller -- picks a tier-weighted thing template and prices it.

Tier weights come from the per-round rarity buckets of the registry.  Every
tier in the registry is floored at ``min_tier_weight`` so the supernatural
tiers stay reachable (if only barely) from round 1.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Mapping

from loot_gen.config import DEFAULT_CONFIG, EngineConfig
from loot_gen.sim.core.game_state import RolledThing
from loot_gen.sim.core.numeric import round_half_up
from loot_gen.sim.core.selection import WeightedEntry, select_by_weight

if TYPE_CHECKING:
    from loot_gen.ir.things import ThingTemplate
    from loot_gen.sim.content.registry import ContentRegistry

logger = logging.getLogger(__name__)


def get_round_rarity_weights(
    round_number: int,
    *,
    registry: ContentRegistry,
    config: EngineConfig = DEFAULT_CONFIG,
    apply_floor: bool = True,
) -> dict[str, float]:
    """Return the tier weight table for *round_number*.

    The first bucket whose ``max_round`` is ``None`` or at least
    *round_number* wins.  With *apply_floor* every registered tier gets at
    least ``config.min_tier_weight``; without it only the bucket's own
    entries are returned (the controller boosts those with luck first).
    """
    weights: dict[str, float] = {}
    for bucket in registry.rarity_buckets:
        if bucket.max_round is None or round_number <= bucket.max_round:
            weights = dict(bucket.weights)
            break
    if apply_floor:
        weights = _floor_weights(weights, registry=registry, config=config)
    return weights


def apply_luck_to_weights(
    weights: Mapping[str, float],
    luck: float,
    *,
    registry: ContentRegistry,
) -> dict[str, float]:
    """Boost each present tier by ``1 + luck * tier.luck_boost``.

    Only entries with a positive weight are boosted, so luck never makes an
    absent tier appear.  Non-positive luck returns an unchanged copy.
    """
    adjusted = dict(weights)
    if luck <= 0:
        return adjusted
    for tier_id, weight in weights.items():
        tier = registry.get_tier(tier_id)
        if weight > 0 and tier is not None and tier.luck_boost:
            adjusted[tier_id] = weight * (1 + luck * tier.luck_boost)
    return adjusted


def _floor_weights(
    weights: Mapping[str, float],
    *,
    registry: ContentRegistry,
    config: EngineConfig,
) -> dict[str, float]:
    floored = dict(weights)
    for tier_id in registry.tiers:
        floored[tier_id] = max(floored.get(tier_id, 0.0), config.min_tier_weight)
    return floored


def price_template(template: ThingTemplate, *, registry: ContentRegistry) -> int:
    """``max(0, round((tier.base_value + template.base_value) * rarity_multiplier))``."""
    tier = registry.get_tier(template.tier)
    tier_base = tier.base_value if tier is not None else 0.0
    return max(0, round_half_up((tier_base + template.base_value) * template.rarity_multiplier))


def roll_thing(
    round_number: int,
    stream: Callable[[], float],
    weights_override: Mapping[str, float] | None = None,
    *,
    registry: ContentRegistry,
    config: EngineConfig = DEFAULT_CONFIG,
) -> RolledThing | None:
    """Roll one thing for *round_number*.

    Parameters
    ----------
    round_number:
        Current round; selects the rarity bucket.
    stream:
        The ``loot`` stream.  Exactly one draw is consumed per call.
    weights_override:
        Tier weights to use instead of the round's bucket (e.g. already
        boosted by luck).  The tier floor is applied either way.
    registry:
        Supplies tiers, buckets and templates.

    Returns
    -------
    RolledThing | None
        An unmodified thing (``value == base_value``), or ``None`` when no
        template has a positive weight.
    """
    if weights_override is None:
        weights = get_round_rarity_weights(round_number, registry=registry, config=config)
    else:
        weights = _floor_weights(weights_override, registry=registry, config=config)

    candidates: list[WeightedEntry[ThingTemplate]] = []
    for template in registry.things.values():
        weight = weights.get(template.tier, 0.0) * template.weight
        if weight > 0:
            candidates.append(WeightedEntry(template, weight))

    template = select_by_weight(candidates, stream)
    if template is None:
        logger.warning("No rollable templates for round %d", round_number)
        return None

    value = price_template(template, registry=registry)
    return RolledThing(
        id=template.id,
        name=template.name,
        tier=template.tier,
        value=value,
        base_value=value,
        color=template.color,
    )
