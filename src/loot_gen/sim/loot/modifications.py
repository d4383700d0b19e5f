"""Modification resolver -- size attribute and mods for a freshly rolled thing.

Draw order per call of :func:`apply_modifications` (all from the ``mods``
stream): one draw for the attribute, one draw for the random mod count, one
draw per random mod filled.  Guaranteed mods consume no draws.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Mapping, Sequence

from loot_gen.config import DEFAULT_CONFIG, EngineConfig
from loot_gen.sim.core.game_state import RolledThing
from loot_gen.sim.core.numeric import round_half_up
from loot_gen.sim.core.selection import WeightedEntry, select_by_weight

if TYPE_CHECKING:
    from loot_gen.ir.things import AttributeDefinition, ModDefinition
    from loot_gen.sim.content.registry import ContentRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModificationOptions:
    """Everything the resolver reads besides the catalog.

    Attributes
    ----------
    stream:
        The ``mods`` stream.
    mod_chance_boost:
        ``1 + modification_chance``; scales both the mod count chances and
        every mod weight.
    guaranteed_mods:
        Mod ids added to every roll before the random fill.
    luck:
        Effective luck (snapshot luck plus the bad-luck bonus).
    rarity_multipliers:
        Mod id -> multiplier on that mod's rarity score.
    value_bonus:
        Summed into the mod multiplier.
    owned_perks:
        Perk id -> stacks; gates ``requires_perk`` mods.
    """

    stream: Callable[[], float]
    mod_chance_boost: float = 1.0
    guaranteed_mods: Sequence[str] = ()
    luck: float = 0.0
    rarity_multipliers: Mapping[str, float] = field(default_factory=dict)
    value_bonus: float = 0.0
    owned_perks: Mapping[str, int] = field(default_factory=dict)


def luck_adjusted_rarity(
    rarity: float,
    value: float,
    luck: float,
    config: EngineConfig = DEFAULT_CONFIG,
) -> float:
    """Make good entries (value > 1) more common and bad ones (< 1) rarer.

    The shrinking factor on good entries never goes below
    ``config.luck_rarity_floor``.
    """
    if luck <= 0:
        return rarity
    if value > 1.0:
        factor = max(config.luck_rarity_floor, 1.0 / (1 + luck * config.good_rarity_luck_factor))
        return rarity * factor
    if value < 1.0:
        return rarity * (1 + luck * config.bad_rarity_luck_factor)
    return rarity


def pick_attribute(
    stream: Callable[[], float],
    luck: float = 0.0,
    *,
    registry: ContentRegistry,
    config: EngineConfig = DEFAULT_CONFIG,
) -> AttributeDefinition | None:
    """Pick one size attribute with weight ``100 / max(1, rarity')``."""
    entries = [
        WeightedEntry(
            attribute,
            100.0 / max(1.0, luck_adjusted_rarity(attribute.rarity, attribute.value, luck, config)),
        )
        for attribute in registry.attributes.values()
    ]
    return select_by_weight(entries, stream)


def roll_mod_count(
    stream: Callable[[], float],
    mod_chance_boost: float = 1.0,
    luck: float = 0.0,
    config: EngineConfig = DEFAULT_CONFIG,
) -> int:
    """Draw how many random mods to add: 0, 1 or 2."""
    luck_boost = 1 + luck * config.mod_chance_luck_factor if luck > 0 else 1.0
    p_single = config.single_mod_chance * mod_chance_boost * luck_boost
    p_double = config.double_mod_chance * mod_chance_boost * luck_boost
    r = stream()
    if r < p_single:
        return 1
    if r < p_single + p_double:
        return 2
    return 0


def pick_mods(
    options: ModificationOptions,
    *,
    registry: ContentRegistry,
    config: EngineConfig = DEFAULT_CONFIG,
) -> list[ModDefinition]:
    """Resolve guaranteed mods, then add the random ones on top.

    Random candidates exclude mods already selected, mods whose
    ``requires_perk`` is not owned and mods with ``rarity == 0``.
    """
    selected: list[ModDefinition] = []
    for mod_id in options.guaranteed_mods:
        mod = registry.get_mod(mod_id)
        if mod is None:
            logger.debug("Guaranteed mod %r is not in the registry; ignored", mod_id)
            continue
        if all(m.id != mod.id for m in selected):
            selected.append(mod)

    target = roll_mod_count(options.stream, options.mod_chance_boost, options.luck, config)

    chosen_ids = {m.id for m in selected}
    available = [
        mod for mod in registry.mods.values()
        if mod.rarity != 0
        and mod.id not in chosen_ids
        and (mod.requires_perk is None or options.owned_perks.get(mod.requires_perk, 0) > 0)
    ]

    for _ in range(target):
        if not available:
            break
        entries = []
        for mod in available:
            rarity = mod.rarity * options.rarity_multipliers.get(mod.id, 1.0)
            rarity = luck_adjusted_rarity(rarity, mod.value, options.luck, config)
            entries.append(WeightedEntry(mod, 100.0 / max(0.1, rarity) * options.mod_chance_boost))
        mod = select_by_weight(entries, options.stream)
        if mod is None:
            break
        selected.append(mod)
        available = [m for m in available if m.id != mod.id]

    return selected


def apply_modifications(
    thing: RolledThing,
    options: ModificationOptions,
    *,
    registry: ContentRegistry,
    config: EngineConfig = DEFAULT_CONFIG,
) -> RolledThing:
    """Return a copy of *thing* with an attribute, mods and a new value.

    ``mod_value = attribute.value * max(1, 1 + sum(mod values) + value_bonus)``
    and ``value = round(base_value * mod_value)``.  The clamp keeps a pile of
    bad mods from pushing the value below the attribute alone.
    """
    attribute = pick_attribute(options.stream, options.luck, registry=registry, config=config)
    mods = pick_mods(options, registry=registry, config=config)

    bonus_sum = sum(mod.value for mod in mods) + options.value_bonus
    attribute_value = attribute.value if attribute is not None else 1.0
    mod_value = attribute_value * max(1.0, 1 + bonus_sum)

    return thing.model_copy(
        update={
            "attribute": attribute,
            "mods": mods,
            "mod_value": mod_value,
            "value": round_half_up(thing.base_value * mod_value),
        }
    )


def keep_better_roll(first: RolledThing, second: RolledThing | None) -> RolledThing:
    """Return whichever roll is worth more; ties keep *first*."""
    if second is not None and second.value > first.value:
        return second
    return first
