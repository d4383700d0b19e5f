"""AttributeAggregator -- folds owned perks into an :class:`AttributesSnapshot`.

Folding order for every owned perk (``count`` = stacks owned):

1. Dynamic hook if one is registered for the perk id, otherwise the perk's
   ``stats`` block (scaled by ``count``) and ``modify`` block.
2. Set membership is counted.
3. ``bonus_trigger`` conditions whose requirement holds apply their block once.
4. ``guaranteed_mod:<id>`` special flags are merged.

Set bonuses are applied after every perk has been seen (each threshold at or
below the set count applies once), then the ordered post rules run.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import TYPE_CHECKING, Any, Mapping

from loot_gen.config import DEFAULT_CONFIG, EngineConfig
from loot_gen.ir.perks import ModifyOp, StatOp, StatOpKind
from loot_gen.sim.perks.rules import (
    DEFAULT_DYNAMIC_PERKS,
    DEFAULT_POST_RULES,
    DynamicPerk,
    PostRule,
    RuleContext,
)
from loot_gen.sim.perks.snapshot import AttributesSnapshot
from loot_gen.sim.telemetry import RunStats

if TYPE_CHECKING:
    from loot_gen.sim.content.registry import ContentRegistry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Operator table
# ---------------------------------------------------------------------------

def apply_stat_op(current: float | None, op: StatOp, count: int = 1) -> float | None:
    """Fold *op* into *current* ``count`` times.

    ``add``/``sub`` scale linearly, ``multi``/``div`` geometrically, ``set``
    overwrites.  A missing current value starts at ``0`` for additive
    operations and ``1`` for multiplicative ones.  ``count <= 0`` and
    division by zero leave the value unchanged.
    """
    x = op.value
    if op.kind is StatOpKind.ADD:
        return (current or 0.0) + x * count
    if op.kind is StatOpKind.SUB:
        return (current or 0.0) - x * count
    if count <= 0:
        return current
    if op.kind is StatOpKind.SET:
        return x
    base = current if current is not None else 1.0
    if op.kind is StatOpKind.MULTI:
        return base * x ** count
    if op.kind is StatOpKind.DIV:
        if x == 0:
            return current
        return base / x ** count
    raise ValueError(f"unknown stat operation {op.kind!r}")


def apply_stat_block(
    values: dict[str, Any],
    block: Mapping[str, StatOp],
    count: int = 1,
) -> None:
    """Apply every operation of *block* to the working *values* in place."""
    for stat, op in block.items():
        values[stat] = apply_stat_op(values.get(stat), op, count)


def apply_modify_op(
    modifiers: dict[str, float],
    guaranteed: list[str],
    mod_id: str,
    op: ModifyOp,
    count: int = 1,
) -> None:
    """Apply one ``modify`` entry to the rarity multiplier map."""
    if count <= 0:
        return
    if op.guaranteed and mod_id not in guaranteed:
        guaranteed.append(mod_id)

    if op.set is None and op.value is None and op.multi is None and op.div is None:
        return

    current = modifiers.get(mod_id, 1.0)
    if op.set is not None:
        current = op.set
    if op.value is not None:
        current += op.value * count
    if op.multi is not None:
        current *= op.multi ** count
    if op.div is not None and op.div != 0:
        current /= op.div ** count
    modifiers[mod_id] = current


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------

class AttributeAggregator:
    """Builds attribute snapshots from owned perks.

    Parameters
    ----------
    registry:
        Content registry used to resolve perk ids.
    config:
        Engine config; supplies the default interest cap and base rolls.
    dynamic_perks:
        Perk id -> hook contributing computed deltas.  Defaults to
        :data:`~loot_gen.sim.perks.rules.DEFAULT_DYNAMIC_PERKS`.
    post_rules:
        Ordered ``(perk_id, rule)`` pairs applied to the finished snapshot
        when the perk is owned.  Defaults to
        :data:`~loot_gen.sim.perks.rules.DEFAULT_POST_RULES`.
    """

    def __init__(
        self,
        registry: ContentRegistry,
        config: EngineConfig = DEFAULT_CONFIG,
        *,
        dynamic_perks: Mapping[str, DynamicPerk] | None = None,
        post_rules: list[tuple[str, PostRule]] | None = None,
    ) -> None:
        self.registry = registry
        self.config = config
        self.dynamic_perks = dict(DEFAULT_DYNAMIC_PERKS if dynamic_perks is None else dynamic_perks)
        self.post_rules = list(DEFAULT_POST_RULES if post_rules is None else post_rules)

    def get_attributes(
        self,
        owned_perks: Mapping[str, int],
        round_number: int,
        stats: RunStats | None = None,
    ) -> AttributesSnapshot:
        """Fold *owned_perks* into a fresh snapshot.

        Parameters
        ----------
        owned_perks:
            Perk id -> stack count.  Ids missing from the registry are
            logged and skipped.
        round_number:
            Current round; read by ``round`` stat thresholds.
        stats:
            Run counters read by bonus triggers and dynamic perks.

        Returns
        -------
        AttributesSnapshot
            The aggregated stats.  The result depends only on the arguments.
        """
        stats = stats if stats is not None else RunStats()
        ctx = RuleContext(
            owned_perks=owned_perks,
            round=round_number,
            stats=stats,
            base_rolls=self.config.base_rolls,
        )

        values: dict[str, Any] = {
            name: AttributesSnapshot.model_fields[name].default
            for name in AttributesSnapshot.scalar_fields()
        }
        values["max_interest_stacks"] = float(self.config.default_max_interest_stacks)
        modifiers: dict[str, float] = {}
        guaranteed: list[str] = []

        set_counts: dict[str, int] = defaultdict(int)
        set_tables: dict[str, dict[int, dict[str, StatOp]]] = {}

        for perk_id, count in owned_perks.items():
            if count <= 0:
                continue
            perk = self.registry.get_perk(perk_id)
            if perk is None:
                logger.warning("Owned perk %r is not in the registry; skipped", perk_id)
                continue

            hook = self.dynamic_perks.get(perk_id)
            if hook is not None:
                hook(values, count, ctx)
            else:
                apply_stat_block(values, perk.stats, count)
                for mod_id, op in perk.modify.items():
                    apply_modify_op(modifiers, guaranteed, mod_id, op, count)

            set_name = perk.properties.set
            if set_name is not None:
                set_counts[set_name] += 1
                if perk.properties.set_bonuses:
                    set_tables.setdefault(set_name, perk.properties.set_bonuses)

            for trigger in perk.bonus_triggers:
                requirement = trigger.requirement
                if requirement.is_met(stats.get_stat(requirement.stat, round_number)):
                    apply_stat_block(values, trigger.bonus)

            for mod_id in perk.guaranteed_mod_flags:
                if mod_id not in guaranteed:
                    guaranteed.append(mod_id)

        for set_name, table in set_tables.items():
            owned_in_set = set_counts[set_name]
            for threshold in sorted(table):
                if threshold <= owned_in_set:
                    logger.debug("Set %r bonus at %d pieces applies", set_name, threshold)
                    apply_stat_block(values, table[threshold])

        snapshot = self._build_snapshot(values, modifiers, guaranteed)

        for perk_id, rule in self.post_rules:
            if owned_perks.get(perk_id, 0) > 0:
                snapshot = rule(snapshot, ctx)
        return snapshot

    @staticmethod
    def _build_snapshot(
        values: dict[str, Any],
        modifiers: dict[str, float],
        guaranteed: list[str],
    ) -> AttributesSnapshot:
        known = set(AttributesSnapshot.scalar_fields())
        fields = {name: value for name, value in values.items() if name in known}
        extra = {name: value for name, value in values.items() if name not in known}
        return AttributesSnapshot(
            **fields,
            modifiers=modifiers,
            guaranteed_mods=guaranteed,
            extra=extra,
        )
