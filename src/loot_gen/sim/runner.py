"""Session runner -- plays whole runs with a greedy policy and collects telemetry.

Provides two entry points:

- **play_greedy_session**: plays one run to completion (or a round limit).
- **BatchRunner**: plays many seeded runs for balance sweeps.

The greedy policy spends every roll, sells everything, buys each shop offer
it can afford in the order offered, forges whatever it can, and takes the
first boss perks on offer.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from loot_gen.config import DEFAULT_CONFIG, EngineConfig
from loot_gen.sim.core.results import ActionError
from loot_gen.sim.run_controller import RoundProgressionController
from loot_gen.sim.telemetry import RoundTelemetry, RunTelemetry

if TYPE_CHECKING:
    from loot_gen.sim.content.registry import ContentRegistry

logger = logging.getLogger(__name__)


def _play_round(ctrl: RoundProgressionController) -> RoundTelemetry:
    telemetry = RoundTelemetry(round=ctrl.round)

    while True:
        result = ctrl.roll()
        if not result:
            break
        telemetry.rolls += 1

    registry = ctrl.registry
    telemetry.inventory_value = ctrl.state.inventory_value
    if ctrl.inventory:
        best = max(ctrl.inventory, key=lambda thing: registry.tier_order(thing.tier))
        telemetry.best_tier = best.tier

    telemetry.chips_earned = ctrl.sell_inventory()
    telemetry.cash_reward = ctrl.complete_round().total_reward

    for perk in ctrl.roll_shop():
        if ctrl.purchase_perk(perk.id):
            telemetry.perks_bought.append(perk.id)
    for perk in registry.list_forgeable_perks():
        if ctrl.can_forge_perk(perk.id) and ctrl.forge_perk(perk.id):
            telemetry.perks_bought.append(perk.id)
    return telemetry


def _take_boss_reward(ctrl: RoundProgressionController) -> None:
    reward = ctrl.pending_boss_reward
    for perk_id in list(reward.perk_options):
        if reward.is_complete:
            break
        ctrl.choose_boss_perk(perk_id)
    ctrl.confirm_boss_reward()


def play_greedy_session(
    registry: ContentRegistry,
    seed: int,
    *,
    max_rounds: int = 30,
    config: EngineConfig = DEFAULT_CONFIG,
) -> RunTelemetry:
    """Play one run with the greedy policy.

    Parameters
    ----------
    registry:
        Registry with every catalog loaded.
    seed:
        Run seed; equal seeds give equal telemetry.
    max_rounds:
        No round past this one is played.
    config:
        Engine tuning constants.

    Returns
    -------
    RunTelemetry
        One :class:`RoundTelemetry` per round played, ``ended_by="cost"``
        when the next entry fee could not be paid.
    """
    ctrl = RoundProgressionController(registry, seed, config=config)
    telemetry = RunTelemetry(seed=seed)

    while ctrl.round <= max_rounds:
        telemetry.rounds.append(_play_round(ctrl))
        result = ctrl.advance_round()
        if result.error is ActionError.INSUFFICIENT_FUNDS:
            telemetry.ended_by = "cost"
            break
        if result.is_boss_reward:
            _take_boss_reward(ctrl)

    telemetry.final_round = ctrl.round
    telemetry.final_cash = ctrl.cash
    telemetry.perks_owned = dict(ctrl.owned_perks)
    logger.debug("Seed %d ended on round %d (%s)", seed, ctrl.round, telemetry.ended_by)
    return telemetry


class BatchRunner:
    """Plays many greedy sessions against one registry."""

    def __init__(self, registry: ContentRegistry, config: EngineConfig = DEFAULT_CONFIG) -> None:
        self.registry = registry
        self.config = config

    def run_batch(
        self,
        n_runs: int,
        base_seed: int = 42,
        max_rounds: int = 30,
    ) -> list[RunTelemetry]:
        """Run *n_runs* sessions seeded ``base_seed``, ``base_seed + 1``, ..."""
        return [
            play_greedy_session(
                self.registry, base_seed + i, max_rounds=max_rounds, config=self.config,
            )
            for i in range(n_runs)
        ]
