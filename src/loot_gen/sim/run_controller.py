"""Round progression controller -- owns the run and exposes the player actions.

The controller holds the owned perks, the currency ledger, the round state
and the run stats, and wires them to the roller, the modification resolver
and the attribute aggregator.  Every player action checks first and mutates
second: a rejected action returns a failed :class:`ActionResult` and leaves
the run exactly as it was.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import TYPE_CHECKING

from loot_gen.config import DEFAULT_CONFIG, EngineConfig
from loot_gen.ir.consumables import ConsumableDefinition, ConsumableEffect
from loot_gen.sim.core.game_state import BossReward, RolledThing, RoundState
from loot_gen.sim.core.numeric import linear_transform, round_half_up
from loot_gen.sim.core.results import ActionError, ActionResult
from loot_gen.sim.core.rng import RngStreamFactory
from loot_gen.sim.economy.costs import is_boss_round, round_entry_cost
from loot_gen.sim.economy.currency import CurrencyLedger, RewardBreakdown
from loot_gen.sim.economy.shop import roll_shop_consumables, roll_shop_offers
from loot_gen.sim.loot.modifications import (
    ModificationOptions,
    apply_modifications,
    keep_better_roll,
)
from loot_gen.sim.loot.roller import (
    apply_luck_to_weights,
    get_round_rarity_weights,
    roll_thing,
)
from loot_gen.sim.perks.aggregator import AttributeAggregator
from loot_gen.sim.perks.rules import CHIP_EATER, NULLIFICATION
from loot_gen.sim.perks.snapshot import AttributesSnapshot
from loot_gen.sim.telemetry import RunStats

if TYPE_CHECKING:
    from loot_gen.ir.perks import PerkDefinition
    from loot_gen.sim.content.registry import ContentRegistry

logger = logging.getLogger(__name__)

AUTO_ROLL_COMMON_FLAG = "auto_roll_common"


class RoundProgressionController:
    """Drives a single run of the loot economy.

    Parameters
    ----------
    registry:
        The content registry with every catalog loaded.
    seed:
        Run seed.  ``None`` seeds from OS entropy and flags the run as
        non-deterministic.
    config:
        Engine tuning constants.
    streams:
        Pre-built stream factory; overrides *seed* when given.
    """

    def __init__(
        self,
        registry: ContentRegistry,
        seed: int | None = None,
        *,
        config: EngineConfig = DEFAULT_CONFIG,
        streams: RngStreamFactory | None = None,
    ) -> None:
        self.registry = registry
        self.config = config
        if streams is None:
            streams = RngStreamFactory(seed) if seed is not None else RngStreamFactory.unseeded()
        self.streams = streams

        self.stats = RunStats()
        self.ledger = CurrencyLedger(config, self.stats)
        self.state = RoundState()
        self.owned_perks: dict[str, int] = {}
        self.aggregator = AttributeAggregator(registry, config)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def round(self) -> int:
        return self.state.round

    @property
    def cash(self) -> int:
        return self.ledger.cash

    @property
    def chips(self) -> int:
        return self.ledger.chips

    @property
    def inventory(self) -> list[RolledThing]:
        return self.state.inventory

    @property
    def pending_boss_reward(self) -> BossReward | None:
        return self.state.pending_boss_reward

    def get_attributes(self) -> AttributesSnapshot:
        """Snapshot of every owned perk for the current round."""
        return self.aggregator.get_attributes(self.owned_perks, self.state.round, self.stats)

    def available_rolls(self, snapshot: AttributesSnapshot | None = None) -> int:
        snapshot = snapshot if snapshot is not None else self.get_attributes()
        return max(0, self.config.base_rolls + math.floor(snapshot.rolls))

    def remaining_rolls(self) -> int:
        return max(0, self.available_rolls() - self.state.rolls_used)

    def entry_cost(self) -> int:
        """Chips needed to enter the next round."""
        return round_entry_cost(self.state.round + 1, self.config)

    def has_reached_round_goal(self) -> bool:
        """True when selling the inventory now would cover the next entry cost."""
        earned = self.ledger.chips_for_value(self.state.inventory_value, self.get_attributes())
        return self.ledger.chips + earned >= self.entry_cost()

    def owns(self, perk_id: str) -> bool:
        return self.owned_perks.get(perk_id, 0) > 0

    # ------------------------------------------------------------------
    # Rolling
    # ------------------------------------------------------------------

    def roll(self) -> ActionResult:
        """Spend one roll and add the resulting thing to the inventory.

        With an ``auto_roll_common`` perk a common result is rerolled for
        free, up to ``config.auto_roll_max_rerolls`` times.
        """
        if self.state.pending_boss_reward is not None:
            return ActionResult.fail(ActionError.INVALID_STATE, "Pick your boss rewards first")

        snapshot = self.get_attributes()
        if self.state.rolls_used >= self.available_rolls(snapshot):
            return ActionResult.fail(ActionError.INVALID_STATE, "No rolls left this round")

        thing = self._do_one_roll(snapshot)
        if thing is None:
            return ActionResult.fail(ActionError.INVALID_STATE, "Nothing can be rolled")

        if self._has_special(AUTO_ROLL_COMMON_FLAG):
            rerolls = 0
            while thing.tier == "common" and rerolls < self.config.auto_roll_max_rerolls:
                rerolled = self._do_one_roll(snapshot)
                if rerolled is None:
                    break
                thing = rerolled
                rerolls += 1

        self.state.rolls_used += 1
        self.state.inventory.append(thing)
        self.stats.total_rolls_used += 1
        self.stats.total_items_rolled += 1
        self.stats.item_history.append(thing.id)
        logger.debug("Round %d rolled %s (%s) worth %d", self.state.round, thing.id, thing.tier, thing.value)
        return ActionResult.ok(f"Rolled {thing.display_name}", thing=thing)

    def _do_one_roll(self, snapshot: AttributesSnapshot) -> RolledThing | None:
        luck = snapshot.luck
        effective_luck = luck + self.state.bad_luck_streak // self.config.bad_luck_divisor

        base_weights = get_round_rarity_weights(
            self.state.round, registry=self.registry, config=self.config, apply_floor=False,
        )
        weights = apply_luck_to_weights(base_weights, effective_luck, registry=self.registry)

        loot = self.streams.stream("loot")
        thing = roll_thing(
            self.state.round, loot, weights, registry=self.registry, config=self.config,
        )
        if thing is None:
            return None

        if self.registry.tier_order(thing.tier) >= self.config.bad_luck_reset_order:
            self.state.bad_luck_streak = 0
        else:
            self.state.bad_luck_streak += 1

        options = ModificationOptions(
            stream=self.streams.stream("mods"),
            mod_chance_boost=1.0 + snapshot.modification_chance,
            guaranteed_mods=tuple(snapshot.guaranteed_mods),
            luck=effective_luck,
            rarity_multipliers=dict(snapshot.modifiers),
            value_bonus=snapshot.value_bonus,
            owned_perks=dict(self.owned_perks),
        )
        thing = apply_modifications(thing, options, registry=self.registry, config=self.config)

        # Lucky extra roll: keep whichever of the two is worth more.
        if self.streams.stream("luck")() < luck * self.config.lucky_roll_chance_per_luck:
            second = roll_thing(
                self.state.round, loot, weights, registry=self.registry, config=self.config,
            )
            if second is not None:
                second = apply_modifications(second, options, registry=self.registry, config=self.config)
                logger.debug("Lucky roll: %s (%d) vs %s (%d)", thing.id, thing.value, second.id, second.value)
            thing = keep_better_roll(thing, second)

        value = linear_transform(
            thing.value,
            multi=snapshot.multi_value,
            add=snapshot.add_value,
            subtract=snapshot.subtract_value,
            divide=snapshot.divide_value,
            override=snapshot.set_value,
        )
        return thing.model_copy(update={"value": value})

    # ------------------------------------------------------------------
    # Round lifecycle
    # ------------------------------------------------------------------

    def start_round(self) -> None:
        """Reset round-local state; cash, perks and the bad-luck streak persist."""
        self.state.rolls_used = 0
        self.state.inventory = []
        self.state.completed = False
        self.ledger.reset_chips()
        if self.owns(NULLIFICATION):
            self.stats.perk_progress[NULLIFICATION] = self.stats.perk_progress.get(NULLIFICATION, 0.0) + 1
        logger.debug("Round %d started", self.state.round)

    def sell_inventory(self) -> int:
        """Sell everything rolled this round for chips; returns the chips earned."""
        value = self.state.inventory_value
        earned = self.ledger.chips_for_value(value, self.get_attributes())
        self.ledger.add_chips(earned)
        self.state.inventory = []
        logger.debug("Sold inventory worth %d for %d chips", value, earned)
        return earned

    def complete_round(self) -> RewardBreakdown:
        """Credit end-of-round chips and the cash reward.

        Pays at most once per round and never while a boss reward is
        pending; a refused call returns a zero breakdown with
        ``credited=False``.
        """
        if self.state.completed or self.state.pending_boss_reward is not None:
            logger.debug("Round %d reward refused", self.state.round)
            return RewardBreakdown(0, 0, 0, 0, self.ledger.cash, credited=False)

        snapshot = self.get_attributes()
        chips_bonus = max(0, round_half_up(snapshot.chips_end_round))
        if chips_bonus > 0:
            self.ledger.add_chips(chips_bonus)

        breakdown = self.ledger.calculate_round_reward(snapshot)
        self.ledger.add_cash(breakdown.total_reward)
        self.state.completed = True
        logger.debug(
            "Round %d complete: +%d cash (%d base, %d interest)",
            self.state.round, breakdown.total_reward, breakdown.base_reward, breakdown.interest_reward,
        )
        return replace(breakdown, chips_bonus=chips_bonus, total_cash=self.ledger.cash)

    def advance_round(self) -> ActionResult:
        """Pay the entry cost in chips and move to the next round.

        Entering a boss round opens a boss reward instead: the result has
        ``is_boss_reward=True`` and the picks must be made with
        :meth:`choose_boss_perk` before :meth:`confirm_boss_reward`.
        """
        if self.state.pending_boss_reward is not None:
            return ActionResult.fail(ActionError.INVALID_STATE, "Boss reward still pending")

        cost = self.entry_cost()
        if not self.ledger.spend_chips(cost):
            return ActionResult.fail(
                ActionError.INSUFFICIENT_FUNDS,
                f"Not enough chips: need {cost}, have {self.ledger.chips}",
            )

        self.state.round += 1
        if is_boss_round(self.state.round, self.config):
            boss = self.registry.get_boss_for_round(self.state.round)
            if boss is not None:
                options = [
                    perk_id for perk_id in boss.perk_ids
                    if not self.owns(perk_id) and self.registry.get_perk(perk_id) is not None
                ]
                self.streams.stream("boss").shuffle(options)
                self.state.pending_boss_reward = BossReward(
                    boss_id=boss.id,
                    perk_options=options[: self.config.boss_offer_count],
                    pick_count=self.config.boss_pick_count,
                )
                self.start_round()
                logger.debug("Boss %r defeated on round %d", boss.id, self.state.round)
                return ActionResult.ok(f"{boss.name} defeated", is_boss_reward=True)

        self.start_round()
        return ActionResult.ok(f"Advanced to round {self.state.round}")

    def choose_boss_perk(self, perk_id: str) -> ActionResult:
        """Take one of the offered boss perks."""
        reward = self.state.pending_boss_reward
        if reward is None:
            return ActionResult.fail(ActionError.INVALID_STATE, "No boss reward pending")
        if perk_id not in reward.perk_options:
            return ActionResult.fail(ActionError.NOT_FOUND, f"{perk_id!r} is not on offer")
        if self.owns(perk_id):
            return ActionResult.fail(ActionError.ALREADY_OWNED, f"{perk_id!r} already owned")
        if reward.is_complete:
            return ActionResult.fail(ActionError.INVALID_STATE, "All boss picks already made")

        self.owned_perks[perk_id] = 1
        reward.picked.append(perk_id)
        self._clamp_rolls_used()
        return ActionResult.ok(f"Picked {perk_id}")

    def confirm_boss_reward(self) -> ActionResult:
        """Close a fully picked boss reward and start the following round."""
        reward = self.state.pending_boss_reward
        if reward is None:
            return ActionResult.fail(ActionError.INVALID_STATE, "No boss reward pending")
        if not reward.is_complete:
            return ActionResult.fail(
                ActionError.INVALID_STATE, f"{reward.remaining_picks} boss pick(s) remaining",
            )
        self.state.pending_boss_reward = None
        self.state.round += 1
        self.start_round()
        return ActionResult.ok(f"Advanced to round {self.state.round}")

    # ------------------------------------------------------------------
    # Perks
    # ------------------------------------------------------------------

    def purchase_perk(self, perk_id: str) -> ActionResult:
        """Buy one stack of a shop perk with cash."""
        perk = self.registry.get_perk(perk_id)
        if perk is None:
            return ActionResult.fail(ActionError.NOT_FOUND, f"Unknown perk {perk_id!r}")
        if perk.is_forgeable:
            return ActionResult.fail(ActionError.INVALID_STATE, f"{perk.name} must be forged")
        if perk.source is not None:
            return ActionResult.fail(ActionError.INVALID_STATE, f"{perk.name} is a boss reward")

        owned = self.owned_perks.get(perk_id, 0)
        if owned > 0 and perk.stack_limit == 1:
            return ActionResult.fail(ActionError.ALREADY_OWNED, f"{perk.name} already owned")
        if owned >= perk.stack_limit:
            return ActionResult.fail(
                ActionError.STACK_LIMIT_REACHED, f"Max stacks reached ({perk.stack_limit})",
            )

        blocked = self._blocked_by(perk)
        if blocked is not None:
            return blocked

        missing = [req for req in perk.required_perks if not self.owns(req)]
        if missing:
            return ActionResult.fail(ActionError.MISSING_REQUIREMENT, f"Requires {', '.join(missing)}")

        if not self.ledger.can_afford(perk.cost):
            return ActionResult.fail(
                ActionError.INSUFFICIENT_FUNDS,
                f"Not enough cash: need {perk.cost}, have {self.ledger.cash}",
            )

        for overwritten in perk.properties.overwrite:
            self.owned_perks.pop(overwritten, None)
        self.ledger.spend_cash(perk.cost)
        if perk_id == NULLIFICATION:
            self.owned_perks.clear()
        self.owned_perks[perk_id] = self.owned_perks.get(perk_id, 0) + 1
        self._anchor_dynamic_perk(perk_id)
        self._clamp_rolls_used()
        logger.debug("Purchased %s (stacks=%d)", perk_id, self.owned_perks[perk_id])
        return ActionResult.ok(f"Purchased {perk.name}")

    def can_forge_perk(self, perk_id: str) -> ActionResult:
        """Check whether *perk_id* could be forged right now, without forging."""
        perk = self.registry.get_perk(perk_id)
        if perk is None:
            return ActionResult.fail(ActionError.NOT_FOUND, f"Unknown perk {perk_id!r}")
        recipe = perk.forging
        if recipe is None:
            return ActionResult.fail(ActionError.INVALID_STATE, f"{perk.name} cannot be forged")
        if self.owns(NULLIFICATION):
            return ActionResult.fail(ActionError.CONFLICT, "NULLIFICATI0N prevents forging")
        if self.owns(perk_id):
            return ActionResult.fail(ActionError.ALREADY_OWNED, f"{perk.name} already owned")
        if not self.ledger.can_afford(recipe.cash):
            return ActionResult.fail(
                ActionError.INSUFFICIENT_FUNDS,
                f"Forging needs {recipe.cash} cash, have {self.ledger.cash}",
            )
        missing = [req for req in recipe.recipe if not self.owns(req)]
        if missing:
            return ActionResult.fail(ActionError.MISSING_REQUIREMENT, f"Missing {', '.join(missing)}")
        return ActionResult.ok(f"{perk.name} can be forged")

    def forge_perk(self, perk_id: str) -> ActionResult:
        """Consume the recipe perks and cash to gain *perk_id*."""
        check = self.can_forge_perk(perk_id)
        if not check:
            return check

        perk = self.registry.get_perk(perk_id)
        recipe = perk.forging
        self.ledger.spend_cash(recipe.cash)
        for ingredient in recipe.recipe:
            self.owned_perks.pop(ingredient, None)
        self.owned_perks[perk_id] = 1
        self._anchor_dynamic_perk(perk_id)
        self._clamp_rolls_used()
        logger.debug("Forged %s from %s", perk_id, recipe.recipe)
        return ActionResult.ok(f"Forged {perk.name}")

    def roll_shop(self, count: int | None = None) -> list[PerkDefinition]:
        """Draw shop offers for the current round from the ``shop`` stream."""
        return roll_shop_offers(
            self.state.round,
            self.streams.stream("shop"),
            self.owned_perks,
            registry=self.registry,
            config=self.config,
            luck=self.get_attributes().luck,
            stats=self.stats,
            inventory=self.state.inventory,
            count=count,
        )

    def _blocked_by(self, perk: PerkDefinition) -> ActionResult | None:
        if self.owns(NULLIFICATION):
            return ActionResult.fail(ActionError.CONFLICT, "NULLIFICATI0N prevents further purchases")
        for conflict in perk.properties.conflict:
            if self.owns(conflict):
                return ActionResult.fail(ActionError.CONFLICT, f"Conflicts with {conflict}")
        return None

    def _anchor_dynamic_perk(self, perk_id: str) -> None:
        if perk_id == CHIP_EATER:
            self.stats.perk_progress[CHIP_EATER] = float(self.stats.total_chips_earned)
        elif perk_id == NULLIFICATION:
            self.stats.perk_progress[NULLIFICATION] = 0.0

    def _clamp_rolls_used(self) -> None:
        # Owned perks changed; rolls_used may not exceed the new allowance.
        self.state.rolls_used = min(self.state.rolls_used, self.available_rolls())

    def _has_special(self, flag: str) -> bool:
        for perk_id, count in self.owned_perks.items():
            perk = self.registry.get_perk(perk_id)
            if count > 0 and perk is not None and flag in perk.special:
                return True
        return False

    # ------------------------------------------------------------------
    # Consumables
    # ------------------------------------------------------------------

    def add_consumable(self, consumable: ConsumableDefinition) -> ActionResult:
        """Put *consumable* in a free slot."""
        if len(self.state.consumables) >= self.config.consumable_slots:
            return ActionResult.fail(ActionError.INVALID_STATE, "Consumable slots full")
        self.state.consumables.append(consumable)
        return ActionResult.ok(f"Added {consumable.name}")

    def buy_consumable(self, consumable_id: str) -> ActionResult:
        """Pay cash for a catalog consumable and store it."""
        consumable = self.registry.get_consumable(consumable_id)
        if consumable is None:
            return ActionResult.fail(ActionError.NOT_FOUND, f"Unknown consumable {consumable_id!r}")
        if len(self.state.consumables) >= self.config.consumable_slots:
            return ActionResult.fail(ActionError.INVALID_STATE, "Consumable slots full")
        if not self.ledger.spend_cash(consumable.cost):
            return ActionResult.fail(
                ActionError.INSUFFICIENT_FUNDS,
                f"Not enough cash: need {consumable.cost}, have {self.ledger.cash}",
            )
        return self.add_consumable(consumable)

    def roll_consumable_shop(self, count: int | None = None) -> list[ConsumableDefinition]:
        return roll_shop_consumables(
            self.streams.stream("shop"), registry=self.registry, config=self.config, count=count,
        )

    def use_consumable(self, index: int) -> ActionResult:
        """Use and remove the consumable in slot *index*."""
        if index < 0 or index >= len(self.state.consumables):
            return ActionResult.fail(ActionError.NOT_FOUND, f"No consumable in slot {index}")

        consumable = self.state.consumables.pop(index)
        if consumable.effect is ConsumableEffect.ROLLS:
            self.state.rolls_used = max(0, self.state.rolls_used - consumable.value)
        elif consumable.effect is ConsumableEffect.CASH:
            self.ledger.add_cash(consumable.value)
        elif consumable.effect is ConsumableEffect.INTEREST:
            self.ledger.add_interest_stacks(consumable.value)
        self.stats.consumables_used += 1
        return ActionResult.ok(f"Used {consumable.name}")
