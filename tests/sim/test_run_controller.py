"""Tests for the round progression controller."""

import pytest

from loot_gen.config import EngineConfig
from loot_gen.ir.perks import PerkDefinition, StatOp, StatOpKind
from loot_gen.sim.core.results import ActionError
from loot_gen.sim.run_controller import RoundProgressionController


def _make_controller(registry, seed: int = 42, cash: int | None = None, **config):
    ctrl = RoundProgressionController(registry, seed, config=EngineConfig(**config))
    if cash is not None:
        ctrl.ledger.cash = cash
    return ctrl


# ---------------------------------------------------------------------------
# Initial state and rolling
# ---------------------------------------------------------------------------

class TestInitialState:
    def test_fresh_run(self, registry):
        ctrl = _make_controller(registry)
        assert ctrl.round == 1
        assert ctrl.cash == 4
        assert ctrl.chips == 0
        assert ctrl.inventory == []
        assert ctrl.remaining_rolls() == 3
        assert ctrl.entry_cost() == 15
        assert ctrl.pending_boss_reward is None

    def test_round_goal(self, registry):
        ctrl = _make_controller(registry)
        assert not ctrl.has_reached_round_goal()
        ctrl.ledger.add_chips(15)
        assert ctrl.has_reached_round_goal()


class TestRolling:
    def test_rolls_exhaust(self, registry):
        ctrl = _make_controller(registry)
        for _ in range(3):
            result = ctrl.roll()
            assert result
            assert result.thing is ctrl.inventory[-1]
        result = ctrl.roll()
        assert not result
        assert result.error is ActionError.INVALID_STATE
        assert len(ctrl.inventory) == 3
        assert ctrl.remaining_rolls() == 0

    def test_roll_updates_stats(self, registry):
        ctrl = _make_controller(registry)
        ctrl.roll()
        ctrl.roll()
        assert ctrl.stats.total_rolls_used == 2
        assert ctrl.stats.total_items_rolled == 2
        assert ctrl.stats.item_history == [thing.id for thing in ctrl.inventory]

    def test_seed_reproducible(self, registry):
        def play():
            ctrl = _make_controller(registry, seed=42)
            return [ctrl.roll().thing.model_dump() for _ in range(3)]

        assert play() == play()

    def test_seeds_diverge(self, registry):
        def play(seed):
            ctrl = _make_controller(registry, seed=seed, cash=0)
            ctrl.owned_perks["old_tire"] = 30
            return [ctrl.roll().thing.value for _ in range(20)]

        assert play(1) != play(2)

    def test_value_post_process(self, fresh_registry):
        perk = PerkDefinition(
            id="flat_value", name="Flat", stats={"set_value": StatOp(kind=StatOpKind.SET, value=42)}
        )
        fresh_registry.perks[perk.id] = perk
        ctrl = _make_controller(fresh_registry)
        ctrl.owned_perks["flat_value"] = 1
        assert ctrl.roll().thing.value == 42

    def test_auto_roll_common(self, registry):
        ctrl = _make_controller(registry, seed=3)
        ctrl.owned_perks.update({"auto_roll_common": 1, "old_tire": 50})
        assert ctrl.remaining_rolls() == 53
        while ctrl.roll():
            pass
        assert len(ctrl.inventory) == 53
        commons = sum(1 for thing in ctrl.inventory if thing.tier == "common")
        assert commons < 26

    def test_transcendence_leaves_one_roll(self, registry):
        ctrl = _make_controller(registry)
        ctrl.owned_perks["transcendence"] = 1
        assert ctrl.available_rolls() == 1
        assert ctrl.get_attributes().luck == 2


# ---------------------------------------------------------------------------
# Round lifecycle
# ---------------------------------------------------------------------------

class TestRoundLifecycle:
    def test_sell_inventory(self, registry):
        ctrl = _make_controller(registry)
        for _ in range(3):
            ctrl.roll()
        value = sum(thing.value for thing in ctrl.inventory)
        assert ctrl.sell_inventory() == value
        assert ctrl.chips == value
        assert ctrl.inventory == []
        assert ctrl.sell_inventory() == 0

    def test_complete_round(self, registry):
        ctrl = _make_controller(registry, cash=10)
        reward = ctrl.complete_round()
        assert reward.base_reward == 5
        assert reward.interest_reward == 2
        assert reward.total_reward == 7
        assert reward.total_cash == 17
        assert reward.chips_bonus == 0
        assert ctrl.cash == 17

    def test_complete_round_end_chips(self, registry):
        ctrl = _make_controller(registry)
        ctrl.owned_perks["interest_rate_2"] = 2
        assert ctrl.complete_round().chips_bonus == 6
        assert ctrl.chips == 6

    def test_complete_round_pays_once(self, registry):
        ctrl = _make_controller(registry, cash=10)
        assert ctrl.complete_round().total_reward == 7
        repeat = ctrl.complete_round()
        assert not repeat.credited
        assert repeat.total_reward == 0
        assert repeat.total_cash == 17
        assert ctrl.cash == 17

    def test_next_round_pays_again(self, registry):
        ctrl = _make_controller(registry, cash=10)
        ctrl.complete_round()
        ctrl.ledger.add_chips(15)
        assert ctrl.advance_round()
        assert ctrl.complete_round().credited
        assert ctrl.cash == 17 + 8

    def test_advance_without_chips_fails(self, registry):
        ctrl = _make_controller(registry)
        result = ctrl.advance_round()
        assert result.error is ActionError.INSUFFICIENT_FUNDS
        assert ctrl.round == 1

    def test_advance_resets_round(self, registry):
        ctrl = _make_controller(registry)
        ctrl.roll()
        ctrl.ledger.add_chips(20)
        result = ctrl.advance_round()
        assert result
        assert not result.is_boss_reward
        assert ctrl.round == 2
        assert ctrl.chips == 0
        assert ctrl.inventory == []
        assert ctrl.remaining_rolls() == 3

    def test_bad_luck_streak_persists(self, registry):
        ctrl = _make_controller(registry)
        ctrl.state.bad_luck_streak = 3
        ctrl.start_round()
        assert ctrl.state.bad_luck_streak == 3


class TestBossReward:
    def _enter_boss(self, registry):
        ctrl = _make_controller(registry)
        ctrl.state.round = 4
        ctrl.ledger.add_chips(50)
        result = ctrl.advance_round()
        assert result
        assert result.is_boss_reward
        return ctrl

    def test_boss_offer(self, registry):
        ctrl = self._enter_boss(registry)
        reward = ctrl.pending_boss_reward
        assert ctrl.round == 5
        assert reward.boss_id == "boss1"
        assert sorted(reward.perk_options) == sorted(registry.get_boss("boss1").perk_ids)
        assert reward.pick_count == 3

    def test_actions_blocked_while_pending(self, registry):
        ctrl = self._enter_boss(registry)
        assert ctrl.roll().error is ActionError.INVALID_STATE
        assert ctrl.advance_round().error is ActionError.INVALID_STATE
        assert ctrl.confirm_boss_reward().error is ActionError.INVALID_STATE

    def test_reward_refused_while_pending(self, registry):
        ctrl = self._enter_boss(registry)
        cash = ctrl.cash
        assert not ctrl.complete_round().credited
        assert ctrl.cash == cash

    def test_pick_flow(self, registry):
        ctrl = self._enter_boss(registry)
        options = list(ctrl.pending_boss_reward.perk_options)
        assert ctrl.choose_boss_perk("nazar").error is ActionError.NOT_FOUND
        for perk_id in options[:3]:
            assert ctrl.choose_boss_perk(perk_id)
        assert ctrl.choose_boss_perk(options[0]).error is ActionError.ALREADY_OWNED
        assert ctrl.choose_boss_perk(options[3]).error is ActionError.INVALID_STATE

        assert ctrl.confirm_boss_reward()
        assert ctrl.round == 6
        assert ctrl.pending_boss_reward is None
        assert all(ctrl.owns(perk_id) for perk_id in options[:3])

    def test_no_reward_pending(self, registry):
        ctrl = _make_controller(registry)
        assert ctrl.choose_boss_perk("gatekeeper_chips").error is ActionError.INVALID_STATE
        assert ctrl.confirm_boss_reward().error is ActionError.INVALID_STATE

    def test_owned_boss_perks_not_offered(self, registry):
        ctrl = _make_controller(registry)
        ctrl.owned_perks["gatekeeper_chips"] = 1
        ctrl.state.round = 4
        ctrl.ledger.add_chips(50)
        ctrl.advance_round()
        assert "gatekeeper_chips" not in ctrl.pending_boss_reward.perk_options


# ---------------------------------------------------------------------------
# Perks
# ---------------------------------------------------------------------------

class TestPurchasePerk:
    def test_success(self, registry):
        ctrl = _make_controller(registry)
        assert ctrl.purchase_perk("nazar")
        assert ctrl.cash == 2
        assert ctrl.owned_perks == {"nazar": 1}
        assert ctrl.get_attributes().luck == 1

    def test_insufficient_cash_changes_nothing(self, fresh_registry):
        fresh_registry.perks["pricey"] = PerkDefinition(id="pricey", name="Pricey", cost=10)
        ctrl = _make_controller(fresh_registry, cash=5)
        result = ctrl.purchase_perk("pricey")
        assert result.error is ActionError.INSUFFICIENT_FUNDS
        assert ctrl.cash == 5
        assert ctrl.owned_perks == {}

    @pytest.mark.parametrize(
        "perk_id, error",
        [
            ("no_such_perk", ActionError.NOT_FOUND),
            ("lucky_clover", ActionError.INVALID_STATE),
            ("gatekeeper_chips", ActionError.INVALID_STATE),
            ("common_reroller", ActionError.MISSING_REQUIREMENT),
        ],
    )
    def test_rejections(self, registry, perk_id, error):
        ctrl = _make_controller(registry, cash=1000)
        assert ctrl.purchase_perk(perk_id).error is error
        assert ctrl.cash == 1000

    def test_already_owned(self, registry):
        ctrl = _make_controller(registry, cash=1000)
        ctrl.purchase_perk("placebo")
        assert ctrl.purchase_perk("placebo").error is ActionError.ALREADY_OWNED

    def test_stack_limit(self, registry):
        ctrl = _make_controller(registry, cash=1000)
        for _ in range(5):
            assert ctrl.purchase_perk("interest_rate_2")
        assert ctrl.purchase_perk("interest_rate_2").error is ActionError.STACK_LIMIT_REACHED
        assert ctrl.owned_perks["interest_rate_2"] == 5

    def test_conflict(self, registry):
        ctrl = _make_controller(registry, cash=1000)
        ctrl.purchase_perk("ice_affinity")
        assert ctrl.purchase_perk("fire_affinity").error is ActionError.CONFLICT

    def test_requirement_met(self, registry):
        ctrl = _make_controller(registry, cash=1000)
        ctrl.purchase_perk("auto_roll_common")
        assert ctrl.purchase_perk("common_reroller")

    def test_overwrite(self, registry):
        ctrl = _make_controller(registry, cash=1000)
        ctrl.purchase_perk("daybreaker")
        assert ctrl.purchase_perk("trial_of_twilight")
        assert not ctrl.owns("daybreaker")
        assert ctrl.owns("trial_of_twilight")

    def test_rolls_used_clamped_to_new_allowance(self, registry):
        ctrl = _make_controller(registry, cash=1000)
        for _ in range(3):
            assert ctrl.roll()
        assert ctrl.purchase_perk("transcendence")
        assert ctrl.available_rolls() == 1
        assert ctrl.state.rolls_used == 1
        assert ctrl.remaining_rolls() == 0
        assert ctrl.roll().error is ActionError.INVALID_STATE

    def test_chip_eater_anchor(self, registry):
        ctrl = _make_controller(registry)
        ctrl.ledger.add_chips(50)
        ctrl.purchase_perk("chip_eater")
        assert ctrl.stats.perk_progress["chip_eater"] == 50
        assert ctrl.get_attributes().value_bonus == 0
        ctrl.ledger.add_chips(100)
        assert ctrl.get_attributes().value_bonus == pytest.approx(0.5)


class TestNullification:
    def _buy(self, registry):
        ctrl = _make_controller(registry, cash=1000)
        ctrl.purchase_perk("nazar")
        ctrl.purchase_perk("old_tire")
        assert ctrl.purchase_perk("nullificati0n")
        return ctrl

    def test_wipes_other_perks(self, registry):
        ctrl = self._buy(registry)
        assert ctrl.owned_perks == {"nullificati0n": 1}
        assert ctrl.stats.perk_progress["nullificati0n"] == 0

    def test_blocks_purchases_and_shop(self, registry):
        ctrl = self._buy(registry)
        assert ctrl.purchase_perk("nazar").error is ActionError.CONFLICT
        assert ctrl.roll_shop() == []
        assert ctrl.can_forge_perk("lucky_clover").error is ActionError.CONFLICT

    def test_progress_per_round(self, registry):
        ctrl = self._buy(registry)
        ctrl.start_round()
        ctrl.start_round()
        snapshot = ctrl.get_attributes()
        assert snapshot.luck == pytest.approx(0.808)
        assert snapshot.rolls == 8
        assert ctrl.remaining_rolls() == 11


class TestForging:
    def test_forge_lucky_clover(self, registry):
        ctrl = _make_controller(registry, cash=30)
        ctrl.purchase_perk("nazar")
        assert ctrl.can_forge_perk("lucky_clover")
        assert ctrl.forge_perk("lucky_clover")
        assert ctrl.cash == 8
        assert ctrl.owned_perks == {"lucky_clover": 1}
        assert ctrl.get_attributes().luck == 2

    def test_forge_rejections(self, registry):
        ctrl = _make_controller(registry, cash=30)
        assert ctrl.can_forge_perk("no_such_perk").error is ActionError.NOT_FOUND
        assert ctrl.can_forge_perk("nazar").error is ActionError.INVALID_STATE
        assert ctrl.can_forge_perk("lucky_clover").error is ActionError.MISSING_REQUIREMENT

    def test_cash_checked_before_recipe(self, registry):
        ctrl = _make_controller(registry, cash=10)
        assert ctrl.can_forge_perk("lucky_clover").error is ActionError.INSUFFICIENT_FUNDS

    def test_already_forged(self, registry):
        ctrl = _make_controller(registry, cash=100)
        ctrl.purchase_perk("nazar")
        ctrl.forge_perk("lucky_clover")
        ctrl.purchase_perk("nazar")
        assert ctrl.forge_perk("lucky_clover").error is ActionError.ALREADY_OWNED
        assert ctrl.owns("nazar")

    def test_failed_forge_changes_nothing(self, registry):
        ctrl = _make_controller(registry, cash=30)
        ctrl.purchase_perk("thunder_strike")
        assert not ctrl.forge_perk("electrolyte")
        assert ctrl.owned_perks == {"thunder_strike": 1}
        assert ctrl.cash == 25

    def test_legacy_recipe(self, registry):
        ctrl = _make_controller(registry, cash=10)
        ctrl.purchase_perk("old_tire")
        assert ctrl.forge_perk("legacy_forge_demo")
        assert ctrl.cash == 3
        assert ctrl.owned_perks == {"legacy_forge_demo": 1}


# ---------------------------------------------------------------------------
# Shop and consumables
# ---------------------------------------------------------------------------

class TestShop:
    def test_roll_shop(self, registry):
        ctrl = _make_controller(registry)
        offers = ctrl.roll_shop()
        assert len(offers) == 4
        assert all(perk.source is None and not perk.is_forgeable for perk in offers)

    def test_roll_consumable_shop(self, registry):
        ctrl = _make_controller(registry)
        assert len(ctrl.roll_consumable_shop(count=2)) == 2


class TestConsumables:
    def test_luck_potion_refunds_rolls(self, registry):
        ctrl = _make_controller(registry, cash=20)
        assert ctrl.buy_consumable("luck_potion")
        assert ctrl.cash == 15
        for _ in range(3):
            ctrl.roll()
        assert ctrl.use_consumable(0)
        assert ctrl.remaining_rolls() == 2
        assert ctrl.state.consumables == []
        assert ctrl.stats.consumables_used == 1

    def test_refund_floors_at_zero(self, registry):
        ctrl = _make_controller(registry, cash=20)
        ctrl.buy_consumable("luck_potion")
        ctrl.use_consumable(0)
        assert ctrl.state.rolls_used == 0

    def test_cash_potion(self, registry):
        ctrl = _make_controller(registry, cash=10)
        ctrl.buy_consumable("cash_potion")
        ctrl.use_consumable(0)
        assert ctrl.cash == 15

    def test_interest_bond(self, registry):
        ctrl = _make_controller(registry, cash=9)
        ctrl.buy_consumable("interest_stack")
        ctrl.use_consumable(0)
        assert ctrl.ledger.bonus_interest_stacks == 1
        assert ctrl.complete_round().interest_reward == 1

    def test_rejections(self, registry):
        ctrl = _make_controller(registry, cash=4)
        assert ctrl.buy_consumable("no_such_item").error is ActionError.NOT_FOUND
        assert ctrl.buy_consumable("luck_potion").error is ActionError.INSUFFICIENT_FUNDS
        assert ctrl.use_consumable(0).error is ActionError.NOT_FOUND
        assert ctrl.cash == 4

    def test_slots_full(self, registry):
        ctrl = _make_controller(registry, cash=100, consumable_slots=1)
        potion = registry.get_consumable("luck_potion")
        assert ctrl.add_consumable(potion)
        assert ctrl.add_consumable(potion).error is ActionError.INVALID_STATE
        assert ctrl.buy_consumable("luck_potion").error is ActionError.INVALID_STATE
        assert ctrl.cash == 100
