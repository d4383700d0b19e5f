"""Tests for the currency ledger and reward formulas."""

from loot_gen.config import EngineConfig
from loot_gen.sim.economy.currency import CurrencyLedger
from loot_gen.sim.perks.snapshot import AttributesSnapshot
from loot_gen.sim.telemetry import RunStats


def _ledger(cash: int = 4, **config) -> CurrencyLedger:
    ledger = CurrencyLedger(EngineConfig(**config))
    ledger.cash = cash
    return ledger


class TestBalances:
    def test_initial_state(self):
        ledger = CurrencyLedger()
        assert ledger.cash == 4
        assert ledger.chips == 0
        assert ledger.bonus_interest_stacks == 0

    def test_start_cash_from_config(self):
        assert CurrencyLedger(EngineConfig(start_cash=50)).cash == 50

    def test_add_cash_floors_at_zero(self):
        ledger = _ledger(cash=5)
        ledger.add_cash(-10)
        assert ledger.cash == 0
        assert ledger.stats.total_cash_earned == 0

    def test_add_cash_tracks_earnings(self):
        ledger = _ledger(cash=0)
        ledger.add_cash(7)
        ledger.add_cash(3)
        assert ledger.stats.total_cash_earned == 10

    def test_spend_cash_short_is_refused(self):
        ledger = _ledger(cash=5)
        assert not ledger.spend_cash(10)
        assert ledger.cash == 5

    def test_spend_cash(self):
        ledger = _ledger(cash=5)
        assert ledger.spend_cash(5)
        assert ledger.cash == 0

    def test_negative_spend_refused(self):
        ledger = _ledger(cash=5)
        assert not ledger.spend_cash(-1)
        assert not ledger.spend_chips(-1)
        assert ledger.cash == 5

    def test_chips_tracking(self):
        stats = RunStats()
        ledger = CurrencyLedger(stats=stats)
        ledger.add_chips(30)
        ledger.spend_chips(25)
        ledger.add_chips(10)
        assert ledger.chips == 15
        assert stats.total_chips_earned == 40
        assert stats.max_chips_held == 30

    def test_reset_chips(self):
        ledger = _ledger()
        ledger.add_chips(30)
        ledger.reset_chips()
        assert ledger.chips == 0
        assert ledger.stats.max_chips_held == 30

    def test_spend_chips_short_is_refused(self):
        ledger = _ledger()
        ledger.add_chips(10)
        assert not ledger.spend_chips(11)
        assert ledger.chips == 10


class TestChipsForValue:
    def test_plain(self):
        assert _ledger().chips_for_value(42, AttributesSnapshot()) == 42

    def test_coefficients(self):
        snapshot = AttributesSnapshot(multi_chip=2, chip_bonus=0.5, add_chip=2)
        assert _ledger().chips_for_value(100, snapshot) == 302

    def test_subtract_floors_at_zero(self):
        assert _ledger().chips_for_value(3, AttributesSnapshot(subtract_chip=10)) == 0

    def test_divide(self):
        assert _ledger().chips_for_value(9, AttributesSnapshot(divide_chip=2)) == 5

    def test_set_overrides_value(self):
        assert _ledger().chips_for_value(500, AttributesSnapshot(set_chip=7)) == 7


class TestRoundReward:
    def test_base_and_interest(self):
        ledger = _ledger(cash=10)
        reward = ledger.calculate_round_reward(AttributesSnapshot())
        assert reward.base_reward == 5
        assert reward.interest_reward == 2
        assert reward.cash_bonus == 0
        assert reward.total_reward == 7
        assert reward.total_cash == 17

    def test_does_not_credit(self):
        ledger = _ledger(cash=10)
        ledger.calculate_round_reward(AttributesSnapshot())
        assert ledger.cash == 10

    def test_interest_capped(self):
        reward = _ledger(cash=100).calculate_round_reward(AttributesSnapshot())
        assert reward.interest_reward == 5
        assert reward.total_reward == 10

    def test_interest_cap_from_snapshot(self):
        reward = _ledger(cash=100).calculate_round_reward(AttributesSnapshot(max_interest_stacks=7.9))
        assert reward.interest_reward == 7

    def test_bonus_interest_stacks(self):
        ledger = _ledger(cash=10)
        ledger.add_interest_stacks(2)
        reward = ledger.calculate_round_reward(AttributesSnapshot())
        assert reward.interest_reward == 4
        assert reward.total_reward == 9

    def test_multiplier_and_bonus(self):
        snapshot = AttributesSnapshot(multi_cash=2, cash_bonus=0.1)
        reward = _ledger(cash=4).calculate_round_reward(snapshot)
        assert reward.total_reward == 11
        assert reward.cash_bonus == 6

    def test_flat_terms(self):
        snapshot = AttributesSnapshot(add_cash=3, subtract_cash=1, divide_cash=2)
        # (5 + 3 - 1) / 2 = 3.5
        assert _ledger(cash=0).calculate_round_reward(snapshot).total_reward == 4

    def test_set_cash_replaces_base_and_interest(self):
        reward = _ledger(cash=10).calculate_round_reward(AttributesSnapshot(set_cash=20))
        assert reward.base_reward == 20
        assert reward.interest_reward == 0
        assert reward.total_reward == 20

    def test_custom_interest_step(self):
        reward = _ledger(cash=30, cash_per_interest_stack=10).calculate_round_reward(
            AttributesSnapshot()
        )
        assert reward.interest_reward == 3
