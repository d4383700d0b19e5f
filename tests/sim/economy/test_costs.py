"""Tests for round entry costs."""

import pytest

from loot_gen.config import EngineConfig
from loot_gen.sim.economy.costs import (
    boss_round_cost,
    is_boss_round,
    normal_round_cost,
    round_entry_cost,
    route_index,
)


class TestBossRounds:
    @pytest.mark.parametrize("round_number", [5, 10, 15, 20, 25])
    def test_multiples_of_interval(self, round_number):
        assert is_boss_round(round_number)

    @pytest.mark.parametrize("round_number", [0, 1, 4, 6, 11])
    def test_other_rounds(self, round_number):
        assert not is_boss_round(round_number)

    def test_route_index(self):
        assert route_index(1) == 0
        assert route_index(5) == 0
        assert route_index(6) == 1
        assert route_index(10) == 1

    @pytest.mark.parametrize("round_number, cost", [(5, 50), (10, 100), (15, 150), (25, 250)])
    def test_boss_cost(self, round_number, cost):
        assert boss_round_cost(round_number) == cost

    def test_boss_exponent(self):
        config = EngineConfig(boss_exponent=1.5)
        # route 2: 50 + 2 * 50 * 2.25 = 275 -> 270
        assert boss_round_cost(15, config) == 270


class TestNormalRounds:
    @pytest.mark.parametrize(
        "round_number, cost",
        [(1, 15), (2, 15), (3, 15), (4, 25), (6, 35), (7, 40), (8, 50), (20, 170)],
    )
    def test_linear_tiers(self, round_number, cost):
        assert normal_round_cost(round_number) == cost

    def test_compounding_tail(self):
        # 180 * 1.5 = 270
        assert normal_round_cost(21) == 270
        # 190 * 2.25 = 427.5 -> 425
        assert normal_round_cost(22) == 425

    def test_tail_disabled(self):
        config = EngineConfig(exponential_start_round=None)
        assert normal_round_cost(21, config) == 180

    def test_costs_never_decrease(self):
        costs = [normal_round_cost(r) for r in range(1, 40)]
        assert costs == sorted(costs)


class TestRoundEntryCost:
    def test_dispatches_on_boss_round(self):
        assert round_entry_cost(4) == 25
        assert round_entry_cost(5) == 50
        assert round_entry_cost(6) == 35
