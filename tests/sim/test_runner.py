"""Tests for the greedy session runner."""

from loot_gen.config import CostTier, EngineConfig
from loot_gen.sim.runner import BatchRunner, play_greedy_session


class TestGreedySession:
    def test_reproducible(self, registry):
        assert play_greedy_session(registry, 7, max_rounds=8) == play_greedy_session(
            registry, 7, max_rounds=8
        )

    def test_first_round_telemetry(self, registry):
        telemetry = play_greedy_session(registry, 42, max_rounds=1)
        assert len(telemetry.rounds) == 1
        first = telemetry.rounds[0]
        assert first.round == 1
        assert first.rolls == 3
        assert first.chips_earned == first.inventory_value
        assert first.cash_reward == 5
        assert first.best_tier is not None

    def test_rich_start_buys_perks(self, registry):
        config = EngineConfig(start_cash=1000)
        telemetry = play_greedy_session(registry, 42, max_rounds=1, config=config)
        assert telemetry.rounds[0].perks_bought
        assert telemetry.perks_owned

    def test_session_ends(self, registry):
        telemetry = play_greedy_session(registry, 3, max_rounds=12)
        assert telemetry.ended_by in {"cost", "limit"}
        assert telemetry.final_round >= telemetry.rounds[-1].round
        if telemetry.ended_by == "limit":
            assert telemetry.final_round > 12

    def test_boss_round_skipped_after_reward(self, registry):
        # Free entry so the run always reaches the boss.
        config = EngineConfig(
            normal_cost_tiers=[CostTier(base=0)], boss_base_cost=0, boss_cost_per_route=0,
        )
        telemetry = play_greedy_session(registry, 1, max_rounds=6, config=config)
        assert [r.round for r in telemetry.rounds] == [1, 2, 3, 4, 6]
        assert sum(1 for perk_id in telemetry.perks_owned if perk_id.startswith("gatekeeper_")) == 3


class TestBatchRunner:
    def test_seeds(self, registry):
        results = BatchRunner(registry).run_batch(3, base_seed=10, max_rounds=2)
        assert [r.seed for r in results] == [10, 11, 12]
