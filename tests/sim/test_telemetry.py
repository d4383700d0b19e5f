"""Tests for run counters."""

from loot_gen.sim.telemetry import RoundTelemetry, RunStats, RunTelemetry


class TestRunStats:
    def test_round_lookup(self):
        assert RunStats().get_stat("round", 7) == 7.0

    def test_counter_lookup(self):
        assert RunStats(total_chips_earned=120).get_stat("total_chips_earned") == 120.0

    def test_unknown_and_non_numeric_read_zero(self):
        stats = RunStats(item_history=["STONE"])
        assert stats.get_stat("no_such_stat") == 0.0
        assert stats.get_stat("item_history") == 0.0

    def test_has_collected(self):
        stats = RunStats(item_history=["STONE", "GOLD_ORE"])
        assert stats.has_collected("GOLD_ORE")
        assert not stats.has_collected("DIAMOND")


class TestTelemetry:
    def test_defaults(self):
        run = RunTelemetry(seed=1)
        assert run.rounds == []
        assert run.ended_by == "limit"
        assert RoundTelemetry(round=3).perks_bought == []
