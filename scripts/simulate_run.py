"""Play greedy loot-economy sessions and print a round-by-round summary.

Usage:
    python scripts/simulate_run.py [--runs 1] [--seed 42] [--max-rounds 30] [--config path.json]
"""

from __future__ import annotations

import argparse
import logging
import time
from collections import Counter

from loot_gen.config import DEFAULT_CONFIG, EngineConfig
from loot_gen.sim.content.registry import ContentRegistry
from loot_gen.sim.runner import BatchRunner
from loot_gen.sim.telemetry import RunTelemetry


def _print_run(run: RunTelemetry) -> None:
    print(f"Seed {run.seed}: ended on round {run.final_round} ({run.ended_by}), cash {run.final_cash}")
    print(f"  {'round':>5} {'rolls':>5} {'value':>8} {'chips':>8} {'cash':>6}  best        bought")
    for r in run.rounds:
        bought = ", ".join(r.perks_bought) or "-"
        print(
            f"  {r.round:>5} {r.rolls:>5} {r.inventory_value:>8} {r.chips_earned:>8} "
            f"{r.cash_reward:>6}  {r.best_tier or '-':<10}  {bought}"
        )
    perks = ", ".join(f"{perk_id} x{count}" for perk_id, count in sorted(run.perks_owned.items()))
    print(f"  perks: {perks or '-'}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Simulate greedy loot-economy runs")
    parser.add_argument("--runs", type=int, default=1, help="Number of runs")
    parser.add_argument("--seed", type=int, default=42, help="Base seed")
    parser.add_argument("--max-rounds", type=int, default=30, help="Round limit per run")
    parser.add_argument("--config", type=str, default=None, help="EngineConfig JSON file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    config = EngineConfig.from_json_file(args.config) if args.config else DEFAULT_CONFIG

    print("Loading registry...")
    registry = ContentRegistry()
    registry.load_defaults()

    print(f"Running {args.runs:,} session(s)...")
    t0 = time.perf_counter()
    results = BatchRunner(registry, config).run_batch(
        args.runs, base_seed=args.seed, max_rounds=args.max_rounds,
    )
    elapsed = time.perf_counter() - t0
    print(f"Done in {elapsed:.1f}s")
    print()

    if args.runs == 1:
        _print_run(results[0])
        return

    final_rounds = [run.final_round for run in results]
    endings = Counter(run.ended_by for run in results)
    print(f"Mean final round: {sum(final_rounds) / len(final_rounds):.2f}")
    print(f"Best final round: {max(final_rounds)}")
    print(f"Endings: {dict(endings)}")


if __name__ == "__main__":
    main()
