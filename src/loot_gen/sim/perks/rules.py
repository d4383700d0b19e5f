"""Perks whose effect is not a fixed stat block.

Two kinds of hook live here:

- **Dynamic perks** contribute deltas computed from run stats (chips earned
  since purchase, rounds active).  They run in place of the perk's generic
  stat block while the aggregator is folding perks.
- **Post rules** run after every perk has been folded, in a fixed order, and
  rewrite the finished snapshot (``wishing_star`` turns luck into rolls,
  ``transcendence`` turns rolls into luck).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from loot_gen.sim.perks.snapshot import AttributesSnapshot
from loot_gen.sim.telemetry import RunStats

CHIP_EATER = "chip_eater"
NULLIFICATION = "nullificati0n"
WISHING_STAR = "wishing_star"
TRANSCENDENCE = "transcendence"

CHIP_EATER_VALUE_PER_CHIP = 0.005
NULLIFICATION_LUCK_PER_ROUND = 0.404
NULLIFICATION_ROLLS_PER_ROUND = 4


@dataclass(frozen=True)
class RuleContext:
    """Read-only inputs shared by dynamic perks and post rules."""

    owned_perks: Mapping[str, int]
    round: int
    stats: RunStats
    base_rolls: int = 3


DynamicPerk = Callable[[dict[str, Any], int, RuleContext], None]
PostRule = Callable[[AttributesSnapshot, RuleContext], AttributesSnapshot]


# ---------------------------------------------------------------------------
# Dynamic perks
# ---------------------------------------------------------------------------

def chip_eater(values: dict[str, Any], count: int, ctx: RuleContext) -> None:
    """+0.5% value bonus per chip earned since the perk was bought."""
    anchor = ctx.stats.perk_progress.get(CHIP_EATER, ctx.stats.total_chips_earned)
    earned = max(0.0, ctx.stats.total_chips_earned - anchor)
    values["value_bonus"] = (values.get("value_bonus") or 0.0) + CHIP_EATER_VALUE_PER_CHIP * earned


def nullification(values: dict[str, Any], count: int, ctx: RuleContext) -> None:
    """Luck and rolls that grow with every round the perk stays active."""
    rounds = ctx.stats.perk_progress.get(NULLIFICATION, 0.0)
    values["luck"] = (values.get("luck") or 0.0) + NULLIFICATION_LUCK_PER_ROUND * rounds
    values["rolls"] = (values.get("rolls") or 0.0) + NULLIFICATION_ROLLS_PER_ROUND * rounds


DEFAULT_DYNAMIC_PERKS: dict[str, DynamicPerk] = {
    CHIP_EATER: chip_eater,
    NULLIFICATION: nullification,
}


# ---------------------------------------------------------------------------
# Post rules
# ---------------------------------------------------------------------------

def wishing_star(snapshot: AttributesSnapshot, ctx: RuleContext) -> AttributesSnapshot:
    """Convert all positive luck into whole extra rolls; luck drops to zero."""
    bonus_rolls = math.floor(snapshot.luck) if snapshot.luck > 0 else 0
    return snapshot.model_copy(update={"rolls": snapshot.rolls + bonus_rolls, "luck": 0.0})


def transcendence(snapshot: AttributesSnapshot, ctx: RuleContext) -> AttributesSnapshot:
    """Keep a single roll per round and turn the rest into luck."""
    total_rolls = ctx.base_rolls + snapshot.rolls
    if total_rolls <= 1:
        return snapshot
    return snapshot.model_copy(
        update={
            "luck": snapshot.luck + (total_rolls - 1),
            "rolls": 1 - ctx.base_rolls,
        }
    )


# Order matters: wishing_star must see the luck before transcendence adds to it.
DEFAULT_POST_RULES: list[tuple[str, PostRule]] = [
    (WISHING_STAR, wishing_star),
    (TRANSCENDENCE, transcendence),
]
