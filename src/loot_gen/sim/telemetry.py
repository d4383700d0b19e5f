"""Run-wide counters and per-round telemetry.

- **RunStats**: the running totals that unlock conditions, bonus triggers
  and dynamic perks read (chips earned, items rolled, ...).
- **RoundTelemetry** / **RunTelemetry**: what a simulated session reports.

These are plain ``dataclass`` instances (not Pydantic models) to keep
bookkeeping cheap during batch simulation.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class RunStats:
    """Running totals for the current run.

    Attributes
    ----------
    total_chips_earned:
        Chips gained over the whole run (selling, end-of-round bonuses).
    total_cash_earned:
        Cash gained over the whole run (rewards, consumables).
    total_items_rolled:
        Things added to the inventory, auto-rerolls not included.
    total_rolls_used:
        Rolls spent, refunds not subtracted.
    max_chips_held:
        Highest chip balance seen at any point.
    consumables_used:
        Consumables used this run.
    item_history:
        Template ids of every thing rolled, in order.
    perk_progress:
        Per-perk scalar used by dynamic perks (``chip_eater`` stores the
        chips-earned anchor taken at purchase, ``nullificati0n`` the number
        of rounds it has been active).
    """

    total_chips_earned: int = 0
    total_cash_earned: int = 0
    total_items_rolled: int = 0
    total_rolls_used: int = 0
    max_chips_held: int = 0
    consumables_used: int = 0
    item_history: list[str] = field(default_factory=list)
    perk_progress: dict[str, float] = field(default_factory=dict)

    def get_stat(self, name: str, round_number: int | None = None) -> float:
        """Look up a stat by name; ``"round"`` resolves to *round_number*.

        Unknown stat names read as ``0``.
        """
        if name == "round":
            return float(round_number or 0)
        value = getattr(self, name, None)
        if isinstance(value, (int, float)):
            return float(value)
        return 0.0

    def has_collected(self, thing_id: str) -> bool:
        return thing_id in self.item_history


@dataclass
class RoundTelemetry:
    """Stats from a single played round.

    Attributes
    ----------
    round:
        Round number.
    rolls:
        Rolls spent this round.
    inventory_value:
        Summed value of the things rolled.
    chips_earned:
        Chips credited when the inventory was sold.
    cash_reward:
        Cash awarded on completing the round.
    best_tier:
        Rarest tier rolled this round.
    perks_bought:
        Perk ids bought after the round.
    """

    round: int
    rolls: int = 0
    inventory_value: int = 0
    chips_earned: int = 0
    cash_reward: int = 0
    best_tier: str | None = None
    perks_bought: list[str] = field(default_factory=list)


@dataclass
class RunTelemetry:
    """Stats from a full simulated session.

    Attributes
    ----------
    seed:
        The master seed used for this run.
    rounds:
        Ordered list of round telemetry.
    final_round:
        Round the session ended on.
    final_cash:
        Cash held at the end.
    ended_by:
        ``"cost"`` if the next round was unaffordable, ``"limit"`` if the
        round limit was reached.
    """

    seed: int
    rounds: list[RoundTelemetry] = field(default_factory=list)
    final_round: int = 1
    final_cash: int = 0
    ended_by: str = "limit"
    perks_owned: dict[str, int] = field(default_factory=dict)
