"""Currency ledger -- persistent cash, round-local chips and the reward formulas.

Chips are earned by selling rolled things and spent to enter the next round;
they reset every round.  Cash persists for the whole run and buys perks,
forges and consumables.  Balances never go negative: additions are floored
at zero and spends that cannot be covered are refused without mutation.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from loot_gen.config import DEFAULT_CONFIG, EngineConfig
from loot_gen.sim.core.numeric import linear_transform, round_half_up
from loot_gen.sim.perks.snapshot import AttributesSnapshot
from loot_gen.sim.telemetry import RunStats

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RewardBreakdown:
    """How a round's cash reward was put together.

    Attributes
    ----------
    base_reward:
        Flat base reward (or the ``set_cash`` override).
    interest_reward:
        Interest stacks earned, bonus stacks included.
    cash_bonus:
        Everything perks added on top: ``total_reward - base - interest``.
        Negative when perks reduce the reward.
    total_reward:
        Cash actually credited.
    total_cash:
        Cash balance after crediting.
    chips_bonus:
        End-of-round chips credited alongside the reward.
    credited:
        ``False`` when the reward was refused and nothing was paid.
    """

    base_reward: int
    interest_reward: int
    cash_bonus: int
    total_reward: int
    total_cash: int
    chips_bonus: int = 0
    credited: bool = True


class CurrencyLedger:
    """Holds cash, chips and bonus interest stacks.

    Parameters
    ----------
    config:
        Supplies the starting cash and reward constants.
    stats:
        Run counters to update (earned totals, max chips held).  A fresh
        :class:`RunStats` is created when omitted.
    """

    def __init__(
        self,
        config: EngineConfig = DEFAULT_CONFIG,
        stats: RunStats | None = None,
    ) -> None:
        self.config = config
        self.stats = stats if stats is not None else RunStats()
        self.cash: int = config.start_cash
        self.chips: int = 0
        self.bonus_interest_stacks: int = 0

    # -- cash ---------------------------------------------------------------

    def add_cash(self, amount: int) -> int:
        """Add *amount* cash (negative amounts floor the balance at 0)."""
        self.cash = max(0, self.cash + amount)
        if amount > 0:
            self.stats.total_cash_earned += amount
        return self.cash

    def can_afford(self, amount: int) -> bool:
        return self.cash >= amount

    def spend_cash(self, amount: int) -> bool:
        """Spend *amount* cash; returns ``False`` and changes nothing if short."""
        if amount < 0 or self.cash < amount:
            return False
        self.cash -= amount
        return True

    # -- chips --------------------------------------------------------------

    def add_chips(self, amount: int) -> int:
        """Add *amount* chips (negative amounts floor the balance at 0)."""
        self.chips = max(0, self.chips + amount)
        if amount > 0:
            self.stats.total_chips_earned += amount
        self.stats.max_chips_held = max(self.stats.max_chips_held, self.chips)
        return self.chips

    def spend_chips(self, amount: int) -> bool:
        """Spend *amount* chips; returns ``False`` and changes nothing if short."""
        if amount < 0 or self.chips < amount:
            return False
        self.chips -= amount
        return True

    def reset_chips(self) -> None:
        self.chips = 0

    def add_interest_stacks(self, count: int) -> None:
        self.bonus_interest_stacks = max(0, self.bonus_interest_stacks + count)

    # -- formulas -----------------------------------------------------------

    def chips_for_value(self, value: int, snapshot: AttributesSnapshot) -> int:
        """Chips earned for selling things worth *value* in total."""
        return linear_transform(
            value,
            multi=snapshot.multi_chip * (1 + snapshot.chip_bonus),
            add=snapshot.add_chip,
            subtract=snapshot.subtract_chip,
            divide=snapshot.divide_chip,
            override=snapshot.set_chip,
        )

    def interest(self, snapshot: AttributesSnapshot) -> int:
        """``min(cash // per_stack, max_interest_stacks) + bonus stacks``."""
        cap = max(0, math.floor(snapshot.max_interest_stacks))
        earned = min(self.cash // self.config.cash_per_interest_stack, cap)
        return earned + self.bonus_interest_stacks

    def calculate_round_reward(self, snapshot: AttributesSnapshot) -> RewardBreakdown:
        """Work out the round reward without crediting it.

        ``total = max(0, round(((cash_term * multi_cash * (1 + cash_bonus)) +
        add_cash - subtract_cash) / divide_cash))`` where ``cash_term`` is
        ``set_cash`` when a perk sets it and ``base + interest`` otherwise.
        """
        interest = self.interest(snapshot)
        if snapshot.set_cash is not None:
            base = round_half_up(snapshot.set_cash)
            cash_term = snapshot.set_cash
            interest = 0
        else:
            base = self.config.base_round_reward
            cash_term = base + interest

        total = linear_transform(
            cash_term,
            multi=snapshot.multi_cash * (1 + snapshot.cash_bonus),
            add=snapshot.add_cash,
            subtract=snapshot.subtract_cash,
            divide=snapshot.divide_cash,
        )
        return RewardBreakdown(
            base_reward=base,
            interest_reward=interest,
            cash_bonus=total - base - interest,
            total_reward=total,
            total_cash=self.cash + total,
        )
