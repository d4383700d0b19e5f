"""Mutable run state for the loot economy.

Houses the rolled-thing model, the per-round state owned by the controller
and the pending boss reward.  Persistent currency lives on
:class:`~loot_gen.sim.economy.currency.CurrencyLedger`; run-wide counters
live on :class:`~loot_gen.sim.telemetry.RunStats`.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from loot_gen.ir.consumables import ConsumableDefinition
from loot_gen.ir.things import AttributeDefinition, ModDefinition


# ---------------------------------------------------------------------------
# RolledThing
# ---------------------------------------------------------------------------

class RolledThing(BaseModel):
    """A single instantiation of a :class:`~loot_gen.ir.things.ThingTemplate`.

    ``id`` is the template id, so two rolls of the same template compare by
    their value and modifications rather than by identity.
    """

    id: str
    name: str
    tier: str
    value: int = 0
    """Current value in chips before chip coefficients."""

    base_value: int = 0
    """Value as rolled, before the size attribute and mods."""

    attribute: AttributeDefinition | None = None
    mods: list[ModDefinition] = Field(default_factory=list)
    mod_value: float = 1.0
    """Cumulative multiplier from the attribute and mods."""

    color: str | None = None

    @property
    def mod_ids(self) -> list[str]:
        return [mod.id for mod in self.mods]

    @property
    def display_name(self) -> str:
        if self.attribute is None or self.attribute.id == "normal":
            return self.name
        return f"{self.attribute.name} {self.name}"


# ---------------------------------------------------------------------------
# Round state
# ---------------------------------------------------------------------------

class BossReward(BaseModel):
    """A boss reward awaiting perk picks."""

    boss_id: str
    perk_options: list[str] = Field(default_factory=list)
    picked: list[str] = Field(default_factory=list)
    pick_count: int = 3

    @property
    def remaining_picks(self) -> int:
        return max(0, min(self.pick_count, len(self.perk_options)) - len(self.picked))

    @property
    def is_complete(self) -> bool:
        return self.remaining_picks == 0


class RoundState(BaseModel):
    """Everything that resets or advances with the round counter."""

    round: int = 1
    rolls_used: int = 0
    bad_luck_streak: int = 0
    """Consecutive rolls below the reset tier; persists across rounds."""

    inventory: list[RolledThing] = Field(default_factory=list)
    consumables: list[ConsumableDefinition] = Field(default_factory=list)
    pending_boss_reward: BossReward | None = None
    completed: bool = False
    """Set once the round reward has been paid; cleared by the next round."""

    @property
    def inventory_value(self) -> int:
        return sum(thing.value for thing in self.inventory)
