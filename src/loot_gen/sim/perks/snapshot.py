"""The attributes snapshot -- every owned perk folded into one set of numbers.

The snapshot is rebuilt on demand by
:class:`~loot_gen.sim.perks.aggregator.AttributeAggregator` and is never
mutated afterwards; post-processing rules produce modified copies.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# Fields that hold a mapping or list rather than a single number.
_COLLECTION_FIELDS = frozenset({"modifiers", "guaranteed_mods", "extra"})


class AttributesSnapshot(BaseModel):
    """Aggregated perk stats for the current round.

    Value, chip and cash coefficients follow the same linear shape::

        result = ((set_x if set else input) * multi_x + add_x - subtract_x) / divide_x

    ``value_bonus`` is summed into the modification multiplier of every
    roll, ``chip_bonus`` and ``cash_bonus`` scale sale chips and the round
    reward by ``1 + bonus``.
    """

    rolls: float = 0.0
    """Extra rolls per round on top of the base rolls."""

    luck: float = 0.0
    max_interest_stacks: float = 5.0
    modification_chance: float = 0.0
    """Added to ``1.0`` to form the mod chance boost."""

    add_value: float = 0.0
    subtract_value: float = 0.0
    multi_value: float = 1.0
    divide_value: float = 1.0
    set_value: float | None = None

    add_chip: float = 0.0
    subtract_chip: float = 0.0
    multi_chip: float = 1.0
    divide_chip: float = 1.0
    set_chip: float | None = None

    add_cash: float = 0.0
    subtract_cash: float = 0.0
    multi_cash: float = 1.0
    divide_cash: float = 1.0
    set_cash: float | None = None

    value_bonus: float = 0.0
    chip_bonus: float = 0.0
    cash_bonus: float = 0.0
    chips_end_round: float = 0.0

    modifiers: dict[str, float] = Field(default_factory=dict)
    """Mod id -> rarity multiplier (``> 1`` makes the mod rarer)."""

    guaranteed_mods: list[str] = Field(default_factory=list)
    extra: dict[str, float | None] = Field(default_factory=dict)
    """Stats no built-in field knows about, kept so catalogs can carry them."""

    model_config = {"frozen": True}

    @classmethod
    def scalar_fields(cls) -> list[str]:
        """Names of the numeric fields (everything but the collections)."""
        return [name for name in cls.model_fields if name not in _COLLECTION_FIELDS]

    def get(self, name: str, default: float | None = 0.0) -> float | None:
        """Read a built-in field or an ``extra`` stat by name."""
        if name in self.scalar_fields():
            return getattr(self, name)
        return self.extra.get(name, default)
