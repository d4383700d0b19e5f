"""Engine tuning constants -- the single source of truth for the economy curve.

Everything the roller, aggregator, ledger and controller need that is not
catalog content lives here.  The defaults reproduce the shipped game;
override them by constructing an :class:`EngineConfig` directly or by
loading a JSON document with :meth:`EngineConfig.from_json_file`.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, Field, model_validator


class CostTier(BaseModel):
    """One linear segment of the normal round cost curve.

    ``cost = base + per_round * (round - start_round)`` for every round up
    to and including ``max_round`` (``None`` = open-ended last segment).
    """

    max_round: int | None = None
    base: int
    per_round: int = 0
    start_round: int = 1

    model_config = {"frozen": True}


def _default_cost_tiers() -> list[CostTier]:
    return [
        CostTier(max_round=3, base=15),
        CostTier(max_round=6, base=25, per_round=5, start_round=4),
        CostTier(max_round=None, base=40, per_round=10, start_round=7),
    ]


class EngineConfig(BaseModel):
    """Every numeric knob of the engine, with the shipped defaults."""

    # -- rolls ---------------------------------------------------------------

    base_rolls: int = Field(default=3, ge=0)
    """Rolls available each round before perks."""

    min_tier_weight: float = Field(default=0.001, gt=0)
    """Floor weight every tier gets, so no tier is ever impossible."""

    bad_luck_divisor: int = Field(default=4, ge=1)
    """Every this many non-rare rolls in a row add one point of luck."""

    bad_luck_reset_order: int = 2
    """Tier order (``rare`` by default) at or above which the streak resets."""

    lucky_roll_chance_per_luck: float = 0.05
    """Chance of a second, keep-the-better roll per point of luck."""

    auto_roll_max_rerolls: int = Field(default=5, ge=0)

    # -- modifications -------------------------------------------------------

    single_mod_chance: float = 0.4
    double_mod_chance: float = 0.15
    mod_chance_luck_factor: float = 0.05
    """Per point of luck: ``chance *= 1 + luck * factor``."""

    good_rarity_luck_factor: float = 0.1
    """Per point of luck: rarity of good (> 1.0) entries is divided by ``1 + luck * factor``."""

    bad_rarity_luck_factor: float = 0.05
    """Per point of luck: rarity of bad (< 1.0) entries is multiplied by ``1 + luck * factor``."""

    luck_rarity_floor: float = Field(default=0.1, gt=0)
    """Lower bound on any luck adjustment factor applied to a rarity."""

    # -- currency ------------------------------------------------------------

    start_cash: int = Field(default=4, ge=0)
    base_round_reward: int = Field(default=5, ge=0)
    cash_per_interest_stack: int = Field(default=5, ge=1)
    default_max_interest_stacks: int = Field(default=5, ge=0)

    # -- round costs ---------------------------------------------------------

    normal_cost_tiers: list[CostTier] = Field(default_factory=_default_cost_tiers)
    normal_cost_step: int = Field(default=5, ge=1)
    """Normal round costs are floored to a multiple of this."""

    exponential_start_round: int | None = 20
    """Rounds after this one compound the cost; ``None`` disables the tail."""

    normal_exponent: float = 1.5

    boss_round_interval: int = Field(default=5, ge=1)
    boss_base_cost: int = 50
    boss_cost_per_route: int = 50
    boss_exponent: float = 1.0
    boss_cost_step: int = Field(default=10, ge=1)
    boss_offer_count: int = Field(default=6, ge=1)
    boss_pick_count: int = Field(default=3, ge=1)

    # -- shop ----------------------------------------------------------------

    shop_offer_count: int = Field(default=4, ge=0)
    shop_tier_weights: dict[str, float] = Field(
        default_factory=lambda: {
            "common": 100,
            "uncommon": 60,
            "rare": 30,
            "epic": 10,
            "legendary": 5,
            "mythical": 1,
            "special": 1,
        }
    )
    shop_luck_factor: float = 0.1
    """Per point of luck, non-common shop weights are multiplied by ``1 + luck * factor``."""

    shop_consumable_count: int = Field(default=4, ge=0)

    consumable_slots: int = Field(default=9, ge=0)

    @model_validator(mode="after")
    def _validate_curves(self) -> EngineConfig:
        if not self.normal_cost_tiers:
            raise ValueError("normal_cost_tiers must not be empty")
        if self.normal_cost_tiers[-1].max_round is not None:
            raise ValueError("the last normal cost tier must be open-ended (max_round = None)")
        if self.boss_pick_count > self.boss_offer_count:
            raise ValueError(
                f"boss_pick_count ({self.boss_pick_count}) exceeds "
                f"boss_offer_count ({self.boss_offer_count})"
            )
        return self

    @classmethod
    def from_json_file(cls, path: str | Path) -> EngineConfig:
        """Load a config from JSON; missing keys keep their defaults."""
        with open(Path(path)) as f:
            raw = json.load(f)
        return cls.model_validate(raw)


DEFAULT_CONFIG = EngineConfig()
