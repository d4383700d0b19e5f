"""Rollable content -- rarity tiers, thing templates, size attributes and mods."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class TierDefinition(BaseModel):
    """One rung of the rarity ladder (common ... zenith)."""

    id: str
    """Unique identifier (e.g. 'legendary')."""

    name: str
    """Display name."""

    order: int
    """Position on the ladder; higher is rarer."""

    base_value: float
    """Value every thing of this tier starts from before template maths."""

    luck_boost: float = 0.0
    """Weight gained per point of luck: ``weight *= 1 + luck * luck_boost``."""

    supernatural: bool = False
    """True for the tiers above mythical that are only ever a long shot."""

    model_config = {"frozen": True}


class RarityBucket(BaseModel):
    """Tier weights that apply up to (and including) ``max_round``.

    The last bucket usually has ``max_round = None`` and covers every later
    round.
    """

    max_round: int | None = None
    weights: dict[str, float]

    model_config = {"frozen": True}

    @field_validator("weights")
    @classmethod
    def _weights_non_negative(cls, v: dict[str, float]) -> dict[str, float]:
        for tier_id, weight in v.items():
            if weight < 0:
                raise ValueError(f"negative weight {weight} for tier {tier_id!r}")
        return v


class ThingTemplate(BaseModel):
    """Static catalog entry that a roll instantiates."""

    id: str
    """Unique identifier (e.g. 'GOLD_ORE')."""

    name: str
    tier: str
    """Tier id; decides the base value and the tier weight."""

    base_value: float = 0.0
    """Flat offset added to the tier's base value."""

    rarity_multiplier: float = 1.0
    """Multiplier applied to ``tier.base_value + base_value``."""

    weight: float = 1.0
    """Template's own weight inside its tier (higher is more common)."""

    color: str | None = None

    model_config = {"frozen": True}


class AttributeDefinition(BaseModel):
    """A size/quality attribute: exactly one is applied to every roll."""

    id: str
    name: str
    value: float
    """Multiplier on the thing's value (``1.0`` is neutral)."""

    rarity: float = 10.0
    """Rarity score; selection weight is ``100 / rarity``."""

    color: str | None = None

    model_config = {"frozen": True}


class ModDefinition(BaseModel):
    """An optional modification; zero to two random ones land on a roll."""

    id: str
    name: str
    value: float
    """Signed contribution summed into the value multiplier."""

    rarity: float = Field(default=10.0, ge=0)
    """Rarity score; ``0`` disables random selection entirely."""

    requires_perk: str | None = None
    """Perk id that must be owned before this mod can be rolled."""

    description: str = ""
    color: str | None = None

    model_config = {"frozen": True}
