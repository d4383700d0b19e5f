"""Perk definitions -- permanent purchases that feed the attributes snapshot.

A perk carries typed stat operations (:class:`StatOp`), per-mod rarity
operations (:class:`ModifyOp`), shop/stacking properties and a list of
conditions.  Legacy catalog shapes (bare numbers, ``{"add": 3}`` objects,
camelCase stat names) are normalised by the content registry before they
reach these models.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, field_validator, model_validator

GUARANTEED_MOD_PREFIX = "guaranteed_mod:"


class StatOpKind(str, Enum):
    """How a stat operation folds into its field."""

    ADD = "add"
    SUB = "sub"
    MULTI = "multi"
    DIV = "div"
    SET = "set"


class StatOp(BaseModel):
    """A single typed operation on one attribute field."""

    kind: StatOpKind
    value: float

    model_config = {"frozen": True}


class ModifyOp(BaseModel):
    """Operations a perk applies to one mod's entry in the modifier map.

    ``set``/``value``/``multi``/``div`` change the mod's rarity multiplier
    (``value`` is additive); ``guaranteed`` makes the mod land on every roll.
    """

    guaranteed: bool = False
    set: float | None = None
    value: float | None = None
    multi: float | None = None
    div: float | None = None

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Conditions
# ---------------------------------------------------------------------------

class StatThreshold(BaseModel):
    """Compares a run stat (or ``"round"``) against a threshold."""

    type: Literal["stat_threshold"] = "stat_threshold"
    stat: str
    threshold: float = 0
    compare: Literal["less", "at_least"] = "at_least"

    def is_met(self, stat_value: float) -> bool:
        if self.compare == "less":
            return stat_value < self.threshold
        return stat_value >= self.threshold


class ItemCollected(BaseModel):
    """Satisfied once a thing rolled from ``item_id`` has been seen this run."""

    type: Literal["item_collected"] = "item_collected"
    item_id: str


Requirement = Annotated[Union[StatThreshold, ItemCollected], Field(discriminator="type")]


class UnlockCondition(BaseModel):
    """Perk only shows up in the shop once ``requirement`` holds."""

    type: Literal["unlock"] = "unlock"
    requirement: Requirement


class RequiresPerkCondition(BaseModel):
    """Perk cannot be bought until every perk in ``perk_ids`` is owned."""

    type: Literal["requires_perk"] = "requires_perk"
    perk_ids: list[str]


class BonusTriggerCondition(BaseModel):
    """Extra stat block applied once while ``requirement`` holds."""

    type: Literal["bonus_trigger"] = "bonus_trigger"
    requirement: StatThreshold
    bonus: dict[str, StatOp] = Field(default_factory=dict)


class ForgingCondition(BaseModel):
    """Perk is forged from ``recipe`` perks plus ``cash`` instead of bought."""

    type: Literal["forging"] = "forging"
    recipe: list[str] = Field(default_factory=list)
    cash: int = 0


PerkCondition = Annotated[
    Union[UnlockCondition, RequiresPerkCondition, BonusTriggerCondition, ForgingCondition],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Properties and definition
# ---------------------------------------------------------------------------

class PerkProperties(BaseModel):
    """Stacking, set membership and shop behaviour of a perk."""

    stack: int = Field(default=1, ge=1)
    """Maximum number of stacks that can be owned."""

    set: str | None = None
    """Name of the set this perk counts towards."""

    set_bonuses: dict[int, dict[str, StatOp]] = Field(default_factory=dict)
    """Threshold -> stat block, applied once the set count reaches it."""

    conflict: list[str] = Field(default_factory=list)
    """Perks that block this one while owned."""

    overwrite: list[str] = Field(default_factory=list)
    """Perks removed when this one is bought."""

    shop_limit: int = Field(default=1, ge=1)
    """Copies of this perk a single shop roll may offer."""

    round_min: int | None = None
    round_max: int | None = None
    subperk: bool = False
    hidden: bool = False

    @field_validator("set_bonuses")
    @classmethod
    def _thresholds_positive(cls, v: dict[int, dict[str, StatOp]]) -> dict[int, dict[str, StatOp]]:
        for threshold in v:
            if threshold < 1:
                raise ValueError(f"set bonus threshold must be >= 1, got {threshold}")
        return v


class PerkDefinition(BaseModel):
    """Complete definition of a single perk (shop, forged or boss-exclusive)."""

    id: str
    """Unique identifier (e.g. 'lucky_clover')."""

    name: str
    description: str = ""
    cost: int = Field(default=0, ge=0)
    """Price in cash."""

    tier: str = "common"
    """Shop rarity; drives offer weights, not roll tiers."""

    stats: dict[str, StatOp] = Field(default_factory=dict)
    """Stat name -> operation, scaled by the owned stack count."""

    modify: dict[str, ModifyOp] = Field(default_factory=dict)
    """Mod id -> operation on that mod's rarity multiplier."""

    properties: PerkProperties = Field(default_factory=PerkProperties)
    conditions: list[PerkCondition] = Field(default_factory=list)
    special: list[str] = Field(default_factory=list)
    """Behaviour flags, e.g. ``"auto_roll_common"`` or ``"guaranteed_mod:golden"``."""

    source: str | None = None
    """Boss id for boss-exclusive perks; ``None`` for shop perks."""

    @model_validator(mode="after")
    def _no_self_reference(self) -> PerkDefinition:
        for perk_id in self.required_perks:
            if perk_id == self.id:
                raise ValueError(f"perk {self.id!r} requires itself")
        if self.id in self.properties.conflict:
            raise ValueError(f"perk {self.id!r} conflicts with itself")
        return self

    # -- derived views ---------------------------------------------------------

    @property
    def stack_limit(self) -> int:
        return self.properties.stack

    @property
    def forging(self) -> ForgingCondition | None:
        for condition in self.conditions:
            if isinstance(condition, ForgingCondition):
                return condition
        return None

    @property
    def is_forgeable(self) -> bool:
        return self.forging is not None

    @property
    def required_perks(self) -> list[str]:
        required: list[str] = []
        for condition in self.conditions:
            if isinstance(condition, RequiresPerkCondition):
                required.extend(condition.perk_ids)
        return required

    @property
    def unlock_requirements(self) -> list[StatThreshold | ItemCollected]:
        return [c.requirement for c in self.conditions if isinstance(c, UnlockCondition)]

    @property
    def bonus_triggers(self) -> list[BonusTriggerCondition]:
        return [c for c in self.conditions if isinstance(c, BonusTriggerCondition)]

    @property
    def guaranteed_mod_flags(self) -> list[str]:
        """Mod ids guaranteed through ``special`` flags."""
        return [
            flag[len(GUARANTEED_MOD_PREFIX):]
            for flag in self.special
            if flag.startswith(GUARANTEED_MOD_PREFIX)
        ]


class BossDefinition(BaseModel):
    """A boss sitting on a fixed round, with its pool of exclusive perks."""

    id: str
    name: str
    description: str = ""
    round: int = Field(ge=1)
    perk_ids: list[str] = Field(default_factory=list)
