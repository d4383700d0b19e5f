"""Consumable definitions -- single-use items bought in the shop or dropped by bosses."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ConsumableEffect(str, Enum):
    """What using the consumable does."""

    ROLLS = "rolls"
    """Refunds ``value`` used rolls for the current round."""

    CASH = "cash"
    """Adds ``value`` cash immediately."""

    INTEREST = "interest"
    """Adds ``value`` permanent bonus interest stacks."""


class ConsumableDefinition(BaseModel):
    """Complete definition of a single consumable."""

    id: str
    name: str
    description: str = ""
    cost: int = Field(default=0, ge=0)
    effect: ConsumableEffect
    value: int = Field(default=1, ge=0)
    tier: str = "common"
