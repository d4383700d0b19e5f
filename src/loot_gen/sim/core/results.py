"""Result types returned by every player-facing controller operation.

Player actions never raise for ordinary failures (not enough cash, perk
already owned, ...).  They return an :class:`ActionResult` whose ``error``
says why, and leave the run state untouched.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from loot_gen.sim.core.game_state import RolledThing


class ActionError(str, Enum):
    """Why a player action was rejected."""

    INSUFFICIENT_FUNDS = "insufficient_funds"
    ALREADY_OWNED = "already_owned"
    STACK_LIMIT_REACHED = "stack_limit_reached"
    CONFLICT = "conflict"
    MISSING_REQUIREMENT = "missing_requirement"
    NOT_FOUND = "not_found"
    INVALID_STATE = "invalid_state"
    """No rolls left, boss reward pending or incomplete, slots full, ..."""


@dataclass(frozen=True)
class ActionResult:
    """Outcome of a controller operation.

    Attributes
    ----------
    success:
        ``True`` if the action was applied.
    message:
        Human-readable summary, suitable for a status line.
    error:
        The failure category, ``None`` on success.
    is_boss_reward:
        ``True`` when advancing entered a boss reward that must be picked
        before the next round starts.
    thing:
        The rolled thing; only set on successful rolls.
    """

    success: bool
    message: str
    error: ActionError | None = None
    is_boss_reward: bool = False
    thing: RolledThing | None = None

    @classmethod
    def ok(
        cls,
        message: str,
        *,
        is_boss_reward: bool = False,
        thing: RolledThing | None = None,
    ) -> ActionResult:
        return cls(True, message, None, is_boss_reward, thing)

    @classmethod
    def fail(cls, error: ActionError, message: str) -> ActionResult:
        return cls(False, message, error)

    def __bool__(self) -> bool:
        return self.success
