"""Small numeric helpers shared by the value, chip and cash formulas."""

from __future__ import annotations

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with halves going towards +infinity.

    Python's built-in ``round`` uses banker's rounding (``round(2.5) == 2``);
    every price in the game rounds halves up instead (``2.5 -> 3``,
    ``-2.5 -> -2``).
    """
    return math.floor(value + 0.5)


def linear_transform(
    value: float,
    *,
    multi: float = 1.0,
    add: float = 0.0,
    subtract: float = 0.0,
    divide: float = 1.0,
    override: float | None = None,
) -> int:
    """Apply ``((override or value) * multi + add - subtract) / divide``.

    The divisor is ignored when it is not positive and the result is
    floored at zero before rounding.
    """
    if override is not None:
        value = override
    result = value * multi + add - subtract
    if divide > 0:
        result /= divide
    return max(0, round_half_up(result))
