"""Weighted random selection shared by rarity, template, mod and shop rolls."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Mapping, Sequence, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class WeightedEntry(Generic[T]):
    """A candidate and its (non-negative) selection weight."""

    item: T
    weight: float


def entries_from_mapping(weights: Mapping[T, float]) -> list[WeightedEntry[T]]:
    """Turn a ``{item: weight}`` mapping into entries, preserving key order."""
    return [WeightedEntry(item, weight) for item, weight in weights.items()]


def select_by_weight(
    entries: Sequence[WeightedEntry[T]],
    rng: Callable[[], float],
) -> T | None:
    """Pick one entry with probability ``weight / total``.

    Draws ``r = rng() * total`` and walks the entries in order, subtracting
    each weight; the first entry that brings the remainder to ``<= 0`` wins.
    Returns ``None`` for an empty sequence and the first entry when every
    weight is zero, so a degenerate table never divides by zero.
    """
    if not entries:
        return None

    total = sum(entry.weight for entry in entries)
    if total <= 0:
        return entries[0].item

    remainder = rng() * total
    for entry in entries:
        if entry.weight <= 0:
            continue
        remainder -= entry.weight
        if remainder <= 0:
            return entry.item

    # Float drift can leave a sliver of remainder after the last entry.
    for entry in reversed(entries):
        if entry.weight > 0:
            return entry.item
    return entries[0].item
