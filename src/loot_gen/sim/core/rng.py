"""Seeded random streams for deterministic loot rolls.

Each sub-system (loot, mods, perks, luck, ...) draws from its own *labelled*
stream so that consuming random values in one system does not perturb
another.  A stream's seed is the 32-bit FNV-1a hash of ``"{seed}:{label}"``
and the generator itself is Mulberry32, so any client implementing the same
two functions reproduces a run from its seed.
"""

from __future__ import annotations

import logging
import secrets
from typing import MutableSequence, Sequence, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)

_MASK_32 = 0xFFFFFFFF
_FNV_OFFSET_BASIS = 2166136261
_FNV_PRIME = 16777619
_MULBERRY_INCREMENT = 0x6D2B79F5
_TWO_POW_32 = 4294967296.0

DEFAULT_STREAM_LABELS: tuple[str, ...] = ("loot", "mods", "perks", "luck", "shop", "boss")


def _imul(a: int, b: int) -> int:
    """32-bit integer multiply, keeping only the low 32 bits."""
    return (a * b) & _MASK_32


def fnv1a_32(text: str) -> int:
    """Return the 32-bit FNV-1a hash of *text*.

    The hash folds UTF-16 code units rather than UTF-8 bytes, so labels
    outside the BMP contribute two units each.
    """
    h = _FNV_OFFSET_BASIS
    data = text.encode("utf-16-le")
    for i in range(0, len(data), 2):
        h ^= data[i] | (data[i + 1] << 8)
        h = _imul(h, _FNV_PRIME)
    return h


def derive_seed(seed: int, label: str) -> int:
    """Derive the 32-bit seed of the stream called *label*."""
    return fnv1a_32(f"{seed & _MASK_32}:{label}")


class RngStream:
    """One deterministic stream of floats in ``[0.0, 1.0)``.

    Calling the stream returns the next float, so it can be passed anywhere
    a ``() -> float`` is expected.

    Parameters
    ----------
    seed:
        32-bit seed for the Mulberry32 state.
    label:
        Name of the stream, kept for debugging.
    """

    def __init__(self, seed: int, label: str = "") -> None:
        self._seed = seed & _MASK_32
        self._state = self._seed
        self.label = label

    # -- public properties ---------------------------------------------------

    @property
    def seed(self) -> int:
        """Return the seed this stream was initialised with."""
        return self._seed

    # -- core random methods -------------------------------------------------

    def __call__(self) -> float:
        self._state = (self._state + _MULBERRY_INCREMENT) & _MASK_32
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK_32
        return ((t ^ (t >> 14)) & _MASK_32) / _TWO_POW_32

    def random_float(self) -> float:
        """Return a random float in the half-open interval ``[0.0, 1.0)``."""
        return self()

    def random_int(self, low: int, high: int) -> int:
        """Return a random integer *N* such that ``low <= N <= high``."""
        if high < low:
            raise ValueError(f"empty range [{low}, {high}]")
        return low + int(self() * (high - low + 1))

    def random_choice(self, seq: Sequence[T]) -> T:
        """Return a random element from a non-empty sequence."""
        if not seq:
            raise IndexError("cannot choose from an empty sequence")
        return seq[int(self() * len(seq))]

    def shuffle(self, lst: MutableSequence[T]) -> None:
        """Shuffle *lst* in-place (Fisher-Yates)."""
        for i in range(len(lst) - 1, 0, -1):
            j = int(self() * (i + 1))
            lst[i], lst[j] = lst[j], lst[i]

    # -- dunder helpers ------------------------------------------------------

    def __repr__(self) -> str:
        return f"RngStream(label={self.label!r}, seed={self._seed})"


class RngStreamFactory:
    """Derives independent, labelled streams from one run seed.

    Streams are created lazily and cached: asking for the same label twice
    returns the *same* stream object, so a stream is never re-seeded in the
    middle of a run.

    Parameters
    ----------
    seed:
        Run seed.  Only the low 32 bits are used.
    deterministic:
        ``False`` marks a factory whose seed came from OS entropy rather than
        from the player; replay guarantees do not hold for such a run.
    """

    def __init__(self, seed: int, *, deterministic: bool = True) -> None:
        self._seed = seed & _MASK_32
        self.deterministic = deterministic
        self._streams: dict[str, RngStream] = {}

    @classmethod
    def unseeded(cls) -> RngStreamFactory:
        """Create a factory seeded from OS entropy, flagged non-deterministic."""
        seed = secrets.randbits(32)
        logger.warning("No run seed supplied; using non-deterministic seed %d", seed)
        return cls(seed, deterministic=False)

    @property
    def seed(self) -> int:
        """Return the run seed."""
        return self._seed

    def stream(self, label: str) -> RngStream:
        """Return the stream for *label*, creating it on first use."""
        existing = self._streams.get(label)
        if existing is not None:
            return existing
        stream = RngStream(derive_seed(self._seed, label), label=label)
        self._streams[label] = stream
        logger.debug("Derived stream %r (seed=%d) from run seed %d", label, stream.seed, self._seed)
        return stream

    def fresh(self, label: str) -> RngStream:
        """Return a brand-new stream for *label*, positioned at its start.

        Unlike :meth:`stream` this does not touch the cache; it is meant
        for replaying a sequence, not for drawing live values.
        """
        return RngStream(derive_seed(self._seed, label), label=label)

    def __getitem__(self, label: str) -> RngStream:
        return self.stream(label)

    def __repr__(self) -> str:
        return f"RngStreamFactory(seed={self._seed}, deterministic={self.deterministic})"
