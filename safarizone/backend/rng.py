"""Random number sources injected into the game core."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
import random
from typing import Protocol


class RandomSource(Protocol):
    def uniform_int(self, lo: int, hi: int) -> int:
        """Return an integer in the inclusive range [lo, hi]."""

    def uniform_float(self) -> float:
        """Return a float in [0, 1)."""


def chance(rng: RandomSource, threshold: int) -> bool:
    """Roll a byte and succeed when it lands below ``threshold``."""
    return rng.uniform_int(0, 255) < threshold


class SystemRandomSource:
    def __init__(self, seed: int | None = None) -> None:
        self._random = random.Random(seed)

    def uniform_int(self, lo: int, hi: int) -> int:
        return self._random.randint(lo, hi)

    def uniform_float(self) -> float:
        return self._random.random()


class ScriptedRandomSource:
    """Replays fixed sequences so tests can assert exact outcomes.

    Integers and floats are consumed from separate queues. Running out of
    values, or scripting an integer outside the requested range, raises
    ``LookupError`` / ``ValueError`` so a test never silently diverges.
    """

    def __init__(self, ints: Iterable[int] = (), floats: Iterable[float] = ()) -> None:
        self._ints: deque[int] = deque(ints)
        self._floats: deque[float] = deque(floats)

    def uniform_int(self, lo: int, hi: int) -> int:
        if not self._ints:
            raise LookupError(f"scripted integers exhausted (requested [{lo}, {hi}])")
        value = self._ints.popleft()
        if value < lo or value > hi:
            raise ValueError(f"scripted integer {value} outside [{lo}, {hi}]")
        return value

    def uniform_float(self) -> float:
        if not self._floats:
            raise LookupError("scripted floats exhausted")
        value = self._floats.popleft()
        if not 0.0 <= value < 1.0:
            raise ValueError(f"scripted float {value} outside [0, 1)")
        return value

    def push_ints(self, *values: int) -> None:
        self._ints.extend(values)

    def push_floats(self, *values: float) -> None:
        self._floats.extend(values)

    @property
    def remaining(self) -> tuple[int, int]:
        return len(self._ints), len(self._floats)
