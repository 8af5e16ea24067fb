"""Generation I Safari Zone catch and flee formulas."""

from __future__ import annotations

from dataclasses import dataclass
import math

from .encounters import Encounter
from .rng import RandomSource

DEFAULT_CATCH_RATE = 45
MAX_CATCH_RATE = 255
SHAKE_CHECKS = 4


@dataclass(frozen=True)
class CatchOutcome:
    caught: bool
    # None when the first roll fails outright, otherwise the shake that failed.
    shakes: int | None = None

    def message(self, species: str) -> str:
        if self.caught:
            return f"Gotcha! {species} was caught!"
        if self.shakes is None:
            return f"{species} broke free!"
        if self.shakes == 0:
            return f"Oh no! The {species} broke free immediately!"
        if self.shakes == 1:
            return f"The ball shook once... but the {species} broke free!"
        return f"The ball shook {self.shakes} times... but the {species} broke free!"


def effective_catch_rate(encounter: Encounter) -> int:
    rate: float = encounter.species.catch_rate or DEFAULT_CATCH_RATE
    if encounter.anger > 2:
        rate *= 2
    if encounter.eating_turns > 0:
        rate /= 2
    return max(1, math.floor(min(MAX_CATCH_RATE, rate)))


def shake_threshold(catch_rate: int) -> int:
    rate = max(1, catch_rate)
    return math.floor(1048560 / math.sqrt(math.sqrt(16711680 / rate)) - 1)


def flee_chance(encounter: Encounter) -> int:
    return math.floor(min(255, encounter.species.base_speed * encounter.anger) / 4)


def attempt_catch(encounter: Encounter, rng: RandomSource) -> CatchOutcome:
    """Resolve one ball throw; the caller has already paid for the ball."""
    rate = effective_catch_rate(encounter)
    if rng.uniform_int(0, 255) > rate:
        return CatchOutcome(caught=False)

    threshold = shake_threshold(rate)
    for shake in range(SHAKE_CHECKS):
        if rng.uniform_int(0, 65535) >= threshold:
            return CatchOutcome(caught=False, shakes=shake)
    return CatchOutcome(caught=True)
