"""Wild encounter generation from a zone's weighted table."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .rng import RandomSource
from .species import SpeciesCatalog, SpeciesInfo
from .zones import Zone

INITIAL_ANGER = 2
MAX_ANGER = 255


@dataclass
class Encounter:
    species: SpeciesInfo
    level: int
    anger: int = INITIAL_ANGER
    eating_turns: int = 0

    @property
    def name(self) -> str:
        return self.species.name

    @property
    def is_eating(self) -> bool:
        return self.eating_turns > 0

    @property
    def is_angry(self) -> bool:
        return self.anger > INITIAL_ANGER

    def to_dict(self) -> dict[str, Any]:
        status = "eating" if self.is_eating else "angry" if self.is_angry else "calm"
        return {"species": self.name, "level": self.level, "status": status}


def generate_encounter(zone: Zone | None, catalog: SpeciesCatalog, rng: RandomSource) -> Encounter | None:
    """Pick a wild encounter by rarity weight, or None when nothing appears.

    Entries whose species the catalog cannot resolve are passed over; the
    draw then lands on the next resolvable entry in table order.
    """
    if zone is None or not zone.encounters:
        return None

    remainder = rng.uniform_float() * zone.total_rarity
    for spec in zone.encounters:
        remainder -= spec.rarity
        if remainder > 0:
            continue
        species = catalog.resolve(spec.species)
        if not species.exists:
            continue
        level = rng.uniform_int(spec.min_level, spec.max_level)
        return Encounter(species=species, level=level)
    return None
