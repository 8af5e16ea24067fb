"""Zone map model: named zones with weighted encounter tables."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from .errors import ConfigurationError, UserError
from .rng import RandomSource
from .species import SpeciesCatalog, to_id

MAX_ZONES_PER_GAME = 25
MIN_LEVEL = 1
MAX_LEVEL = 100


@dataclass(frozen=True)
class EncounterSpec:
    species: str
    min_level: int
    max_level: int
    rarity: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "species": self.species,
            "level": [self.min_level, self.max_level],
            "rarity": self.rarity,
        }


@dataclass(frozen=True)
class Zone:
    name: str
    encounters: tuple[EncounterSpec, ...] = ()

    @property
    def total_rarity(self) -> int:
        return sum(spec.rarity for spec in self.encounters)


@dataclass(frozen=True)
class ZoneMap:
    start_zone_id: str
    zones: Mapping[str, Zone] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "zones", MappingProxyType(dict(self.zones)))

    @property
    def zone_ids(self) -> list[str]:
        return list(self.zones)

    def zone(self, zone_id: str) -> Zone | None:
        return self.zones.get(zone_id)

    def zone_name(self, zone_id: str, default: str = "the area") -> str:
        zone = self.zones.get(zone_id)
        return zone.name if zone is not None else default

    def rarity_of(self, zone_id: str, species: str) -> int | None:
        zone = self.zones.get(zone_id)
        if zone is None:
            return None
        species_id = to_id(species)
        for spec in zone.encounters:
            if to_id(spec.species) == species_id:
                return spec.rarity
        return None

    def species_names(self) -> set[str]:
        return {spec.species for zone in self.zones.values() for spec in zone.encounters}

    def to_dict(self) -> dict[str, Any]:
        return {
            "startZone": self.start_zone_id,
            "zones": {
                zone_id: {
                    "name": zone.name,
                    "encounters": [spec.to_dict() for spec in zone.encounters],
                }
                for zone_id, zone in self.zones.items()
            },
        }


def validate_zone_map(zone_map: ZoneMap | None) -> ZoneMap:
    """Raise ConfigurationError unless the map can host a game."""
    if zone_map is None or not zone_map.zones:
        raise ConfigurationError("This arena has no Safari zones configured.")
    if not zone_map.start_zone_id:
        raise ConfigurationError("This arena's Safari map has no start zone.")
    if zone_map.start_zone_id not in zone_map.zones:
        raise ConfigurationError(f"Start zone '{zone_map.start_zone_id}' does not exist.")
    return zone_map


def make_encounter_spec(
    catalog: SpeciesCatalog,
    species: str,
    min_level: int,
    max_level: int,
    rarity: int,
) -> EncounterSpec:
    """Validate a configuration entry and canonicalize its species name."""
    info = catalog.resolve(species)
    if not info.exists:
        raise UserError(f"Invalid species: {species}")
    if min_level < MIN_LEVEL or max_level > MAX_LEVEL or min_level > max_level:
        raise UserError("Invalid level range.")
    if rarity <= 0:
        raise UserError("Rarity must be a positive number.")
    return EncounterSpec(species=info.name, min_level=min_level, max_level=max_level, rarity=rarity)


def select_game_zones(zone_map: ZoneMap, rng: RandomSource, limit: int = MAX_ZONES_PER_GAME) -> ZoneMap:
    """Keep the start zone plus a random subset of the rest when over ``limit``."""
    if len(zone_map.zones) <= limit:
        return zone_map

    others = [zone_id for zone_id in zone_map.zones if zone_id != zone_map.start_zone_id]
    for i in range(len(others) - 1, 0, -1):
        j = rng.uniform_int(0, i)
        others[i], others[j] = others[j], others[i]

    selected = {zone_map.start_zone_id, *others[: limit - 1]}
    return ZoneMap(
        start_zone_id=zone_map.start_zone_id,
        zones={zone_id: zone for zone_id, zone in zone_map.zones.items() if zone_id in selected},
    )
