import pytest

from safarizone.backend.errors import ConfigurationError, UserError
from safarizone.backend.rng import SystemRandomSource
from safarizone.backend.species import build_default_catalog
from safarizone.backend.zones import (
    MAX_ZONES_PER_GAME,
    EncounterSpec,
    Zone,
    ZoneMap,
    make_encounter_spec,
    select_game_zones,
    validate_zone_map,
)


def _forest_map() -> ZoneMap:
    return ZoneMap(
        start_zone_id="forest",
        zones={
            "forest": Zone(
                name="Viridian Forest",
                encounters=(EncounterSpec("Pidgey", 3, 5, 80), EncounterSpec("Rattata", 2, 4, 20)),
            ),
            "lake": Zone(name="Lake", encounters=(EncounterSpec("Magikarp", 5, 15, 100),)),
        },
    )


def test_validate_zone_map_rejects_missing_or_empty_maps() -> None:
    with pytest.raises(ConfigurationError):
        validate_zone_map(None)
    with pytest.raises(ConfigurationError):
        validate_zone_map(ZoneMap(start_zone_id="forest", zones={}))


def test_validate_zone_map_rejects_unknown_or_unset_start_zone() -> None:
    zones = {"forest": Zone(name="Forest")}

    with pytest.raises(ConfigurationError):
        validate_zone_map(ZoneMap(start_zone_id="", zones=zones))
    with pytest.raises(ConfigurationError, match="does not exist"):
        validate_zone_map(ZoneMap(start_zone_id="cave", zones=zones))


def test_validate_zone_map_returns_valid_map() -> None:
    zone_map = _forest_map()

    assert validate_zone_map(zone_map) is zone_map


def test_zone_map_is_read_only_and_serializes_camel_case() -> None:
    zone_map = _forest_map()

    with pytest.raises(TypeError):
        zone_map.zones["cave"] = Zone(name="Cave")  # type: ignore[index]

    payload = zone_map.to_dict()
    assert payload["startZone"] == "forest"
    assert payload["zones"]["forest"]["name"] == "Viridian Forest"
    assert payload["zones"]["forest"]["encounters"][0] == {"species": "Pidgey", "level": [3, 5], "rarity": 80}


def test_rarity_lookup_matches_normalized_species_names() -> None:
    zone_map = _forest_map()

    assert zone_map.rarity_of("forest", "pidgey") == 80
    assert zone_map.rarity_of("forest", "Magikarp") is None
    assert zone_map.rarity_of("nowhere", "Pidgey") is None
    assert zone_map.zone_name("nowhere") == "the area"
    assert zone_map.species_names() == {"Pidgey", "Rattata", "Magikarp"}


def test_make_encounter_spec_canonicalizes_species() -> None:
    spec = make_encounter_spec(build_default_catalog(), species="nidoran f", min_level=2, max_level=6, rarity=10)

    assert spec == EncounterSpec(species="Nidoran-F", min_level=2, max_level=6, rarity=10)


@pytest.mark.parametrize(
    ("species", "min_level", "max_level", "rarity", "message"),
    [
        ("Missingno", 1, 5, 10, "Invalid species: Missingno"),
        ("Pidgey", 0, 5, 10, "Invalid level range."),
        ("Pidgey", 6, 5, 10, "Invalid level range."),
        ("Pidgey", 1, 101, 10, "Invalid level range."),
        ("Pidgey", 1, 5, 0, "Rarity must be a positive number."),
    ],
)
def test_make_encounter_spec_rejects_bad_entries(
    species: str, min_level: int, max_level: int, rarity: int, message: str
) -> None:
    with pytest.raises(UserError) as excinfo:
        make_encounter_spec(build_default_catalog(), species, min_level, max_level, rarity)

    assert str(excinfo.value) == message


def test_select_game_zones_keeps_small_maps_untouched() -> None:
    zone_map = _forest_map()

    assert select_game_zones(zone_map, SystemRandomSource(seed=1)) is zone_map


def test_select_game_zones_caps_large_maps_and_keeps_start_zone() -> None:
    zone_ids = [f"zone{i:02d}" for i in range(40)]
    zone_map = ZoneMap(start_zone_id="zone17", zones={zone_id: Zone(name=zone_id) for zone_id in zone_ids})

    selected = select_game_zones(zone_map, SystemRandomSource(seed=7))

    assert len(selected.zones) == MAX_ZONES_PER_GAME
    assert "zone17" in selected.zones
    assert selected.start_zone_id == "zone17"
    assert selected.zone_ids == [zone_id for zone_id in zone_ids if zone_id in selected.zones]
