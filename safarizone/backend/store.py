"""Persistence interfaces and implementations for arena zone maps."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol
import uuid

from safarizone.backend.errors import UserError
from safarizone.backend.species import to_id
from safarizone.backend.zones import EncounterSpec, Zone, ZoneMap


class ZoneMapStore(Protocol):
    def add_zone(self, arena_id: str, zone_id: str, name: str) -> str:
        """Create an empty zone and return its normalized id."""

    def set_start_zone(self, arena_id: str, zone_id: str) -> str:
        """Mark an existing zone as the arena's start zone."""

    def add_encounter(self, arena_id: str, zone_id: str, spec: EncounterSpec) -> EncounterSpec:
        """Append a validated entry to a zone's encounter table."""

    def remove_encounter(self, arena_id: str, zone_id: str, species: str) -> EncounterSpec:
        """Remove the first entry for ``species`` from a zone's table."""

    def get_zone_map(self, arena_id: str) -> ZoneMap | None:
        """Return a frozen snapshot of the arena's map, or None if unconfigured."""


def _zone_not_found(zone_id: str) -> UserError:
    return UserError(f"Zone ID '{zone_id}' not found.")


@dataclass
class InMemoryZoneMapStore:
    def __post_init__(self) -> None:
        self._maps: dict[str, dict[str, Any]] = {}

    def _arena(self, arena_id: str) -> dict[str, Any]:
        return self._maps.setdefault(arena_id, {"startZone": "", "zones": {}})

    def _zone(self, arena_id: str, zone_id: str) -> dict[str, Any]:
        zone = self._maps.get(arena_id, {}).get("zones", {}).get(zone_id)
        if zone is None:
            raise _zone_not_found(zone_id)
        return zone

    def add_zone(self, arena_id: str, zone_id: str, name: str) -> str:
        normalized = to_id(zone_id)
        if not normalized or not name.strip():
            raise UserError("A zone needs an id and a name.")
        zones = self._arena(arena_id)["zones"]
        if normalized in zones:
            raise UserError(f"Zone ID '{normalized}' already exists.")
        zones[normalized] = {"name": name.strip(), "encounters": []}
        return normalized

    def set_start_zone(self, arena_id: str, zone_id: str) -> str:
        normalized = to_id(zone_id)
        self._zone(arena_id, normalized)
        self._maps[arena_id]["startZone"] = normalized
        return normalized

    def add_encounter(self, arena_id: str, zone_id: str, spec: EncounterSpec) -> EncounterSpec:
        self._zone(arena_id, to_id(zone_id))["encounters"].append(spec)
        return spec

    def remove_encounter(self, arena_id: str, zone_id: str, species: str) -> EncounterSpec:
        normalized = to_id(zone_id)
        encounters: list[EncounterSpec] = self._zone(arena_id, normalized)["encounters"]
        species_id = to_id(species)
        for index, spec in enumerate(encounters):
            if to_id(spec.species) == species_id:
                return encounters.pop(index)
        raise UserError(f"That Pokémon is not in the '{normalized}' zone.")

    def get_zone_map(self, arena_id: str) -> ZoneMap | None:
        payload = self._maps.get(arena_id)
        if payload is None:
            return None
        return ZoneMap(
            start_zone_id=payload["startZone"],
            zones={
                zone_id: Zone(name=zone["name"], encounters=tuple(zone["encounters"]))
                for zone_id, zone in payload["zones"].items()
            },
        )


@dataclass
class PostgresZoneMapStore:
    database_url: str

    def _connect(self) -> Any:
        import psycopg

        return psycopg.connect(self.database_url)

    def _require_zone(self, cur: Any, arena_id: str, zone_id: str) -> None:
        cur.execute(
            "SELECT 1 FROM safari_zones WHERE arena_id = %s AND zone_id = %s",
            (arena_id, zone_id),
        )
        if cur.fetchone() is None:
            raise _zone_not_found(zone_id)

    def add_zone(self, arena_id: str, zone_id: str, name: str) -> str:
        normalized = to_id(zone_id)
        if not normalized or not name.strip():
            raise UserError("A zone needs an id and a name.")
        now = datetime.now(timezone.utc)

        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT 1 FROM safari_zones WHERE arena_id = %s AND zone_id = %s",
                    (arena_id, normalized),
                )
                if cur.fetchone() is not None:
                    raise UserError(f"Zone ID '{normalized}' already exists.")
                cur.execute(
                    """
                    INSERT INTO safari_arenas (arena_id, start_zone, updated_at)
                    VALUES (%s, '', %s)
                    ON CONFLICT (arena_id) DO UPDATE SET updated_at = EXCLUDED.updated_at
                    """,
                    (arena_id, now),
                )
                cur.execute(
                    """
                    INSERT INTO safari_zones (arena_id, zone_id, name, position)
                    VALUES (%s, %s, %s, (SELECT COALESCE(MAX(position) + 1, 0) FROM safari_zones WHERE arena_id = %s))
                    """,
                    (arena_id, normalized, name.strip(), arena_id),
                )
            conn.commit()
        return normalized

    def set_start_zone(self, arena_id: str, zone_id: str) -> str:
        normalized = to_id(zone_id)
        with self._connect() as conn:
            with conn.cursor() as cur:
                self._require_zone(cur, arena_id, normalized)
                cur.execute(
                    "UPDATE safari_arenas SET start_zone = %s, updated_at = %s WHERE arena_id = %s",
                    (normalized, datetime.now(timezone.utc), arena_id),
                )
            conn.commit()
        return normalized

    def add_encounter(self, arena_id: str, zone_id: str, spec: EncounterSpec) -> EncounterSpec:
        normalized = to_id(zone_id)
        with self._connect() as conn:
            with conn.cursor() as cur:
                self._require_zone(cur, arena_id, normalized)
                cur.execute(
                    """
                    INSERT INTO safari_encounters
                        (id, arena_id, zone_id, species, min_level, max_level, rarity, position)
                    VALUES (%s, %s, %s, %s, %s, %s, %s,
                        (SELECT COALESCE(MAX(position) + 1, 0) FROM safari_encounters
                         WHERE arena_id = %s AND zone_id = %s))
                    """,
                    (
                        str(uuid.uuid4()),
                        arena_id,
                        normalized,
                        spec.species,
                        spec.min_level,
                        spec.max_level,
                        spec.rarity,
                        arena_id,
                        normalized,
                    ),
                )
            conn.commit()
        return spec

    def remove_encounter(self, arena_id: str, zone_id: str, species: str) -> EncounterSpec:
        normalized = to_id(zone_id)
        species_id = to_id(species)
        with self._connect() as conn:
            with conn.cursor() as cur:
                self._require_zone(cur, arena_id, normalized)
                cur.execute(
                    """
                    SELECT id, species, min_level, max_level, rarity
                    FROM safari_encounters
                    WHERE arena_id = %s AND zone_id = %s
                    ORDER BY position
                    """,
                    (arena_id, normalized),
                )
                rows = cur.fetchall()
                match = next((row for row in rows if to_id(row[1]) == species_id), None)
                if match is None:
                    raise UserError(f"That Pokémon is not in the '{normalized}' zone.")
                cur.execute("DELETE FROM safari_encounters WHERE id = %s", (match[0],))
            conn.commit()
        return EncounterSpec(species=match[1], min_level=match[2], max_level=match[3], rarity=match[4])

    def get_zone_map(self, arena_id: str) -> ZoneMap | None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT start_zone FROM safari_arenas WHERE arena_id = %s", (arena_id,))
                arena_row = cur.fetchone()
                if arena_row is None:
                    return None
                cur.execute(
                    "SELECT zone_id, name FROM safari_zones WHERE arena_id = %s ORDER BY position",
                    (arena_id,),
                )
                zone_rows = cur.fetchall()
                cur.execute(
                    """
                    SELECT zone_id, species, min_level, max_level, rarity
                    FROM safari_encounters
                    WHERE arena_id = %s
                    ORDER BY zone_id, position
                    """,
                    (arena_id,),
                )
                encounter_rows = cur.fetchall()

        tables: dict[str, list[EncounterSpec]] = {zone_id: [] for zone_id, _ in zone_rows}
        for zone_id, species, min_level, max_level, rarity in encounter_rows:
            if zone_id in tables:
                tables[zone_id].append(
                    EncounterSpec(species=species, min_level=min_level, max_level=max_level, rarity=rarity)
                )
        return ZoneMap(
            start_zone_id=arena_row[0],
            zones={zone_id: Zone(name=name, encounters=tuple(tables[zone_id])) for zone_id, name in zone_rows},
        )


def create_store(database_url: str | None) -> ZoneMapStore:
    if database_url:
        return PostgresZoneMapStore(database_url=database_url)
    return InMemoryZoneMapStore()
