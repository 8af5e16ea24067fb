"""Backend package for the Safari Zone tournament server."""

from .catch import CatchOutcome, attempt_catch, effective_catch_rate, flee_chance, shake_threshold
from .clock import AsyncioClock, Clock, ManualClock
from .config import BackendSettings, load_settings
from .encounters import Encounter, generate_encounter
from .errors import AlreadyInLobby, ConfigurationError, InvariantViolation, NotInLobby, SafariError, UserError
from .game import ArenaRegistry, GameOptions, GameStatus, SafariGame
from .modes import EndReason, ModeName, TournamentResult, TournamentRules
from .rng import RandomSource, ScriptedRandomSource, SystemRandomSource
from .species import InMemorySpeciesCatalog, SpeciesCatalog, SpeciesInfo, build_default_catalog
from .store import InMemoryZoneMapStore, PostgresZoneMapStore, ZoneMapStore, create_store
from .tournament import Action, TournamentEngine
from .zones import EncounterSpec, Zone, ZoneMap

__all__ = [
    "Action",
    "AlreadyInLobby",
    "ArenaRegistry",
    "AsyncioClock",
    "attempt_catch",
    "BackendSettings",
    "build_default_catalog",
    "CatchOutcome",
    "Clock",
    "ConfigurationError",
    "create_store",
    "effective_catch_rate",
    "Encounter",
    "EncounterSpec",
    "EndReason",
    "flee_chance",
    "GameOptions",
    "GameStatus",
    "generate_encounter",
    "InMemorySpeciesCatalog",
    "InMemoryZoneMapStore",
    "InvariantViolation",
    "load_settings",
    "ManualClock",
    "ModeName",
    "NotInLobby",
    "PostgresZoneMapStore",
    "RandomSource",
    "SafariError",
    "SafariGame",
    "ScriptedRandomSource",
    "shake_threshold",
    "SpeciesCatalog",
    "SpeciesInfo",
    "SystemRandomSource",
    "TournamentEngine",
    "TournamentResult",
    "TournamentRules",
    "UserError",
    "Zone",
    "ZoneMap",
    "ZoneMapStore",
]
