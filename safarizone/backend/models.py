"""Value objects handed back by the session layer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    HOST = "HOST"
    PLAYER = "PLAYER"


@dataclass(frozen=True)
class GameAccess:
    arena_id: str
    role: Role
    player_id: str | None = None


@dataclass(frozen=True)
class OpenedGame:
    arena_id: str
    game_id: str
    host_token: str


@dataclass(frozen=True)
class AdmittedPlayer:
    arena_id: str
    player_id: str
    player_token: str
