"""Per-player world state and the tournament scoreboard records."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from .encounters import Encounter
from .errors import InvariantViolation

ACTION_LOG_SIZE = 7


class ActionLog:
    """Newest-first ring buffer of the messages shown to one player."""

    def __init__(self, capacity: int = ACTION_LOG_SIZE) -> None:
        self._entries: deque[str] = deque(maxlen=capacity)

    def add(self, message: str) -> None:
        self._entries.appendleft(message)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def latest(self) -> str | None:
        return self._entries[0] if self._entries else None

    def to_list(self) -> list[str]:
        return list(self._entries)


@dataclass(frozen=True)
class CaughtCreature:
    species: str
    level: int


@dataclass(frozen=True)
class CaughtRecord:
    species: str
    level: int
    timestamp: float
    points: int

    def to_dict(self) -> dict[str, Any]:
        return {"species": self.species, "level": self.level, "timestamp": self.timestamp, "points": self.points}


@dataclass
class PlayerState:
    player_id: str
    display_name: str
    ball_count: int
    steps: int
    zone_id: str
    steps_until_warp: int
    entered_at: float
    last_action_at: float
    caught: list[CaughtCreature] = field(default_factory=list)
    current_encounter: Encounter | None = None
    action_log: ActionLog = field(default_factory=ActionLog)
    connected: bool = True

    def log(self, message: str) -> None:
        self.action_log.add(message)


@dataclass
class Participant:
    player_id: str
    display_name: str
    score: int = 0
    caught_records: list[CaughtRecord] = field(default_factory=list)
    eliminated: bool = False
    disconnected: bool = False

    @property
    def caught_species(self) -> set[str]:
        return {record.species for record in self.caught_records}

    def to_dict(self) -> dict[str, Any]:
        return {
            "playerId": self.player_id,
            "name": self.display_name,
            "score": self.score,
            "caught": [record.to_dict() for record in self.caught_records],
            "eliminated": self.eliminated,
            "disconnected": self.disconnected,
        }


class Roster:
    """PlayerState and Participant pairs keyed by the same player id.

    A Participant may outlive its PlayerState (an active-phase removal keeps
    the scoreboard entry), but a PlayerState never exists without one.
    """

    def __init__(self) -> None:
        self._states: dict[str, PlayerState] = {}
        self._participants: dict[str, Participant] = {}

    def add(self, state: PlayerState) -> Participant:
        player_id = state.player_id
        if player_id in self._states or player_id in self._participants:
            raise InvariantViolation(f"player {player_id!r} is already on the roster")
        participant = Participant(player_id=player_id, display_name=state.display_name)
        self._states[player_id] = state
        self._participants[player_id] = participant
        return participant

    def discard(self, player_id: str) -> PlayerState | None:
        """Drop both halves of the pair (lobby departures)."""
        self._participants.pop(player_id, None)
        return self._states.pop(player_id, None)

    def remove_state(self, player_id: str) -> PlayerState | None:
        """Drop the in-world state but keep the scoreboard record."""
        state = self._states.pop(player_id, None)
        if state is not None and player_id not in self._participants:
            raise InvariantViolation(f"player {player_id!r} had no participant record")
        return state

    def __contains__(self, player_id: object) -> bool:
        return player_id in self._states

    def __len__(self) -> int:
        return len(self._states)

    def state(self, player_id: str) -> PlayerState | None:
        return self._states.get(player_id)

    def participant(self, player_id: str) -> Participant | None:
        return self._participants.get(player_id)

    def pair(self, player_id: str) -> tuple[PlayerState, Participant] | None:
        state = self._states.get(player_id)
        if state is None:
            return None
        participant = self._participants.get(player_id)
        if participant is None:
            raise InvariantViolation(f"player {player_id!r} has no participant record")
        return state, participant

    def states(self) -> list[PlayerState]:
        return list(self._states.values())

    def participants(self) -> list[Participant]:
        return list(self._participants.values())

    def set_connected(self, player_id: str, connected: bool) -> None:
        pair = self.pair(player_id)
        if pair is None:
            return
        state, participant = pair
        state.connected = connected
        participant.disconnected = not connected

    def rename(self, player_id: str, display_name: str) -> None:
        pair = self.pair(player_id)
        if pair is None:
            return
        state, participant = pair
        state.display_name = display_name
        participant.display_name = display_name

    def verify(self) -> None:
        for player_id, state in self._states.items():
            if player_id not in self._participants:
                raise InvariantViolation(f"player {player_id!r} has no participant record")
            if state.ball_count < 0 or state.steps < 0:
                raise InvariantViolation(f"player {player_id!r} has negative resources")
