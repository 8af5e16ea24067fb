"""Game lifecycle: lobby admission, tournament start and teardown."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
import logging
import threading
from typing import Any

from . import state as views
from .clock import Clock
from .errors import AlreadyInLobby, InvariantViolation, NotInLobby, UserError
from .modes import EndReason, ModeName, TournamentResult, TournamentRules, build_mode
from .player import PlayerState, Roster
from .rng import RandomSource
from .species import SpeciesCatalog
from .tournament import Action, TournamentEngine, TournamentState, roll_warp_countdown
from .zones import ZoneMap, select_game_zones, validate_zone_map

logger = logging.getLogger(__name__)

DEFAULT_BALLS = 30
MAX_BALLS = 100
INITIAL_STEPS = 500
MIN_DURATION_MINUTES = 1
MAX_DURATION_MINUTES = 120
ANNOUNCEMENT_LIMIT = 20


class GameStatus(str, Enum):
    LOBBY = "lobby"
    ACTIVE = "active"
    FINISHED = "finished"


@dataclass(frozen=True)
class GameOptions:
    duration_minutes: int
    mode: ModeName = ModeName.POINTS
    rules: TournamentRules = TournamentRules()
    targets: tuple[str, ...] = ()
    balls: int = DEFAULT_BALLS

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "mode", ModeName(self.mode))
        except ValueError:
            raise UserError("Invalid mode specified. Use 'points', 'race', or 'survival'.") from None
        if not MIN_DURATION_MINUTES <= self.duration_minutes <= MAX_DURATION_MINUTES:
            raise UserError(f"Duration must be between {MIN_DURATION_MINUTES} and {MAX_DURATION_MINUTES} minutes.")
        if not 1 <= self.balls <= MAX_BALLS:
            raise UserError(f"Invalid ball count. Must be a number between 1 and {MAX_BALLS}.")
        if self.rules.points_for_catch <= 0:
            raise UserError("Points per catch must be positive.")
        if self.mode is ModeName.RACE and not self.targets:
            raise UserError("Race mode requires at least one target Pokémon.")

    @property
    def duration_ms(self) -> int:
        return self.duration_minutes * 60 * 1000


def resolve_race_targets(targets: Iterable[str], zone_map: ZoneMap, catalog: SpeciesCatalog) -> tuple[str, ...]:
    """Canonicalize race targets and check every one can actually be found."""
    available = {catalog.resolve(name).name for name in zone_map.species_names()}
    resolved: list[str] = []
    for target in targets:
        info = catalog.resolve(target)
        if not info.exists:
            raise UserError(f"Invalid Pokémon: {target}")
        if info.name not in available:
            raise UserError(f"Cannot start race: '{info.name}' is not available in this game's zones.")
        if info.name not in resolved:
            resolved.append(info.name)
    return tuple(resolved)


class SafariGame:
    """One arena's game instance, serialized behind a single re-entrant lock."""

    def __init__(
        self,
        *,
        arena_id: str,
        game_number: int,
        zone_map: ZoneMap | None,
        options: GameOptions,
        catalog: SpeciesCatalog,
        rng: RandomSource,
        clock: Clock,
    ) -> None:
        zone_map = validate_zone_map(zone_map)
        self.arena_id = arena_id
        self.game_number = game_number
        self.options = options
        self.zone_map = select_game_zones(zone_map, rng)
        self.catalog = catalog
        self.rng = rng
        self.clock = clock
        self.status = GameStatus.LOBBY
        self.roster = Roster()
        self.announcements: deque[str] = deque(maxlen=ANNOUNCEMENT_LIMIT)
        self.on_update: Callable[[SafariGame], None] | None = None
        self._lock = threading.RLock()

        targets: tuple[str, ...] = ()
        if options.mode is ModeName.RACE:
            targets = resolve_race_targets(options.targets, self.zone_map, catalog)

        tournament = TournamentState(
            tournament_id=f"sft-{arena_id}-{game_number}",
            name=f"{options.mode.value.title()} Tournament",
            mode=options.mode,
            duration_ms=options.duration_ms,
            rules=options.rules,
            race_targets=targets,
        )
        self.engine = TournamentEngine(
            state=tournament,
            mode=build_mode(options.mode, rules=options.rules, targets=targets),
            zone_map=self.zone_map,
            roster=self.roster,
            catalog=catalog,
            rng=rng,
            clock=clock,
            lock=self._lock,
            on_finished=self._on_tournament_finished,
            on_tick=self._notify,
            announce=self.announce,
        )
        self._result: TournamentResult | None = None
        logger.info("Safari lobby %s opened in arena %s", tournament.tournament_id, arena_id)

    @property
    def tournament(self) -> TournamentState:
        return self.engine.state

    @property
    def result(self) -> TournamentResult | None:
        return self._result

    def announce(self, message: str) -> None:
        self.announcements.append(message)

    def _notify(self) -> None:
        if self.on_update is None:
            return
        try:
            self.on_update(self)
        except Exception:
            logger.exception("Update listener failed for arena %s", self.arena_id)

    # -- lobby --

    def admit(self, player_id: str, name: str) -> PlayerState:
        with self._lock:
            if self.status is not GameStatus.LOBBY:
                raise NotInLobby("The Safari tournament has already started. You can't join now.")
            if player_id in self.roster:
                raise AlreadyInLobby("You're already in the Safari lobby!")

            now = self.clock.now()
            player = PlayerState(
                player_id=player_id,
                display_name=name,
                ball_count=self.options.balls,
                steps=INITIAL_STEPS,
                zone_id=self.zone_map.start_zone_id,
                steps_until_warp=roll_warp_countdown(self.rng),
                entered_at=now,
                last_action_at=now,
            )
            player.log(
                "Welcome to the Safari Tournament Lobby! You are starting in: "
                f"{self.zone_map.zone_name(self.zone_map.start_zone_id)}"
            )
            self.roster.add(player)
            self._notify()
            return player

    def leave(self, player_id: str) -> None:
        with self._lock:
            if player_id not in self.roster:
                raise UserError("You are not in the Safari Zone.")
            if self.status is not GameStatus.LOBBY:
                raise NotInLobby("You cannot leave the Safari Tournament once it has started.")
            self.remove(player_id, "left")

    def remove(self, player_id: str, reason: str) -> None:
        """Take a player out of the world; lobby departures also drop the scoreboard entry."""
        with self._lock:
            if self.status is GameStatus.LOBBY:
                player = self.roster.discard(player_id)
                if player is not None:
                    self.announce(f"{player.display_name} has left the Safari Tournament ({reason}).")
            elif self.status is GameStatus.ACTIVE:
                self.engine.remove_player(player_id, reason)
            self._notify()

    # -- lifecycle --

    def begin(self) -> None:
        with self._lock:
            if self.status is not GameStatus.LOBBY:
                raise NotInLobby("The game is not in the lobby phase.")
            if len(self.roster) < 1:
                raise UserError("The Safari Tournament can't start with no players.")
            self.status = GameStatus.ACTIVE
            now = self.clock.now()
            for player in self.roster.states():
                player.last_action_at = now
            self.engine.start()
            self._notify()

    def end(self) -> None:
        """Close the game; repeated calls are no-ops."""
        with self._lock:
            if self.status is GameStatus.FINISHED:
                return
            if self.engine.running:
                self.engine.finish(TournamentResult(mode=self.options.mode, reason=EndReason.CLOSED))
                return
            self.engine.stop()
            self._close(TournamentResult(mode=self.options.mode, reason=EndReason.CLOSED))

    def _on_tournament_finished(self, result: TournamentResult) -> None:
        self._close(result)

    def _close(self, result: TournamentResult) -> None:
        if self.status is GameStatus.FINISHED:
            return
        self.status = GameStatus.FINISHED
        self._result = result
        self.announce("The Safari Zone Tournament has closed.")
        logger.info("Safari game %s closed (%s)", self.tournament.tournament_id, result.reason.value)
        self._notify()

    def _abort(self) -> None:
        logger.warning("Closing Safari game %s after an invariant violation", self.tournament.tournament_id)
        self.end()

    # -- active phase --

    def perform_action(self, player_id: str, action: Action | str) -> None:
        with self._lock:
            if self.status is not GameStatus.ACTIVE:
                raise UserError("The Safari tournament is not in progress.")
            try:
                self.engine.perform_action(player_id, action)
                self.roster.verify()
            except InvariantViolation:
                self._abort()
                raise
            self._notify()

    def disqualify(self, player_id: str, by: str | None = None) -> None:
        with self._lock:
            if self.status is GameStatus.FINISHED:
                raise UserError("The game has already ended.")
            if self.status is not GameStatus.ACTIVE:
                raise UserError("The tournament has not started yet.")
            self.engine.disqualify(player_id, by=by)
            self._notify()

    def disconnect(self, player_id: str) -> None:
        with self._lock:
            if self.status is GameStatus.ACTIVE:
                self.engine.disconnect(player_id)
            elif self.status is GameStatus.LOBBY:
                self.roster.set_connected(player_id, False)
            self._notify()

    def resume(self, player_id: str) -> None:
        with self._lock:
            if self.status is GameStatus.FINISHED:
                raise UserError("There is no active Safari Zone game.")
            self.engine.resume(player_id)
            self._notify()

    def rename(self, player_id: str, name: str) -> None:
        with self._lock:
            self.roster.rename(player_id, name)
            self._notify()

    # -- views --

    def player_view(self, player_id: str) -> dict[str, Any]:
        with self._lock:
            return views.build_player_view(self, player_id)

    def public_view(self) -> dict[str, Any]:
        with self._lock:
            return views.build_public_view(self)

    def leaderboard(self) -> list[dict[str, Any]]:
        with self._lock:
            return views.build_leaderboard(self)


class ArenaRegistry:
    """Holds at most one game per arena; a finished game stays readable until replaced."""

    def __init__(self, *, catalog: SpeciesCatalog, rng: RandomSource, clock: Clock) -> None:
        self.catalog = catalog
        self.rng = rng
        self.clock = clock
        self._games: dict[str, SafariGame] = {}
        self._game_numbers: dict[str, int] = {}
        self._lock = threading.Lock()

    def start_game(self, arena_id: str, zone_map: ZoneMap | None, options: GameOptions) -> SafariGame:
        with self._lock:
            current = self._games.get(arena_id)
            if current is not None and current.status is not GameStatus.FINISHED:
                raise UserError("A game is already running.")
            game_number = self._game_numbers.get(arena_id, 0) + 1
            game = SafariGame(
                arena_id=arena_id,
                game_number=game_number,
                zone_map=zone_map,
                options=options,
                catalog=self.catalog,
                rng=self.rng,
                clock=self.clock,
            )
            self._game_numbers[arena_id] = game_number
            self._games[arena_id] = game
            return game

    def get(self, arena_id: str) -> SafariGame | None:
        return self._games.get(arena_id)

    def require(self, arena_id: str) -> SafariGame:
        game = self._games.get(arena_id)
        if game is None:
            raise UserError("There is no active Safari Zone game.")
        return game

    def end_all(self) -> None:
        for game in list(self._games.values()):
            game.end()
