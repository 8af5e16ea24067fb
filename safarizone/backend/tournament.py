"""Tournament engine: player actions, win conditions and game timers."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
import logging
import threading
from typing import Any

from .catch import attempt_catch, flee_chance
from .clock import Clock, TimerHandle
from .encounters import MAX_ANGER, Encounter, generate_encounter
from .errors import InvariantViolation, UserError
from .modes import EndReason, ModeName, ScoringMode, TournamentResult, TournamentRules
from .player import CaughtCreature, CaughtRecord, Participant, PlayerState, Roster
from .rng import RandomSource, chance
from .species import SpeciesCatalog
from .zones import ZoneMap

logger = logging.getLogger(__name__)

AFK_TIMEOUT = 60.0
AFK_SWEEP_INTERVAL = 15.0
DISPLAY_TICK_INTERVAL = 1.0
STRAY_BALL_CHANCE = 0.08
ENCOUNTER_CHANCE = 18
WARP_STEPS = (1, 10)
BAIT_TURNS = (2, 6)
ROCK_ANGER = 2


class Action(str, Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    BALL = "ball"
    BAIT = "bait"
    ROCK = "rock"
    RUN = "run"

    @property
    def is_move(self) -> bool:
        return self in (Action.UP, Action.DOWN, Action.LEFT, Action.RIGHT)


@dataclass
class TournamentState:
    tournament_id: str
    name: str
    mode: ModeName
    duration_ms: int
    rules: TournamentRules
    race_targets: tuple[str, ...] = ()
    started_at: float | None = None

    @property
    def ends_at(self) -> float | None:
        if self.started_at is None:
            return None
        return self.started_at + self.duration_ms / 1000

    def to_dict(self) -> dict[str, Any]:
        return {
            "tournamentId": self.tournament_id,
            "name": self.name,
            "mode": self.mode.value,
            "durationMs": self.duration_ms,
            "rules": {
                "pointsForCatch": self.rules.points_for_catch,
                "bonusForRarity": self.rules.bonus_for_rarity,
                "bonusForLevel": self.rules.bonus_for_level,
            },
            "raceTargets": list(self.race_targets),
            "startedAt": self.started_at,
        }


def roll_warp_countdown(rng: RandomSource) -> int:
    return rng.uniform_int(*WARP_STEPS)


class TournamentEngine:
    """Runs the active phase of one game.

    Every method expects the owning game's lock to be held; timer callbacks
    take it themselves. The engine reports its end through ``on_finished``
    and never changes the lifecycle status directly.
    """

    def __init__(
        self,
        *,
        state: TournamentState,
        mode: ScoringMode,
        zone_map: ZoneMap,
        roster: Roster,
        catalog: SpeciesCatalog,
        rng: RandomSource,
        clock: Clock,
        lock: threading.RLock,
        on_finished: Callable[[TournamentResult], None],
        on_tick: Callable[[], None] | None = None,
        announce: Callable[[str], None] | None = None,
    ) -> None:
        self.state = state
        self.mode = mode
        self.zone_map = zone_map
        self.roster = roster
        self.catalog = catalog
        self.rng = rng
        self.clock = clock
        self._lock = lock
        self._on_finished = on_finished
        self._on_tick = on_tick
        self._announce = announce or (lambda message: None)
        self._timers: list[TimerHandle] = []
        self._generation = 0
        self._running = False
        self.result: TournamentResult | None = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def generation(self) -> int:
        return self._generation

    def time_remaining(self) -> float:
        ends_at = self.state.ends_at
        if ends_at is None:
            return self.state.duration_ms / 1000
        return max(0.0, ends_at - self.clock.now())

    # -- lifecycle --

    def start(self) -> None:
        if self._running or self.result is not None:
            return
        self.state.started_at = self.clock.now()
        self._running = True
        generation = self._generation
        self._timers = [
            self.clock.call_later(self.state.duration_ms / 1000, self._guarded(generation, self.time_up)),
            self.clock.call_every(DISPLAY_TICK_INTERVAL, self._guarded(generation, self._tick)),
        ]
        if self.mode.survival_rules:
            self._timers.append(self.clock.call_every(AFK_SWEEP_INTERVAL, self._guarded(generation, self.sweep_afk)))
        logger.info(
            "Tournament %s started: mode=%s players=%d duration_ms=%d",
            self.state.tournament_id,
            self.state.mode.value,
            len(self.roster),
            self.state.duration_ms,
        )

    def stop(self) -> None:
        """Cancel every timer; safe to call any number of times."""
        for timer in self._timers:
            timer.cancel()
        self._timers = []
        if self._running:
            self._generation += 1
        self._running = False

    def _guarded(self, generation: int, callback: Callable[[], None]) -> Callable[[], None]:
        def fire() -> None:
            with self._lock:
                if generation != self._generation or not self._running:
                    return
                try:
                    callback()
                except InvariantViolation:
                    logger.exception("Tournament %s state is inconsistent; closing it", self.state.tournament_id)
                    self.finish(TournamentResult(mode=self.state.mode, reason=EndReason.CLOSED))
                except Exception:
                    logger.exception("Timer callback failed for tournament %s", self.state.tournament_id)

        return fire

    def _tick(self) -> None:
        if self._on_tick is not None:
            self._on_tick()

    def finish(self, result: TournamentResult) -> None:
        if not self._running:
            return
        self.result = result
        self.stop()
        logger.info(
            "Tournament %s ended: reason=%s winners=%s",
            self.state.tournament_id,
            result.reason.value,
            ",".join(result.winners) or "-",
        )
        self._on_finished(result)

    def time_up(self) -> None:
        if self._running:
            self.finish(self.mode.expiry_result(self.roster.participants()))

    # -- player actions --

    def perform_action(self, player_id: str, action: Action | str) -> None:
        if not isinstance(action, Action):
            try:
                action = Action(str(action).lower())
            except ValueError:
                raise UserError(f"Unknown action: {action}") from None

        pair = self.roster.pair(player_id)
        if pair is None:
            raise UserError("You are not in the Safari Zone.")
        player, participant = pair
        player.last_action_at = self.clock.now()

        if not player.connected:
            raise UserError("You are disconnected. Resume the game to continue playing.")
        if participant.eliminated:
            raise UserError("You have been eliminated from the tournament!")

        if player.current_encounter is not None and self._resolve_flee(player):
            return

        logger.debug("Player %s performs %s", player_id, action.value)
        if action.is_move:
            self.move(player)
            return

        encounter = player.current_encounter
        if encounter is None:
            return
        if action is Action.BALL:
            self.throw_ball(player, participant, encounter)
        elif action is Action.BAIT:
            encounter.eating_turns = self.rng.uniform_int(*BAIT_TURNS)
            encounter.anger = 1
            player.log(f"{encounter.name} is eating...")
        elif action is Action.ROCK:
            encounter.anger = min(MAX_ANGER, encounter.anger + ROCK_ANGER)
            encounter.eating_turns = 0
            player.log(f"You threw a rock. {encounter.name} is angry!")
        elif action is Action.RUN:
            player.current_encounter = None
            player.log("You got away safely.")

    def _resolve_flee(self, player: PlayerState) -> bool:
        encounter = player.current_encounter
        assert encounter is not None
        if encounter.eating_turns > 0:
            encounter.eating_turns -= 1
            if encounter.eating_turns == 0:
                player.log(f"{encounter.name} is no longer eating.")

        if not chance(self.rng, flee_chance(encounter)):
            return False

        player.log(f"{encounter.name} ran away!")
        player.current_encounter = None
        if self.mode.survival_rules:
            self.eliminate_player(player.player_id, "their Pokémon fled")
        return True

    def move(self, player: PlayerState) -> None:
        if player.current_encounter is not None:
            return
        if player.steps <= 0:
            player.log("You've run out of steps!")
            self.remove_player(player.player_id, "out of steps")
            return

        player.steps -= 1
        if self.rng.uniform_float() < STRAY_BALL_CHANCE:
            player.ball_count += 1
            player.log("You found a stray Safari Ball on the ground!")

        player.steps_until_warp -= 1
        if player.steps_until_warp <= 0:
            self._warp(player)
            player.steps_until_warp = roll_warp_countdown(self.rng)
        else:
            player.log(f"You wandered around {self.zone_map.zone_name(player.zone_id)}...")

        if chance(self.rng, ENCOUNTER_CHANCE):
            self._spawn_encounter(player)

    def _warp(self, player: PlayerState) -> None:
        zone_ids = self.zone_map.zone_ids
        if len(zone_ids) <= 1:
            player.log("You wander around the area...")
            return
        destination = player.zone_id
        while destination == player.zone_id:
            destination = zone_ids[self.rng.uniform_int(0, len(zone_ids) - 1)]
        player.zone_id = destination
        player.log(f"A strong gust of wind moved you to {self.zone_map.zone_name(destination)}!")

    def _spawn_encounter(self, player: PlayerState) -> None:
        zone = self.zone_map.zone(player.zone_id)
        if zone is None or not zone.encounters:
            player.log("The area is quiet...")
            return
        encounter = generate_encounter(zone, self.catalog, self.rng)
        if encounter is None:
            return
        player.current_encounter = encounter
        player.log(f"A wild {encounter.name} (Lvl {encounter.level}) appeared!")

    def throw_ball(self, player: PlayerState, participant: Participant, encounter: Encounter) -> None:
        if player.ball_count <= 0:
            player.log("You have no Safari Balls left!")
            self.remove_player(player.player_id, "out of balls")
            return

        player.ball_count -= 1
        outcome = attempt_catch(encounter, self.rng)
        player.log(outcome.message(encounter.name))
        if outcome.caught:
            self._record_catch(player, participant, encounter)

    def _record_catch(self, player: PlayerState, participant: Participant, encounter: Encounter) -> None:
        player.current_encounter = None
        player.caught.append(CaughtCreature(species=encounter.name, level=encounter.level))

        rarity = self.zone_map.rarity_of(player.zone_id, encounter.name)
        points = self.mode.score_catch(participant, encounter, rarity)
        participant.caught_records.append(
            CaughtRecord(species=encounter.name, level=encounter.level, timestamp=self.clock.now(), points=points)
        )

        if self.mode.completes(participant):
            standings = self.mode.expiry_result(self.roster.participants()).standings
            self.finish(
                TournamentResult(
                    mode=self.state.mode,
                    reason=EndReason.RACE_COMPLETE,
                    winners=(participant.player_id,),
                    standings=standings,
                )
            )

    # -- removal, elimination and presence --

    def remove_player(self, player_id: str, reason: str) -> None:
        player = self.roster.remove_state(player_id)
        if player is None:
            return
        self._announce(f"{player.display_name} has left the Safari Tournament ({reason}).")

        if len(self.roster) == 0:
            self.finish(TournamentResult(mode=self.state.mode, reason=EndReason.ALL_PLAYERS_LEFT))
            return

        participant = self.roster.participant(player_id)
        if participant is None:
            raise InvariantViolation(f"player {player_id!r} lost its participant record")
        participant.eliminated = True
        self.check_survival()

    def eliminate_player(self, player_id: str, reason: str) -> None:
        participant = self.roster.participant(player_id)
        if participant is None or participant.eliminated:
            return
        participant.eliminated = True
        self._announce(f"{participant.display_name} has been eliminated from the Safari Tournament! (Reason: {reason})")
        logger.debug("Player %s eliminated: %s", player_id, reason)
        self.check_survival()

    def disqualify(self, player_id: str, by: str | None = None) -> None:
        if player_id not in self.roster:
            raise UserError(f"'{player_id}' is not a player in this game.")
        participant = self.roster.participant(player_id)
        if participant is not None and participant.eliminated:
            raise UserError(f"'{participant.display_name}' is already eliminated.")
        self.eliminate_player(player_id, f"disqualified by {by}" if by else "disqualified")

    def check_survival(self) -> None:
        if not self._running or not self.mode.survival_rules:
            return
        result = self.mode.survivor_result(self.roster.participants())
        if result is not None:
            self.finish(result)

    def disconnect(self, player_id: str) -> None:
        player = self.roster.state(player_id)
        if player is None or not player.connected:
            return
        self.roster.set_connected(player_id, False)
        self._announce(f"{player.display_name} has disconnected. Their spot is saved.")
        self.check_survival()

    def resume(self, player_id: str) -> None:
        player = self.roster.state(player_id)
        if player is None:
            raise UserError("You are not a player in this Safari Tournament.")
        if player.connected:
            raise UserError("You are already connected to the game.")
        self.roster.set_connected(player_id, True)
        player.last_action_at = self.clock.now()
        self._announce(f"{player.display_name} has reconnected to the game!")

    def sweep_afk(self) -> None:
        if not self._running or not self.mode.survival_rules:
            return
        now = self.clock.now()
        for player in self.roster.states():
            if not self._running:
                break
            participant = self.roster.participant(player.player_id)
            if participant is None or participant.eliminated or not player.connected:
                continue
            if now - player.last_action_at > AFK_TIMEOUT:
                self.eliminate_player(player.player_id, "inactivity")
