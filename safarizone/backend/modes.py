"""Scoring strategies for the three tournament modes."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .encounters import Encounter
from .player import Participant
from .species import to_id

RARE_WEIGHT = 5
UNCOMMON_WEIGHT = 15
RARE_BONUS = 50
UNCOMMON_BONUS = 20
UNLISTED_RARITY = 100


class ModeName(str, Enum):
    POINTS = "points"
    RACE = "race"
    SURVIVAL = "survival"


class EndReason(str, Enum):
    TIME_UP = "time_up"
    RACE_COMPLETE = "race_complete"
    LAST_SURVIVOR = "last_survivor"
    NO_SURVIVORS = "no_survivors"
    ALL_PLAYERS_LEFT = "all_players_left"
    CLOSED = "closed"


@dataclass(frozen=True)
class TournamentRules:
    points_for_catch: int = 10
    bonus_for_rarity: bool = True
    bonus_for_level: bool = True


@dataclass(frozen=True)
class Standing:
    player_id: str
    name: str
    score: int


@dataclass(frozen=True)
class TournamentResult:
    mode: ModeName
    reason: EndReason
    winners: tuple[str, ...] = ()
    standings: tuple[Standing, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "reason": self.reason.value,
            "winners": list(self.winners),
            "standings": [
                {"playerId": standing.player_id, "name": standing.name, "score": standing.score}
                for standing in self.standings
            ],
        }


class ScoringMode:
    name: ModeName
    survival_rules = False

    def score_catch(self, participant: Participant, encounter: Encounter, rarity: int | None) -> int:
        """Award points for a catch and return them (0 outside points mode)."""
        return 0

    def completes(self, participant: Participant) -> bool:
        """Whether this participant's catches win the game on the spot."""
        return False

    def expiry_result(self, participants: Sequence[Participant]) -> TournamentResult:
        raise NotImplementedError


@dataclass
class PointsMode(ScoringMode):
    rules: TournamentRules = field(default_factory=TournamentRules)
    name = ModeName.POINTS

    def catch_points(self, encounter: Encounter, rarity: int | None) -> int:
        weight = UNLISTED_RARITY if rarity is None else rarity
        points = self.rules.points_for_catch
        if self.rules.bonus_for_rarity:
            if weight <= RARE_WEIGHT:
                points += RARE_BONUS
            elif weight <= UNCOMMON_WEIGHT:
                points += UNCOMMON_BONUS
        if self.rules.bonus_for_level:
            points += encounter.level
        return points

    def score_catch(self, participant: Participant, encounter: Encounter, rarity: int | None) -> int:
        points = self.catch_points(encounter, rarity)
        participant.score += points
        return points

    def expiry_result(self, participants: Sequence[Participant]) -> TournamentResult:
        # sorted() is stable: equal scores keep admission order.
        ranked = sorted(participants, key=lambda participant: participant.score, reverse=True)
        standings = tuple(Standing(p.player_id, p.display_name, p.score) for p in ranked)
        winners: tuple[str, ...] = ()
        if ranked and ranked[0].score > 0:
            winners = (ranked[0].player_id,)
        return TournamentResult(mode=self.name, reason=EndReason.TIME_UP, winners=winners, standings=standings)


@dataclass
class RaceMode(ScoringMode):
    targets: tuple[str, ...] = ()
    name = ModeName.RACE

    def targets_caught(self, participant: Participant) -> int:
        caught = {to_id(species) for species in participant.caught_species}
        return sum(1 for target in self.targets if to_id(target) in caught)

    def completes(self, participant: Participant) -> bool:
        return bool(self.targets) and self.targets_caught(participant) == len(self.targets)

    def expiry_result(self, participants: Sequence[Participant]) -> TournamentResult:
        standings = tuple(
            Standing(p.player_id, p.display_name, self.targets_caught(p)) for p in participants if not p.eliminated
        )
        best = max((standing.score for standing in standings), default=0)
        winners: tuple[str, ...] = ()
        if best > 0:
            winners = tuple(standing.player_id for standing in standings if standing.score == best)
        return TournamentResult(mode=self.name, reason=EndReason.TIME_UP, winners=winners, standings=standings)


class SurvivalMode(ScoringMode):
    name = ModeName.SURVIVAL
    survival_rules = True

    @staticmethod
    def contenders(participants: Iterable[Participant]) -> list[Participant]:
        return [p for p in participants if not p.eliminated and not p.disconnected]

    def survivor_result(self, participants: Sequence[Participant]) -> TournamentResult | None:
        """Return the terminal result once at most one contender is left."""
        remaining = self.contenders(participants)
        if len(remaining) == 1:
            survivor = remaining[0]
            return TournamentResult(
                mode=self.name,
                reason=EndReason.LAST_SURVIVOR,
                winners=(survivor.player_id,),
                standings=(Standing(survivor.player_id, survivor.display_name, 0),),
            )
        if not remaining:
            return TournamentResult(mode=self.name, reason=EndReason.NO_SURVIVORS)
        return None

    def expiry_result(self, participants: Sequence[Participant]) -> TournamentResult:
        standings = tuple(Standing(p.player_id, p.display_name, 0) for p in self.contenders(participants))
        return TournamentResult(mode=self.name, reason=EndReason.TIME_UP, standings=standings)


def build_mode(
    mode: ModeName | str,
    rules: TournamentRules | None = None,
    targets: Iterable[str] = (),
) -> ScoringMode:
    mode = ModeName(mode)
    if mode is ModeName.POINTS:
        return PointsMode(rules=rules or TournamentRules())
    if mode is ModeName.RACE:
        return RaceMode(targets=tuple(targets))
    return SurvivalMode()
