"""Snapshot builders for player, public and leaderboard views."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from .errors import UserError
from .modes import ModeName, RaceMode
from .player import Participant, PlayerState

if TYPE_CHECKING:
    from .game import SafariGame

MOVE_ACTIONS = ["up", "down", "left", "right"]
ENCOUNTER_ACTIONS = ["ball", "bait", "rock", "run"]


def _iso(timestamp: float | None) -> str | None:
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, timezone.utc).isoformat()


def _format_time_left(seconds: float) -> str:
    whole = int(seconds)
    return f"{whole // 60:02d}:{whole % 60:02d}"


def _settings(game: SafariGame) -> dict[str, Any]:
    tournament = game.tournament
    settings: dict[str, Any] = {
        "mode": tournament.mode.value,
        "durationMinutes": tournament.duration_ms // 60000,
        "balls": game.options.balls,
    }
    if tournament.mode is ModeName.POINTS:
        settings["pointsForCatch"] = tournament.rules.points_for_catch
        settings["bonusForRarity"] = tournament.rules.bonus_for_rarity
        settings["bonusForLevel"] = tournament.rules.bonus_for_level
    if tournament.mode is ModeName.RACE:
        settings["targets"] = list(tournament.race_targets)
    return settings


def _leaderboard_value(game: SafariGame, participant: Participant) -> int:
    mode = game.engine.mode
    if isinstance(mode, RaceMode):
        return mode.targets_caught(participant)
    if game.tournament.mode is ModeName.POINTS:
        return participant.score
    return len(participant.caught_records)


def build_leaderboard(game: SafariGame) -> list[dict[str, Any]]:
    """Rank the participants still in contention, best first."""
    ranked = sorted(
        (p for p in game.roster.participants() if not p.eliminated),
        key=lambda participant: _leaderboard_value(game, participant),
        reverse=True,
    )
    return [
        {
            "rank": index + 1,
            "playerId": participant.player_id,
            "name": participant.display_name,
            "score": _leaderboard_value(game, participant),
            "disconnected": participant.disconnected,
        }
        for index, participant in enumerate(ranked)
    ]


def build_public_view(game: SafariGame) -> dict[str, Any]:
    return {
        "arenaId": game.arena_id,
        "gameNumber": game.game_number,
        "status": game.status.value,
        "tournament": game.tournament.to_dict(),
        "settings": _settings(game),
        "players": [player.display_name for player in game.roster.states()],
        "participantCount": len(game.roster),
        "timeLeft": _format_time_left(game.engine.time_remaining()),
        "announcements": list(game.announcements),
        "result": game.result.to_dict() if game.result is not None else None,
    }


def _other_players(game: SafariGame, player_id: str) -> list[dict[str, Any]]:
    others: list[dict[str, Any]] = []
    for other in game.roster.states():
        if other.player_id == player_id:
            continue
        participant = game.roster.participant(other.player_id)
        status = "active"
        if participant is not None and participant.eliminated:
            status = "eliminated"
        elif not other.connected:
            status = "disconnected"
        others.append(
            {
                "name": other.display_name,
                "status": status,
                "caught": len(other.caught),
                "battling": other.current_encounter is not None,
            }
        )
    return others


def _available_actions(player: PlayerState | None, participant: Participant, active: bool) -> list[str]:
    if player is None or participant.eliminated or not active:
        return []
    if not player.connected:
        return ["resume"]
    if player.current_encounter is None:
        return list(MOVE_ACTIONS)
    return list(ENCOUNTER_ACTIONS)


def build_player_view(game: SafariGame, player_id: str) -> dict[str, Any]:
    participant = game.roster.participant(player_id)
    if participant is None:
        raise UserError("You are not a player in this Safari Tournament.")
    player = game.roster.state(player_id)
    time_left = game.engine.time_remaining()

    view: dict[str, Any] = {
        "playerId": player_id,
        "name": participant.display_name,
        "status": game.status.value,
        "tournament": game.tournament.name,
        "settings": _settings(game),
        "eliminated": participant.eliminated,
        "disconnected": participant.disconnected,
        "score": participant.score,
        "timeLeft": _format_time_left(time_left),
        "timeLeftSeconds": int(time_left),
        "location": None,
        "balls": 0,
        "steps": 0,
        "caughtCount": len(participant.caught_records),
        "encounter": None,
        "actionLog": [],
        "enteredAt": None,
        "availableActions": _available_actions(player, participant, game.status.value == "active"),
        "otherPlayers": _other_players(game, player_id),
        "leaderboard": build_leaderboard(game) if game.tournament.mode is ModeName.POINTS else None,
        "result": game.result.to_dict() if game.result is not None else None,
    }
    if player is not None:
        encounter = player.current_encounter
        view.update(
            {
                "location": game.zone_map.zone_name(player.zone_id, default="Unknown Area"),
                "balls": player.ball_count,
                "steps": player.steps,
                "caughtCount": len(player.caught),
                "encounter": encounter.to_dict() if encounter is not None else None,
                "actionLog": player.action_log.to_list(),
                "enteredAt": _iso(player.entered_at),
            }
        )
    return view
