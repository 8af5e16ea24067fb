from safarizone.backend.clock import ManualClock
from safarizone.backend.game import GameOptions, SafariGame
from safarizone.backend.modes import ModeName
from safarizone.backend.rng import ScriptedRandomSource
from safarizone.backend.species import build_default_catalog
from safarizone.backend.state import _format_time_left
from safarizone.backend.zones import EncounterSpec, Zone, ZoneMap

FOREST = ZoneMap(
    start_zone_id="forest",
    zones={"forest": Zone(name="Viridian Forest", encounters=(EncounterSpec("Pidgey", 3, 5, 80),))},
)


def _game(mode: ModeName = ModeName.POINTS) -> tuple[SafariGame, ManualClock]:
    clock = ManualClock(start=1_700_000_000.0)
    game = SafariGame(
        arena_id="kanto",
        game_number=1,
        zone_map=FOREST,
        options=GameOptions(duration_minutes=3, mode=mode),
        catalog=build_default_catalog(),
        rng=ScriptedRandomSource(ints=[5, 5, 5]),
        clock=clock,
    )
    return game, clock


def test_format_time_left_pads_minutes_and_seconds() -> None:
    assert _format_time_left(0) == "00:00"
    assert _format_time_left(65.9) == "01:05"
    assert _format_time_left(7200) == "120:00"


def test_player_view_in_lobby_shows_world_and_no_actions() -> None:
    game, _ = _game()
    game.admit("ash", "Ash")

    view = game.player_view("ash")

    assert view["status"] == "lobby"
    assert view["location"] == "Viridian Forest"
    assert view["balls"] == 30
    assert view["steps"] == 500
    assert view["timeLeft"] == "03:00"
    assert view["availableActions"] == []
    assert view["enteredAt"].endswith("+00:00")
    assert view["settings"]["pointsForCatch"] == 10
    assert view["leaderboard"] == [
        {"rank": 1, "playerId": "ash", "name": "Ash", "score": 0, "disconnected": False}
    ]


def test_player_view_during_game_lists_moves_and_other_players() -> None:
    game, clock = _game(ModeName.SURVIVAL)
    game.admit("ash", "Ash")
    game.admit("gary", "Gary")
    game.begin()
    clock.advance(30)

    view = game.player_view("ash")

    assert view["availableActions"] == ["up", "down", "left", "right"]
    assert view["timeLeft"] == "02:30"
    assert view["leaderboard"] is None
    assert view["otherPlayers"] == [{"name": "Gary", "status": "active", "caught": 0, "battling": False}]


def test_disconnected_player_can_only_resume() -> None:
    game, _ = _game()
    game.admit("ash", "Ash")
    game.admit("gary", "Gary")
    game.begin()
    game.disconnect("gary")

    assert game.player_view("gary")["availableActions"] == ["resume"]
    assert game.player_view("ash")["otherPlayers"][0]["status"] == "disconnected"


def test_removed_player_still_sees_their_scoreboard() -> None:
    game, _ = _game()
    game.admit("ash", "Ash")
    game.admit("gary", "Gary")
    game.begin()
    game.remove("ash", "out of balls")

    view = game.player_view("ash")

    assert view["eliminated"] is True
    assert view["location"] is None
    assert view["availableActions"] == []
    assert [row["playerId"] for row in game.leaderboard()] == ["gary"]


def test_public_view_reports_result_after_close() -> None:
    game, _ = _game()
    game.admit("ash", "Ash")
    game.end()

    view = game.public_view()

    assert view["status"] == "finished"
    assert view["players"] == ["Ash"]
    assert view["result"]["reason"] == "closed"
    assert view["announcements"][-1] == "The Safari Zone Tournament has closed."
