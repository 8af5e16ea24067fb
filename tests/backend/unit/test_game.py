import pytest

from safarizone.backend.clock import ManualClock
from safarizone.backend.errors import AlreadyInLobby, ConfigurationError, NotInLobby, UserError
from safarizone.backend.game import ArenaRegistry, GameOptions, GameStatus, SafariGame
from safarizone.backend.modes import ModeName, TournamentRules
from safarizone.backend.rng import ScriptedRandomSource, SystemRandomSource
from safarizone.backend.species import build_default_catalog
from safarizone.backend.zones import EncounterSpec, Zone, ZoneMap

FOREST = ZoneMap(
    start_zone_id="forest",
    zones={
        "forest": Zone(name="Viridian Forest", encounters=(EncounterSpec("Pidgey", 3, 5, 80),)),
        "lake": Zone(name="Lake", encounters=(EncounterSpec("Magikarp", 5, 15, 100),)),
    },
)


def _game(options: GameOptions | None = None, zone_map: ZoneMap | None = FOREST) -> SafariGame:
    return SafariGame(
        arena_id="kanto",
        game_number=1,
        zone_map=zone_map,
        options=options or GameOptions(duration_minutes=10),
        catalog=build_default_catalog(),
        rng=SystemRandomSource(seed=3),
        clock=ManualClock(start=0.0),
    )


@pytest.mark.parametrize(
    "kwargs",
    [
        {"duration_minutes": 0},
        {"duration_minutes": 121},
        {"duration_minutes": 10, "balls": 0},
        {"duration_minutes": 10, "balls": 101},
        {"duration_minutes": 10, "mode": "capture-the-flag"},
        {"duration_minutes": 10, "mode": "race"},
        {"duration_minutes": 10, "rules": TournamentRules(points_for_catch=0)},
    ],
)
def test_game_options_reject_invalid_settings(kwargs: dict) -> None:
    with pytest.raises(UserError):
        GameOptions(**kwargs)


def test_game_options_normalize_mode_and_duration() -> None:
    options = GameOptions(duration_minutes=2, mode="survival")  # type: ignore[arg-type]

    assert options.mode is ModeName.SURVIVAL
    assert options.duration_ms == 120_000
    assert options.balls == 30


def test_game_requires_a_configured_map() -> None:
    with pytest.raises(ConfigurationError):
        _game(zone_map=None)


def test_race_targets_must_be_catchable_in_the_map() -> None:
    with pytest.raises(UserError, match="not available"):
        _game(GameOptions(duration_minutes=10, mode=ModeName.RACE, targets=("Scyther",)))
    with pytest.raises(UserError, match="Invalid Pokémon"):
        _game(GameOptions(duration_minutes=10, mode=ModeName.RACE, targets=("Missingno",)))


def test_race_targets_are_canonicalized_and_deduplicated() -> None:
    game = _game(GameOptions(duration_minutes=10, mode=ModeName.RACE, targets=("pidgey", "Pidgey", "magikarp")))

    assert game.tournament.race_targets == ("Pidgey", "Magikarp")
    assert game.tournament.name == "Race Tournament"
    assert game.tournament.tournament_id == "sft-kanto-1"


def test_admit_sets_up_the_player_in_the_start_zone() -> None:
    game = _game(GameOptions(duration_minutes=10, balls=12))

    player = game.admit("ash", "Ash")

    assert player.zone_id == "forest"
    assert player.ball_count == 12
    assert player.steps == 500
    assert 1 <= player.steps_until_warp <= 10
    assert player.action_log.latest == "Welcome to the Safari Tournament Lobby! You are starting in: Viridian Forest"
    assert game.roster.participant("ash") is not None


def test_lobby_rejects_double_admission_and_late_joins() -> None:
    game = _game()
    game.admit("ash", "Ash")

    with pytest.raises(AlreadyInLobby):
        game.admit("ash", "Ash")

    game.begin()
    with pytest.raises(NotInLobby):
        game.admit("gary", "Gary")
    with pytest.raises(NotInLobby):
        game.leave("ash")
    with pytest.raises(NotInLobby):
        game.begin()


def test_leaving_the_lobby_drops_the_scoreboard_entry() -> None:
    game = _game()
    game.admit("ash", "Ash")

    game.leave("ash")

    assert "ash" not in game.roster
    assert game.roster.participant("ash") is None
    assert "Ash has left the Safari Tournament (left)." in game.announcements
    with pytest.raises(UserError):
        game.leave("ash")


def test_begin_requires_players() -> None:
    game = _game()

    with pytest.raises(UserError, match="no players"):
        game.begin()
    assert game.status is GameStatus.LOBBY


def test_actions_require_an_active_game() -> None:
    game = _game()
    game.admit("ash", "Ash")

    with pytest.raises(UserError, match="not in progress"):
        game.perform_action("ash", "up")
    with pytest.raises(UserError, match="not started"):
        game.disqualify("ash")


def test_ending_a_lobby_closes_it() -> None:
    game = _game()
    game.admit("ash", "Ash")

    game.end()

    assert game.status is GameStatus.FINISHED
    assert game.result is not None
    assert game.result.reason.value == "closed"


def test_update_listener_failures_do_not_break_the_game() -> None:
    game = _game()
    calls: list[str] = []

    def listener(updated: SafariGame) -> None:
        calls.append(updated.status.value)
        raise RuntimeError("socket gone")

    game.on_update = listener
    game.admit("ash", "Ash")

    assert calls == ["lobby"]
    assert "ash" in game.roster


def test_arena_registry_allows_one_running_game_per_arena() -> None:
    registry = ArenaRegistry(catalog=build_default_catalog(), rng=ScriptedRandomSource(), clock=ManualClock())
    options = GameOptions(duration_minutes=10)

    first = registry.start_game("kanto", FOREST, options)
    with pytest.raises(UserError, match="already running"):
        registry.start_game("kanto", FOREST, options)
    other = registry.start_game("johto", FOREST, options)

    first.end()
    second = registry.start_game("kanto", FOREST, options)

    assert second.game_number == 2
    assert other.game_number == 1
    assert registry.require("kanto") is second
    with pytest.raises(UserError):
        registry.require("hoenn")

    registry.end_all()
    assert second.status is GameStatus.FINISHED
    assert other.status is GameStatus.FINISHED
