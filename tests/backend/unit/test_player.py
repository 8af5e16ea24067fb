import pytest

from safarizone.backend.errors import InvariantViolation
from safarizone.backend.player import ACTION_LOG_SIZE, ActionLog, PlayerState, Roster


def _player(player_id: str, name: str | None = None) -> PlayerState:
    return PlayerState(
        player_id=player_id,
        display_name=name or player_id.title(),
        ball_count=30,
        steps=500,
        zone_id="forest",
        steps_until_warp=5,
        entered_at=0.0,
        last_action_at=0.0,
    )


def test_action_log_keeps_newest_entries_first() -> None:
    log = ActionLog()

    for index in range(ACTION_LOG_SIZE + 3):
        log.add(f"message {index}")

    assert len(log) == ACTION_LOG_SIZE
    assert log.latest == f"message {ACTION_LOG_SIZE + 2}"
    assert log.to_list()[-1] == "message 3"


def test_empty_action_log_has_no_latest_entry() -> None:
    assert ActionLog().latest is None


def test_roster_pairs_state_with_participant() -> None:
    roster = Roster()

    participant = roster.add(_player("ash"))

    assert "ash" in roster
    assert len(roster) == 1
    assert participant.display_name == "Ash"
    assert roster.pair("ash") == (roster.state("ash"), participant)


def test_roster_rejects_duplicate_players() -> None:
    roster = Roster()
    roster.add(_player("ash"))

    with pytest.raises(InvariantViolation):
        roster.add(_player("ash"))


def test_remove_state_keeps_the_scoreboard_entry() -> None:
    roster = Roster()
    roster.add(_player("ash"))

    removed = roster.remove_state("ash")

    assert removed is not None
    assert "ash" not in roster
    assert roster.participant("ash") is not None
    assert roster.pair("ash") is None


def test_discard_drops_both_halves() -> None:
    roster = Roster()
    roster.add(_player("ash"))

    roster.discard("ash")

    assert roster.state("ash") is None
    assert roster.participant("ash") is None
    assert roster.participants() == []


def test_set_connected_and_rename_update_both_halves() -> None:
    roster = Roster()
    participant = roster.add(_player("ash"))

    roster.set_connected("ash", False)
    roster.rename("ash", "Red")

    state = roster.state("ash")
    assert state is not None
    assert state.connected is False
    assert participant.disconnected is True
    assert state.display_name == "Red"
    assert participant.display_name == "Red"


def test_verify_flags_negative_resources() -> None:
    roster = Roster()
    roster.add(_player("ash"))
    roster.verify()

    state = roster.state("ash")
    assert state is not None
    state.ball_count = -1

    with pytest.raises(InvariantViolation):
        roster.verify()
