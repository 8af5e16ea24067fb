import pytest

from safarizone.backend.rng import ScriptedRandomSource, SystemRandomSource, chance


def test_scripted_source_replays_ints_and_floats_independently() -> None:
    rng = ScriptedRandomSource(ints=[3, 250], floats=[0.5])

    assert rng.uniform_float() == 0.5
    assert rng.uniform_int(0, 10) == 3
    assert rng.uniform_int(0, 255) == 250
    assert rng.remaining == (0, 0)


def test_scripted_source_raises_when_exhausted() -> None:
    rng = ScriptedRandomSource()

    with pytest.raises(LookupError):
        rng.uniform_int(0, 1)
    with pytest.raises(LookupError):
        rng.uniform_float()


def test_scripted_source_rejects_values_outside_requested_range() -> None:
    rng = ScriptedRandomSource(ints=[11], floats=[1.0])

    with pytest.raises(ValueError):
        rng.uniform_int(1, 10)
    with pytest.raises(ValueError):
        rng.uniform_float()


def test_scripted_source_accepts_pushed_values() -> None:
    rng = ScriptedRandomSource()
    rng.push_ints(7, 8)
    rng.push_floats(0.25)

    assert rng.remaining == (2, 1)
    assert rng.uniform_int(0, 9) == 7


def test_chance_succeeds_only_below_threshold() -> None:
    rng = ScriptedRandomSource(ints=[17, 18, 0])

    assert chance(rng, 18) is True
    assert chance(rng, 18) is False
    assert chance(rng, 0) is False


def test_system_source_is_reproducible_with_seed_and_stays_in_range() -> None:
    first = SystemRandomSource(seed=42)
    second = SystemRandomSource(seed=42)

    draws = [first.uniform_int(1, 10) for _ in range(200)]

    assert draws == [second.uniform_int(1, 10) for _ in range(200)]
    assert min(draws) >= 1
    assert max(draws) <= 10
    assert 0.0 <= first.uniform_float() < 1.0
