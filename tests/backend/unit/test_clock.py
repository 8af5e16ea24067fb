import pytest

from safarizone.backend.clock import ManualClock


def test_manual_clock_fires_one_shot_timer_once_when_due() -> None:
    clock = ManualClock(start=100.0)
    fired: list[float] = []

    clock.call_later(5.0, lambda: fired.append(clock.now()))
    clock.advance(4.9)
    assert fired == []

    clock.advance(0.1)
    clock.advance(10.0)

    assert fired == [105.0]
    assert clock.now() == pytest.approx(115.0)


def test_manual_clock_repeats_interval_timers_in_order() -> None:
    clock = ManualClock(start=0.0)
    events: list[tuple[str, float]] = []

    clock.call_every(1.0, lambda: events.append(("tick", clock.now())))
    clock.call_later(2.5, lambda: events.append(("once", clock.now())))
    clock.advance(3.0)

    assert events == [("tick", 1.0), ("tick", 2.0), ("once", 2.5), ("tick", 3.0)]


def test_cancelled_timers_never_fire_and_cancel_is_idempotent() -> None:
    clock = ManualClock(start=0.0)
    fired: list[str] = []

    handle = clock.call_every(1.0, lambda: fired.append("tick"))
    clock.advance(1.0)
    handle.cancel()
    handle.cancel()
    clock.advance(5.0)

    assert fired == ["tick"]
    assert handle.cancelled is True
    assert clock.pending == 0


def test_call_every_rejects_non_positive_interval() -> None:
    clock = ManualClock()

    with pytest.raises(ValueError):
        clock.call_every(0, lambda: None)
