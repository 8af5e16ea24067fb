"""Clock and timer sources for game timers."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
import heapq
import itertools
import time
from typing import Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None:
        """Stop the timer; calling it again is a no-op."""

    @property
    def cancelled(self) -> bool:
        """Whether ``cancel`` has been called."""


class Clock(Protocol):
    def now(self) -> float:
        """Return the current time as epoch seconds."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` once after ``delay`` seconds."""

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` every ``interval`` seconds until cancelled."""


class _AsyncioOneShot:
    def __init__(self, handle: asyncio.TimerHandle) -> None:
        self._handle = handle
        self._cancelled = False

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._handle.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class _AsyncioRepeating:
    def __init__(self, loop: asyncio.AbstractEventLoop, interval: float, callback: Callable[[], None]) -> None:
        self._loop = loop
        self._interval = interval
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None
        self._cancelled = False

    def schedule(self) -> None:
        self._handle = self._loop.call_later(self._interval, self._fire)

    def _fire(self) -> None:
        if self._cancelled:
            return
        # Rescheduled before the callback so a raising callback keeps the cadence.
        self.schedule()
        self._callback()

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class AsyncioClock:
    """Wall clock whose timers run on an asyncio event loop.

    Without an explicit loop the running loop of the caller is used, so
    timers must be armed from inside a coroutine (an async endpoint).
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def _resolve_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def now(self) -> float:
        return time.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return _AsyncioOneShot(self._resolve_loop().call_later(delay, callback))

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        timer = _AsyncioRepeating(self._resolve_loop(), interval, callback)
        timer.schedule()
        return timer


@dataclass
class _ManualTimer:
    due: float
    callback: Callable[[], None]
    interval: float | None = None
    _cancelled: bool = field(default=False, init=False)

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ManualClock:
    """Deterministic clock that only moves when ``advance`` is called."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self._now = start
        self._queue: list[tuple[float, int, _ManualTimer]] = []
        self._sequence = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = _ManualTimer(due=self._now + delay, callback=callback)
        self._push(timer)
        return timer

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        timer = _ManualTimer(due=self._now + interval, callback=callback, interval=interval)
        self._push(timer)
        return timer

    def advance(self, seconds: float) -> None:
        """Move time forward, firing every timer that falls due in order."""
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._now = due
            if timer.interval is not None:
                timer.due = due + timer.interval
                self._push(timer)
            timer.callback()
        self._now = target

    @property
    def pending(self) -> int:
        return sum(1 for _, _, timer in self._queue if not timer.cancelled)

    def _push(self, timer: _ManualTimer) -> None:
        heapq.heappush(self._queue, (timer.due, next(self._sequence), timer))
