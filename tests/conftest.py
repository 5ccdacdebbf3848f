"""Shared fakes: a settable clock and a scheduler driven by that clock."""

from __future__ import annotations

from typing import Callable

import pytest

from focuslog.core.timer import TimerEngine


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.time = start

    def now(self) -> float:
        return self.time


class _Handle:
    def __init__(self, due: float, callback: Callable[[], None], interval: float | None) -> None:
        self.due = due
        self.callback = callback
        self.interval = interval
        self.cancelled = False


class ManualScheduler:
    """Fires scheduled callbacks when :meth:`advance` moves the clock past them."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.handles: list[_Handle] = []

    def schedule_once(self, delay: float, callback: Callable[[], None]) -> _Handle:
        handle = _Handle(self.clock.time + delay, callback, None)
        self.handles.append(handle)
        return handle

    def schedule_repeating(self, interval: float, callback: Callable[[], None]) -> _Handle:
        handle = _Handle(self.clock.time + interval, callback, interval)
        self.handles.append(handle)
        return handle

    def cancel(self, handle: _Handle | None) -> None:
        if handle is not None:
            handle.cancelled = True

    def pending(self) -> list[_Handle]:
        return [h for h in self.handles if not h.cancelled]

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due callbacks in time order."""
        target = self.clock.time + seconds
        while True:
            due = [h for h in self.pending() if h.due <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.due)
            self.clock.time = max(self.clock.time, handle.due)
            if handle.interval is None:
                handle.cancelled = True
            else:
                handle.due += handle.interval
            handle.callback()
        self.clock.time = target

    def jump(self, seconds: float) -> None:
        """Move the clock forward without firing anything (a suspended process)."""
        self.clock.time += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def scheduler(clock: FakeClock) -> ManualScheduler:
    return ManualScheduler(clock)


@pytest.fixture()
def engine(clock: FakeClock, scheduler: ManualScheduler) -> TimerEngine:
    return TimerEngine(clock, scheduler, 60, tick_interval=1.0)
