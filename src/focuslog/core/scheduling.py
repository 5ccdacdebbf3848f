"""Clock and trigger sources consumed by the timer engine.

The engine never sleeps or polls on its own.  It asks a :class:`Scheduler`
for a one-shot *deferred trigger* at the deadline and a *repeating trigger*
for cosmetic reconciliation, and reads time from a :class:`Clock`.  Tests
inject fakes for both.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Protocol

log = logging.getLogger(__name__)


class Clock(Protocol):
    def now(self) -> float:
        """Return the current wall-clock time in epoch seconds."""
        ...


class Scheduler(Protocol):
    def schedule_once(self, delay: float, callback: Callable[[], None]) -> Any:
        ...

    def schedule_repeating(self, interval: float, callback: Callable[[], None]) -> Any:
        ...

    def cancel(self, handle: Any) -> None:
        ...


class SystemClock:
    """Wall clock backed by ``time.time()``."""

    def now(self) -> float:
        return time.time()


class _Repeater(threading.Thread):
    """Daemon thread calling *callback* every *interval* seconds until cancelled."""

    def __init__(self, interval: float, callback: Callable[[], None]) -> None:
        super().__init__(name="focuslog-tick", daemon=True)
        self._interval = interval
        self._callback = callback
        self._stopped = threading.Event()

    def run(self) -> None:
        while not self._stopped.wait(self._interval):
            try:
                self._callback()
            except Exception:
                log.exception("Reconciliation tick raised")

    def cancel(self) -> None:
        self._stopped.set()


class ThreadingScheduler:
    """Scheduler running callbacks on daemon threads.

    One-shot triggers use :class:`threading.Timer`; repeating triggers use a
    small event-driven thread.  Cancelling is immediate for anything that has
    not fired yet; callers must still tolerate a callback that was already
    in flight when ``cancel()`` ran.
    """

    def schedule_once(self, delay: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(max(delay, 0.0), callback)
        timer.name = "focuslog-deadline"
        timer.daemon = True
        timer.start()
        return timer

    def schedule_repeating(self, interval: float, callback: Callable[[], None]) -> _Repeater:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        repeater = _Repeater(interval, callback)
        repeater.start()
        return repeater

    def cancel(self, handle: Any) -> None:
        if handle is not None:
            handle.cancel()
