"""Timer engine — a deadline-driven countdown state machine."""

from __future__ import annotations

import logging
import math
import threading
from enum import Enum
from typing import Any, Callable

from focuslog.core.errors import InvalidStateError
from focuslog.core.scheduling import Clock, Scheduler

log = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL = 0.25


class TimerState(Enum):
    """Possible states of the timer."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    EXPIRED = "expired"


_VALID_START_STATES = frozenset({TimerState.IDLE, TimerState.PAUSED})


def round_seconds(seconds: float) -> int:
    """Round *seconds* half-up to a whole number of seconds.

    This is the only rounding rule used for remaining time, pause lengths and
    net session duration.
    """
    return math.floor(seconds + 0.5)


def _validate_duration(duration_seconds: int) -> None:
    if isinstance(duration_seconds, bool) or not isinstance(duration_seconds, int):
        raise TypeError(
            f"duration_seconds must be an integer, got {type(duration_seconds).__name__}"
        )
    if duration_seconds <= 0:
        raise ValueError(f"duration_seconds must be positive, got {duration_seconds}")


class TimerEngine:
    """A countdown timer driven by an absolute deadline.

    ``start()`` fixes ``deadline = now + remaining`` and schedules exactly one
    deferred trigger for that instant; that trigger is the only thing that
    can expire the engine.  A repeating reconciliation tick recomputes the
    visible remaining time from the deadline so it self-corrects after the
    process was suspended; it never counts ticks.

    Every start/resume opens a new *run generation*.  Triggers remember the
    generation they were scheduled under and do nothing once it is stale, so a
    callback racing with ``pause()``/``reset()`` cannot fire late.
    """

    def __init__(
        self,
        clock: Clock,
        scheduler: Scheduler,
        duration_seconds: int,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
    ) -> None:
        _validate_duration(duration_seconds)
        self._clock = clock
        self._scheduler = scheduler
        self._tick_interval = tick_interval
        self._lock = threading.RLock()
        self._state: TimerState = TimerState.IDLE
        self._duration_seconds: int = duration_seconds
        self._remaining_seconds: int = duration_seconds
        self._deadline: float | None = None
        self._generation: int = 0
        self._deadline_handle: Any = None
        self._tick_handle: Any = None
        self._tick_listeners: list[Callable[[int], None]] = []
        self._expire_listeners: list[Callable[[], None]] = []

    # -- public interface ----------------------------------------------------

    def configure(self, duration_seconds: int) -> None:
        """Set a new countdown length.  Valid only from IDLE state."""
        _validate_duration(duration_seconds)
        with self._lock:
            self._require_state("configure", frozenset({TimerState.IDLE}))
            self._duration_seconds = duration_seconds
            self._remaining_seconds = duration_seconds
            remaining = self._remaining_seconds
        log.debug(f"Configured timer for {duration_seconds}s")
        self._emit_tick(remaining)

    def start(self) -> None:
        """Begin (or continue) counting down from the current remaining time.

        Valid only from IDLE or PAUSED states.
        """
        with self._lock:
            self._require_state("start", _VALID_START_STATES)
            self._begin_running()

    def resume(self) -> None:
        """Continue a paused countdown.  Valid only from PAUSED state."""
        with self._lock:
            self._require_state("resume", frozenset({TimerState.PAUSED}))
            self._begin_running()

    def pause(self) -> None:
        """Freeze the countdown at its reconciled remaining time.

        Valid only from RUNNING state.
        """
        with self._lock:
            self._require_state("pause", frozenset({TimerState.RUNNING}))
            self._remaining_seconds = self._compute_remaining()
            self._cancel_triggers()
            self._state = TimerState.PAUSED
            self._deadline = None
            remaining = self._remaining_seconds
        log.debug(f"Paused timer with {remaining}s remaining")
        self._emit_tick(remaining)

    def reset(self, duration_seconds: int | None = None) -> None:
        """Return to IDLE from any state, cancelling pending triggers.

        When *duration_seconds* is given it becomes the configured duration.
        """
        if duration_seconds is not None:
            _validate_duration(duration_seconds)
        with self._lock:
            self._cancel_triggers()
            if duration_seconds is not None:
                self._duration_seconds = duration_seconds
            self._state = TimerState.IDLE
            self._deadline = None
            self._remaining_seconds = self._duration_seconds
            remaining = self._remaining_seconds
        log.debug(f"Reset timer to {remaining}s")
        self._emit_tick(remaining)

    def reconcile(self) -> None:
        """Recompute remaining time from the deadline (the reconciliation tick).

        Emits ``on_tick`` when the visible value changed.  Never expires the
        engine; only the deferred trigger does that.
        """
        with self._lock:
            if self._state != TimerState.RUNNING:
                return
            remaining = self._compute_remaining()
            if remaining == self._remaining_seconds:
                return
            self._remaining_seconds = remaining
        self._emit_tick(remaining)

    def get_remaining(self) -> int:
        """Return the remaining whole seconds, reconciled against the clock."""
        with self._lock:
            if self._state == TimerState.RUNNING:
                return self._compute_remaining()
            return self._remaining_seconds

    def get_state(self) -> TimerState:
        """Return the current timer state."""
        return self._state

    def get_duration(self) -> int:
        """Return the configured duration in seconds."""
        return self._duration_seconds

    def get_deadline(self) -> float | None:
        """Return the absolute deadline while RUNNING, else ``None``."""
        return self._deadline

    # -- subscriptions -------------------------------------------------------

    def on_tick(self, callback: Callable[[int], None]) -> Callable[[], None]:
        """Call *callback(remaining)* whenever the visible remaining time changes."""
        self._tick_listeners.append(callback)
        return lambda: self._tick_listeners.remove(callback)

    def on_expire(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Call *callback()* once per run when the deadline elapses."""
        self._expire_listeners.append(callback)
        return lambda: self._expire_listeners.remove(callback)

    # -- private helpers -----------------------------------------------------

    def _require_state(self, method: str, valid: frozenset[TimerState]) -> None:
        """Raise ``InvalidStateError`` if the current state is not in *valid*."""
        if self._state not in valid:
            raise InvalidStateError(f"{method}() is not valid from {self._state.value} state")

    def _begin_running(self) -> None:
        """Fix the deadline, schedule both triggers and enter RUNNING."""
        self._generation += 1
        generation = self._generation
        self._deadline = self._clock.now() + self._remaining_seconds
        self._state = TimerState.RUNNING
        self._deadline_handle = self._scheduler.schedule_once(
            self._remaining_seconds, lambda: self._on_deadline(generation)
        )
        self._tick_handle = self._scheduler.schedule_repeating(
            self._tick_interval, lambda: self._on_tick(generation)
        )
        log.debug(f"Timer running, {self._remaining_seconds}s until deadline {self._deadline}")

    def _compute_remaining(self) -> int:
        assert self._deadline is not None
        return max(0, round_seconds(self._deadline - self._clock.now()))

    def _cancel_triggers(self) -> None:
        self._generation += 1
        self._scheduler.cancel(self._deadline_handle)
        self._scheduler.cancel(self._tick_handle)
        self._deadline_handle = None
        self._tick_handle = None

    def _on_tick(self, generation: int) -> None:
        if generation != self._generation:
            return
        self.reconcile()

    def _on_deadline(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._state != TimerState.RUNNING:
                log.debug("Ignoring stale deadline trigger")
                return
            self._cancel_triggers()
            self._state = TimerState.EXPIRED
            self._deadline = None
            self._remaining_seconds = 0
        log.info("Timer expired")
        self._emit_tick(0)
        for callback in list(self._expire_listeners):
            try:
                callback()
            except Exception:
                log.exception("Expiry listener raised")

    def _emit_tick(self, remaining: int) -> None:
        for callback in list(self._tick_listeners):
            try:
                callback(remaining)
            except Exception:
                log.exception("Tick listener raised")
