"""Session Manager — owns the current session record and its lifecycle."""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable

from focuslog.core.errors import InvalidStateError, ValidationError
from focuslog.core.notifier import Notifier
from focuslog.core.record import SessionRecord, from_timestamp
from focuslog.core.scheduling import Clock
from focuslog.core.store import SessionStore
from focuslog.core.timer import TimerEngine, TimerState

log = logging.getLogger(__name__)


class EndReason(Enum):
    """Why a session is being finalized."""

    USER = "user"
    EXPIRED = "expired"


class SessionManager:
    """Mediates start/pause/resume/end between the user and the timer engine.

    The manager is the sole owner of the current :class:`SessionRecord`; the
    engine never touches it.  Redundant requests (pausing with no session,
    ending twice) are logged no-ops so duplicate input cannot corrupt a
    record.  Finalization always completes: notifier and store failures are
    logged, never raised.
    """

    def __init__(
        self,
        engine: TimerEngine,
        store: SessionStore,
        notifier: Notifier,
        clock: Clock,
    ) -> None:
        self._engine = engine
        self._store = store
        self._notifier = notifier
        self._clock = clock
        self._lock = threading.RLock()
        self._current: SessionRecord | None = None
        self._finalize_listeners: list[Callable[[SessionRecord], None]] = []
        engine.on_expire(self._on_expire)

    # -- public API ----------------------------------------------------------

    def request_start(self, goal: str) -> None:
        """Start a new session for *goal*, or resume the paused one.

        Raises :class:`ValidationError` if *goal* is blank.
        """
        if not goal or not goal.strip():
            raise ValidationError("A goal is required to start a session")
        with self._lock:
            state = self._engine.get_state()
            if state == TimerState.RUNNING:
                log.debug("Start requested while already running; ignoring")
                return
            now = self._now()
            if self._current is None:
                if state != TimerState.IDLE:
                    self._engine.reset()
                self._current = SessionRecord(goal=goal.strip(), start_time=now)
                self._engine.start()
                log.info(f"Started session '{self._current.goal}' for {self._engine.get_duration()}s")
            elif state == TimerState.PAUSED:
                if self._current.is_paused:
                    self._current.resume(now)
                self._engine.resume()
                log.info(f"Resumed session '{self._current.goal}'")
            else:
                log.debug(f"Start requested from {state.value} with an active session; ignoring")

    def request_pause(self) -> None:
        """Pause the running session.  A no-op when nothing is running."""
        with self._lock:
            if self._current is None or self._engine.get_state() != TimerState.RUNNING:
                log.debug("Pause requested without a running session; ignoring")
                return
            try:
                self._engine.pause()
            except InvalidStateError:
                # The deadline fired between the state check and the pause.
                log.debug("Pause requested as the session expired; ignoring")
                return
            self._current.pause(self._now())
            log.info(f"Paused session '{self._current.goal}'")

    def toggle(self, goal: str) -> None:
        """Pause when running, otherwise start or resume."""
        with self._lock:
            if self._engine.get_state() == TimerState.RUNNING:
                self.request_pause()
            else:
                self.request_start(goal)

    def request_end(self, reason: EndReason = EndReason.USER) -> SessionRecord | None:
        """Finalize the current session and reset the timer.

        Safe to call from any state; without an active session it does
        nothing and leaves the engine alone.  Returns the finalized record, or
        ``None`` if there was nothing to finalize.
        """
        with self._lock:
            record = self._current
            if record is None or record.is_finalized:
                log.debug(f"End ({reason.value}) requested without an active session")
                return None

            if reason == EndReason.EXPIRED:
                self._notify(record.goal)

            record.finalize(self._now())
            self._current = None
            self._engine.reset()
            log.info(f"Finished session '{record.goal}' ({reason.value}), {record.duration}s active")
            self._persist(record)

        for callback in list(self._finalize_listeners):
            try:
                callback(record)
            except Exception:
                log.exception("Finalize listener raised")
        return record

    def change_duration(self, seconds: int) -> bool:
        """Set the countdown length for the next session.

        Only allowed while no session is active; returns whether it applied.
        """
        with self._lock:
            if self._current is not None or self._engine.get_state() != TimerState.IDLE:
                log.debug("Duration change requested during an active session; ignoring")
                return False
            self._engine.configure(seconds)
            return True

    # -- queries -------------------------------------------------------------

    def get_current_record(self) -> SessionRecord | None:
        return self._current

    def get_remaining_seconds(self) -> int:
        return self._engine.get_remaining()

    def get_engine_state(self) -> TimerState:
        return self._engine.get_state()

    def is_active(self) -> bool:
        return self._current is not None

    def on_finalize(self, callback: Callable[[SessionRecord], None]) -> Callable[[], None]:
        """Call *callback(record)* after each session is finalized."""
        self._finalize_listeners.append(callback)
        return lambda: self._finalize_listeners.remove(callback)

    # -- private helpers -----------------------------------------------------

    def _on_expire(self) -> None:
        self.request_end(EndReason.EXPIRED)

    def _now(self):
        return from_timestamp(self._clock.now())

    def _notify(self, goal: str) -> None:
        try:
            self._notifier.notify(goal)
        except Exception:
            log.warning(f"Completion notification for '{goal}' failed", exc_info=True)

    def _persist(self, record: SessionRecord) -> None:
        try:
            self._store.append(record)
        except Exception:
            log.exception(f"Could not save session '{record.goal}'")
