"""Session records and their persisted JSON layout."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from focuslog.core.errors import InvalidStateError
from focuslog.core.timer import round_seconds


def from_timestamp(timestamp: float) -> datetime:
    """Convert epoch seconds to an aware UTC datetime."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def _to_iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")


def _from_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class PauseInterval:
    pause_time: datetime
    resume_time: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.resume_time is None

    def seconds(self) -> float:
        """Length of the pause in seconds; 0.0 while it is still open."""
        if self.resume_time is None:
            return 0.0
        return (self.resume_time - self.pause_time).total_seconds()


@dataclass
class SessionRecord:
    """One goal-tagged work session.

    A record is mutable (pause/resume) until :meth:`finalize` stamps
    ``end_time`` and ``duration``; after that every mutator raises
    :class:`InvalidStateError`.
    """

    goal: str
    start_time: datetime
    end_time: datetime | None = None
    duration: int | None = None
    pauses: list[PauseInterval] = field(default_factory=list)

    @property
    def is_finalized(self) -> bool:
        return self.end_time is not None

    @property
    def is_paused(self) -> bool:
        return bool(self.pauses) and self.pauses[-1].is_open

    def pause(self, at: datetime) -> None:
        self._require_mutable("pause")
        if self.is_paused:
            raise InvalidStateError("pause() is not valid while already paused")
        self.pauses.append(PauseInterval(pause_time=at))

    def resume(self, at: datetime) -> None:
        self._require_mutable("resume")
        if not self.is_paused:
            raise InvalidStateError("resume() is not valid without an open pause")
        self.pauses[-1].resume_time = at

    def paused_seconds(self) -> float:
        return sum(p.seconds() for p in self.pauses)

    def finalize(self, at: datetime) -> None:
        """Stamp the end time and compute the net active duration.

        An open pause is closed at *at* so that a session ended while paused
        does not count the paused tail as active time.
        """
        self._require_mutable("finalize")
        if self.is_paused:
            self.pauses[-1].resume_time = at
        self.end_time = at
        elapsed = (at - self.start_time).total_seconds()
        self.duration = max(0, round_seconds(elapsed - self.paused_seconds()))

    def _require_mutable(self, method: str) -> None:
        if self.is_finalized:
            raise InvalidStateError(f"{method}() is not valid on a finalized session")

    # -- serialization -------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Return the persisted layout (camelCase keys, ISO-8601 timestamps)."""
        return {
            "goal": self.goal,
            "startTime": _to_iso(self.start_time),
            "endTime": _to_iso(self.end_time),
            "duration": self.duration if self.duration is not None else 0,
            "pauses": [
                {"pauseTime": _to_iso(p.pause_time), "resumeTime": _to_iso(p.resume_time)}
                for p in self.pauses
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionRecord:
        """Build a record from the persisted layout.

        Raises ``KeyError``/``ValueError``/``TypeError`` on malformed input.
        """
        start_time = _from_iso(data["startTime"])
        if start_time is None:
            raise ValueError("startTime is required")
        end_time = _from_iso(data.get("endTime"))
        pauses = []
        for raw in data.get("pauses") or []:
            pause_time = _from_iso(raw["pauseTime"])
            if pause_time is None:
                raise ValueError("pauseTime is required")
            pauses.append(PauseInterval(pause_time, _from_iso(raw.get("resumeTime"))))
        duration = data.get("duration")
        return cls(
            goal=str(data["goal"]),
            start_time=start_time,
            end_time=end_time,
            duration=int(duration) if duration is not None else (0 if end_time else None),
            pauses=pauses,
        )
