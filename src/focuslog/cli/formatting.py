"""Text formatting for the countdown and the session log."""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from focuslog.core.record import PauseInterval
from focuslog.core.timer import round_seconds


def format_clock(seconds: int) -> str:
    """Format *seconds* as ``MM:SS`` (minutes may exceed two digits)."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def format_duration(seconds: int | None) -> str:
    """Format *seconds* as ``Xm Ys``."""
    seconds = int(seconds or 0)
    return f"{seconds // 60}m {seconds % 60}s"


def format_date(value: datetime | None) -> str:
    """Format *value* in local time, e.g. ``06/11/2025, 11:15:30 AM``."""
    if value is None:
        return "In progress"
    return value.astimezone().strftime("%m/%d/%Y, %I:%M:%S %p")


def format_pauses(pauses: Sequence[PauseInterval]) -> str:
    if not pauses:
        return "None"
    parts = []
    for pause in pauses:
        if pause.resume_time is None:
            parts.append("Paused")
        else:
            parts.append(f"Paused for {round_seconds(pause.seconds())}s")
    return ", ".join(parts)


def format_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """Render *rows* as left-aligned, space-padded columns under *headers*."""
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def line(cells: Sequence[str]) -> str:
        return "  ".join(cell.ljust(widths[i]) for i, cell in enumerate(cells)).rstrip()

    out = [line(headers), line(["-" * w for w in widths])]
    out.extend(line(row) for row in rows)
    return "\n".join(out)
