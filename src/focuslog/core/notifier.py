"""Completion notifiers — a sound and a desktop alert when a session finishes."""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
from typing import Protocol, Sequence

import click

from focuslog.core.errors import NotificationError

log = logging.getLogger(__name__)

_MAC_SOUND = "/System/Library/Sounds/Glass.aiff"
_FREEDESKTOP_SOUND = "/usr/share/sounds/freedesktop/stereo/complete.oga"
_ALERT_TITLE = "Focus session complete!"


class Notifier(Protocol):
    def notify(self, goal: str) -> None: ...


def _spawn(cmd: list[str]) -> None:
    """Start *cmd* without waiting for it; wrap launch failures."""
    try:
        subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    except (OSError, subprocess.SubprocessError) as exc:
        raise NotificationError(f"could not run {cmd[0]}: {exc}") from exc


def _alert_message(goal: str) -> str:
    return f'Your session for "{goal or "your task"}" has finished.'


class SoundNotifier:
    """Plays a short completion sound (non-blocking, platform-aware).

    Uses ``afplay`` on macOS and ``paplay`` where available, and falls back to
    the terminal bell.
    """

    def notify(self, goal: str) -> None:
        if sys.platform == "darwin" and shutil.which("afplay"):
            _spawn(["afplay", _MAC_SOUND])
        elif shutil.which("paplay"):
            _spawn(["paplay", _FREEDESKTOP_SOUND])
        else:
            click.echo("\a", nl=False)
        log.debug("Played completion sound")


class DesktopNotifier:
    """Raises an OS notification via ``osascript`` or ``notify-send``."""

    def notify(self, goal: str) -> None:
        message = _alert_message(goal)
        if sys.platform == "darwin" and shutil.which("osascript"):
            script = f"display notification {_quote(message)} with title {_quote(_ALERT_TITLE)}"
            _spawn(["osascript", "-e", script])
        elif shutil.which("notify-send"):
            _spawn(["notify-send", _ALERT_TITLE, message])
        else:
            raise NotificationError("no desktop notification command available")
        log.debug(f"Raised desktop alert for '{goal}'")


class CompositeNotifier:
    """Runs several notifiers; one failing does not stop the others.

    Raises a single :class:`NotificationError` at the end if any failed.
    """

    def __init__(self, notifiers: Sequence[Notifier]) -> None:
        self._notifiers = list(notifiers)

    def notify(self, goal: str) -> None:
        failures = []
        for notifier in self._notifiers:
            try:
                notifier.notify(goal)
            except NotificationError as exc:
                log.warning(f"{type(notifier).__name__} failed: {exc}")
                failures.append(str(exc))
        if failures:
            raise NotificationError("; ".join(failures))


class NullNotifier:
    def notify(self, goal: str) -> None:
        pass


def build_notifier(sound: bool = True, desktop_alert: bool = True) -> Notifier:
    """Return the notifier matching the user's settings."""
    notifiers: list[Notifier] = []
    if sound:
        notifiers.append(SoundNotifier())
    if desktop_alert:
        notifiers.append(DesktopNotifier())
    if not notifiers:
        return NullNotifier()
    return CompositeNotifier(notifiers)


def _quote(text: str) -> str:
    """Quote *text* as an AppleScript string literal."""
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'
