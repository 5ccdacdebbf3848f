"""CLI entry point for focuslog.

Uses Click to expose the ``focuslog`` command group: ``run`` drives a session
in the foreground, the other subcommands read and edit the session log.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable, TypeVar

import click

import focuslog
from focuslog.cli.formatting import (
    format_clock,
    format_date,
    format_duration,
    format_pauses,
    format_table,
)
from focuslog.common.logger import configure_logging
from focuslog.config import Settings, load_settings, resolve_config_dir
from focuslog.core.errors import FocusLogError, NotificationError
from focuslog.core.notifier import SoundNotifier, build_notifier
from focuslog.core.record import SessionRecord
from focuslog.core.scheduling import SystemClock, ThreadingScheduler
from focuslog.core.session import SessionManager
from focuslog.core.store import SESSIONS_FILE, JsonSessionStore
from focuslog.core.timer import TimerState, TimerEngine

T = TypeVar("T")

_POLL_INTERVAL = 0.2


@dataclass
class AppContext:
    config_dir: Path
    settings: Settings
    store: JsonSessionStore


def _wait(event: threading.Event) -> bool:
    """Block for one poll interval; Ctrl+C surfaces here as ``KeyboardInterrupt``."""
    return event.wait(_POLL_INTERVAL)


def _run(action: Callable[[], T]) -> T:
    """Execute *action*, converting ``FocusLogError`` to a CLI error.

    On ``FocusLogError`` the message is printed to stderr and the process
    exits with code 1.
    """
    try:
        return action()
    except FocusLogError as exc:
        click.echo(str(exc), err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=focuslog.__version__, prog_name="focuslog")
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for settings, logs and session history.",
)
@click.pass_context
def cli(ctx: click.Context, config_dir: Path | None) -> None:
    """focuslog: a goal-tagged focus timer with a session log."""
    config_dir = resolve_config_dir(config_dir)
    settings = load_settings(config_dir)
    configure_logging(config_dir / "logs", level=getattr(logging, settings.log_level))
    ctx.obj = AppContext(config_dir, settings, JsonSessionStore(config_dir / SESSIONS_FILE))


@cli.command()
@click.argument("goal")
@click.option("-m", "--minutes", type=click.IntRange(1, 180), default=None, help="Session length.")
@click.option("--sound/--no-sound", default=None, help="Play a sound when the session completes.")
@click.option("--alert/--no-alert", default=None, help="Show a desktop notification on completion.")
@click.pass_obj
def run(app: AppContext, goal: str, minutes: int | None, sound: bool | None, alert: bool | None) -> None:
    """Run a focus session on GOAL in the foreground.

    Press Ctrl+C to pause; you will be asked whether to resume or end.
    """
    settings = app.settings
    duration = (minutes or settings.duration_minutes) * 60
    notifier = build_notifier(
        sound=settings.sound if sound is None else sound,
        desktop_alert=settings.desktop_alert if alert is None else alert,
    )
    clock = SystemClock()
    engine = TimerEngine(clock, ThreadingScheduler(), duration, settings.tick_interval)
    # Subscribed before the manager so it is set by the time the session finalizes.
    expired = threading.Event()
    engine.on_expire(expired.set)
    manager = SessionManager(engine, app.store, notifier, clock)

    finished = threading.Event()
    result: list[SessionRecord] = []

    def on_finalize(record: SessionRecord) -> None:
        result.append(record)
        finished.set()

    def on_tick(remaining: int) -> None:
        if manager.is_active():
            click.echo(f"\r{format_clock(remaining)}  {goal}", nl=False)

    manager.on_finalize(on_finalize)
    engine.on_tick(on_tick)

    _run(lambda: manager.request_start(goal))
    click.echo(f"\r{format_clock(duration)}  {goal}", nl=False)

    while not finished.is_set():
        try:
            _wait(finished)
        except KeyboardInterrupt:
            manager.request_pause()
            if manager.get_engine_state() != TimerState.PAUSED:
                continue
            try:
                choice = click.prompt(
                    f"\nPaused at {format_clock(manager.get_remaining_seconds())}. Resume or end?",
                    type=click.Choice(["resume", "end"]),
                    default="resume",
                )
            except click.Abort:
                choice = "end"
            if choice == "end":
                manager.request_end()
            else:
                manager.request_start(goal)

    click.echo()
    record = result[0]
    if expired.is_set():
        click.echo(f'Session complete! "{record.goal}" has finished.')
    else:
        click.echo(f'Session ended: "{record.goal}".')
    click.echo(f"Active time: {format_duration(record.duration)} ({format_pauses(record.pauses)})")


@cli.command(name="log")
@click.option("--json", "as_json", is_flag=True, help="Print the raw JSON log.")
@click.pass_obj
def show_log(app: AppContext, as_json: bool) -> None:
    """Show past sessions, newest first."""
    if as_json:
        click.echo(json.dumps(app.store.raw(), indent=2))
        return
    records = app.store.list()
    if not records:
        click.echo("No sessions logged yet")
        return
    rows = [
        [
            str(i),
            record.goal,
            format_date(record.start_time),
            format_date(record.end_time),
            format_duration(record.duration),
            format_pauses(record.pauses),
        ]
        for i, record in enumerate(records, start=1)
    ]
    click.echo(format_table(["#", "Goal", "Start", "End", "Duration", "Pauses"], rows))


@cli.command()
@click.argument("index", type=click.IntRange(min=1))
@click.pass_obj
def delete(app: AppContext, index: int) -> None:
    """Delete session number INDEX (as shown by ``focuslog log``)."""
    try:
        record = _run(lambda: app.store.remove(index - 1))
    except IndexError:
        click.echo(f"No session #{index}", err=True)
        sys.exit(1)
    click.echo(f'Deleted session #{index}: "{record.goal}"')


@cli.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
@click.pass_obj
def clear(app: AppContext, yes: bool) -> None:
    """Delete all logged sessions."""
    if not yes and not click.confirm("Are you sure you want to delete all session logs?"):
        click.echo("Nothing deleted")
        return
    _run(app.store.clear)
    click.echo("All sessions deleted")


@cli.command(name="test-sound")
def test_sound() -> None:
    """Play the completion sound once."""
    try:
        SoundNotifier().notify("")
    except NotificationError as exc:
        click.echo(f"Could not play sound: {exc}", err=True)
        sys.exit(1)
    click.echo("Played completion sound")


@cli.command()
@click.pass_obj
def config(app: AppContext) -> None:
    """Show the effective settings."""
    click.echo(f"config_dir: {app.config_dir}")
    for key, value in asdict(app.settings).items():
        click.echo(f"{key}: {value}")
