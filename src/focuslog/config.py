"""User settings, stored as ``settings.json`` in the config directory."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

log = logging.getLogger(__name__)

_DEFAULT_CONFIG_DIR = Path.home() / ".config" / "focuslog"
_CONFIG_DIR_ENV = "FOCUSLOG_HOME"
_SETTINGS_FILE = "settings.json"

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR"})


@dataclass
class Settings:
    duration_minutes: int = 25
    tick_interval: float = 0.25
    sound: bool = True
    desktop_alert: bool = True
    log_level: str = "INFO"

    @property
    def duration_seconds(self) -> int:
        return self.duration_minutes * 60


def _is_valid(name: str, value: Any) -> bool:
    if name == "duration_minutes":
        return isinstance(value, int) and not isinstance(value, bool) and value > 0
    if name == "tick_interval":
        return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0
    if name in ("sound", "desktop_alert"):
        return isinstance(value, bool)
    if name == "log_level":
        return isinstance(value, str) and value.upper() in _LOG_LEVELS
    return False


def resolve_config_dir(config_dir: Path | None = None) -> Path:
    """Return *config_dir*, else ``$FOCUSLOG_HOME``, else ``~/.config/focuslog``."""
    if config_dir is not None:
        return config_dir
    env = os.environ.get(_CONFIG_DIR_ENV)
    if env:
        return Path(env).expanduser()
    return _DEFAULT_CONFIG_DIR


def load_settings(config_dir: Path) -> Settings:
    """Read settings from *config_dir*, defaulting anything missing or invalid."""
    path = config_dir / _SETTINGS_FILE
    if not path.exists():
        return Settings()
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError):
        log.warning(f"Could not read '{path}', using default settings", exc_info=True)
        return Settings()
    if not isinstance(data, dict):
        log.warning(f"'{path}' is not a JSON object, using default settings")
        return Settings()

    settings = Settings()
    defaulted = []
    for f in fields(Settings):
        if f.name not in data:
            defaulted.append(f.name)
        elif not _is_valid(f.name, data[f.name]):
            log.warning(f"Invalid value for '{f.name}' in '{path}': {data[f.name]!r}, using default")
            defaulted.append(f.name)
        else:
            setattr(settings, f.name, data[f.name])
    settings.log_level = settings.log_level.upper()

    if defaulted:
        log.info(f"Loaded settings from '{path}' with defaulted values: {', '.join(defaulted)}")
    else:
        log.info(f"Loaded settings from '{path}'")
    return settings
