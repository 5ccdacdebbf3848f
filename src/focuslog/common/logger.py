"""Log file setup for the ``focuslog`` command."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s:%(filename)s:%(lineno)d] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ROOT_LOGGER = "focuslog"


def configure_logging(
    log_dir: Path,
    level: int = logging.INFO,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """Attach file handlers to the ``focuslog`` logger and return it.

    Writes a rotating ``focuslog.log`` plus a ``latest.log`` that is truncated
    on each run.  Handlers are named, so calling this again in the same
    process only updates their level.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.propagate = False
    logger.setLevel(level)

    log_dir.mkdir(parents=True, exist_ok=True)
    fmt = logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)

    persistent_name = f"{ROOT_LOGGER}:persistent"
    if not _has_handler(logger, persistent_name):
        persistent = RotatingFileHandler(
            filename=log_dir / f"{ROOT_LOGGER}.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        persistent.setFormatter(fmt)
        persistent.set_name(persistent_name)
        logger.addHandler(persistent)

    # Overwritten each run.
    latest_name = f"{ROOT_LOGGER}:latest"
    if not _has_handler(logger, latest_name):
        latest = logging.FileHandler(filename=log_dir / "latest.log", mode="w", encoding="utf-8")
        latest.setFormatter(fmt)
        latest.set_name(latest_name)
        logger.addHandler(latest)

    for handler in logger.handlers:
        handler.setLevel(level)

    return logger


def _has_handler(logger: logging.Logger, name: str) -> bool:
    return any(h.get_name() == name for h in logger.handlers)
