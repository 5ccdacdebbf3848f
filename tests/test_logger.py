"""Tests for the log file setup."""

import logging
from pathlib import Path

import pytest

from focuslog.common.logger import ROOT_LOGGER, configure_logging


@pytest.fixture()
def clean_logger():
    """Detach and close any focuslog handlers before and after each test."""
    logger = logging.getLogger(ROOT_LOGGER)

    def detach() -> None:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    detach()
    yield logger
    detach()


class TestConfigureLogging:
    def test_creates_log_files(self, clean_logger, tmp_path: Path) -> None:
        configure_logging(tmp_path / "logs")
        logging.getLogger("focuslog.core.session").info("hello")
        assert "hello" in (tmp_path / "logs" / "focuslog.log").read_text()
        assert "hello" in (tmp_path / "logs" / "latest.log").read_text()

    def test_repeated_calls_do_not_duplicate_handlers(self, clean_logger, tmp_path: Path) -> None:
        configure_logging(tmp_path)
        configure_logging(tmp_path)
        assert sorted(h.get_name() for h in clean_logger.handlers) == [
            "focuslog:latest",
            "focuslog:persistent",
        ]

    def test_repeated_call_updates_level(self, clean_logger, tmp_path: Path) -> None:
        configure_logging(tmp_path, level=logging.INFO)
        configure_logging(tmp_path, level=logging.DEBUG)
        assert clean_logger.level == logging.DEBUG
        assert all(h.level == logging.DEBUG for h in clean_logger.handlers)
