"""Tests for ffigen.logging."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from ffigen.logging import configure_logging, get_logger


@pytest.fixture
def restore_ffigen_logger():
    logger = logging.getLogger("ffigen")
    saved = (logger.level, logger.propagate, list(logger.handlers))
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(saved[0])
    logger.propagate = saved[1]
    for handler in saved[2]:
        logger.addHandler(handler)


def test_get_logger_nests_below_package_logger() -> None:
    assert get_logger("library_mode").name == "ffigen.library_mode"
    assert get_logger().name == "ffigen"


@pytest.mark.parametrize(
    ("verbose", "quiet", "level"),
    [(False, False, logging.INFO), (True, False, logging.DEBUG), (False, True, logging.WARNING), (True, True, logging.DEBUG)],
)
def test_configure_logging_levels(restore_ffigen_logger, verbose: bool, quiet: bool, level: int) -> None:
    logger = configure_logging(verbose=verbose, quiet=quiet)

    assert logger.level == level
    assert len(logger.handlers) == 1


def test_configure_logging_writes_debug_records_to_file(restore_ffigen_logger, tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "ffigen.log"

    configure_logging(log_file=log_file)
    configure_logging(log_file=log_file)
    get_logger("buildgraph").info("queried %d packages", 3)
    for handler in restore_ffigen_logger.handlers:
        handler.flush()

    assert len(restore_ffigen_logger.handlers) == 2
    assert "INFO ffigen.buildgraph: queried 3 packages" in log_file.read_text(encoding="utf-8")
