"""Tests for the hubdispatch logging setup."""

from __future__ import annotations

import io
import logging
from rich.console import Console

from hubdispatch.logging_config import ROOT_LOGGER_NAME, setup_logging


def test_package_logger_silent_by_default():
    import hubdispatch  # noqa: F401

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    assert any(isinstance(h, logging.NullHandler) for h in logger.handlers)


def test_setup_does_not_duplicate_handlers():
    setup_logging("INFO")
    logger = setup_logging("debug")

    assert logger.name == ROOT_LOGGER_NAME
    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG
    assert logger.propagate is False


def test_pretty_output_goes_to_console():
    buffer = io.StringIO()
    console = Console(file=buffer, force_terminal=False, width=200)
    setup_logging("INFO", pretty=True, console=console)

    logging.getLogger("hubdispatch.core.batch_manager").info("Sending batch of 3 events")

    output = buffer.getvalue()
    assert "Sending batch of 3 events" in output
    assert "hubdispatch.core.batch_manager" in output
