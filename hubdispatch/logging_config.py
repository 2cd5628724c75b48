"""Logging setup for the hubdispatch namespace.

Library modules only ever call ``logging.getLogger(__name__)``; the
package root logger carries a ``NullHandler`` until an application (the
CLI, for instance) calls ``setup_logging``.
"""

from __future__ import annotations

import logging
import sys

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "hubdispatch"


def setup_logging(
    level: str = "INFO",
    *,
    pretty: bool = False,
    console: Console | None = None,
) -> logging.Logger:
    """Configure the ``hubdispatch`` logger.

    Existing handlers are removed first, so repeated calls never duplicate
    output.  Propagation to the root logger is disabled.

    Parameters
    ----------
    level:
        Logging threshold, e.g. ``"DEBUG"`` or ``"INFO"``.
    pretty:
        Use a ``rich`` handler with colored output and rich tracebacks
        instead of a plain stderr stream handler.
    console:
        Console for the rich handler; defaults to a stderr console.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.handlers.clear()

    handler: logging.Handler
    if pretty:
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
            log_time_format="[%X]",
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    logger.addHandler(handler)
    logger.setLevel(level.upper())
    logger.propagate = False
    return logger
