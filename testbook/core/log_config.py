"""Logging setup for the command line.

Library modules only call ``logging.getLogger(__name__)``; handlers are
installed here, once, by the entry point.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


PACKAGE_LOGGER = "testbook"


def _parse_level(raw: str | int) -> int:
    if isinstance(raw, int):
        return raw
    level = logging.getLevelName(raw.strip().upper())
    return level if isinstance(level, int) else logging.WARNING


def setup_logging(level: str | int = "WARNING", console: Console | None = None) -> logging.Logger:
    """Attach a Rich handler to the package logger.

    Calling it again only updates the level.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(_parse_level(level))

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=False,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        logger.addHandler(handler)

    return logger
