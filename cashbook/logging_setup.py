"""Logging for the ``cashbook`` package.

Modules log through ``get_logger(__name__)`` and never add handlers. The
web app calls ``configure_logging`` when it is created. Calling it again
adjusts the level of the handler already installed; it never adds a second
one.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER = "cashbook"
LOG_LEVEL_ENV = "CASHBOOK_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def resolve_level(level: int | str | None = None) -> int:
    """Turn ``level`` (or ``$CASHBOOK_LOG_LEVEL`` when it is None) into a number."""
    if level is None:
        level = os.getenv(LOG_LEVEL_ENV) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelName(name)
    if not isinstance(numeric, int):
        raise ValueError(f"unknown log level: {level!r}")
    return numeric


def _installed_handler(logger: logging.Logger) -> logging.Handler | None:
    for handler in logger.handlers:
        if getattr(handler, "cashbook_owned", False):
            return handler
    return None


def configure_logging(
    level: int | str | None = None,
    *,
    stream: IO[str] | None = None,
    fmt: str = DEFAULT_FORMAT,
) -> logging.Logger:
    logger = logging.getLogger(PACKAGE_LOGGER)
    numeric = resolve_level(level)

    handler = _installed_handler(logger)
    if handler is None:
        for existing in list(logger.handlers):
            if isinstance(existing, logging.NullHandler):
                logger.removeHandler(existing)
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.cashbook_owned = True
        handler.setFormatter(logging.Formatter(fmt))
        logger.addHandler(handler)
        logger.propagate = False
    elif stream is not None:
        handler.setStream(stream)

    logger.setLevel(numeric)
    return logger


def get_logger(name: str) -> logging.Logger:
    package = logging.getLogger(PACKAGE_LOGGER)
    if not package.handlers:
        package.addHandler(logging.NullHandler())
    return logging.getLogger(name)
