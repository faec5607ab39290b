# log.py
# SPDX-License-Identifier: MIT
"""Utilities for package-wide logging configuration.

Installs a NullHandler on the package logger so importing projvars as a
library stays quiet, and exposes helpers for runtime configuration, optional
file logging and temporary level overrides.
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from pathlib import Path

__all__ = [
    "PACKAGE_LOGGER_NAME",
    "DEFAULT_FORMAT",
    "get_logger",
    "configure_logging",
    "add_file_handler",
    "temp_level",
]

PACKAGE_LOGGER_NAME = "projvars"
DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logging.getLogger(PACKAGE_LOGGER_NAME).addHandler(logging.NullHandler())


def _to_level(level: int | str) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return level


def get_logger(name: str | None = None) -> logging.Logger:
    """Logger for ``name``, or the ``projvars`` package logger."""
    return logging.getLogger(name or PACKAGE_LOGGER_NAME)


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream=None,
    fmt: str | None = None,
    datefmt: str | None = None,
    propagate: bool | None = None,
    logger_name: str = PACKAGE_LOGGER_NAME,
) -> logging.Logger:
    """Give a projvars logger exactly one stream handler and set its level.

    Args:
        level (int | str): Level or level name such as ``"DEBUG"``.
        stream (IO[str] | None): Handler stream. Reports go to stdout, so
            this defaults to sys.stderr.
        fmt (str | None): Record format; DEFAULT_FORMAT when omitted.
        datefmt (str | None): ``asctime`` format.
        propagate (bool | None): Propagation flag. None keeps records
            flowing to root handlers such as pytest's caplog.
        logger_name (str): Logger to configure.

    Returns:
        logging.Logger: The configured logger.
    """
    logger = get_logger(logger_name or PACKAGE_LOGGER_NAME)
    logger.setLevel(_to_level(level))
    logger.propagate = True if propagate is None else bool(propagate)

    stream = stream if stream is not None else sys.stderr
    formatter = logging.Formatter(fmt=fmt or DEFAULT_FORMAT, datefmt=datefmt)

    # File handlers are managed by add_file_handler; pytest may close streams.
    stream_handlers = [
        h for h in logger.handlers
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
    ]
    for handler in stream_handlers:
        if getattr(handler.stream, "closed", False):
            handler.stream = stream
    if not stream_handlers:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def add_file_handler(
    path: str | Path,
    *,
    level: int | str = logging.DEBUG,
    fmt: str | None = None,
    logger_name: str = PACKAGE_LOGGER_NAME,
) -> logging.Handler:
    """Attach a FileHandler writing to ``path`` and return it."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(target, encoding="utf-8")
    handler.setLevel(_to_level(level))
    handler.setFormatter(logging.Formatter(fmt=fmt or DEFAULT_FORMAT))
    get_logger(logger_name).addHandler(handler)
    return handler


@contextmanager
def temp_level(level: int | str, name: str | None = None):
    """Run the ``with`` body with logger ``name`` at ``level``, then restore it."""
    logger = get_logger(name)
    previous = logger.level
    logger.setLevel(_to_level(level))
    try:
        yield logger
    finally:
        logger.setLevel(previous)
