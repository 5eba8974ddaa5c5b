"""Logging for ``fintrack``.

Library modules only ever call ``get_logger("fintrack.<module>")``; the CLI
root callback calls :func:`configure_logging` once per invocation. Messages
use the ``event:name key=value`` shape, e.g.
``store:load_fallback key=fintrack_transactions reason=invalid_json``.

The level is taken from the explicit argument, else ``FINTRACK_LOG_LEVEL``,
else ``INFO``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER = "fintrack"
LOG_LEVEL_ENV = "FINTRACK_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


class _CliHandler(logging.StreamHandler):
    """Marker type so reconfiguring replaces our handler and nothing else."""


def resolve_level(level: int | str | None = None) -> int:
    """Turn ``level`` (or the env override when it is ``None``) into a number.

    Accepts ints, digit strings and level names in any case. Anything
    unrecognised resolves to ``INFO``.
    """

    if level is None:
        level = os.getenv(LOG_LEVEL_ENV)
    if isinstance(level, int):
        return level
    if level:
        name = level.strip().upper()
        if name.isdigit():
            return int(name)
        numeric = logging.getLevelName(name)
        if isinstance(numeric, int):
            return numeric
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    stream: IO[str] | None = None,
    fmt: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """Send ``fintrack.*`` records to ``stream`` (stderr by default).

    Calling it again swaps the previous handler for a new one, so the level
    or stream can change within one process. Records stop propagating to the
    root logger once configured.
    """

    logger = logging.getLogger(PACKAGE_LOGGER)
    for h in list(logger.handlers):
        if isinstance(h, (_CliHandler, logging.NullHandler)):
            logger.removeHandler(h)

    resolved = resolve_level(level)
    handler = _CliHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter(fmt))
    handler.setLevel(resolved)

    logger.addHandler(handler)
    logger.setLevel(resolved)
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return ``name``'s logger; unconfigured, the package logger gets a ``NullHandler``.

    Until :func:`configure_logging` runs, records still propagate to the
    root logger, which is what pytest's ``caplog`` listens on.
    """

    pkg = logging.getLogger(PACKAGE_LOGGER)
    if not pkg.handlers:
        pkg.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["DEFAULT_FORMAT", "LOG_LEVEL_ENV", "configure_logging", "get_logger", "resolve_level"]
