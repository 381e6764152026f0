"""Logging for ``household_import``.

The CLI calls :func:`configure_logging` once at startup; everything else goes
through :func:`get_logger`. Until the CLI (or a host application) configures
output, the ``household_import`` logger only carries a ``NullHandler``.

``HOUSEHOLD_IMPORT_LOG_LEVEL`` sets the level when none is passed in.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

ROOT_LOGGER = "household_import"
LEVEL_ENV = "HOUSEHOLD_IMPORT_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_CONFIGURED = False


def resolve_level(level: int | str | None = None) -> int:
    """Map ``level`` (or the env var when ``None``) to a numeric level.

    Unknown names fall back to ``INFO``.
    """

    if level is None:
        level = os.getenv(LEVEL_ENV) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    return logging.getLevelNamesMapping().get(name, logging.INFO)


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> None:
    """Send package logs to ``stream`` (stderr by default). Later calls are no-ops."""

    global _CONFIGURED
    if _CONFIGURED:
        return

    numeric = resolve_level(level)
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    handler.setLevel(numeric)

    pkg = logging.getLogger(ROOT_LOGGER)
    for existing in [h for h in pkg.handlers if isinstance(h, logging.NullHandler)]:
        pkg.removeHandler(existing)
    pkg.addHandler(handler)
    pkg.setLevel(numeric)
    pkg.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    pkg = logging.getLogger(ROOT_LOGGER)
    if not _CONFIGURED and not pkg.handlers:
        pkg.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "resolve_level"]
