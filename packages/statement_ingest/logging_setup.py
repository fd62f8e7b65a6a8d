"""Logging for ``statement_ingest``.

Entry points (the CLI root callback) call :func:`configure_logging` once;
library modules only ever call :func:`get_logger` and never touch handlers.

Records may carry import context through ``extra``: ``source``, ``file``,
``reason`` and ``rows``. Whichever are present are appended to the line as
``key=value`` pairs, e.g.::

    ... INFO statement_ingest.detect: auto-detection failed [reason=no_date_column]
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

ROOT_LOGGER = "statement_ingest"
LOG_LEVEL_ENV = "STATEMENT_INGEST_LOG_LEVEL"
CONTEXT_FIELDS: tuple[str, ...] = ("source", "file", "reason", "rows")

_DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_CONFIGURED = False


def resolve_level(level: int | str | None = None) -> int:
    """Numeric level from ``level``, else ``$STATEMENT_INGEST_LOG_LEVEL``, else WARNING.

    Accepts level names in any case and numeric strings. Raises
    ``ValueError`` for an unknown name.
    """

    if level is None:
        level = os.getenv(LOG_LEVEL_ENV) or logging.WARNING
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    value = logging.getLevelNamesMapping().get(name)
    if value is None:
        raise ValueError(f"unknown log level: {level!r}")
    return value


class ContextFormatter(logging.Formatter):
    """Appends the ``extra`` import context of a record as ``[key=value ...]``."""

    def formatMessage(self, record: logging.LogRecord) -> str:  # noqa: N802
        message = super().formatMessage(record)
        pairs: list[str] = []
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is None:
                continue
            text = str(value)
            pairs.append(f"{key}={text!r}" if " " in text else f"{key}={text}")
        if not pairs:
            return message
        return f"{message} [{' '.join(pairs)}]"


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> None:
    """Install the package handler on first call; later calls only change the level.

    ``stream`` defaults to ``sys.stderr`` at call time so command output on
    stdout stays clean.
    """

    global _CONFIGURED
    resolved = resolve_level(level)
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(resolved)
    if _CONFIGURED:
        return

    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(ContextFormatter(fmt or _DEFAULT_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name``; a ``NullHandler`` keeps library use quiet until configured."""

    root = logging.getLogger(ROOT_LOGGER)
    if not _CONFIGURED and not root.handlers:
        root.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = [
    "ROOT_LOGGER",
    "LOG_LEVEL_ENV",
    "CONTEXT_FIELDS",
    "resolve_level",
    "ContextFormatter",
    "configure_logging",
    "get_logger",
]
