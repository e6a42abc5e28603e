"""Logging for ``bank_sync``.

Library modules call :func:`get_logger` and never attach handlers. The CLI
calls :func:`configure_logging` once at startup.

Concurrent backends interleave their log lines, so each backend run logs
through :func:`backend_logger`, which tags every record with the backend's
display name (``[Local JSON] saving 12 transactions``) and routes it under
``bank_sync.storage.<slug>`` for per-backend level control.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from collections.abc import MutableMapping
from typing import IO, Any

LOGGER_NAME = "bank_sync"
LEVEL_ENV = "BANK_SYNC_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

# Marks the handler installed by configure_logging.
_HANDLER_NAME = "bank_sync.console"


def resolve_level(level: int | str | None = None) -> int:
    """Map ``level`` (or ``$BANK_SYNC_LOG_LEVEL``) to a logging level.

    Unknown names fall back to ``INFO`` rather than failing startup.
    """

    if level is None:
        level = os.getenv(LEVEL_ENV) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    value = logging.getLevelNamesMapping().get(name)
    return value if value is not None else logging.INFO


def configure_logging(level: int | str | None = None, *, stream: IO[str] | None = None) -> None:
    """Attach one console handler to the ``bank_sync`` logger.

    Calling again only updates the level, so repeated CLI invocations in one
    process (tests) don't stack handlers.
    """

    pkg = logging.getLogger(LOGGER_NAME)
    resolved = resolve_level(level)
    pkg.setLevel(resolved)

    if any(h.get_name() == _HANDLER_NAME for h in pkg.handlers):
        return
    for h in list(pkg.handlers):
        if isinstance(h, logging.NullHandler):
            pkg.removeHandler(h)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
    pkg.addHandler(handler)
    pkg.propagate = False


def get_logger(name: str) -> logging.Logger:
    pkg = logging.getLogger(LOGGER_NAME)
    if not pkg.handlers:
        pkg.addHandler(logging.NullHandler())
    return logging.getLogger(name)


def _slug(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", name.lower()).strip("_") or "backend"


class BackendLogAdapter(logging.LoggerAdapter):
    """Prefix every message with ``[<backend name>]``."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        return f"[{self.extra['backend']}] {msg}", kwargs


def backend_logger(backend_name: str) -> BackendLogAdapter:
    logger = get_logger(f"{LOGGER_NAME}.storage.{_slug(backend_name)}")
    return BackendLogAdapter(logger, {"backend": backend_name})


__all__ = [
    "LOGGER_NAME",
    "LEVEL_ENV",
    "resolve_level",
    "configure_logging",
    "get_logger",
    "BackendLogAdapter",
    "backend_logger",
]
