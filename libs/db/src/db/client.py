"""Engine and session helpers for the ``bank_transactions`` store.

Engines are created lazily, one per database URL, and reused for the life of
the process. The SQL backend runs its queries from worker threads, so every
session is short-lived and scoped with :func:`session_scope`.
"""

from __future__ import annotations

import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .models.transactions import Base

_LOCK = threading.Lock()
_ENGINES: dict[str, tuple[Engine, sessionmaker[Session]]] = {}


def resolve_url(database_url: str | None = None) -> str:
    url = database_url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("no database URL: pass one or set DATABASE_URL")
    return url


def _bound(url: str) -> tuple[Engine, sessionmaker[Session]]:
    with _LOCK:
        entry = _ENGINES.get(url)
        if entry is None:
            engine = create_engine(url, pool_pre_ping=True)
            entry = (engine, sessionmaker(bind=engine, expire_on_commit=False))
            _ENGINES[url] = entry
        return entry


def get_engine(*, database_url: str | None = None) -> Engine:
    """Return the shared engine for ``database_url`` (or ``$DATABASE_URL``)."""

    engine, _ = _bound(resolve_url(database_url))
    return engine


def dispose_engines() -> None:
    """Close every pooled connection and forget all engines."""

    with _LOCK:
        engines = [engine for engine, _ in _ENGINES.values()]
        _ENGINES.clear()
    for engine in engines:
        engine.dispose()


def create_schema(*, database_url: str | None = None) -> None:
    """Create ``bank_transactions`` if missing; Alembic owns real migrations."""

    Base.metadata.create_all(bind=get_engine(database_url=database_url))


@contextmanager
def session_scope(*, database_url: str | None = None) -> Iterator[Session]:
    """Commit on success, roll back on error, always close."""

    _, factory = _bound(resolve_url(database_url))
    with factory.begin() as session:
        yield session


__all__ = [
    "resolve_url",
    "get_engine",
    "dispose_engines",
    "create_schema",
    "session_scope",
]
