"""Pytest configuration for test isolation.

Configuration, the database URL and the log level are all read from the
environment, and the SQL backend shares one engine per process. Tests must
not pick those up from the developer's shell or from each other, so every test
starts with a scrubbed environment and ends by disposing the shared engine.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from db.client import dispose_engines

_ENV_VARS = (
    "BANK_SYNC_CONFIG",
    "BANK_SYNC_CONFIG_PATH",
    "BANK_SYNC_LOG_LEVEL",
    "DATABASE_URL",
)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
    dispose_engines()
