"""Explicit registry of active storage backends.

Built once at process start from configuration and passed by reference into
the orchestrator. ``can_save`` is evaluated exactly once here; the resulting
set does not change for the rest of the run.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence

from .backends import LocalJsonStorage, SqlStorage, StorageBackend, WebPostStorage
from .config import BankSyncConfig
from .logging_setup import get_logger
from .notifier import Notifier

logger = get_logger("bank_sync.registry")


class BackendRegistry(Sequence[StorageBackend]):
    """An immutable, ordered collection of backends that can save."""

    __slots__ = ("_backends",)

    def __init__(self, backends: Iterable[StorageBackend]) -> None:
        active: list[StorageBackend] = []
        names: set[str] = set()
        for backend in backends:
            if not backend.can_save():
                logger.debug("backend %s is not configured; skipping", backend.name)
                continue
            if backend.name in names:
                raise ValueError(f"duplicate backend name: {backend.name!r}")
            names.add(backend.name)
            active.append(backend)
        self._backends: tuple[StorageBackend, ...] = tuple(active)

    def __getitem__(self, index):  # type: ignore[override]
        return self._backends[index]

    def __len__(self) -> int:
        return len(self._backends)

    def __iter__(self) -> Iterator[StorageBackend]:
        return iter(self._backends)

    @property
    def names(self) -> list[str]:
        return [b.name for b in self._backends]

    def __repr__(self) -> str:  # pragma: no cover - trivial repr
        return f"BackendRegistry({self.names!r})"


def build_registry(config: BankSyncConfig, *, notifier: Notifier | None = None) -> BackendRegistry:
    """Construct every known backend from ``config`` and keep those that can save."""

    storage = config.storage
    candidates: list[StorageBackend] = [
        LocalJsonStorage(storage.local_json),
        SqlStorage(
            storage.sql,
            hash_type=config.options.scraping.transaction_hash_type,
            notifier=notifier,
        ),
        WebPostStorage(storage.web_post),
    ]
    registry = BackendRegistry(candidates)
    logger.info("active backends: %s", ", ".join(registry.names) or "(none)")
    return registry


__all__ = ["BackendRegistry", "build_registry"]
