"""Backend that dumps each run's canonical rows to a local JSON file."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from pathlib import Path

from ..config import LocalJsonConfig
from ..logging_setup import get_logger
from ..models import TransactionRow
from ..stats import SaveStats, create_save_stats
from .base import ProgressCallback

logger = get_logger("bank_sync.backends.json_file")


def _utc_now() -> datetime:
    return datetime.now(UTC)


class LocalJsonStorage:
    """Write every transaction of a run to ``<directory>/<UTC timestamp>.json``.

    No deduplication: each run produces its own file, so ``added`` is always
    the full count.
    """

    def __init__(
        self,
        config: LocalJsonConfig | None,
        *,
        name: str = "Local JSON",
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.name = name
        self._config = config
        self._now = now

    def can_save(self) -> bool:
        return self._config is not None and self._config.enabled

    def _directory(self) -> Path:
        if self._config is None:
            raise RuntimeError(f"{self.name} is not configured")
        return self._config.directory

    def _path(self) -> Path:
        directory = self._directory()
        stamp = self._now().strftime("%Y-%m-%dT%H-%M-%S")
        path = directory / f"{stamp}.json"
        # Runs within the same second get a numeric suffix.
        n = 1
        while path.exists():
            path = directory / f"{stamp}-{n}.json"
            n += 1
        return path

    @staticmethod
    def _write(path: Path, txns: Sequence[TransactionRow]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = [tx.to_dict() for tx in txns]
        # Write then rename so readers never see a partial file.
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(path)

    async def save_transactions(
        self,
        txns: Sequence[TransactionRow],
        on_progress: ProgressCallback,
    ) -> SaveStats:
        path = self._path()
        await on_progress(f"Writing {path.name}")
        await asyncio.to_thread(self._write, path, txns)
        logger.debug("wrote %d transactions to %s", len(txns), path)

        stats = create_save_stats(self.name, str(path), txns)
        stats.added = len(txns)
        return stats


__all__ = ["LocalJsonStorage"]
