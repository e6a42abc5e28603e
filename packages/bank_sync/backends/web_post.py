"""Backend that POSTs completed transactions to an arbitrary HTTP endpoint.

The endpoint receives a JSON array of rows (camelCase keys, see
``TransactionRow.to_dict``) and is expected to answer with
``{"added": <int>, "skipped": <int>}``. Deduplication is the endpoint's job;
both ``hash`` and ``uniqueId`` are sent so it can pick either.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any

import httpx

from ..config import WebPostConfig
from ..logging_setup import get_logger
from ..models import TransactionRow
from ..stats import SaveStats, create_save_stats
from .base import ProgressCallback

logger = get_logger("bank_sync.backends.web_post")


def _count(body: Any, key: str) -> int:
    if not isinstance(body, dict):
        raise ValueError(f"unexpected response body: {body!r}")
    value = body.get(key, 0)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"response field {key!r} must be an integer, got {value!r}")
    return value


class WebPostStorage:
    """POST rows to ``config.url`` with an optional ``Authorization`` header."""

    def __init__(
        self,
        config: WebPostConfig | None,
        *,
        client: httpx.AsyncClient | None = None,
        name: str = "Web POST",
    ) -> None:
        self.name = name
        self._config = config
        self._client = client

    def can_save(self) -> bool:
        return self._config is not None

    def _require_config(self) -> WebPostConfig:
        if self._config is None:
            raise RuntimeError(f"{self.name} is not configured")
        return self._config

    @asynccontextmanager
    async def _http(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        config = self._require_config()
        async with httpx.AsyncClient(timeout=config.timeout_seconds) as client:
            yield client

    def _headers(self) -> dict[str, str]:
        config = self._require_config()
        headers = {"Content-Type": "application/json"}
        if config.authorization_token:
            headers["Authorization"] = config.authorization_token
        return headers

    async def save_transactions(
        self,
        txns: Sequence[TransactionRow],
        on_progress: ProgressCallback,
    ) -> SaveStats:
        config = self._require_config()
        completed = [tx for tx in txns if not tx.is_pending]

        stats = create_save_stats(self.name, config.url, txns)
        stats.pending = len(txns) - len(completed)

        await on_progress(f"Sending {len(completed)} transactions")
        async with self._http() as client:
            response = await client.post(
                config.url,
                json=[tx.to_dict() for tx in completed],
                headers=self._headers(),
            )
            # Non-2xx is a backend failure; the orchestrator reports it.
            response.raise_for_status()
            body = response.json()

        stats.added = _count(body, "added")
        stats.existing = _count(body, "skipped")
        logger.debug("%s: endpoint reported %s", self.name, body)
        return stats


__all__ = ["WebPostStorage"]
