# ruff: noqa: I001
"""SQL backend: persist canonical rows into ``bank_transactions``.

Relies on the SQLAlchemy ORM model in ``db.models.transactions`` and the
session helpers in ``db.client``. Blocking database work runs in a worker
thread so sibling backends keep making progress on the event loop.

Idempotency rules:
- ``unique_id`` mode (default): a row is existing when its ``unique_id`` is
  already stored.
- ``legacy`` mode: a row is existing when its ``hash`` is stored, or when its
  ``unique_id`` is (the column is unique, so such a row cannot be inserted
  anyway). Using this mode sends the ``hash_field_change`` deprecation notice.
- Pending rows are never stored; they will be picked up once completed.
"""

from __future__ import annotations

import asyncio
import json
import os
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Literal

from sqlalchemy import select

from db.client import create_schema, session_scope
from db.models.transactions import BankTransaction

from ..config import SqlConfig
from ..hashing import parse_date
from ..logging_setup import get_logger
from ..models import TransactionRow
from ..notifier import Notifier
from ..stats import SaveStats, create_save_stats
from .base import ProgressCallback

logger = get_logger("bank_sync.backends.sql")

# Bound on IN (...) list sizes when probing for existing keys.
_KEY_CHUNK = 500


@dataclass(frozen=True, slots=True)
class ExistingKeys:
    unique_ids: frozenset[str]
    hashes: frozenset[str]


def _chunks(values: Sequence[str], size: int = _KEY_CHUNK) -> Iterable[Sequence[str]]:
    for i in range(0, len(values), size):
        yield values[i : i + size]


def _json_safe(raw: Any) -> dict[str, Any]:
    # Raw payloads from Python callers may hold dates/Decimals.
    return json.loads(json.dumps(dict(raw), default=str))


def _to_model(tx: TransactionRow) -> BankTransaction:
    return BankTransaction(
        unique_id=tx.unique_id,
        hash=tx.hash,
        company_id=tx.company_id,
        account=tx.account,
        date=parse_date(tx.date),
        processed_date=parse_date(tx.processed_date, field="processedDate")
        if tx.processed_date
        else None,
        charged_amount=tx.charged_amount,
        original_amount=tx.original_amount,
        original_currency=tx.original_currency,
        charged_currency=tx.charged_currency,
        description=tx.description,
        memo=tx.memo,
        category=tx.category,
        identifier=tx.identifier,
        status=tx.status.value,
        raw_record=_json_safe(tx.raw),
    )


class SqlStorage:
    """Store transactions in a SQL database through SQLAlchemy."""

    def __init__(
        self,
        config: SqlConfig | None,
        *,
        hash_type: Literal["unique_id", "legacy"] = "unique_id",
        notifier: Notifier | None = None,
        name: str = "SQL",
    ) -> None:
        self.name = name
        self._config = config
        self._hash_type = hash_type
        self._notifier = notifier
        self._database_url: str | None = None
        if config is not None:
            self._database_url = config.database_url or os.getenv("DATABASE_URL") or None

    def can_save(self) -> bool:
        return self._database_url is not None

    # ---- blocking helpers (run in a worker thread) ---------------------------

    def _prepare(self) -> None:
        if self._config is not None and self._config.create_schema:
            create_schema(database_url=self._database_url)

    def _load_existing_keys(self, txns: Sequence[TransactionRow]) -> ExistingKeys:
        uids = sorted({tx.unique_id for tx in txns})
        hashes = sorted({tx.hash for tx in txns})
        found_uids: set[str] = set()
        found_hashes: set[str] = set()
        with session_scope(database_url=self._database_url) as session:
            for chunk in _chunks(uids):
                found_uids.update(
                    session.scalars(
                        select(BankTransaction.unique_id).where(
                            BankTransaction.unique_id.in_(chunk)
                        )
                    )
                )
            if self._hash_type == "legacy":
                for chunk in _chunks(hashes):
                    found_hashes.update(
                        session.scalars(
                            select(BankTransaction.hash).where(BankTransaction.hash.in_(chunk))
                        )
                    )
        return ExistingKeys(unique_ids=frozenset(found_uids), hashes=frozenset(found_hashes))

    def _insert(self, txns: Sequence[TransactionRow]) -> None:
        with session_scope(database_url=self._database_url) as session:
            session.add_all(_to_model(tx) for tx in txns)

    # ---- contract --------------------------------------------------------------

    def _is_existing(self, tx: TransactionRow, keys: ExistingKeys) -> bool:
        if tx.unique_id in keys.unique_ids:
            return True
        return self._hash_type == "legacy" and tx.hash in keys.hashes

    async def save_transactions(
        self,
        txns: Sequence[TransactionRow],
        on_progress: ProgressCallback,
    ) -> SaveStats:
        await on_progress("Connecting")
        await asyncio.to_thread(self._prepare)

        await on_progress("Loading existing keys")
        keys = await asyncio.to_thread(self._load_existing_keys, txns)

        stats = create_save_stats(
            self.name, BankTransaction.__tablename__, txns, highlighted=("Added",)
        )
        to_insert: list[TransactionRow] = []
        seen: set[str] = set()
        for tx in txns:
            if self._is_existing(tx, keys):
                stats.existing += 1
            elif tx.is_pending:
                stats.pending += 1
            elif tx.unique_id in seen:
                # Same key twice in one run (e.g. overlapping scrape windows).
                stats.other_skipped += 1
            else:
                seen.add(tx.unique_id)
                to_insert.append(tx)

        if self._hash_type == "legacy" and self._notifier is not None:
            await self._notifier.send_deprecation_message("hash_field_change")

        if to_insert:
            await on_progress(f"Inserting {len(to_insert)} rows")
            await asyncio.to_thread(self._insert, to_insert)

        stats.added = len(to_insert)
        stats.highlighted_transactions["Added"].extend(to_insert)
        logger.debug(
            "%s: added=%d existing=%d pending=%d",
            self.name,
            stats.added,
            stats.existing,
            stats.pending,
        )
        return stats


__all__ = ["ExistingKeys", "SqlStorage"]
