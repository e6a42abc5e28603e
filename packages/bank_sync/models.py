"""Data models for ``bank_sync``.

Two layers live here:

- Raw scrape results (:class:`RawAccountResult` and friends) as handed over by
  the scraping collaborator. These are pydantic models so a JSON payload can be
  validated at the boundary; individual transactions stay opaque mappings so
  one malformed record never fails validation of the whole batch.
- The canonical :class:`TransactionRow`, produced once by the normalizer and
  never mutated afterwards.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import StrEnum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Raw scrape results
# ---------------------------------------------------------------------------

# A single transaction exactly as the scraper produced it. Expected keys
# (camelCase, as emitted by the scraper): ``date``, ``processedDate``,
# ``chargedAmount``, ``originalAmount``, ``originalCurrency``,
# ``chargedCurrency``, ``description``, ``memo``, ``category``, ``status``,
# ``identifier``, ``type``. Only date, amount and description are required and
# they are checked during key derivation, not here.
type RawTransaction = Mapping[str, Any]


class TransactionStatus(StrEnum):
    COMPLETED = "completed"
    PENDING = "pending"


class RawAccount(BaseModel):
    """One scraped account and its transactions."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    account_number: str = Field(alias="accountNumber")
    balance: float | None = None
    # Left unvalidated; see ``bank_sync.hashing`` for the per-record checks.
    txns: tuple[Any, ...] = ()


class ScrapeResult(BaseModel):
    """Outcome of scraping a single credential."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    success: bool
    accounts: tuple[RawAccount, ...] | None = None
    error_type: str | None = Field(default=None, alias="errorType")
    error_message: str | None = Field(default=None, alias="errorMessage")


class RawAccountResult(BaseModel):
    """A scrape result tagged with the institution it came from."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    company_id: str = Field(alias="companyId")
    result: ScrapeResult

    @property
    def success(self) -> bool:
        return self.result.success


# ---------------------------------------------------------------------------
# Canonical record
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TransactionRow:
    """A normalized transaction with its dedup keys.

    ``hash`` and ``unique_id`` are pure functions of the raw fields plus
    ``company_id`` and ``account``. Instances are shared by every backend in a
    run; a backend that needs to attach derived data (e.g. a document link)
    calls :meth:`with_extra` and keeps the returned copy to itself.
    """

    company_id: str
    account: str
    hash: str
    unique_id: str
    date: str
    charged_amount: Decimal
    description: str
    processed_date: str | None = None
    original_amount: Decimal | None = None
    original_currency: str | None = None
    charged_currency: str | None = None
    memo: str | None = None
    category: str | None = None
    status: TransactionStatus = TransactionStatus.COMPLETED
    identifier: str | None = None
    type: str | None = None
    raw: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}), hash=False)
    extra: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}), hash=False)

    @property
    def is_pending(self) -> bool:
        return self.status is TransactionStatus.PENDING

    def with_extra(self, **values: Any) -> TransactionRow:
        """Return a copy with ``values`` merged into :attr:`extra`."""

        merged = {**self.extra, **values}
        return replace(self, extra=MappingProxyType(merged))

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly view using the scraper's camelCase keys."""

        out: dict[str, Any] = {
            "date": self.date,
            "processedDate": self.processed_date,
            "chargedAmount": float(self.charged_amount),
            "originalAmount": (
                float(self.original_amount) if self.original_amount is not None else None
            ),
            "originalCurrency": self.original_currency,
            "chargedCurrency": self.charged_currency,
            "description": self.description,
            "memo": self.memo,
            "category": self.category,
            "status": self.status.value,
            "identifier": self.identifier,
            "type": self.type,
            "companyId": self.company_id,
            "account": self.account,
            "hash": self.hash,
            "uniqueId": self.unique_id,
        }
        out.update(self.extra)
        return out


__all__ = [
    "RawTransaction",
    "TransactionStatus",
    "RawAccount",
    "ScrapeResult",
    "RawAccountResult",
    "TransactionRow",
]
