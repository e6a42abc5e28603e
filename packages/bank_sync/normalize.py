"""Raw scrape results → canonical :class:`~bank_sync.models.TransactionRow`.

One malformed record never aborts a batch: the record is dropped, reported
through ``on_error`` together with its raw payload, and normalization moves on.
Failed scrape results contribute nothing and are not reported again (the
scraper already did).

Output preserves institution → account → transaction order.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType
from typing import Any

from pydantic import TypeAdapter

from .errors import MalformedTransactionError
from .hashing import DEFAULT_TIMEZONE, parse_amount, transaction_hash, transaction_unique_id
from .logging_setup import get_logger
from .models import RawAccountResult, TransactionRow, TransactionStatus

logger = get_logger("bank_sync.normalize")

type ErrorCallback = Callable[[Exception, str], None]

_RESULTS_ADAPTER = TypeAdapter(list[RawAccountResult])


@dataclass(frozen=True, slots=True)
class NormalizationFailure:
    """A raw transaction that could not be turned into a canonical row."""

    company_id: str
    account: str
    raw: Any
    error: Exception

    @property
    def context(self) -> str:
        return (
            f"Failed to process transaction for {self.company_id} account {self.account}:\n"
            f"{_dump_raw(self.raw)}"
        )


@dataclass(frozen=True, slots=True)
class NormalizationResult:
    transactions: tuple[TransactionRow, ...]
    failures: tuple[NormalizationFailure, ...]


def _dump_raw(raw: Any) -> str:
    # ``default=str`` keeps non-JSON values (dates, Decimals) readable.
    return json.dumps(raw, indent=2, ensure_ascii=False, default=str)


def parse_results(payload: Any) -> list[RawAccountResult]:
    """Validate a decoded JSON payload (a list of scrape results)."""

    return _RESULTS_ADAPTER.validate_python(payload)


def _opt_str(raw: Any) -> str | None:
    if raw is None:
        return None
    s = str(raw)
    return s if s.strip() else None


def _opt_amount(raw: Any, field: str) -> Decimal | None:
    if raw is None:
        return None
    return parse_amount(raw, field=field)


def _status(raw: Any) -> TransactionStatus:
    if raw is None:
        return TransactionStatus.COMPLETED
    try:
        return TransactionStatus(str(raw).strip().lower())
    except ValueError as exc:
        raise MalformedTransactionError("status", f"is not a known status: {raw!r}") from exc


def build_row(
    tx: Mapping[str, Any],
    *,
    company_id: str,
    account: str,
    tz: str = DEFAULT_TIMEZONE,
) -> TransactionRow:
    """Derive both dedup keys and build the canonical row for one transaction.

    Raises :class:`MalformedTransactionError` when the record cannot be keyed.
    """

    hash_ = transaction_hash(tx, company_id, account)
    unique_id = transaction_unique_id(tx, company_id, account, tz=tz)
    charged = tx.get("chargedAmount", tx.get("amount"))

    return TransactionRow(
        company_id=company_id,
        account=account,
        hash=hash_,
        unique_id=unique_id,
        date=str(tx["date"]),
        charged_amount=parse_amount(charged),
        description=tx["description"],
        processed_date=_opt_str(tx.get("processedDate")),
        original_amount=_opt_amount(tx.get("originalAmount"), "originalAmount"),
        original_currency=_opt_str(tx.get("originalCurrency")),
        charged_currency=_opt_str(tx.get("chargedCurrency")),
        memo=_opt_str(tx.get("memo")),
        category=_opt_str(tx.get("category")),
        status=_status(tx.get("status")),
        identifier=_opt_str(tx.get("identifier")),
        type=_opt_str(tx.get("type")),
        raw=MappingProxyType(dict(tx)),
    )


def results_to_transactions(
    results: Iterable[RawAccountResult],
    *,
    on_error: ErrorCallback | None = None,
    tz: str = DEFAULT_TIMEZONE,
) -> NormalizationResult:
    """Flatten successful scrape results into canonical rows.

    ``on_error(error, context)`` is invoked once per dropped transaction; the
    context names the institution and account and embeds the raw payload.
    """

    results = list(results)
    rows: list[TransactionRow] = []
    failures: list[NormalizationFailure] = []

    for entry in results:
        if not entry.result.success:
            continue
        for acct in entry.result.accounts or ():
            for tx in acct.txns:
                try:
                    if not isinstance(tx, Mapping):
                        raise MalformedTransactionError(
                            "transaction", f"must be a mapping, got {type(tx).__name__}"
                        )
                    rows.append(
                        build_row(tx, company_id=entry.company_id, account=acct.account_number, tz=tz)
                    )
                except MalformedTransactionError as e:
                    failure = NormalizationFailure(
                        company_id=entry.company_id,
                        account=acct.account_number,
                        raw=tx,
                        error=e,
                    )
                    failures.append(failure)
                    logger.warning("dropping transaction: %s", failure.context.splitlines()[0])
                    if on_error is not None:
                        on_error(e, failure.context)

    logger.info(
        "normalized %d transactions (%d dropped) from %d results",
        len(rows),
        len(failures),
        len(results),
    )
    return NormalizationResult(transactions=tuple(rows), failures=tuple(failures))


__all__ = [
    "NormalizationFailure",
    "NormalizationResult",
    "parse_results",
    "build_row",
    "results_to_transactions",
]
