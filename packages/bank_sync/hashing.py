"""Dedup key derivation for scraped transactions.

Two keys are derived for every transaction and both are always available to
backends:

- :func:`transaction_hash`: the legacy key. Built from the transaction time
  (rounded to the minute), charged amount, description, memo, institution and
  account. Two look-alike purchases at the same shop within the same minute
  collide.
- :func:`transaction_unique_id`: the current key. Buckets by calendar day in a
  fixed timezone and prefers the bank-provided ``identifier`` over the free
  text, which separates same-day look-alikes whenever the bank reports one.

Both functions are pure: identical inputs produce identical strings across
runs and processes. Missing or mistyped date/amount/description raise
:class:`~bank_sync.errors.MalformedTransactionError` instead of producing a
placeholder key that could collide with unrelated transactions.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from typing import Any
from zoneinfo import ZoneInfo

from .errors import MalformedTransactionError

# Calendar day boundaries for ``unique_id``. Scrapers report midnight local
# time as the previous evening in UTC, so bucketing in UTC would shift days.
DEFAULT_TIMEZONE = "Asia/Jerusalem"


# ---------------------------------------------------------------------------
# Field parsing
# ---------------------------------------------------------------------------


def _require_mapping(tx: Any) -> Mapping[str, Any]:
    if not isinstance(tx, Mapping):
        raise MalformedTransactionError("transaction", f"must be a mapping, got {type(tx).__name__}")
    return tx


def parse_date(raw: Any, *, field: str = "date") -> datetime:
    """Parse a scraper timestamp into an aware UTC ``datetime``.

    Accepts ISO-8601 strings (``Z`` or offset suffixes), ``datetime`` and
    ``date`` objects. Naive values are taken to be UTC.
    """

    if raw is None:
        raise MalformedTransactionError(field, "is missing")
    if isinstance(raw, datetime):
        dt = raw
    elif isinstance(raw, date):
        dt = datetime(raw.year, raw.month, raw.day)
    elif isinstance(raw, str):
        s = raw.strip()
        if not s:
            raise MalformedTransactionError(field, "is empty")
        try:
            dt = datetime.fromisoformat(s)
        except ValueError as exc:
            raise MalformedTransactionError(field, f"is not ISO-8601: {raw!r}") from exc
    else:
        raise MalformedTransactionError(field, f"has unsupported type {type(raw).__name__}")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    try:
        return dt.astimezone(UTC)
    except OverflowError as exc:
        raise MalformedTransactionError(field, "is out of range") from exc


def parse_amount(raw: Any, *, field: str = "chargedAmount") -> Decimal:
    """Return the amount as an exact ``Decimal``; only real numbers are accepted."""

    if raw is None:
        raise MalformedTransactionError(field, "is missing")
    # bool is an int subclass; a True amount is always a bug upstream.
    if isinstance(raw, bool) or not isinstance(raw, (int, float, Decimal)):
        raise MalformedTransactionError(field, f"must be a number, got {type(raw).__name__}")
    if isinstance(raw, float) and not math.isfinite(raw):
        raise MalformedTransactionError(field, f"must be finite, got {raw!r}")
    d = raw if isinstance(raw, Decimal) else Decimal(str(raw))
    if not d.is_finite():
        raise MalformedTransactionError(field, f"must be finite, got {raw!r}")
    return d


def format_amount(d: Decimal) -> str:
    """Shortest plain rendering: ``100``, ``-12.5``; never exponent notation."""

    if d == 0:
        return "0"
    return format(d.normalize(), "f")


def _charged_amount(tx: Mapping[str, Any]) -> Decimal:
    # Older scraper payloads used ``amount`` for the charged amount.
    if "chargedAmount" in tx:
        return parse_amount(tx.get("chargedAmount"))
    return parse_amount(tx.get("amount"), field="amount")


def _description(tx: Mapping[str, Any]) -> str:
    raw = tx.get("description")
    if raw is None:
        raise MalformedTransactionError("description", "is missing")
    if not isinstance(raw, str):
        raise MalformedTransactionError(
            "description", f"must be a string, got {type(raw).__name__}"
        )
    return raw


def _opt_text(raw: Any) -> str:
    return "" if raw is None else str(raw)


def _round_to_minute(dt: datetime, *, field: str = "date") -> datetime:
    floored = dt.replace(second=0, microsecond=0)
    if dt - floored < timedelta(seconds=30):
        return floored
    try:
        return floored + timedelta(minutes=1)
    except OverflowError as exc:
        raise MalformedTransactionError(field, "is out of range") from exc


def _local_day(dt: datetime, tz: str, *, field: str = "date") -> date:
    try:
        return dt.astimezone(ZoneInfo(tz)).date()
    except OverflowError as exc:
        raise MalformedTransactionError(field, "is out of range") from exc


# ---------------------------------------------------------------------------
# Public derivations
# ---------------------------------------------------------------------------


def transaction_hash(tx: Mapping[str, Any], company_id: str, account: str) -> str:
    """Legacy dedup key.

    ``<date rounded to minute, UTC, YYYY-MM-DDTHH:MM:SS.000Z>_<amount>_
    <description>_<memo>_<company_id>_<account>``
    """

    tx = _require_mapping(tx)
    when = _round_to_minute(parse_date(tx.get("date")))
    parts = [
        when.strftime("%Y-%m-%dT%H:%M:%S.000Z"),
        format_amount(_charged_amount(tx)),
        _description(tx),
        _opt_text(tx.get("memo")),
        company_id,
        account,
    ]
    return "_".join(parts)


def transaction_unique_id(
    tx: Mapping[str, Any],
    company_id: str,
    account: str,
    *,
    tz: str = DEFAULT_TIMEZONE,
) -> str:
    """Current dedup key.

    ``<local date YYYY-MM-DD>_<company_id>_<account>_<amount>_<tail>`` where
    ``tail`` is the bank ``identifier`` when present, otherwise
    ``<description>_<memo>``. Every part is whitespace-trimmed.
    """

    tx = _require_mapping(tx)
    day = _local_day(parse_date(tx.get("date")), tz)
    amount = format_amount(_charged_amount(tx))
    description = _description(tx)

    identifier = _opt_text(tx.get("identifier")).strip()
    tail = identifier or f"{description}_{_opt_text(tx.get('memo'))}"

    parts = [day.isoformat(), company_id, account, amount, tail]
    return "_".join(p.strip() for p in parts)


__all__ = [
    "DEFAULT_TIMEZONE",
    "parse_date",
    "parse_amount",
    "format_amount",
    "transaction_hash",
    "transaction_unique_id",
]
