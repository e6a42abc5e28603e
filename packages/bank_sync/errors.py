"""Error taxonomy for ``bank_sync``.

Only :class:`ConfigError` is allowed to end a run. Malformed transactions are
dropped by the normalizer and backend failures are captured per backend by the
orchestrator; the two "no work" conditions are informational short circuits.
"""

from __future__ import annotations


class BankSyncError(Exception):
    """Base class for all package errors."""


class MalformedTransactionError(BankSyncError, ValueError):
    """A raw transaction lacks a field required to derive its dedup keys."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"malformed transaction: {field} {reason}")
        self.field = field
        self.reason = reason


class BackendSaveError(BankSyncError):
    """A storage backend's ``save_transactions`` call failed.

    The original exception is chained as ``__cause__``.
    """

    def __init__(self, backend_name: str, cause: BaseException) -> None:
        super().__init__(f"{backend_name}: {type(cause).__name__}: {cause}")
        self.backend_name = backend_name
        self.__cause__ = cause


class NoBackendsConfiguredError(BankSyncError):
    """No backend reported ``can_save()``; nothing will be saved."""


class NoTransactionsError(BankSyncError):
    """Normalization produced no transactions; nothing will be saved."""


class ConfigError(BankSyncError):
    """Configuration could not be loaded or validated."""


__all__ = [
    "BankSyncError",
    "MalformedTransactionError",
    "BackendSaveError",
    "NoBackendsConfiguredError",
    "NoTransactionsError",
    "ConfigError",
]
