"""Public interface for the ``bank_sync`` package.

This module exposes the package's API functions and public models/types as the
stable import surface. There is no runtime logic here, only symbol re-exports.
"""

from .errors import (
    BackendSaveError,
    BankSyncError,
    ConfigError,
    MalformedTransactionError,
    NoBackendsConfiguredError,
    NoTransactionsError,
)
from .hashing import transaction_hash, transaction_unique_id
from .models import RawAccount, RawAccountResult, ScrapeResult, TransactionRow, TransactionStatus
from .normalize import NormalizationFailure, NormalizationResult, parse_results, results_to_transactions
from .orchestrator import BackendOutcome, RunReport, RunStatus, fan_out, save_results
from .registry import BackendRegistry, build_registry
from .stats import SaveStats, create_save_stats, stats_string

__all__ = [
    # API
    "transaction_hash",
    "transaction_unique_id",
    "parse_results",
    "results_to_transactions",
    "fan_out",
    "save_results",
    "build_registry",
    "create_save_stats",
    "stats_string",
    # Models / types
    "RawAccount",
    "RawAccountResult",
    "ScrapeResult",
    "TransactionRow",
    "TransactionStatus",
    "NormalizationFailure",
    "NormalizationResult",
    "BackendOutcome",
    "RunReport",
    "RunStatus",
    "BackendRegistry",
    "SaveStats",
    # Errors
    "BankSyncError",
    "MalformedTransactionError",
    "BackendSaveError",
    "NoBackendsConfiguredError",
    "NoTransactionsError",
    "ConfigError",
]
