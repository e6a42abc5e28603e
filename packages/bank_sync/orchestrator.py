"""Fan canonical transactions out to every active storage backend.

Flow for one run (:func:`save_results`):

1. No active backends → send "No storages found" and stop. Raw results are
   not even normalized.
2. Normalize raw results; report each dropped transaction through
   ``notifier.send_error``.
3. No transactions → send "No transactions found" and stop.
4. :func:`fan_out`: one task per backend, all over the same immutable tuple
   of rows. Each task owns its status message handle and its step timeline;
   nothing per-backend is shared between tasks.
5. Join on every task. A backend failure is a captured value on its
   :class:`BackendOutcome`, never an exception that short-circuits the join.

Notification calls are best-effort everywhere: a failed status update is
logged and the save continues.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Iterable, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import TypeVar

from . import messages
from .backends.base import StorageBackend
from .errors import (
    BackendSaveError,
    BankSyncError,
    NoBackendsConfiguredError,
    NoTransactionsError,
)
from .hashing import DEFAULT_TIMEZONE
from .logging_setup import backend_logger, get_logger
from .models import RawAccountResult, TransactionRow
from .normalize import NormalizationFailure, results_to_transactions
from .notifier import MessageHandle, Notifier
from .stats import SaveStats, stats_string
from .tasks import gather_settled
from .timer import Clock, Timer

logger = get_logger("bank_sync.storage")

T = TypeVar("T")


class RunStatus(StrEnum):
    NO_BACKENDS = "no_backends"
    NO_TRANSACTIONS = "no_transactions"
    COMPLETED = "completed"


@dataclass(frozen=True, slots=True)
class BackendOutcome:
    """Terminal state of one backend: stats on success, error on failure."""

    name: str
    stats: SaveStats | None
    error: BackendSaveError | None
    duration: float
    steps: tuple[Timer, ...]

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True, slots=True)
class RunReport:
    status: RunStatus
    transaction_count: int = 0
    outcomes: tuple[BackendOutcome, ...] = ()
    failures: tuple[NormalizationFailure, ...] = ()
    # Set for the two short circuits; informational, never raised.
    reason: BankSyncError | None = None

    def outcome(self, name: str) -> BackendOutcome:
        for o in self.outcomes:
            if o.name == name:
                return o
        raise KeyError(name)


async def _best_effort(what: str, aw: Awaitable[T]) -> T | None:
    try:
        return await aw
    except Exception:  # noqa: BLE001
        logger.warning("notification %s failed", what, exc_info=True)
        return None


class _BackendRun:
    """Task-local state for saving through one backend."""

    def __init__(
        self,
        backend: StorageBackend,
        txns: tuple[TransactionRow, ...],
        notifier: Notifier,
        clock: Clock,
    ) -> None:
        self.backend = backend
        self.name = backend.name
        self.txns = txns
        self.notifier = notifier
        self.clock = clock
        self.steps: list[Timer] = []
        self.handle: MessageHandle | None = None
        self.log = backend_logger(self.name)

    def _close_last_step(self) -> None:
        if self.steps:
            self.steps[-1].end()

    async def _edit(self, text: str) -> None:
        if self.handle is None:
            return
        await _best_effort("edit", self.notifier.edit_message(self.handle, text))

    async def on_progress(self, step: str) -> None:
        self._close_last_step()
        self.steps.append(Timer(step, clock=self.clock))
        self.log.debug("step: %s", step)
        await self._edit(messages.saving(self.name, self.steps))

    async def run(self) -> BackendOutcome:
        self.log.info("saving %d transactions", len(self.txns))
        self.handle = await _best_effort("send", self.notifier.send(messages.saving(self.name)))

        start = self.clock()
        try:
            stats = await self.backend.save_transactions(self.txns, self.on_progress)
            if not isinstance(stats, SaveStats):
                raise TypeError(f"save_transactions returned {type(stats).__name__}, not SaveStats")
        except Exception as e:  # noqa: BLE001
            return await self._failed(e, self.clock() - start)

        duration = self.clock() - start
        self._close_last_step()
        self.log.info("saved in %.2fs", duration)
        await self._edit(stats_string(stats, duration, self.steps))
        return BackendOutcome(
            name=self.name, stats=stats, error=None, duration=duration, steps=tuple(self.steps)
        )

    async def _failed(self, cause: Exception, duration: float) -> BackendOutcome:
        self._close_last_step()
        error = BackendSaveError(self.name, cause)
        self.log.error("error saving transactions", exc_info=cause)
        await _best_effort(
            "send_error", self.notifier.send_error(error, f"saveTransactions::{self.name}")
        )
        await self._edit(messages.saving_failed(self.name, cause, self.steps))
        return BackendOutcome(
            name=self.name, stats=None, error=error, duration=duration, steps=tuple(self.steps)
        )


async def _no_backends(notifier: Notifier) -> RunReport:
    reason = NoBackendsConfiguredError(messages.NO_BACKENDS)
    logger.info("%s", reason)
    await _best_effort("send", notifier.send(messages.NO_BACKENDS))
    return RunReport(status=RunStatus.NO_BACKENDS, reason=reason)


async def fan_out(
    transactions: Iterable[TransactionRow],
    backends: Sequence[StorageBackend],
    notifier: Notifier,
    *,
    clock: Clock = time.perf_counter,
) -> RunReport:
    """Save ``transactions`` through every backend concurrently.

    Returns once every backend has finished, successfully or not. Outcomes
    are listed in ``backends`` order; completion order is not defined.
    """

    if not backends:
        return await _no_backends(notifier)

    txns = tuple(transactions)
    if not txns:
        reason = NoTransactionsError(messages.NO_TRANSACTIONS)
        logger.info("%s", reason)
        await _best_effort("send", notifier.send(messages.NO_TRANSACTIONS))
        return RunReport(status=RunStatus.NO_TRANSACTIONS, reason=reason)

    runs = [_BackendRun(b, txns, notifier, clock) for b in backends]
    settled = await gather_settled(runs, lambda run: run.run())

    outcomes: list[BackendOutcome] = []
    for s in settled:
        if s.error is None and s.value is not None:
            outcomes.append(s.value)
            continue
        # Only reachable if failure handling itself raised; keep the backend's
        # slot in the report rather than losing it.
        run = s.item
        cause = s.error or RuntimeError("backend task returned no outcome")
        logger.error("backend task %s crashed", run.name, exc_info=cause)
        outcomes.append(
            BackendOutcome(
                name=run.name,
                stats=None,
                error=BackendSaveError(run.name, cause),
                duration=0.0,
                steps=tuple(run.steps),
            )
        )

    failed = [o.name for o in outcomes if not o.ok]
    logger.info(
        "fan-out finished: %d backends, %d failed%s",
        len(outcomes),
        len(failed),
        f" ({', '.join(failed)})" if failed else "",
    )
    return RunReport(status=RunStatus.COMPLETED, transaction_count=len(txns), outcomes=tuple(outcomes))


async def save_results(
    results: Iterable[RawAccountResult],
    backends: Sequence[StorageBackend],
    notifier: Notifier,
    *,
    clock: Clock = time.perf_counter,
    tz: str = DEFAULT_TIMEZONE,
) -> RunReport:
    """Normalize raw scrape results and fan them out to ``backends``."""

    if not backends:
        return await _no_backends(notifier)

    normalized = results_to_transactions(results, tz=tz)
    for failure in normalized.failures:
        await _best_effort("send_error", notifier.send_error(failure.error, failure.context))

    report = await fan_out(normalized.transactions, backends, notifier, clock=clock)
    return RunReport(
        status=report.status,
        transaction_count=report.transaction_count,
        outcomes=report.outcomes,
        failures=normalized.failures,
        reason=report.reason,
    )


__all__ = [
    "RunStatus",
    "BackendOutcome",
    "RunReport",
    "fan_out",
    "save_results",
]
