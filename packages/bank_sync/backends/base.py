"""Capability contract every storage backend implements.

A backend is constructed once at startup from configuration. ``can_save`` is
evaluated once by the registry to decide membership in the active set and
must not change during a run. ``save_transactions`` receives the shared,
read-only canonical rows and a progress callback; it raises to signal an
unrecoverable failure and otherwise returns its :class:`SaveStats`.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from typing import Protocol

from ..models import TransactionRow
from ..stats import SaveStats

# ``await on_progress("step name")`` closes the previous step, opens a new one
# and refreshes the backend's status message before returning.
type ProgressCallback = Callable[[str], Awaitable[None]]


class StorageBackend(Protocol):
    """Port implemented by storage backends."""

    name: str

    def can_save(self) -> bool:
        """Whether configuration enables this backend. Pure; called once."""

    async def save_transactions(
        self,
        txns: Sequence[TransactionRow],
        on_progress: ProgressCallback,
    ) -> SaveStats:
        """Persist ``txns`` and return outcome counts.

        Must not mutate the rows; use ``TransactionRow.with_extra`` for
        private augmented copies.
        """


async def _noop_progress(step: str) -> None:
    return None


# Handy default for calling a backend outside the orchestrator.
noop_progress: ProgressCallback = _noop_progress


__all__ = ["ProgressCallback", "StorageBackend", "noop_progress"]
