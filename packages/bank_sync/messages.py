"""Status message texts sent through the notifier."""

from __future__ import annotations

from collections.abc import Sequence

from .stats import steps_string
from .timer import Timer

NO_BACKENDS = "No storages found, skipping save"
NO_TRANSACTIONS = "No transactions found, skipping save"


def saving(name: str, steps: Sequence[Timer] = ()) -> str:
    """In-flight status for one backend, with its step timeline so far."""

    text = f"📝 {name} Saving..."
    if steps:
        text += "\n" + steps_string(steps)
    return text


def saving_failed(name: str, error: BaseException, steps: Sequence[Timer] = ()) -> str:
    return f"{saving(name, steps)}\n❌ Failed: {type(error).__name__}: {error}"


__all__ = ["NO_BACKENDS", "NO_TRANSACTIONS", "saving", "saving_failed"]
