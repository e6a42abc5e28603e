"""Named, timed steps for a backend's save timeline."""

from __future__ import annotations

import time
from collections.abc import Callable

type Clock = Callable[[], float]


class Timer:
    """A named step that starts on construction and ends on :meth:`end`.

    ``end`` is idempotent so the orchestrator can close the last step on both
    the success and failure paths without tracking which one ran.
    """

    __slots__ = ("name", "started_at", "ended_at", "_clock")

    def __init__(self, name: str, *, clock: Clock = time.perf_counter) -> None:
        self.name = name
        self._clock = clock
        self.started_at = clock()
        self.ended_at: float | None = None

    @property
    def is_open(self) -> bool:
        return self.ended_at is None

    def end(self) -> None:
        if self.ended_at is None:
            self.ended_at = max(self.started_at, self._clock())

    @property
    def duration(self) -> float:
        """Seconds elapsed; for an open step, elapsed so far."""

        end = self.ended_at if self.ended_at is not None else self._clock()
        return max(0.0, end - self.started_at)

    def __repr__(self) -> str:  # pragma: no cover - trivial repr
        state = "open" if self.is_open else f"{self.duration:.3f}s"
        return f"Timer({self.name!r}, {state})"


__all__ = ["Clock", "Timer"]
