"""A tiny settled fan-out over asyncio tasks, in the spirit of ``p-map``.

Goals
-----
- One task per item; the caller gets exactly one :class:`Settled` per input,
  in input order, holding either the mapper's value or the exception it raised.
- No fail-fast: an exception in one mapper never cancels or delays the others.
  The join waits for every task.
- Optional ``concurrency`` cap for callers that fan out to rate-limited APIs.

Non-goals (for now)
-------------------
- Timeouts. A hanging mapper stalls only its own task, and the join.
- Streaming results as they complete.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Generic, TypeVar

InT = TypeVar("InT")
OutT = TypeVar("OutT")


@dataclass(frozen=True, slots=True)
class Settled(Generic[InT, OutT]):
    """The outcome of mapping one item: a value or a captured exception."""

    item: InT
    value: OutT | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def gather_settled(
    items: Iterable[InT],
    mapper: Callable[[InT], Awaitable[OutT]],
    *,
    concurrency: int | None = None,
) -> list[Settled[InT, OutT]]:
    """Run ``mapper`` over ``items`` concurrently and wait for all of them.

    - Returns one :class:`Settled` per item, preserving input order.
    - ``Exception`` subclasses raised by a mapper are captured on its
      ``Settled``; ``BaseException`` (e.g. cancellation) still propagates.
    - ``concurrency`` bounds how many mappers run at once (default: unbounded).
    """

    if concurrency is not None and (not isinstance(concurrency, int) or concurrency < 1):
        raise ValueError("concurrency must be a positive integer")

    sem = asyncio.Semaphore(concurrency) if concurrency else None

    async def _settle(item: InT) -> Settled[InT, OutT]:
        try:
            if sem is None:
                value = await mapper(item)
            else:
                async with sem:
                    value = await mapper(item)
        except Exception as e:  # noqa: BLE001
            return Settled(item=item, error=e)
        return Settled(item=item, value=value)

    tasks = [asyncio.create_task(_settle(item)) for item in items]
    if not tasks:
        return []
    return list(await asyncio.gather(*tasks))


__all__ = ["Settled", "gather_settled"]
