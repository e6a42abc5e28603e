import asyncio

import pytest

from bank_sync.tasks import gather_settled


def test_results_keep_input_order_regardless_of_completion():
    async def mapper(delay: int) -> int:
        # Later items finish first.
        for _ in range(3 - delay):
            await asyncio.sleep(0)
        return delay * 10

    settled = asyncio.run(gather_settled([0, 1, 2], mapper))

    assert [s.item for s in settled] == [0, 1, 2]
    assert [s.value for s in settled] == [0, 10, 20]
    assert all(s.ok for s in settled)


def test_one_failure_does_not_cancel_siblings():
    finished: list[str] = []

    async def mapper(name: str) -> str:
        await asyncio.sleep(0)
        if name == "bad":
            raise RuntimeError("boom")
        await asyncio.sleep(0)
        finished.append(name)
        return name

    settled = asyncio.run(gather_settled(["a", "bad", "c"], mapper))

    assert sorted(finished) == ["a", "c"]
    assert [s.ok for s in settled] == [True, False, True]
    assert isinstance(settled[1].error, RuntimeError)
    assert settled[1].value is None


def test_concurrency_cap_is_respected():
    running = 0
    peak = 0

    async def mapper(i: int) -> int:
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        running -= 1
        return i

    settled = asyncio.run(gather_settled(range(6), mapper, concurrency=2))

    assert [s.value for s in settled] == list(range(6))
    assert peak == 2


def test_unbounded_runs_everything_at_once():
    started = 0
    gate = None

    async def mapper(i: int) -> int:
        nonlocal started
        started += 1
        if started == 3:
            gate.set()
        await gate.wait()
        return i

    async def main():
        nonlocal gate
        gate = asyncio.Event()
        return await asyncio.wait_for(gather_settled([1, 2, 3], mapper), timeout=5)

    assert [s.value for s in asyncio.run(main())] == [1, 2, 3]


def test_empty_input():
    async def mapper(i):  # pragma: no cover - never called
        return i

    assert asyncio.run(gather_settled([], mapper)) == []


@pytest.mark.parametrize("bad", [0, -1])
def test_invalid_concurrency(bad):
    async def mapper(i):  # pragma: no cover - never called
        return i

    with pytest.raises(ValueError):
        asyncio.run(gather_settled([1], mapper, concurrency=bad))
