import asyncio
import time

import pytest

from vocabforge.exceptions import FailureCategory, ProviderError
from vocabforge.generation import RequestQueue

SPACING = 0.2
# asyncio timers may fire a hair early on coarse clocks
TOLERANCE = 0.02


def test_requests_are_spaced_even_when_the_first_fails():
    queue = RequestQueue(spacing=SPACING)
    starts = []

    async def failing():
        starts.append(time.monotonic())
        raise ProviderError("quota", category=FailureCategory.RATE_LIMITED, status=429)

    async def succeeding():
        starts.append(time.monotonic())
        return "ok"

    async def run():
        return await asyncio.gather(
            queue.enqueue(failing),
            queue.enqueue(succeeding),
            return_exceptions=True,
        )

    first, second = asyncio.run(run())

    assert isinstance(first, ProviderError)
    assert second == "ok"
    assert starts[1] - starts[0] >= SPACING - TOLERANCE


def test_spacing_counts_from_when_the_previous_request_finished():
    queue = RequestQueue(spacing=SPACING)
    marks = {}

    async def slow():
        await asyncio.sleep(0.1)
        marks["first_done"] = time.monotonic()
        return 1

    async def fast():
        marks["second_start"] = time.monotonic()
        return 2

    async def run():
        return await asyncio.gather(queue.enqueue(slow), queue.enqueue(fast))

    assert asyncio.run(run()) == [1, 2]
    assert marks["second_start"] - marks["first_done"] >= SPACING - TOLERANCE


def test_first_request_does_not_wait():
    queue = RequestQueue(spacing=5.0)

    async def run():
        started = time.monotonic()
        await queue.enqueue(lambda: asyncio.sleep(0, result="done"))
        return time.monotonic() - started

    assert asyncio.run(run()) < 1.0


def test_requests_run_in_enqueue_order():
    queue = RequestQueue(spacing=0.0)
    order = []

    def task(label):
        async def _run():
            order.append(label)
            await asyncio.sleep(0)
            return label
        return _run

    async def run():
        return await asyncio.gather(*(queue.enqueue(task(i)) for i in range(5)))

    assert asyncio.run(run()) == [0, 1, 2, 3, 4]
    assert order == [0, 1, 2, 3, 4]


def test_failure_reaches_only_its_own_caller():
    queue = RequestQueue(spacing=0.0)

    async def boom():
        raise ValueError("broken adapter")

    async def run():
        with pytest.raises(ValueError):
            await queue.enqueue(boom)
        return await queue.enqueue(lambda: asyncio.sleep(0, result="next"))

    assert asyncio.run(run()) == "next"
    assert queue.pending == 0


def test_negative_spacing_is_clamped():
    assert RequestQueue(spacing=-1).spacing == 0.0
