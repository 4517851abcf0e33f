"""Batch fan-out: barrier semantics, concurrency cap, failure isolation."""
import asyncio

import pytest

from salescycle.engine.batching import batch_process


def test_batches_in_order_with_progress_callbacks():
    seen = []
    progress = []

    async def processor(item):
        await asyncio.sleep(0)
        seen.append(item)

    failures = asyncio.run(batch_process(list(range(7)), processor, 5, lambda d, t: progress.append((d, t))))

    assert failures == 0
    assert sorted(seen) == list(range(7))
    assert progress == [(5, 7), (7, 7)]


def test_barrier_waits_for_whole_batch_before_next():
    events = []

    async def processor(item):
        events.append(("start", item))
        # Item 0 is the slowest in its batch
        await asyncio.sleep(0.02 if item == 0 else 0)
        events.append(("end", item))

    asyncio.run(batch_process([0, 1, 2], processor, batch_size=2))

    end_0 = events.index(("end", 0))
    start_2 = events.index(("start", 2))
    assert end_0 < start_2


def test_concurrency_never_exceeds_batch_size():
    state = {"now": 0, "peak": 0}

    async def processor(item):
        state["now"] += 1
        state["peak"] = max(state["peak"], state["now"])
        await asyncio.sleep(0.001)
        state["now"] -= 1

    asyncio.run(batch_process(list(range(23)), processor, batch_size=5))
    assert state["peak"] == 5


def test_failures_do_not_abort_the_batch_or_run():
    done = []

    async def processor(item):
        if item % 2:
            raise RuntimeError(f"bad {item}")
        done.append(item)

    failures = asyncio.run(batch_process(list(range(6)), processor, batch_size=5))

    assert failures == 3
    assert sorted(done) == [0, 2, 4]


def test_empty_input_emits_nothing():
    progress = []

    async def processor(item):
        raise AssertionError("not called")

    assert asyncio.run(batch_process([], processor, 5, lambda d, t: progress.append(d))) == 0
    assert progress == []


def test_invalid_batch_size():
    async def processor(item):
        return None

    with pytest.raises(ValueError):
        asyncio.run(batch_process([1], processor, batch_size=0))
