"""
Fixed-size batch fan-out with a settle-all barrier per batch.

At most batch_size tasks are in flight. A batch only advances once every
task in it has finished, successfully or not.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BATCH_SIZE = 5


async def batch_process(
    items: Sequence[T],
    processor: Callable[[T], Awaitable[None]],
    batch_size: int = DEFAULT_BATCH_SIZE,
    on_batch_done: Optional[Callable[[int, int], None]] = None,
) -> int:
    """
    Run processor over items in batches and return the failure count.

    on_batch_done(done, total) fires synchronously after each batch settles.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")

    total = len(items)
    failures = 0

    for start in range(0, total, batch_size):
        batch = items[start:start + batch_size]
        results = await asyncio.gather(
            *[processor(item) for item in batch],
            return_exceptions=True,
        )
        for item, res in zip(batch, results):
            if isinstance(res, Exception):
                failures += 1
                logger.debug("batch item %r failed: %s", item, res)

        if on_batch_done is not None:
            on_batch_done(min(start + batch_size, total), total)

    return failures
