"""Bounded fan-out with a complete-the-set barrier.

Every stage of a batch launches one task per item and waits for all of them
before the next stage starts. A semaphore caps the number of requests in
flight; an exception in one item is turned into a value by `on_error` so it
can never keep its siblings from settling.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def settle_all(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    *,
    on_error: Callable[[T, Exception], R],
    max_concurrency: int,
) -> list[R]:
    """Run `worker` on every item and return one result per item, in input order."""

    if not items:
        return []

    sem = asyncio.Semaphore(max(1, max_concurrency))

    async def run_one(item: T) -> R:
        async with sem:
            try:
                return await worker(item)
            except Exception as exc:
                logger.debug("item %r failed: %s", item, exc)
                return on_error(item, exc)

    return list(await asyncio.gather(*(run_one(item) for item in items)))
