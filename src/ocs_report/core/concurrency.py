"""Bounded fan-out over a list of inputs."""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def bounded_map(
    items: Sequence[T],
    fn: Callable[[T], Awaitable[R]],
    concurrency: int = 5,
) -> list[R]:
    """Apply ``fn`` to every item with at most ``concurrency`` calls in flight.

    A fixed pool of workers pulls the next unclaimed index from a shared
    cursor, so ``result[i]`` always belongs to ``items[i]`` whatever order the
    calls finish in. The first exception cancels the remaining workers and is
    re-raised; wrap ``fn`` to isolate per-item failures.
    """
    if concurrency < 1:
        raise ValueError(f"concurrency must be >= 1, got {concurrency}")

    results: list[R] = [None] * len(items)  # type: ignore[list-item]
    cursor = 0

    async def worker() -> None:
        nonlocal cursor
        while cursor < len(items):
            # Claiming happens between awaits, so no two workers share an index
            index = cursor
            cursor += 1
            results[index] = await fn(items[index])

    workers = [
        asyncio.ensure_future(worker()) for _ in range(min(concurrency, len(items)))
    ]
    try:
        await asyncio.gather(*workers)
    except BaseException:
        for task in workers:
            task.cancel()
        raise
    return results
