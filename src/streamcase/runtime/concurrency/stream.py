"""Async stream combinators used to multiplex producers onto one wire.

Key Operations:
    - merge_streams: Combine multiple streams into one, items in arrival order
    - pump: Run a producer coroutine that writes into a queue and iterate it

Example:
    >>> async for line in merge_streams(model_lines, data_lines):
    ...     await response.write(line)
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")

__all__ = ["merge_streams", "pump"]


async def merge_streams(*streams: AsyncIterator[T]) -> AsyncIterator[T]:
    """Merge multiple async streams into one.

    Items are yielded as they become available from any stream; order within
    one stream is preserved. Continues until all streams are exhausted. An
    exception from any stream cancels the others and propagates.
    """
    if not streams:
        return

    iterators = list(streams)
    pending: dict[int, asyncio.Task[tuple[int, T | None, bool]]] = {}

    async def get_next(idx: int) -> tuple[int, T | None, bool]:
        try:
            value = await iterators[idx].__anext__()
            return (idx, value, True)
        except StopAsyncIteration:
            return (idx, None, False)

    for i in range(len(iterators)):
        pending[i] = asyncio.create_task(get_next(i))

    try:
        while pending:
            done, _ = await asyncio.wait(pending.values(), return_when=asyncio.FIRST_COMPLETED)
            # Deterministic order when several streams are ready at once
            for idx in sorted(i for i, t in pending.items() if t in done):
                _, value, has_more = pending.pop(idx).result()
                if has_more:
                    yield value  # type: ignore[misc]
                    pending[idx] = asyncio.create_task(get_next(idx))
    finally:
        for task in pending.values():
            task.cancel()
        if pending:
            await asyncio.gather(*pending.values(), return_exceptions=True)


async def pump(
    producer: Callable[[asyncio.Queue[T]], Awaitable[None]],
) -> AsyncIterator[T]:
    """Run ``producer(queue)`` in the background and yield what it enqueues.

    Iteration ends when the producer returns. If the producer raises, items
    enqueued before the failure are still yielded, then the error propagates.
    """
    queue: asyncio.Queue[T] = asyncio.Queue()
    finished = object()
    error: BaseException | None = None

    async def run() -> None:
        nonlocal error
        try:
            await producer(queue)
        except Exception as e:
            error = e
        finally:
            queue.put_nowait(finished)  # type: ignore[arg-type]

    task = asyncio.create_task(run())
    try:
        while (item := await queue.get()) is not finished:
            yield item
        if error:
            raise error
    finally:
        if not task.done():
            task.cancel()
        await asyncio.gather(task, return_exceptions=True)
