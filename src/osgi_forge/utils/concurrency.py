"""
osgi-forge - thread fan-out for blocking bundle work

File: src/osgi_forge/utils/concurrency.py
Last updated: 2026-10-18

Manifest parsing reads jars and files, so the parse phase runs each bundle of
a traversal level on a worker thread. At most ``max_workers`` calls are in
flight; results come back in input order. The first failing call is
re-raised once the calls already on threads have been abandoned and every
queued call has been cancelled.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

T = TypeVar("T")
R = TypeVar("R")


async def map_in_threads(
    func: Callable[[T], R],
    items: Sequence[T],
    *,
    max_workers: int,
) -> list[R]:
    """Apply a blocking ``func`` to every item on worker threads, preserving order."""

    if max_workers <= 0:
        raise ValueError("max_workers must be > 0")
    permits = asyncio.Semaphore(max_workers)

    async def call(item: T) -> R:
        async with permits:
            return await asyncio.to_thread(func, item)

    tasks = [asyncio.ensure_future(call(item)) for item in items]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


__all__ = ["map_in_threads"]
