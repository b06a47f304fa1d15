"""Shared concurrency primitives for ingestion and retrieval.

Two patterns are exposed:

1. **IngestionWorkerPool** -- a process-wide set of background asyncio
   tasks bounded by a semaphore.  HTTP handlers hand a document's
   ingestion coroutine to :meth:`IngestionWorkerPool.submit` and return
   at once; at most ``concurrency`` documents are processed at the same
   time, the rest wait for a slot.

2. **throttled_gather** -- ``asyncio.gather`` with each awaitable wrapped
   in a semaphore acquire/release.  The context service uses it to query
   a project's namespaces in parallel without flooding the index.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Coroutine, TypeVar

import structlog

from src.utils.logging import get_logger

_T = TypeVar("_T")

_logger: structlog.BoundLogger = get_logger(__name__)


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently, at most ``semaphore``'s value at a time.

    Parameters
    ----------
    coros:
        Awaitable objects to execute concurrently.
    semaphore:
        Semaphore bounding how many run simultaneously.
    return_exceptions:
        If ``True``, exceptions are returned in the results list rather
        than being raised.  Mirrors ``asyncio.gather`` semantics.

    Returns
    -------
    list[_T | BaseException]
        Results in the same order as the input coroutines.
    """

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    return await asyncio.gather(*(_wrapped(c) for c in coros), return_exceptions=return_exceptions)


class IngestionWorkerPool:
    """Bounded pool of fire-and-forget background tasks.

    Tasks are tracked until they finish so :meth:`drain` can wait for them
    and :meth:`shutdown` can cancel them.  A task that raises is logged;
    the exception never reaches the submitter.
    """

    def __init__(self, concurrency: int = 2) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._concurrency = concurrency
        self._semaphore = asyncio.Semaphore(concurrency)
        self._tasks: set[asyncio.Task[Any]] = set()
        self._closed = False

    @property
    def concurrency(self) -> int:
        return self._concurrency

    @property
    def pending(self) -> int:
        """Number of submitted tasks that have not finished yet."""
        return len(self._tasks)

    def submit(self, coro: Coroutine[Any, Any, _T], name: str | None = None) -> asyncio.Task[_T]:
        """Schedule *coro* in the background and return its task immediately.

        Must be called from inside a running event loop.

        Raises
        ------
        RuntimeError
            If the pool has been shut down.
        """
        if self._closed:
            coro.close()
            raise RuntimeError("IngestionWorkerPool is shut down")

        task = asyncio.get_running_loop().create_task(self._run(coro, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        _logger.debug("worker_task_submitted", task=name, pending=len(self._tasks))
        return task

    async def drain(self) -> None:
        """Wait until every submitted task (including ones submitted meanwhile) finishes."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self, wait: bool = False) -> None:
        """Stop accepting work; drain if *wait*, otherwise cancel in-flight tasks."""
        self._closed = True
        if wait:
            await self.drain()
            return
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        _logger.info("worker_pool_shutdown", cancelled=len(tasks))

    async def _run(self, coro: Coroutine[Any, Any, _T], name: str | None) -> _T | None:
        try:
            async with self._semaphore:
                return await coro
        except asyncio.CancelledError:
            # Closes the coroutine if it was still waiting for a slot.
            coro.close()
            raise
        except Exception as exc:
            _logger.error(
                "worker_task_failed",
                task=name,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return None
