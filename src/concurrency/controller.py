# src/concurrency/controller.py — v1
"""Bounded-parallelism executor: worker slots plus a FIFO wait queue.

execute(task) runs the task as soon as a slot is free, otherwise parks
the caller in submission order. A finishing task hands its slot
directly to the oldest waiter, so queued tasks are never overtaken by
later submissions and never starve.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConcurrencyController:
    """Runs at most `limit` tasks at once; the rest wait FIFO."""

    def __init__(self, limit: int) -> None:
        if limit < 1:
            raise ValueError("concurrency limit must be >= 1")
        self._limit = limit
        self._running = 0
        self._peak_running = 0
        self._completed = 0
        self._waiters: deque[asyncio.Future[None]] = deque()

    # --- Introspection ---

    @property
    def limit(self) -> int:
        return self._limit

    @limit.setter
    def limit(self, value: int) -> None:
        """Resize the pool. Growing promotes queued tasks immediately;
        shrinking lets running tasks finish and applies to later grants."""
        if value < 1:
            raise ValueError("concurrency limit must be >= 1")
        if value != self._limit:
            logger.debug("Concurrency limit %d -> %d", self._limit, value)
        self._limit = value
        self._wake_waiters()

    @property
    def running(self) -> int:
        return self._running

    @property
    def queued(self) -> int:
        return sum(1 for f in self._waiters if not f.done())

    @property
    def peak_running(self) -> int:
        return self._peak_running

    @property
    def completed(self) -> int:
        return self._completed

    # --- Execution ---

    async def execute(self, task: Callable[[], Awaitable[T]]) -> T:
        """Run `task` inside a slot and return (or raise) its result.

        A failing task only frees its slot; other tasks are unaffected.
        """
        await self._acquire()
        try:
            return await task()
        finally:
            self._completed += 1
            self._release()

    async def _acquire(self) -> None:
        if self._running < self._limit and not self._waiters:
            self._grant()
            return

        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        try:
            await fut
        except asyncio.CancelledError:
            if fut.done() and not fut.cancelled():
                # Slot was handed over just before cancellation
                self._release()
            else:
                try:
                    self._waiters.remove(fut)
                except ValueError:
                    pass
            raise

    def _grant(self) -> None:
        self._running += 1
        if self._running > self._peak_running:
            self._peak_running = self._running

    def _release(self) -> None:
        self._running -= 1
        self._wake_waiters()

    def _wake_waiters(self) -> None:
        while self._waiters and self._running < self._limit:
            fut = self._waiters.popleft()
            if fut.done():
                continue
            self._grant()
            fut.set_result(None)
