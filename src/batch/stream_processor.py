# src/batch/stream_processor.py — v1
"""Chunked streaming for large shipment sets.

Splits indexed items into fixed-size chunks, runs at most K chunks at
a time and merges each chunk's results into one dict keyed by the
original input index. Chunks may finish in any order; the merged
result does not depend on it.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from typing import Any, Awaitable, Callable, Generic, Sequence, TypeVar

from rateshop.batch.models import StreamingProgress

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

IndexedItem = tuple[int, T]
ProgressCallback = Callable[[int, int], Any]


def split_chunks(items: Sequence[T], chunk_size: int) -> list[list[T]]:
    if chunk_size < 1:
        raise ValueError("chunk_size must be >= 1")
    return [list(items[i:i + chunk_size]) for i in range(0, len(items), chunk_size)]


class StreamProcessor(Generic[T, R]):
    """Runs chunk jobs with bounded chunk-level parallelism.

    Args:
        chunk_size: Items per chunk.
        max_concurrent_chunks: Chunks processed at the same time.
        clock: Monotonic clock for the ETA.
    """

    def __init__(
        self,
        chunk_size: int = 500,
        max_concurrent_chunks: int = 3,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if chunk_size < 1 or max_concurrent_chunks < 1:
            raise ValueError("chunk_size and max_concurrent_chunks must be >= 1")
        self._chunk_size = chunk_size
        self._max_concurrent = max_concurrent_chunks
        self._clock = clock
        self._progress = StreamingProgress()

    @property
    def progress(self) -> StreamingProgress:
        return self._progress.model_copy()

    async def run(
        self,
        items: Sequence[IndexedItem],
        process_chunk: Callable[[list[IndexedItem]], Awaitable[dict[int, R]]],
        on_progress: ProgressCallback | None = None,
    ) -> dict[int, R]:
        """Process every chunk and return the merged results.

        Raises:
            ValueError: two chunks returned a result for the same index.
            Exception: the first chunk failure, after every chunk has settled.
        """
        chunks = split_chunks(items, self._chunk_size)
        total_items = len(items)
        semaphore = asyncio.Semaphore(self._max_concurrent)
        merged: dict[int, R] = {}
        start = self._clock()
        self._progress = StreamingProgress(
            total_chunks=len(chunks), total_items=total_items, status="processing",
        )
        logger.info(
            "Streaming %d item(s) in %d chunk(s) of %d, %d at a time",
            total_items, len(chunks), self._chunk_size, self._max_concurrent,
        )

        async def run_chunk(number: int, chunk: list[IndexedItem]) -> None:
            async with semaphore:
                logger.debug("Chunk %d/%d started (%d items)", number + 1, len(chunks), len(chunk))
                partial = await process_chunk(chunk)

            for index, value in partial.items():
                if index in merged:
                    raise ValueError(f"Duplicate result for index {index}")
                merged[index] = value
            await self._advance(len(chunk), start, on_progress)

        outcomes = await asyncio.gather(
            *(run_chunk(n, c) for n, c in enumerate(chunks)), return_exceptions=True,
        )
        failures = [o for o in outcomes if isinstance(o, BaseException)]
        if failures:
            self._progress = self._progress.model_copy(update={"status": "error"})
            logger.error("%d of %d chunk(s) failed", len(failures), len(chunks))
            raise failures[0]

        self._progress = self._progress.model_copy(
            update={"status": "completed", "estimated_time_remaining_s": 0.0},
        )
        return merged

    async def _advance(self, chunk_items: int, start: float, on_progress: ProgressCallback | None) -> None:
        p = self._progress
        processed_chunks = p.processed_chunks + 1
        elapsed = self._clock() - start
        remaining = p.total_chunks - processed_chunks
        self._progress = p.model_copy(update={
            "processed_chunks": processed_chunks,
            "processed_items": p.processed_items + chunk_items,
            "elapsed_s": elapsed,
            "estimated_time_remaining_s": elapsed / processed_chunks * remaining,
        })
        if on_progress is not None:
            ret = on_progress(processed_chunks, p.total_chunks)
            if inspect.isawaitable(ret):
                await ret
