# tests/unit/batch/test_unit_stream_processor.py — v1
"""Tests for batch/stream_processor.py and batch/models.py."""

from __future__ import annotations

import asyncio

import pytest

from rateshop.batch.models import StreamingProgress
from rateshop.batch.stream_processor import StreamProcessor, split_chunks


class TestSplitChunks:
    def test_even_and_remainder(self):
        assert split_chunks([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]

    def test_empty(self):
        assert split_chunks([], 3) == []

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            split_chunks([1], 0)


class TestStreamingProgress:
    def test_percent(self):
        assert StreamingProgress(processed_chunks=1, total_chunks=3).percent == 33.3
        assert StreamingProgress().percent == 0.0


class TestStreamProcessor:
    @pytest.mark.asyncio
    async def test_merges_by_index_regardless_of_order(self):
        items = [(i, f"item{i}") for i in range(10)]

        async def process(chunk):
            # Later chunks finish first
            await asyncio.sleep(0.001 * (10 - chunk[0][0]))
            return {i: value.upper() for i, value in chunk}

        processor: StreamProcessor[str, str] = StreamProcessor(chunk_size=3, max_concurrent_chunks=4)
        merged = await processor.run(items, process)
        assert merged == {i: f"ITEM{i}" for i in range(10)}
        assert processor.progress.status == "completed"
        assert processor.progress.processed_items == 10

    @pytest.mark.asyncio
    async def test_chunk_parallelism_bounded(self):
        active = 0
        peak = 0

        async def process(chunk):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.005)
            active -= 1
            return {i: v for i, v in chunk}

        processor: StreamProcessor[int, int] = StreamProcessor(chunk_size=1, max_concurrent_chunks=2)
        await processor.run([(i, i) for i in range(6)], process)
        assert peak == 2

    @pytest.mark.asyncio
    async def test_progress_callback_sync_and_async(self):
        seen: list[tuple[int, int]] = []

        async def on_progress(done, total):
            seen.append((done, total))

        async def process(chunk):
            return {i: v for i, v in chunk}

        processor: StreamProcessor[int, int] = StreamProcessor(chunk_size=2, max_concurrent_chunks=1)
        await processor.run([(i, i) for i in range(5)], process, on_progress)
        assert seen == [(1, 3), (2, 3), (3, 3)]

    @pytest.mark.asyncio
    async def test_duplicate_index_rejected(self):
        async def process(chunk):
            return {0: "dup"}

        processor: StreamProcessor[int, str] = StreamProcessor(chunk_size=1, max_concurrent_chunks=1)
        with pytest.raises(ValueError, match="Duplicate"):
            await processor.run([(0, 0), (1, 1)], process)
        assert processor.progress.status == "error"

    @pytest.mark.asyncio
    async def test_failure_raised_after_all_chunks_settle(self):
        finished: list[int] = []

        async def process(chunk):
            index = chunk[0][0]
            if index == 0:
                raise RuntimeError("chunk 0 failed")
            await asyncio.sleep(0.001)
            finished.append(index)
            return {index: index}

        processor: StreamProcessor[int, int] = StreamProcessor(chunk_size=1, max_concurrent_chunks=3)
        with pytest.raises(RuntimeError, match="chunk 0"):
            await processor.run([(i, i) for i in range(3)], process)
        assert sorted(finished) == [1, 2]

    @pytest.mark.asyncio
    async def test_eta(self):
        ticks = iter([0.0, 2.0, 4.0])

        async def process(chunk):
            return {i: v for i, v in chunk}

        processor: StreamProcessor[int, int] = StreamProcessor(
            chunk_size=1, max_concurrent_chunks=1, clock=lambda: next(ticks),
        )
        etas: list[float | None] = []

        def on_progress(done, total):
            etas.append(processor.progress.estimated_time_remaining_s)

        await processor.run([(0, 0), (1, 1)], process, on_progress)
        assert etas == [2.0, 0.0]
