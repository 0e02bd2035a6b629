# tests/unit/pipeline/test_unit_control.py — v1
"""Tests for pipeline/control.py — pause, resume and stop signals."""

from __future__ import annotations

import asyncio

import pytest

from rateshop.core.errors import AnalysisStopped
from rateshop.pipeline.control import RunControl


class TestRunControl:
    @pytest.mark.asyncio
    async def test_checkpoint_passes_when_running(self):
        await RunControl().checkpoint()

    @pytest.mark.asyncio
    async def test_pause_blocks_until_resume(self):
        control = RunControl()
        control.pause()
        assert control.is_paused
        waiter = asyncio.ensure_future(control.checkpoint())
        await asyncio.sleep(0)
        assert not waiter.done()
        control.resume()
        await waiter
        assert not control.is_paused

    @pytest.mark.asyncio
    async def test_stop_releases_paused_waiters(self):
        control = RunControl()
        control.pause()
        waiter = asyncio.ensure_future(control.checkpoint())
        await asyncio.sleep(0)
        control.stop()
        with pytest.raises(AnalysisStopped):
            await waiter

    @pytest.mark.asyncio
    async def test_stopped_raises(self):
        control = RunControl()
        control.stop()
        with pytest.raises(AnalysisStopped):
            await control.checkpoint()

    def test_pause_after_stop_ignored(self):
        control = RunControl()
        control.stop()
        control.pause()
        assert not control.is_paused

    @pytest.mark.asyncio
    async def test_reset(self):
        control = RunControl()
        control.stop()
        control.reset()
        assert not control.is_stopped
        await control.checkpoint()
