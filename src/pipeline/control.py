# src/pipeline/control.py — v1
"""Pause / resume / stop signals shared by every task of a run.

Tasks call checkpoint() right before issuing a quote call: while paused
they wait there, once stopped they raise AnalysisStopped. In-flight
calls are never interrupted.
"""

from __future__ import annotations

import asyncio
import logging

from rateshop.core.errors import AnalysisStopped

logger = logging.getLogger(__name__)


class RunControl:
    def __init__(self) -> None:
        self._resumed = asyncio.Event()
        self._resumed.set()
        self._stopped = False

    @property
    def is_paused(self) -> bool:
        return not self._resumed.is_set()

    @property
    def is_stopped(self) -> bool:
        return self._stopped

    def pause(self) -> None:
        if not self._stopped and not self.is_paused:
            logger.info("Analysis paused")
            self._resumed.clear()

    def resume(self) -> None:
        if self.is_paused:
            logger.info("Analysis resumed")
        self._resumed.set()

    def stop(self) -> None:
        """Stop issuing quote calls and release paused waiters."""
        if not self._stopped:
            logger.info("Analysis stop requested")
        self._stopped = True
        self._resumed.set()

    async def checkpoint(self) -> None:
        """Wait while paused; raise AnalysisStopped once stopped."""
        if self._stopped:
            raise AnalysisStopped("Analysis stopped before this shipment was quoted")
        await self._resumed.wait()
        if self._stopped:
            raise AnalysisStopped("Analysis stopped before this shipment was quoted")

    def reset(self) -> None:
        """Clear pause/stop before a new run."""
        self._stopped = False
        self._resumed.set()
