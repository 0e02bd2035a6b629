# src/telemetry/planner.py — v1
"""Adaptive batch planner: telemetry -> batch size, concurrency and delays.

Regimes (checked in this order):
  fast      success >= 0.95 and latency < 1000 ms  -> min(50, n/10), 8 workers
  degraded  success <  0.80 or  latency > 3000 ms  -> max(10, n/20), 3 workers
  nominal   anything else                          -> min(35, n/15), 5 workers

inter_batch_delay_ms = clamp(latency / 10, 50, 200)
retry_base_delay_ms  = max(1000, latency * 2)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from rateshop.telemetry.window import PerformanceMetrics, TelemetryWindow

logger = logging.getLogger(__name__)

Regime = Literal["fast", "nominal", "degraded"]

FAST_SUCCESS_RATE = 0.95
FAST_LATENCY_MS = 1000.0
DEGRADED_SUCCESS_RATE = 0.80
DEGRADED_LATENCY_MS = 3000.0

MIN_INTER_BATCH_DELAY_MS = 50.0
MAX_INTER_BATCH_DELAY_MS = 200.0
MIN_RETRY_BASE_DELAY_MS = 1000.0


@dataclass(frozen=True)
class BatchPlan:
    regime: Regime
    batch_size: int
    concurrency: int
    inter_batch_delay_ms: float
    retry_base_delay_ms: float
    total_items: int = 0


def plan_for_metrics(metrics: PerformanceMetrics, total_items: int) -> BatchPlan:
    """Pure function of the rolling averages and the workload size."""
    latency = metrics.avg_latency_ms
    success = metrics.success_rate
    total = max(0, total_items)

    regime: Regime
    if success >= FAST_SUCCESS_RATE and latency < FAST_LATENCY_MS:
        regime, batch_size, concurrency = "fast", min(50, total // 10), 8
    elif success < DEGRADED_SUCCESS_RATE or latency > DEGRADED_LATENCY_MS:
        regime, batch_size, concurrency = "degraded", max(10, total // 20), 3
    else:
        regime, batch_size, concurrency = "nominal", min(35, total // 15), 5

    return BatchPlan(
        regime=regime,
        # Small workloads round down to 0 in the fast/nominal formulas
        batch_size=max(1, batch_size),
        concurrency=concurrency,
        inter_batch_delay_ms=min(
            MAX_INTER_BATCH_DELAY_MS, max(MIN_INTER_BATCH_DELAY_MS, latency / 10)
        ),
        retry_base_delay_ms=max(MIN_RETRY_BASE_DELAY_MS, latency * 2),
        total_items=total,
    )


class AdaptivePlanner:
    """Reads a TelemetryWindow and derives the plan for the next batch."""

    def __init__(self, window: TelemetryWindow) -> None:
        self._window = window
        self._last_regime: Regime | None = None

    @property
    def window(self) -> TelemetryWindow:
        return self._window

    def current_plan(self, total_items: int) -> BatchPlan:
        metrics = self._window.snapshot()
        plan = plan_for_metrics(metrics, total_items)
        if plan.regime != self._last_regime:
            logger.info(
                "Batch plan regime %s -> %s (latency=%.0fms success=%.2f samples=%d)",
                self._last_regime, plan.regime,
                metrics.avg_latency_ms, metrics.success_rate, metrics.sample_count,
            )
            self._last_regime = plan.regime
        return plan
