# src/telemetry/window.py — v1
"""Rolling telemetry window of carrier response times and outcomes.

One instance per analysis run (or shared explicitly between runs).
Appends are synchronized so samples are never dropped when recorded
from several tasks or threads; reads take a consistent snapshot.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from statistics import fmean


@dataclass(frozen=True)
class TelemetrySample:
    carrier: str
    elapsed_ms: float
    success: bool
    error: str | None = None


@dataclass(frozen=True)
class CarrierPerformance:
    avg_latency_ms: float
    success_rate: float
    sample_count: int


@dataclass(frozen=True)
class PerformanceMetrics:
    """Point-in-time view of the window, consumed by the planner."""

    avg_latency_ms: float
    success_rate: float
    error_rate: float
    sample_count: int
    recent_errors: tuple[str, ...] = ()
    carriers: dict[str, CarrierPerformance] = field(default_factory=dict)


class TelemetryWindow:
    """FIFO-evicting buffers: global (default 100) and per-carrier (default 20)."""

    def __init__(self, window_size: int = 100, carrier_window_size: int = 20) -> None:
        if window_size <= 0 or carrier_window_size <= 0:
            raise ValueError("window sizes must be > 0")
        self._window_size = window_size
        self._carrier_window_size = carrier_window_size
        self._samples: deque[TelemetrySample] = deque(maxlen=window_size)
        self._errors: deque[str] = deque(maxlen=window_size)
        self._per_carrier: dict[str, deque[TelemetrySample]] = {}
        self._lock = threading.Lock()
        self._total_recorded = 0

    @property
    def window_size(self) -> int:
        return self._window_size

    @property
    def total_recorded(self) -> int:
        """Samples recorded since creation, including evicted ones."""
        return self._total_recorded

    def record_outcome(
        self,
        carrier: str,
        elapsed_ms: float,
        success: bool,
        error_message: str | None = None,
    ) -> None:
        sample = TelemetrySample(
            carrier=carrier,
            elapsed_ms=max(0.0, float(elapsed_ms)),
            success=success,
            error=error_message,
        )
        with self._lock:
            self._samples.append(sample)
            if not success:
                self._errors.append(error_message or "unknown error")
            buf = self._per_carrier.get(carrier)
            if buf is None:
                buf = deque(maxlen=self._carrier_window_size)
                self._per_carrier[carrier] = buf
            buf.append(sample)
            self._total_recorded += 1

    def snapshot(self) -> PerformanceMetrics:
        """Consistent metrics over the current window.

        An empty window reports 0 latency and 0 success, which the planner
        reads as the degraded regime: a run starts conservatively and
        speeds up once carriers prove fast and reliable.
        """
        with self._lock:
            samples = list(self._samples)
            errors = tuple(self._errors)
            per_carrier = {c: list(buf) for c, buf in self._per_carrier.items()}

        if not samples:
            return PerformanceMetrics(
                avg_latency_ms=0.0, success_rate=0.0, error_rate=0.0, sample_count=0,
            )

        successes = sum(1 for s in samples if s.success)
        success_rate = successes / len(samples)
        return PerformanceMetrics(
            avg_latency_ms=fmean(s.elapsed_ms for s in samples),
            success_rate=success_rate,
            error_rate=1.0 - success_rate,
            sample_count=len(samples),
            recent_errors=errors,
            carriers={
                carrier: CarrierPerformance(
                    avg_latency_ms=fmean(s.elapsed_ms for s in buf),
                    success_rate=sum(1 for s in buf if s.success) / len(buf),
                    sample_count=len(buf),
                )
                for carrier, buf in per_carrier.items()
                if buf
            },
        )

    def reset(self) -> None:
        with self._lock:
            self._samples.clear()
            self._errors.clear()
            self._per_carrier.clear()
