# src/pipeline/aggregator.py — v1
"""Analysis aggregator: per-shipment and run state machines, totals, final artifact.

Shipment:  pending -> processing -> completed | error
           (processing -> processing is a silent no-op used by retries)
Run:       processing <-> paused
           processing | paused -> completed   (finalize / finalize_partial)
           processing | paused -> failed      (fail)

Results are keyed by input index, so completions arriving out of order
never overwrite each other. Totals only ever include completed results.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable

from rateshop.core.errors import InvalidTransitionError
from rateshop.core.models import (
    AnalysisResult,
    AnalysisRun,
    OrphanedShipment,
    QuoteOutcome,
    Recommendation,
    RunStatus,
    ServiceMapping,
    ShipmentAccountability,
    ShipmentRecord,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def check_accountability(total: int, tracked: int, excluded: int = 0) -> ShipmentAccountability:
    """Every input shipment must be a recommendation, an orphan or explicitly excluded."""
    missing = max(0, total - tracked - excluded)
    coverage = 100.0 if total == 0 else round(tracked / total * 100, 2)
    return ShipmentAccountability(
        is_complete=missing == 0, missing_count=missing, coverage=coverage,
    )


class AnalysisAggregator:
    """Owns every AnalysisResult of a run and emits the final AnalysisRun."""

    def __init__(
        self,
        run_id: str | None = None,
        carrier_ids: list[str] | None = None,
        service_mappings: list[ServiceMapping] | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.run_id = run_id or uuid.uuid4().hex[:12]
        self._clock = clock
        self._carrier_ids = list(carrier_ids or [])
        self._mappings = list(service_mappings or [])
        self._results: dict[int, AnalysisResult] = {}
        self._status: RunStatus = "processing"
        self._started_at = clock()
        self._total_current_cost = 0.0
        self._total_savings = 0.0
        self._total_max_savings = 0.0
        self._fallback_comparisons = 0

    # --- Introspection ---

    @property
    def status(self) -> RunStatus:
        return self._status

    @property
    def total_current_cost(self) -> float:
        return round(self._total_current_cost, 2)

    @property
    def total_savings(self) -> float:
        return round(self._total_savings, 2)

    @property
    def results(self) -> list[AnalysisResult]:
        return [self._results[i] for i in sorted(self._results)]

    def get(self, index: int) -> AnalysisResult:
        try:
            return self._results[index]
        except KeyError:
            raise KeyError(f"No shipment registered at index {index}") from None

    def count(self, status: str) -> int:
        return sum(1 for r in self._results.values() if r.status == status)

    @property
    def processed_count(self) -> int:
        return sum(1 for r in self._results.values() if r.is_terminal)

    # --- Shipment transitions ---

    def register(
        self,
        index: int,
        shipment_id: str,
        raw: dict[str, Any] | None = None,
        tracking_id: str | None = None,
        service: str | None = None,
    ) -> AnalysisResult:
        if index in self._results:
            raise InvalidTransitionError(f"Shipment {index} already registered")
        result = AnalysisResult(
            index=index,
            shipment_id=shipment_id,
            tracking_id=tracking_id,
            service=service,
            raw=dict(raw or {}),
        )
        self._results[index] = result
        return result

    def mark_processing(self, index: int, record: ShipmentRecord | None = None) -> None:
        result = self.get(index)
        if result.status == "processing":
            return
        if result.status != "pending":
            raise InvalidTransitionError(
                f"Shipment {index}: {result.status} -> processing is not allowed"
            )
        result.status = "processing"
        if record is not None:
            result.record = record

    def record_success(self, index: int, outcome: QuoteOutcome) -> AnalysisResult:
        result = self._require_processing(index, "completed")
        result.status = "completed"
        result.current_cost = outcome.current_cost
        result.best_rate = outcome.best_rate
        result.best_overall_rate = outcome.best_overall_rate
        result.savings = outcome.savings
        result.max_savings = outcome.max_savings
        result.expected_category = outcome.expected_category
        result.comparison_method = outcome.comparison_method
        result.is_mapping_exact = outcome.is_mapping_exact
        result.mapping_validation = outcome.mapping_validation
        result.all_rates = list(outcome.all_rates)
        result.carrier_outcomes = list(outcome.carrier_outcomes)
        result.warnings = list(outcome.warnings)
        # Only recorded on the path that failed before succeeding
        result.attempt_count = outcome.attempt_count if outcome.attempt_count > 1 else None

        self._total_current_cost += outcome.current_cost
        self._total_savings += outcome.savings
        self._total_max_savings += outcome.max_savings
        if not outcome.is_mapping_exact:
            self._fallback_comparisons += 1
        return result

    def record_error(
        self,
        index: int,
        error: BaseException,
        attempt_count: int | None = None,
    ) -> AnalysisResult:
        result = self._require_processing(index, "error")
        result.status = "error"
        result.error = str(error) or type(error).__name__
        result.error_type = getattr(error, "error_type", "ProcessingError")
        result.error_category = getattr(error, "error_category", "Unknown")
        result.missing_fields = list(getattr(error, "missing_fields", []) or [])
        result.attempt_count = attempt_count
        logger.warning(
            "Shipment %s failed (%s/%s): %s",
            result.shipment_id, result.error_type, result.error_category, result.error,
        )
        return result

    def _require_processing(self, index: int, target: str) -> AnalysisResult:
        result = self.get(index)
        if result.status != "processing":
            raise InvalidTransitionError(
                f"Shipment {index}: {result.status} -> {target} is not allowed"
            )
        return result

    # --- Run transitions ---

    def pause(self) -> None:
        if self._status != "processing":
            raise InvalidTransitionError(f"Run {self._status} -> paused is not allowed")
        self._status = "paused"

    def resume(self) -> None:
        if self._status != "paused":
            raise InvalidTransitionError(f"Run {self._status} -> processing is not allowed")
        self._status = "processing"

    def finalize(self) -> AnalysisRun:
        """Close a run where every shipment reached a terminal state."""
        open_count = self.count("pending") + self.count("processing")
        if open_count:
            raise InvalidTransitionError(
                f"{open_count} shipment(s) still open; use finalize_partial() to stop early"
            )
        return self._close("completed", stopped_early=False)

    def finalize_partial(self) -> AnalysisRun:
        """Close now; open shipments are excluded, not counted as errors."""
        excluded = self.count("pending") + self.count("processing")
        if excluded:
            logger.info("Finalizing early: %d shipment(s) excluded", excluded)
        return self._close("completed", stopped_early=True)

    def fail(self, error: str) -> AnalysisRun:
        return self._close("failed", stopped_early=False, error=error)

    def _close(self, status: RunStatus, stopped_early: bool, error: str | None = None) -> AnalysisRun:
        if self._status not in ("processing", "paused"):
            raise InvalidTransitionError(f"Run {self._status} -> {status} is not allowed")

        ordered = self.results
        recommendations = [
            _to_recommendation(r) for r in ordered if r.status == "completed"
        ]
        orphans = [_to_orphan(r) for r in ordered if r.status == "error"]
        excluded = sum(1 for r in ordered if not r.is_terminal)

        total_cost = round(self._total_current_cost, 2)
        total_savings = round(self._total_savings, 2)
        run = AnalysisRun(
            run_id=self.run_id,
            status=status,
            total_shipments=len(ordered),
            completed_shipments=len(recommendations),
            error_shipments=len(orphans),
            excluded_shipments=excluded,
            stopped_early=stopped_early,
            total_current_cost=total_cost,
            total_savings=total_savings,
            total_max_savings=round(self._total_max_savings, 2),
            savings_percentage=(
                round(total_savings / total_cost * 100, 2) if total_cost > 0 else 0.0
            ),
            fallback_comparisons=self._fallback_comparisons,
            recommendations=recommendations,
            orphaned_shipments=orphans,
            accountability=check_accountability(
                len(ordered), len(recommendations) + len(orphans), excluded,
            ),
            carrier_ids=self._carrier_ids,
            service_mappings=self._mappings,
            error=error,
            started_at=self._started_at,
            finished_at=self._clock(),
        )
        self._status = status
        logger.info(
            "Run %s %s: %d completed, %d orphaned, %d excluded, savings %.2f",
            self.run_id, status, run.completed_shipments, run.error_shipments,
            excluded, total_savings,
        )
        return run


def _to_recommendation(result: AnalysisResult) -> Recommendation:
    record = result.record
    best = result.best_rate
    if record is None or best is None or result.savings is None:
        raise InvalidTransitionError(f"Shipment {result.index} completed without a priced rate")
    current = result.current_cost or 0.0
    return Recommendation(
        index=result.index,
        shipment_id=result.shipment_id,
        tracking_id=result.tracking_id,
        origin_zip=record.origin_zip,
        dest_zip=record.dest_zip,
        weight_lbs=record.weight_lbs,
        customer_service=record.service,
        current_cost=current,
        recommended_cost=best.total_charges or 0.0,
        recommended_service=best.service_name or best.service_code,
        recommended_carrier=best.account_name or best.carrier_id,
        recommended_category=best.universal_category,
        savings=result.savings,
        savings_percent=round(result.savings / current * 100, 2) if current > 0 else 0.0,
        max_savings=result.max_savings or 0.0,
        comparison_method=result.comparison_method or "confirmed_mapping",
        is_mapping_exact=bool(result.is_mapping_exact),
        mapping_validation=result.mapping_validation,
        best_overall_rate=result.best_overall_rate,
        all_rates=result.all_rates,
        warnings=result.warnings,
    )


def _to_orphan(result: AnalysisResult) -> OrphanedShipment:
    record = result.record
    return OrphanedShipment(
        index=result.index,
        shipment_id=result.shipment_id,
        tracking_id=result.tracking_id,
        service=result.service,
        origin_zip=record.origin_zip if record else None,
        dest_zip=record.dest_zip if record else None,
        error=result.error or "Unknown error",
        error_type=result.error_type or "ProcessingError",
        error_category=result.error_category or "Unknown",
        missing_fields=result.missing_fields,
        attempt_count=result.attempt_count,
        raw=result.raw,
    )
