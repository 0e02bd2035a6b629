# src/pipeline/engine.py — v1
"""Analysis engine: drives a whole run from raw rows to the AnalysisRun artifact.

  1. refuse to start without a carrier (run-level failure)
  2. normalize every row; validation failures are orphaned immediately
  3. quote valid shipments in planner-sized batches on one shared
     ConcurrencyController, sleeping the planned delay between batches
  4. above the streaming threshold, the StreamProcessor runs the same
     batch loop over chunks, K chunks at a time
  5. finalize, or finalize_partial when the run was stopped

pause() stops issuing quote calls (in-flight ones finish); stop()
additionally makes the run finalize with whatever results exist.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable

from rateshop.batch.stream_processor import ProgressCallback, StreamProcessor
from rateshop.carriers.base_carrier import BaseCarrierClient
from rateshop.carriers.multi_carrier import MultiCarrierQuoter
from rateshop.concurrency.controller import ConcurrencyController
from rateshop.concurrency.retry import RetryConfig
from rateshop.config.settings import Settings, load_settings
from rateshop.core.errors import (
    AnalysisStopped,
    NoCarrierConfiguredError,
    RateShopError,
    RetryExhausted,
    ShipmentValidationError,
)
from rateshop.core.models import AnalysisRun, FieldMap, ServiceMapping, ShipmentRecord
from rateshop.logging.context import set_run_context
from rateshop.pipeline.aggregator import AnalysisAggregator
from rateshop.pipeline.control import RunControl
from rateshop.pipeline.orchestrator import RateShoppingOrchestrator
from rateshop.telemetry.planner import AdaptivePlanner, BatchPlan
from rateshop.telemetry.window import TelemetryWindow
from rateshop.validation.normalizer import normalize_shipment, read_column, shipment_id_for

logger = logging.getLogger(__name__)

IndexedRecord = tuple[int, ShipmentRecord]


class AnalysisEngine:
    """One engine per selected carrier set; each run() gets a fresh aggregator.

    Args:
        carriers: Carrier integrations for the selected accounts.
        mappings: Confirmed service mappings.
        settings: Application settings (load_settings() when omitted).
        telemetry: Telemetry window; a new one sized from settings when omitted.
        field_map: Raw column -> shipment field mapping.
        sleep: Async sleep used for backoff and inter-batch delays.
    """

    def __init__(
        self,
        carriers: list[BaseCarrierClient],
        mappings: list[ServiceMapping],
        settings: Settings | None = None,
        telemetry: TelemetryWindow | None = None,
        field_map: FieldMap | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._settings = settings or load_settings()
        self._carriers = list(carriers)
        self._mappings = list(mappings)
        self._field_map = field_map or FieldMap()
        self._sleep = sleep
        self.telemetry = telemetry or TelemetryWindow(
            window_size=self._settings.telemetry_window_size,
            carrier_window_size=self._settings.telemetry_carrier_window_size,
        )
        self.planner = AdaptivePlanner(self.telemetry)
        self.controller = ConcurrencyController(self.planner.current_plan(0).concurrency)
        self.control = RunControl()
        self.aggregator: AnalysisAggregator | None = None
        self.last_plan: BatchPlan | None = None
        self._planned_total = 0
        self._orchestrator = RateShoppingOrchestrator(
            quoter=MultiCarrierQuoter(self._carriers, self.telemetry),
            mappings=self._mappings,
            controller=self.controller,
            control=self.control,
            include_alternates=self._settings.quote_alternate_services,
            country=self._settings.default_country,
            sleep=sleep,
        )

    # --- Run control ---

    def pause(self) -> None:
        self.control.pause()
        if self.aggregator is not None and self.aggregator.status == "processing":
            self.aggregator.pause()

    def resume(self) -> None:
        self.control.resume()
        if self.aggregator is not None and self.aggregator.status == "paused":
            self.aggregator.resume()

    def stop(self) -> None:
        """Stop and view results: no new quote calls, partial finalize."""
        self.control.stop()

    # --- Run ---

    async def run(
        self,
        raw_shipments: list[dict[str, Any]],
        on_progress: ProgressCallback | None = None,
        run_id: str | None = None,
    ) -> AnalysisRun:
        """Analyze every raw row and return the finalized artifact.

        Raises:
            NoCarrierConfiguredError: no carrier account is available.
        """
        aggregator = AnalysisAggregator(
            run_id=run_id,
            carrier_ids=[c.carrier_id for c in self._carriers],
            service_mappings=self._mappings,
        )
        self.aggregator = aggregator
        self.control.reset()
        set_run_context(aggregator.run_id, stage="validate")

        if not self._carriers:
            message = "No valid carrier configuration selected; analysis cannot start"
            aggregator.fail(message)
            raise NoCarrierConfiguredError(message)

        logger.info(
            "Run %s started: %d shipment(s), %d carrier(s), %d mapping(s)",
            aggregator.run_id, len(raw_shipments), len(self._carriers), len(self._mappings),
        )
        valid = self._register_rows(aggregator, raw_shipments)
        # Plans are sized on the whole run, not on a single chunk
        self._planned_total = len(valid)

        set_run_context(aggregator.run_id, stage="quote")
        if len(valid) > self._settings.streaming_threshold:
            processor: StreamProcessor[ShipmentRecord, str] = StreamProcessor(
                chunk_size=self._settings.stream_chunk_size,
                max_concurrent_chunks=self._settings.max_concurrent_chunks,
            )
            await processor.run(valid, self._process_chunk, on_progress)
        else:
            await self._process_records(valid)
            if on_progress is not None:
                ret = on_progress(1, 1)
                if inspect.isawaitable(ret):
                    await ret

        set_run_context(aggregator.run_id, stage="finalize")
        if self.control.is_stopped:
            return aggregator.finalize_partial()
        return aggregator.finalize()

    def _register_rows(
        self, aggregator: AnalysisAggregator, rows: list[dict[str, Any]],
    ) -> list[IndexedRecord]:
        fm = self._field_map
        valid: list[IndexedRecord] = []
        for index, raw in enumerate(rows):
            result = aggregator.register(
                index,
                shipment_id_for(raw, fm, index),
                raw=raw,
                tracking_id=read_column(raw, fm.tracking_id),
                service=read_column(raw, fm.service),
            )
            try:
                record = normalize_shipment(raw, fm, index)
            except ShipmentValidationError as e:
                aggregator.mark_processing(result.index)
                aggregator.record_error(result.index, e, attempt_count=1)
                continue
            valid.append((index, record))
        return valid

    async def _process_chunk(self, chunk: list[IndexedRecord]) -> dict[int, str]:
        await self._process_records(chunk)
        aggregator = self.aggregator
        assert aggregator is not None
        return {index: aggregator.get(index).status for index, _ in chunk}

    async def _process_records(self, items: list[IndexedRecord]) -> None:
        position = 0
        while position < len(items):
            try:
                await self.control.checkpoint()
            except AnalysisStopped:
                break

            plan = self._apply_plan(self._planned_total)
            batch = items[position:position + plan.batch_size]
            position += len(batch)
            await asyncio.gather(*(self._process_one(i, r) for i, r in batch))

            if position < len(items) and not self.control.is_stopped:
                await self._sleep(plan.inter_batch_delay_ms / 1000)

    def _apply_plan(self, total_items: int) -> BatchPlan:
        plan = self.planner.current_plan(total_items)
        self.last_plan = plan
        self.controller.limit = plan.concurrency
        self._orchestrator.retry_config = RetryConfig(
            max_retries=self._settings.max_retries,
            base_delay_s=plan.retry_base_delay_ms / 1000,
            jitter=self._settings.retry_jitter,
        )
        return plan

    async def _process_one(self, index: int, record: ShipmentRecord) -> None:
        aggregator = self.aggregator
        assert aggregator is not None
        aggregator.mark_processing(index, record)
        try:
            outcome = await self._orchestrator.analyze(record)
        except AnalysisStopped:
            # Left open; finalize_partial() excludes it
            return
        except RetryExhausted as e:
            aggregator.record_error(index, e.last_error, attempt_count=e.attempts)
        except RateShopError as e:
            aggregator.record_error(index, e, attempt_count=1)
        except Exception as e:
            logger.exception("Unexpected failure analyzing shipment %s", record.shipment_id)
            aggregator.record_error(index, e, attempt_count=1)
        else:
            aggregator.record_success(index, outcome)
