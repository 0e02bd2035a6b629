# src/pipeline/orchestrator.py — v1
"""Rate-shopping orchestrator: one validated shipment -> one QuoteOutcome.

Per shipment:
  1. resolve the confirmed ServiceMapping by normalized service name
     (none -> MappingError, never a guessed category)
  2. build the CarrierQuoteRequest (addresses, residential precedence)
  3. quote through the ConcurrencyController, wrapped by the retry handler
  4. pick best_rate (confirmed category, else explicit fallback to the
     cheapest overall) and best_overall_rate
  5. savings = current_cost - best_rate.total_charges
  6. attach the observational mapping check and warnings

Failures propagate as RateShopError subclasses; the engine records them.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from rateshop.carriers.multi_carrier import FanOutResult, MultiCarrierQuoter
from rateshop.concurrency.controller import ConcurrencyController
from rateshop.concurrency.retry import RetryConfig, with_retry
from rateshop.core.errors import AnalysisStopped, MappingError, RetryExhausted
from rateshop.core.models import QuoteOutcome, ServiceMapping, ShipmentRecord
from rateshop.logging.context import set_shipment_context
from rateshop.pipeline.control import RunControl
from rateshop.pipeline.request_builder import build_quote_request
from rateshop.pipeline.selection import (
    select_best_overall_rate,
    select_best_rate,
    validate_mapping,
)
from rateshop.validation.normalizer import normalize_service_name

logger = logging.getLogger(__name__)


def build_mapping_index(mappings: list[ServiceMapping]) -> dict[str, ServiceMapping]:
    """Confirmed mappings keyed by normalized service name. First one wins."""
    index: dict[str, ServiceMapping] = {}
    for mapping in mappings:
        if not mapping.is_confirmed:
            continue
        key = normalize_service_name(mapping.original)
        if not key:
            continue
        if key in index:
            if index[key].category != mapping.category:
                logger.warning(
                    "Conflicting confirmed mappings for %r: keeping %s, ignoring %s",
                    mapping.original, index[key].category.value, mapping.category.value,
                )
            continue
        index[key] = mapping
    return index


class RateShoppingOrchestrator:
    """Quotes and prices a single shipment against the selected carriers.

    Args:
        quoter: Multi-carrier fan-out.
        mappings: Confirmed service mappings.
        controller: Shared bounded-parallelism executor.
        control: Pause/stop signals of the run.
        retry_config: Initial retry policy; the engine refreshes it per batch.
        include_alternates: Also quote the default categories.
        country: Country put on both addresses.
        sleep: Backoff sleep (injected in tests).
    """

    def __init__(
        self,
        quoter: MultiCarrierQuoter,
        mappings: list[ServiceMapping],
        controller: ConcurrencyController,
        control: RunControl | None = None,
        retry_config: RetryConfig | None = None,
        include_alternates: bool = True,
        country: str = "US",
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._quoter = quoter
        self._mappings = build_mapping_index(mappings)
        self._controller = controller
        self._control = control or RunControl()
        self.retry_config = retry_config or RetryConfig()
        self._include_alternates = include_alternates
        self._country = country
        self._sleep = sleep

    def find_mapping(self, service_key: str) -> ServiceMapping | None:
        return self._mappings.get(service_key)

    async def analyze(self, record: ShipmentRecord) -> QuoteOutcome:
        """Quote one shipment and compute its savings.

        Raises:
            MappingError: no confirmed mapping for the service.
            AnalysisStopped: the run was stopped before the quote call.
            RetryExhausted: the quote failed terminally (wraps the cause).
            InvalidRateDataError: a returned rate has no price.
        """
        set_shipment_context(record.shipment_id, stage="quote")

        mapping = self.find_mapping(record.service_key)
        if mapping is None:
            raise MappingError(record.service)

        request = build_quote_request(
            record, mapping,
            include_alternates=self._include_alternates,
            country=self._country,
        )

        async def attempt() -> FanOutResult:
            await self._control.checkpoint()
            return await self._quoter.quote(request)

        retry_config = self.retry_config
        try:
            outcome = await self._controller.execute(
                lambda: with_retry(
                    attempt, retry_config, label=f"quote {record.shipment_id}", sleep=self._sleep,
                )
            )
        except RetryExhausted as e:
            if isinstance(e.last_error, AnalysisStopped):
                raise e.last_error from None
            raise

        fan_out: FanOutResult = outcome.value
        best_rate, method = select_best_rate(fan_out.rates, mapping.category)
        best_overall = select_best_overall_rate(fan_out.rates)
        mapping_check = validate_mapping(best_rate, mapping.category)

        warnings: list[str] = []
        if method == "best_overall_fallback":
            warnings.append(
                f"No {mapping.category.value} rate returned; compared against the cheapest "
                f"overall rate ({best_rate.service_name or best_rate.service_code} "
                f"from {best_rate.account_name or best_rate.carrier_id})"
            )
            logger.warning(
                "Fallback comparison for %s: no %s rate among %d",
                record.shipment_id, mapping.category.value, len(fan_out.rates),
            )
        elif not mapping_check.is_valid:
            warnings.append(mapping_check.message)
            logger.warning("Mapping check failed for %s: %s", record.shipment_id, mapping_check.message)
        for carrier_outcome in fan_out.outcomes:
            if not carrier_outcome.success:
                warnings.append(f"Carrier {carrier_outcome.carrier_id} failed: {carrier_outcome.error}")

        current = record.current_cost
        return QuoteOutcome(
            current_cost=current,
            best_rate=best_rate,
            best_overall_rate=best_overall,
            savings=round(current - best_rate.total_charges, 2),  # type: ignore[operator]
            max_savings=round(current - best_overall.total_charges, 2),  # type: ignore[operator]
            expected_category=mapping.category,
            comparison_method=method,
            is_mapping_exact=method == "confirmed_mapping",
            mapping_validation=mapping_check,
            all_rates=fan_out.rates,
            carrier_outcomes=fan_out.outcomes,
            warnings=warnings,
            attempt_count=outcome.attempts,
        )
