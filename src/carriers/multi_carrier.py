# src/carriers/multi_carrier.py — v1
"""Fan one quote request out to every selected carrier account.

Per carrier: narrow the requested categories to the account's enabled
services (skip the account if none remain), time the call, feed the
telemetry window, stamp account info on each rate and resolve its
universal category. Carriers are called concurrently; a failure of one
carrier does not hide the rates of another.

When no rate comes back at all, the call raises so the retry handler
can decide: a retryable carrier error is re-raised first (another
attempt may succeed), then any other carrier error, else
NoRatesReturnedError.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from rateshop.carriers.base_carrier import BaseCarrierClient
from rateshop.concurrency.retry import is_retryable
from rateshop.core.errors import NoRatesReturnedError
from rateshop.core.models import CarrierQuoteOutcome, CarrierQuoteRequest, CarrierRate
from rateshop.logging.context import set_carrier_context
from rateshop.taxonomy.services import to_universal
from rateshop.telemetry.window import TelemetryWindow

logger = logging.getLogger(__name__)


@dataclass
class FanOutResult:
    rates: list[CarrierRate] = field(default_factory=list)
    outcomes: list[CarrierQuoteOutcome] = field(default_factory=list)


@dataclass
class _CarrierCall:
    client: BaseCarrierClient
    rates: list[CarrierRate] = field(default_factory=list)
    error: Exception | None = None
    elapsed_ms: float = 0.0


class MultiCarrierQuoter:
    """Quotes a request across carrier clients and merges the rates."""

    def __init__(
        self,
        clients: list[BaseCarrierClient],
        telemetry: TelemetryWindow | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clients = list(clients)
        self._telemetry = telemetry
        self._clock = clock

    @property
    def clients(self) -> list[BaseCarrierClient]:
        return list(self._clients)

    async def quote(self, request: CarrierQuoteRequest) -> FanOutResult:
        """Quote all eligible carriers.

        Raises:
            NoRatesReturnedError: no carrier produced a rate and none failed,
                or no carrier offers any requested category.
            CarrierAPIError / NetworkError / other: no rate and a carrier failed.
        """
        plans: list[tuple[BaseCarrierClient, CarrierQuoteRequest]] = []
        for client in self._clients:
            categories = client.config.enabled_categories(request.service_categories)
            if not categories:
                logger.debug("Carrier %s offers none of the requested services", client.carrier_id)
                continue
            plans.append(
                (client, request.model_copy(update={"service_categories": tuple(categories)}))
            )

        if not plans:
            raise NoRatesReturnedError(
                "No selected carrier account offers the requested services"
            )

        calls = await asyncio.gather(*(self._call(client, req) for client, req in plans))

        result = FanOutResult()
        errors: list[Exception] = []
        for call in calls:
            if call.error is not None:
                errors.append(call.error)
            result.rates.extend(call.rates)
            result.outcomes.append(
                CarrierQuoteOutcome(
                    carrier_id=call.client.carrier_id,
                    carrier_type=call.client.carrier_type,
                    account_name=call.client.account_name,
                    success=call.error is None,
                    rate_count=len(call.rates),
                    elapsed_ms=call.elapsed_ms,
                    error=str(call.error) if call.error is not None else None,
                )
            )

        if not result.rates:
            retryable = [e for e in errors if is_retryable(e)]
            if retryable:
                raise retryable[0]
            if errors:
                raise errors[0]
            raise NoRatesReturnedError()

        if errors:
            logger.warning(
                "%d of %d carrier(s) failed for %s; using rates from the rest",
                len(errors), len(calls), request.shipment_id,
            )
        return result

    async def _call(self, client: BaseCarrierClient, request: CarrierQuoteRequest) -> _CarrierCall:
        call = _CarrierCall(client=client)
        set_carrier_context(client.carrier_id)
        start = self._clock()
        try:
            raw_rates = await client.quote(request)
        except Exception as e:
            call.error = e
            logger.debug("Carrier %s failed: %s", client.carrier_id, e)
        else:
            call.rates = [self._tag(client, rate) for rate in raw_rates]
        finally:
            call.elapsed_ms = (self._clock() - start) * 1000
            set_carrier_context(None)

        if self._telemetry is not None:
            self._telemetry.record_outcome(
                client.carrier_id,
                call.elapsed_ms,
                call.error is None,
                str(call.error) if call.error is not None else None,
            )
        return call

    def _tag(self, client: BaseCarrierClient, rate: CarrierRate) -> CarrierRate:
        category = rate.universal_category or to_universal(client.carrier_type, rate.service_code)
        if category is None:
            logger.warning(
                "Unknown service code %r from carrier %s (%s); rate kept without category",
                rate.service_code, client.carrier_id, client.carrier_type,
            )
        return rate.model_copy(update={
            "carrier_id": client.carrier_id,
            "carrier_type": client.carrier_type,
            "account_name": rate.account_name or client.account_name,
            "universal_category": category,
        })
