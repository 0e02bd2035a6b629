# src/carriers/http_carrier.py — v1
"""HTTP carrier adapter implementing BaseCarrierClient.

POSTs the quote request, plus the carrier-native service codes to
price, to the account's endpoint and maps the JSON reply to
CarrierRate objects. Expected reply:

    {"rates": [{"service_code": "03", "service_name": "UPS Ground",
                "total_charges": 12.34, "currency": "USD",
                "transit_days": 3, "is_negotiated": false}, ...]}

A reply of {"success": false, "error": "..."} is a carrier error.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from rateshop.carriers.base_carrier import BaseCarrierClient
from rateshop.carriers.models import CarrierConfig
from rateshop.core.errors import CarrierAPIError, NetworkError
from rateshop.core.models import CarrierQuoteRequest, CarrierRate
from rateshop.taxonomy.services import to_native

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_S = 30.0
_KNOWN_RATE_KEYS = frozenset({
    "service_code", "service_name", "total_charges", "currency",
    "transit_days", "is_negotiated",
})


class HttpCarrierClient(BaseCarrierClient):
    """Carrier account quoted through a JSON-over-HTTP rating endpoint."""

    def __init__(
        self,
        config: CarrierConfig,
        client: httpx.AsyncClient | None = None,
        timeout_s: float | None = None,
        **kwargs: object,
    ) -> None:
        super().__init__(config)
        if not config.endpoint:
            raise ValueError(f"Carrier {config.id!r} has kind 'api' but no endpoint")
        self._timeout_s = config.timeout_s or timeout_s or _DEFAULT_TIMEOUT_S
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout_s)
        return self._client

    def service_codes_for(self, request: CarrierQuoteRequest) -> list[str]:
        """Native codes for the requested categories; category values when unmapped."""
        codes: list[str] = []
        for category in request.service_categories:
            code = to_native(self.carrier_type, category) or category.value
            if code not in codes:
                codes.append(code)
        return codes

    def build_payload(self, request: CarrierQuoteRequest) -> dict[str, Any]:
        return {
            "carrier_type": self.carrier_type,
            "account": self.account_name,
            "service_codes": self.service_codes_for(request),
            "shipment": request.model_dump(mode="json"),
        }

    async def quote(self, request: CarrierQuoteRequest) -> list[CarrierRate]:
        headers = {"Accept": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        try:
            response = await self._get_client().post(
                self.config.endpoint,  # type: ignore[arg-type]
                json=self.build_payload(request),
                headers=headers,
            )
        except httpx.TimeoutException as e:
            raise NetworkError(
                f"timeout contacting {self.carrier_id}: {e}", carrier_id=self.carrier_id,
            ) from e
        except httpx.TransportError as e:
            raise NetworkError(
                f"network error contacting {self.carrier_id}: {e}", carrier_id=self.carrier_id,
            ) from e

        if response.status_code >= 400:
            raise CarrierAPIError(
                f"{self.carrier_id} returned HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
                carrier_id=self.carrier_id,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise CarrierAPIError(
                f"{self.carrier_id} returned a non-JSON body", carrier_id=self.carrier_id,
            ) from e

        if not isinstance(body, dict):
            raise CarrierAPIError(
                f"{self.carrier_id} returned an unexpected payload", carrier_id=self.carrier_id,
            )
        if body.get("success") is False:
            raise CarrierAPIError(
                f"{self.carrier_id} error: {body.get('error') or 'unknown error'}",
                carrier_id=self.carrier_id,
            )

        return [self._to_rate(item) for item in body.get("rates") or [] if isinstance(item, dict)]

    def _to_rate(self, item: dict[str, Any]) -> CarrierRate:
        code = str(item.get("service_code") or "").strip()
        return CarrierRate(
            carrier_id=self.carrier_id,
            carrier_type=self.carrier_type,
            account_name=self.account_name,
            service_code=code,
            service_name=str(item.get("service_name") or code),
            total_charges=_as_price(item.get("total_charges")),
            currency=str(item.get("currency") or "USD"),
            transit_days=_as_int(item.get("transit_days")),
            is_negotiated=bool(item.get("is_negotiated", False)),
            metadata={k: v for k, v in item.items() if k not in _KNOWN_RATE_KEYS},
        )

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None


def _as_price(value: Any) -> float | None:
    """Numeric price or None; a missing price is rejected later by rate selection."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(str(value).replace("$", "").replace(",", "").strip())
    except ValueError:
        return None


def _as_int(value: Any) -> int | None:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None
