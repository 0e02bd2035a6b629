# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides sample shipment rows, confirmed mappings, scripted carrier
stubs and a recording sleep. No network — carriers answer from a script.
"""

from __future__ import annotations

from typing import Any, Callable

import pytest

from rateshop.carriers.base_carrier import BaseCarrierClient
from rateshop.carriers.models import CarrierConfig
from rateshop.config.settings import Settings
from rateshop.core.models import (
    CarrierQuoteRequest,
    CarrierRate,
    ServiceMapping,
    ShipmentRecord,
)
from rateshop.taxonomy.services import UniversalServiceCategory


# === HELPERS ===


class StubCarrier(BaseCarrierClient):
    """Carrier answering from a script.

    Each quote() consumes one step: a list of rates is returned, an
    exception is raised, a callable is called with the request. The last
    step repeats once the script runs out.
    """

    def __init__(self, config: CarrierConfig, script: list[Any] | None = None) -> None:
        super().__init__(config)
        self._script = list(script or [])
        self.requests: list[CarrierQuoteRequest] = []
        self.closed = False

    async def quote(self, request: CarrierQuoteRequest) -> list[CarrierRate]:
        self.requests.append(request)
        if not self._script:
            return []
        step = self._script.pop(0) if len(self._script) > 1 else self._script[0]
        if isinstance(step, Exception):
            raise step
        if callable(step):
            return step(request)
        return list(step)

    async def aclose(self) -> None:
        self.closed = True


class RecordingSleep:
    """Async sleep replacement that records delays instead of waiting."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


# === FIXTURES: Sample data ===


@pytest.fixture
def raw_row() -> dict[str, Any]:
    """One valid raw shipment row using canonical column names."""
    return {
        "tracking_id": "1Z0001",
        "origin_zip": "10001",
        "dest_zip": "90210",
        "weight": "5",
        "weight_unit": "lbs",
        "length": "12",
        "width": "10",
        "height": "8",
        "current_rate": "$25.00",
        "service": "UPS Ground",
        "carrier": "UPS",
    }


@pytest.fixture
def make_row(raw_row: dict[str, Any]) -> Callable[..., dict[str, Any]]:
    """Copy of raw_row with overrides; a None value removes the column."""

    def _make(**overrides: Any) -> dict[str, Any]:
        row = dict(raw_row)
        for key, value in overrides.items():
            if value is None:
                row.pop(key, None)
            else:
                row[key] = value
        return row

    return _make


@pytest.fixture
def sample_record() -> ShipmentRecord:
    return ShipmentRecord(
        index=0,
        shipment_id="1Z0001",
        tracking_id="1Z0001",
        origin_zip="10001",
        dest_zip="90210",
        weight_lbs=5.0,
        length=12.0,
        width=10.0,
        height=8.0,
        current_cost=25.0,
        service="UPS Ground",
        service_key="ups ground",
        carrier="UPS",
    )


@pytest.fixture
def ground_mapping() -> ServiceMapping:
    return ServiceMapping(
        original="UPS Ground",
        category=UniversalServiceCategory.GROUND,
        standardized_name="UPS Ground",
        is_confirmed=True,
    )


@pytest.fixture
def confirmed_mappings(ground_mapping: ServiceMapping) -> list[ServiceMapping]:
    return [
        ground_mapping,
        ServiceMapping(
            original="Next Day Air",
            category=UniversalServiceCategory.OVERNIGHT,
            is_confirmed=True,
        ),
    ]


@pytest.fixture
def make_rate() -> Callable[..., CarrierRate]:
    """Factory for carrier rates; category is resolved by the quoter unless given."""

    def _make(
        service_code: str = "03",
        total_charges: float | None = 20.0,
        carrier_id: str = "ups-main",
        carrier_type: str = "UPS",
        **extra: Any,
    ) -> CarrierRate:
        return CarrierRate(
            carrier_id=carrier_id,
            carrier_type=carrier_type,
            service_code=service_code,
            service_name=extra.pop("service_name", service_code),
            total_charges=total_charges,
            **extra,
        )

    return _make


@pytest.fixture
def make_carrier() -> Callable[..., StubCarrier]:
    """Factory for scripted carrier stubs."""

    def _make(
        script: list[Any] | None = None,
        carrier_id: str = "ups-main",
        carrier_type: str = "UPS",
        enabled_services: list[UniversalServiceCategory] | None = None,
    ) -> StubCarrier:
        config = CarrierConfig(
            id=carrier_id,
            carrier_type=carrier_type,
            account_name=f"{carrier_id} account",
            enabled_services=enabled_services or [],
        )
        return StubCarrier(config, script)

    return _make


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


# === FIXTURES: Configuration ===


@pytest.fixture
def default_settings() -> Settings:
    """Settings with defaults only (no .env)."""
    return Settings(_env_file=None)  # type: ignore[call-arg]
