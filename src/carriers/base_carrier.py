# src/carriers/base_carrier.py — v1
"""Abstract carrier integration interface.

The engine depends only on quote(request) -> list[CarrierRate]. Each
integration raises CarrierAPIError / NetworkError on failure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from rateshop.carriers.models import CarrierConfig
from rateshop.core.models import CarrierQuoteRequest, CarrierRate


class BaseCarrierClient(ABC):
    """Unified interface for all carrier integrations."""

    def __init__(self, config: CarrierConfig) -> None:
        self._config = config

    @property
    def config(self) -> CarrierConfig:
        return self._config

    @property
    def carrier_id(self) -> str:
        return self._config.id

    @property
    def carrier_type(self) -> str:
        return self._config.carrier_type

    @property
    def account_name(self) -> str:
        return self._config.account_name or self._config.id

    @abstractmethod
    async def quote(self, request: CarrierQuoteRequest) -> list[CarrierRate]:
        """Quote every requested service category. Empty list = no rates."""

    async def aclose(self) -> None:
        """Release transport resources. No-op by default."""
