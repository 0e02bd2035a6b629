# src/carriers/models.py — v1
"""Carrier account configuration models."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from rateshop.taxonomy.services import UniversalServiceCategory


class RateCardRate(BaseModel):
    """One row of a static rate card: price per pound from a weight break up."""

    service_code: str
    service_name: str | None = None
    zone: str
    weight_break: float = Field(ge=0)
    rate_amount: float = Field(ge=0)

    @field_validator("zone", mode="before")
    @classmethod
    def _zone_as_str(cls, v: object) -> str:
        return str(v).strip()


class CarrierConfig(BaseModel):
    """A selected carrier account.

    kind picks the integration: "api" quotes over HTTP, "rate_card"
    prices locally from `rates`. An empty enabled_services list means
    every category is enabled.
    """

    id: str
    carrier_type: str
    account_name: str = ""
    kind: str = "api"
    is_active: bool = True
    enabled_services: list[UniversalServiceCategory] = Field(default_factory=list)

    # --- api ---
    endpoint: str | None = None
    api_key: str | None = None
    timeout_s: float | None = None

    # --- rate_card ---
    dimensional_divisor: float = Field(default=166.0, gt=0)
    fuel_surcharge_percent: float = Field(default=0.0, ge=0)
    rates: list[RateCardRate] = Field(default_factory=list)

    @field_validator("carrier_type")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.strip().upper()

    def enabled_categories(
        self, requested: tuple[UniversalServiceCategory, ...] | list[UniversalServiceCategory],
    ) -> list[UniversalServiceCategory]:
        """Requested categories this account may quote, in request order."""
        if not self.enabled_services:
            return list(requested)
        enabled = set(self.enabled_services)
        return [c for c in requested if c in enabled]
