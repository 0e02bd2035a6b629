# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

No module redefines these types — all imports come from core.models.
Shipment and run results live here too so the aggregator, the
orchestrator and the report writer agree on one shape.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from rateshop.taxonomy.services import UniversalServiceCategory

ShipmentStatus = Literal["pending", "processing", "completed", "error"]
RunStatus = Literal["processing", "completed", "failed", "paused"]
ComparisonMethod = Literal["confirmed_mapping", "best_overall_fallback"]
ResidentialSource = Literal[
    "csv_data", "manual", "service_name", "address_pattern", "fallback_mapping", "default"
]


# === INPUT ===


class FieldMap(BaseModel):
    """Which raw column feeds which shipment field.

    Built once by the upstream column-mapping step; None means the field
    was not mapped. The defaults read canonical column names directly.
    """

    tracking_id: str | None = "tracking_id"
    origin_zip: str | None = "origin_zip"
    dest_zip: str | None = "dest_zip"
    weight: str | None = "weight"
    weight_unit: str | None = "weight_unit"
    length: str | None = "length"
    width: str | None = "width"
    height: str | None = "height"
    current_rate: str | None = "current_rate"
    service: str | None = "service"
    carrier: str | None = "carrier"
    is_residential: str | None = None
    zone: str | None = "zone"
    shipper_name: str | None = "shipper_name"
    shipper_address: str | None = "shipper_address"
    shipper_city: str | None = "shipper_city"
    shipper_state: str | None = "shipper_state"
    recipient_name: str | None = "recipient_name"
    recipient_address: str | None = "recipient_address"
    recipient_city: str | None = "recipient_city"
    recipient_state: str | None = "recipient_state"


class ShipmentRecord(BaseModel):
    """One validated, unit-normalized shipment.

    weight_lbs is always pounds; origin_zip and dest_zip are always
    exactly 5 digits.
    """

    index: int
    shipment_id: str
    tracking_id: str | None = None

    origin_zip: str
    dest_zip: str
    weight_lbs: float
    length: float
    width: float
    height: float

    current_cost: float = 0.0
    service: str
    service_key: str
    carrier: str | None = None
    is_residential: bool | None = None
    zone: str | None = None

    shipper_name: str | None = None
    shipper_address: str | None = None
    shipper_city: str | None = None
    shipper_state: str | None = None
    recipient_name: str | None = None
    recipient_address: str | None = None
    recipient_city: str | None = None
    recipient_state: str | None = None


class ServiceMapping(BaseModel):
    """User-reviewed link from a raw service name to a universal category."""

    original: str
    category: UniversalServiceCategory
    standardized_name: str | None = None
    confidence: float = 1.0
    is_confirmed: bool = False
    is_residential: bool | None = None
    residential_source: Literal["manual", "service_name"] | None = None


class ResidentialStatus(BaseModel):
    """Resolved residential flag with its provenance."""

    is_residential: bool
    source: ResidentialSource
    confidence: float


# === QUOTING ===


class Address(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    address: str = ""
    city: str | None = None
    state: str | None = None
    zip_code: str
    country: str = "US"


class PackageSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    weight: float
    weight_unit: Literal["LBS"] = "LBS"
    length: float
    width: float
    height: float
    dimension_unit: Literal["IN"] = "IN"


class CarrierQuoteRequest(BaseModel):
    """Carrier-agnostic quote request, built once per shipment and fanned out."""

    model_config = ConfigDict(frozen=True)

    shipment_id: str
    ship_from: Address
    ship_to: Address
    package: PackageSpec
    service_categories: tuple[UniversalServiceCategory, ...]
    is_residential: bool
    residential_source: ResidentialSource
    zone_override: str | None = None

    @property
    def primary_category(self) -> UniversalServiceCategory:
        return self.service_categories[0]


class CarrierRate(BaseModel):
    """One quote returned by a carrier integration."""

    carrier_id: str
    carrier_type: str
    account_name: str = ""
    service_code: str
    service_name: str = ""
    universal_category: UniversalServiceCategory | None = None
    total_charges: float | None = None
    currency: str = "USD"
    transit_days: int | None = None
    is_negotiated: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)


class CarrierQuoteOutcome(BaseModel):
    """Per-carrier outcome of one fan-out."""

    carrier_id: str
    carrier_type: str
    account_name: str = ""
    success: bool
    rate_count: int = 0
    elapsed_ms: float = 0.0
    error: str | None = None


class MappingValidation(BaseModel):
    """Observational check that the chosen rate matches the confirmed category."""

    is_valid: bool
    expected_category: UniversalServiceCategory
    actual_category: UniversalServiceCategory | None = None
    actual_service_code: str
    actual_service_name: str = ""
    message: str


# === RESULTS ===


class AnalysisResult(BaseModel):
    """Per-shipment analysis state and outcome."""

    index: int
    shipment_id: str
    tracking_id: str | None = None
    status: ShipmentStatus = "pending"
    service: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)
    record: ShipmentRecord | None = None

    # --- Completed ---
    current_cost: float | None = None
    best_rate: CarrierRate | None = None
    best_overall_rate: CarrierRate | None = None
    savings: float | None = None
    max_savings: float | None = None
    expected_category: UniversalServiceCategory | None = None
    comparison_method: ComparisonMethod | None = None
    is_mapping_exact: bool | None = None
    mapping_validation: MappingValidation | None = None
    all_rates: list[CarrierRate] = Field(default_factory=list)
    carrier_outcomes: list[CarrierQuoteOutcome] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    # --- Error ---
    error: str | None = None
    error_type: str | None = None
    error_category: str | None = None
    missing_fields: list[str] = Field(default_factory=list)
    attempt_count: int | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in ("completed", "error")


class QuoteOutcome(BaseModel):
    """What the orchestrator hands back for one successfully quoted shipment."""

    current_cost: float
    best_rate: CarrierRate
    best_overall_rate: CarrierRate
    savings: float
    max_savings: float
    expected_category: UniversalServiceCategory
    comparison_method: ComparisonMethod
    is_mapping_exact: bool
    mapping_validation: MappingValidation
    all_rates: list[CarrierRate] = Field(default_factory=list)
    carrier_outcomes: list[CarrierQuoteOutcome] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    attempt_count: int = 1


class Recommendation(BaseModel):
    """A completed shipment in the final report."""

    model_config = ConfigDict(frozen=True)

    index: int
    shipment_id: str
    tracking_id: str | None = None
    origin_zip: str
    dest_zip: str
    weight_lbs: float
    customer_service: str
    current_cost: float
    recommended_cost: float
    recommended_service: str
    recommended_carrier: str
    recommended_category: UniversalServiceCategory | None = None
    savings: float
    savings_percent: float
    max_savings: float
    comparison_method: ComparisonMethod
    is_mapping_exact: bool
    mapping_validation: MappingValidation | None = None
    best_overall_rate: CarrierRate | None = None
    all_rates: list[CarrierRate] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class OrphanedShipment(BaseModel):
    """A shipment that could not be analyzed, with the reason."""

    model_config = ConfigDict(frozen=True)

    index: int
    shipment_id: str
    tracking_id: str | None = None
    service: str | None = None
    origin_zip: str | None = None
    dest_zip: str | None = None
    error: str
    error_type: str
    error_category: str
    missing_fields: list[str] = Field(default_factory=list)
    attempt_count: int | None = None
    raw: dict[str, Any] = Field(default_factory=dict)


class ShipmentAccountability(BaseModel):
    """Whether every input shipment ended up in exactly one report bucket."""

    model_config = ConfigDict(frozen=True)

    is_complete: bool
    missing_count: int
    coverage: float


class AnalysisRun(BaseModel):
    """Finalized, immutable analysis artifact handed to reporting."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    status: RunStatus
    total_shipments: int
    completed_shipments: int
    error_shipments: int
    excluded_shipments: int = 0
    stopped_early: bool = False
    total_current_cost: float
    total_savings: float
    total_max_savings: float
    savings_percentage: float
    fallback_comparisons: int = 0
    recommendations: list[Recommendation] = Field(default_factory=list)
    orphaned_shipments: list[OrphanedShipment] = Field(default_factory=list)
    accountability: ShipmentAccountability
    carrier_ids: list[str] = Field(default_factory=list)
    service_mappings: list[ServiceMapping] = Field(default_factory=list)
    error: str | None = None
    started_at: datetime
    finished_at: datetime

    def failed_rows(self) -> list[dict[str, Any]]:
        """Raw input rows of orphaned shipments, for fix-and-resubmit."""
        return [dict(o.raw) for o in self.orphaned_shipments]
