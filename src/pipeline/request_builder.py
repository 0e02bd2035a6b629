# src/pipeline/request_builder.py — v1
"""Build the carrier-agnostic quote request for one validated shipment."""

from __future__ import annotations

from rateshop.core.models import (
    Address,
    CarrierQuoteRequest,
    PackageSpec,
    ServiceMapping,
    ShipmentRecord,
)
from rateshop.taxonomy.services import DEFAULT_SERVICE_CATEGORIES, UniversalServiceCategory
from rateshop.validation.geo import city_state_for_zip, determine_residential_status


def requested_categories(
    primary: UniversalServiceCategory,
    include_alternates: bool = True,
) -> tuple[UniversalServiceCategory, ...]:
    """Mapped category first, then the default alternates (deduplicated)."""
    categories = [primary]
    if include_alternates:
        categories.extend(c for c in DEFAULT_SERVICE_CATEGORIES if c != primary)
    return tuple(categories)


def _address(
    name: str | None,
    street: str | None,
    city: str | None,
    state: str | None,
    zip_code: str,
    country: str,
) -> Address:
    if not city or not state:
        known = city_state_for_zip(zip_code)
        if known is not None:
            city = city or known.city
            state = state or known.state
    return Address(
        name=name or "",
        address=street or "",
        city=city,
        state=state,
        zip_code=zip_code,
        country=country,
    )


def build_quote_request(
    record: ShipmentRecord,
    mapping: ServiceMapping,
    include_alternates: bool = True,
    country: str = "US",
) -> CarrierQuoteRequest:
    residential = determine_residential_status(record, mapping)
    return CarrierQuoteRequest(
        shipment_id=record.shipment_id,
        ship_from=_address(
            record.shipper_name, record.shipper_address,
            record.shipper_city, record.shipper_state,
            record.origin_zip, country,
        ),
        ship_to=_address(
            record.recipient_name, record.recipient_address,
            record.recipient_city, record.recipient_state,
            record.dest_zip, country,
        ),
        package=PackageSpec(
            weight=record.weight_lbs,
            length=record.length,
            width=record.width,
            height=record.height,
        ),
        service_categories=requested_categories(mapping.category, include_alternates),
        is_residential=residential.is_residential,
        residential_source=residential.source,
        zone_override=record.zone,
    )
