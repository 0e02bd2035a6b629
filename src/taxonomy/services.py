# src/taxonomy/services.py — v1
"""Service taxonomy registry: carrier-native service codes <-> universal categories.

The tables are fixed data, never inferred. A (carrier, code) pair that is
not listed resolves to None; callers treat that as a data-quality warning.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class UniversalServiceCategory(str, Enum):
    """Carrier-agnostic shipping speed/class."""

    OVERNIGHT = "OVERNIGHT"
    OVERNIGHT_SAVER = "OVERNIGHT_SAVER"
    OVERNIGHT_EARLY = "OVERNIGHT_EARLY"
    TWO_DAY = "TWO_DAY"
    TWO_DAY_MORNING = "TWO_DAY_MORNING"
    THREE_DAY = "THREE_DAY"
    GROUND = "GROUND"
    INTERNATIONAL_EXPRESS = "INTERNATIONAL_EXPRESS"
    INTERNATIONAL_EXPEDITED = "INTERNATIONAL_EXPEDITED"
    INTERNATIONAL_STANDARD = "INTERNATIONAL_STANDARD"
    INTERNATIONAL_SAVER = "INTERNATIONAL_SAVER"


class CarrierType(str, Enum):
    """Carriers with a native code table."""

    UPS = "UPS"
    FEDEX = "FEDEX"
    DHL = "DHL"
    AMAZON = "AMAZON"


class UniversalServiceInfo(BaseModel):
    """Display metadata for a universal category."""

    category: UniversalServiceCategory
    display_name: str
    description: str
    is_international: bool
    typical_transit_days: str


class CarrierServiceEntry(BaseModel):
    """One row of a carrier code table."""

    category: UniversalServiceCategory
    code: str
    service_name: str
    is_available: bool = True


_U = UniversalServiceCategory

UNIVERSAL_SERVICES: dict[UniversalServiceCategory, UniversalServiceInfo] = {
    info.category: info
    for info in [
        UniversalServiceInfo(category=_U.OVERNIGHT, display_name="Overnight", description="Next business day delivery by end of day", is_international=False, typical_transit_days="1"),
        UniversalServiceInfo(category=_U.OVERNIGHT_SAVER, display_name="Overnight Saver", description="Next business day delivery, typically by 3:00 PM", is_international=False, typical_transit_days="1"),
        UniversalServiceInfo(category=_U.OVERNIGHT_EARLY, display_name="Overnight Early", description="Next business day delivery by 8:00-10:30 AM", is_international=False, typical_transit_days="1"),
        UniversalServiceInfo(category=_U.TWO_DAY, display_name="2-Day", description="Delivery in 2 business days by end of day", is_international=False, typical_transit_days="2"),
        UniversalServiceInfo(category=_U.TWO_DAY_MORNING, display_name="2-Day Morning", description="Delivery in 2 business days by 12:00 PM", is_international=False, typical_transit_days="2"),
        UniversalServiceInfo(category=_U.THREE_DAY, display_name="3-Day Select", description="Delivery in 3 business days", is_international=False, typical_transit_days="3"),
        UniversalServiceInfo(category=_U.GROUND, display_name="Ground", description="Standard ground delivery, 1-5 business days", is_international=False, typical_transit_days="1-5"),
        UniversalServiceInfo(category=_U.INTERNATIONAL_EXPRESS, display_name="International Express", description="Express international delivery", is_international=True, typical_transit_days="1-3"),
        UniversalServiceInfo(category=_U.INTERNATIONAL_EXPEDITED, display_name="International Expedited", description="Expedited international delivery", is_international=True, typical_transit_days="2-5"),
        UniversalServiceInfo(category=_U.INTERNATIONAL_STANDARD, display_name="International Standard", description="Standard international delivery", is_international=True, typical_transit_days="5-10"),
        UniversalServiceInfo(category=_U.INTERNATIONAL_SAVER, display_name="International Saver", description="Economy international delivery", is_international=True, typical_transit_days="1-3"),
    ]
}

# Requested alongside the mapped category so the cheapest alternative is visible.
DEFAULT_SERVICE_CATEGORIES: list[UniversalServiceCategory] = [
    _U.OVERNIGHT,
    _U.TWO_DAY,
    _U.GROUND,
    _U.THREE_DAY,
    _U.OVERNIGHT_SAVER,
    _U.TWO_DAY_MORNING,
]

CARRIER_SERVICE_TABLES: dict[CarrierType, list[CarrierServiceEntry]] = {
    CarrierType.UPS: [
        CarrierServiceEntry(category=_U.OVERNIGHT, code="01", service_name="UPS Next Day Air"),
        CarrierServiceEntry(category=_U.OVERNIGHT_SAVER, code="13", service_name="UPS Next Day Air Saver"),
        CarrierServiceEntry(category=_U.OVERNIGHT_EARLY, code="14", service_name="UPS Next Day Air Early"),
        CarrierServiceEntry(category=_U.TWO_DAY, code="02", service_name="UPS 2nd Day Air"),
        CarrierServiceEntry(category=_U.TWO_DAY_MORNING, code="59", service_name="UPS 2nd Day Air A.M."),
        CarrierServiceEntry(category=_U.THREE_DAY, code="12", service_name="UPS 3 Day Select"),
        CarrierServiceEntry(category=_U.GROUND, code="03", service_name="UPS Ground"),
        CarrierServiceEntry(category=_U.INTERNATIONAL_EXPRESS, code="07", service_name="UPS Worldwide Express"),
        CarrierServiceEntry(category=_U.INTERNATIONAL_EXPEDITED, code="08", service_name="UPS Worldwide Expedited"),
        CarrierServiceEntry(category=_U.INTERNATIONAL_STANDARD, code="11", service_name="UPS Standard"),
        CarrierServiceEntry(category=_U.INTERNATIONAL_SAVER, code="65", service_name="UPS Worldwide Saver"),
    ],
    CarrierType.FEDEX: [
        CarrierServiceEntry(category=_U.OVERNIGHT, code="PRIORITY_OVERNIGHT", service_name="FedEx Priority Overnight"),
        CarrierServiceEntry(category=_U.OVERNIGHT_SAVER, code="STANDARD_OVERNIGHT", service_name="FedEx Standard Overnight"),
        CarrierServiceEntry(category=_U.OVERNIGHT_EARLY, code="FIRST_OVERNIGHT", service_name="FedEx First Overnight"),
        CarrierServiceEntry(category=_U.TWO_DAY, code="FEDEX_2_DAY", service_name="FedEx 2Day"),
        CarrierServiceEntry(category=_U.TWO_DAY_MORNING, code="FEDEX_2_DAY_AM", service_name="FedEx 2Day A.M."),
        CarrierServiceEntry(category=_U.THREE_DAY, code="FEDEX_EXPRESS_SAVER", service_name="FedEx Express Saver"),
        CarrierServiceEntry(category=_U.GROUND, code="FEDEX_GROUND", service_name="FedEx Ground"),
        CarrierServiceEntry(category=_U.INTERNATIONAL_EXPRESS, code="INTERNATIONAL_PRIORITY", service_name="FedEx International Priority"),
        CarrierServiceEntry(category=_U.INTERNATIONAL_EXPEDITED, code="INTERNATIONAL_ECONOMY", service_name="FedEx International Economy"),
    ],
    CarrierType.DHL: [
        CarrierServiceEntry(category=_U.OVERNIGHT, code="EXPRESS_10_30", service_name="DHL Express 10:30"),
        CarrierServiceEntry(category=_U.OVERNIGHT_EARLY, code="EXPRESS_9_00", service_name="DHL Express 9:00"),
        CarrierServiceEntry(category=_U.TWO_DAY, code="EXPRESS_12_00", service_name="DHL Express 12:00"),
        CarrierServiceEntry(category=_U.INTERNATIONAL_EXPRESS, code="EXPRESS_WORLDWIDE", service_name="DHL Express Worldwide"),
        CarrierServiceEntry(category=_U.INTERNATIONAL_EXPEDITED, code="EXPRESS_EASY", service_name="DHL Express Easy"),
    ],
    CarrierType.AMAZON: [
        CarrierServiceEntry(category=_U.GROUND, code="GROUND", service_name="Amazon Ground"),
    ],
}


def _coerce_carrier(carrier: CarrierType | str) -> CarrierType | None:
    if isinstance(carrier, CarrierType):
        return carrier
    try:
        return CarrierType(str(carrier).strip().upper())
    except ValueError:
        return None


def _coerce_category(
    category: UniversalServiceCategory | str,
) -> UniversalServiceCategory | None:
    if isinstance(category, UniversalServiceCategory):
        return category
    try:
        return UniversalServiceCategory(str(category).strip().upper())
    except ValueError:
        return None


def to_universal(
    carrier: CarrierType | str, native_code: str,
) -> UniversalServiceCategory | None:
    """Resolve a carrier-native service code to its universal category.

    A code that is itself a universal category value (static rate cards
    are keyed that way) resolves to that category for any carrier.
    Returns None for an unknown carrier or an unlisted code.
    """
    code = str(native_code).strip()
    carrier_type = _coerce_carrier(carrier)
    if carrier_type is not None:
        for entry in CARRIER_SERVICE_TABLES[carrier_type]:
            if entry.code == code:
                return entry.category
    return _coerce_category(code)


def to_native(
    carrier: CarrierType | str, category: UniversalServiceCategory | str,
) -> str | None:
    """Inverse of to_universal: the carrier's available code for a category."""
    entry = _find_entry(carrier, category)
    return entry.code if entry else None


def native_service_name(
    carrier: CarrierType | str, category: UniversalServiceCategory | str,
) -> str | None:
    """Carrier marketing name for a category, e.g. 'UPS Ground'."""
    entry = _find_entry(carrier, category)
    return entry.service_name if entry else None


def available_service_codes(carrier: CarrierType | str) -> list[str]:
    """All available native codes for a carrier, in table order."""
    carrier_type = _coerce_carrier(carrier)
    if carrier_type is None:
        return []
    return [e.code for e in CARRIER_SERVICE_TABLES[carrier_type] if e.is_available]


def service_codes_to_request(
    carrier: CarrierType | str, primary: UniversalServiceCategory | str,
) -> list[str]:
    """Native codes to quote: the primary category's code first, then the rest."""
    all_codes = available_service_codes(carrier)
    primary_code = to_native(carrier, primary)
    if primary_code is None:
        return all_codes
    return [primary_code] + [c for c in all_codes if c != primary_code]


def get_categories(international: bool | None = None) -> list[UniversalServiceCategory]:
    """Universal categories, optionally filtered by domestic/international."""
    if international is None:
        return list(UniversalServiceCategory)
    return [c for c, info in UNIVERSAL_SERVICES.items() if info.is_international == international]


def _find_entry(
    carrier: CarrierType | str, category: UniversalServiceCategory | str,
) -> CarrierServiceEntry | None:
    carrier_type = _coerce_carrier(carrier)
    cat = _coerce_category(category)
    if carrier_type is None or cat is None:
        return None
    for entry in CARRIER_SERVICE_TABLES[carrier_type]:
        if entry.category == cat and entry.is_available:
            return entry
    return None
