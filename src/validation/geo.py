# src/validation/geo.py — v1
"""Address helpers: ZIP-to-city lookup and residential/commercial resolution.

determine_residential_status() applies a fixed precedence; the first
source that has an opinion wins:

  1. csv_data          explicit CSV column                0.95
  2. manual            manual override on the mapping     0.9
  3. service_name      detected from the service name     0.8
  4. address_pattern   recipient address heuristics       > 0.6 only
  5. fallback_mapping  any other value on the mapping     0.5
  6. default           commercial                         0.1
"""

from __future__ import annotations

import re
from typing import Any, NamedTuple

from rateshop.core.models import ResidentialStatus, ServiceMapping, ShipmentRecord

_TRUE_VALUES = frozenset({"yes", "y", "true", "1", "residential", "home"})

_RESIDENTIAL_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"apt\s*\d+", r"apartment\s*\d+", r"unit\s*\d+", r"suite\s*\d+",
        r"#\s*\d+", r"\d+[a-z]\s*$",
        r"house", r"home", r"residence",
    )
]

_COMMERCIAL_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\b(llc|inc|corp|ltd|company|co\.|corporation|incorporated)\b",
        r"\b(office|building|plaza|center|centre|tower|floor|fl\s*\d+)\b",
        r"\b(warehouse|distribution|fulfillment|dock|bay\s*\d+)\b",
        r"\b(business|store|shop|retail|mall)\b",
    )
]

_ADDRESS_CONFIDENCE_FLOOR = 0.6


class CityState(NamedTuple):
    city: str
    state: str


def _metro(city: str, state: str, first_zip: int, count: int = 5) -> dict[str, CityState]:
    return {f"{first_zip + i:05d}": CityState(city, state) for i in range(count)}


ZIP_TO_CITY_STATE: dict[str, CityState] = {
    **_metro("New York", "NY", 10001),
    **_metro("Beverly Hills", "CA", 90210),
    **_metro("Chicago", "IL", 60601),
    **_metro("Washington", "DC", 20001),
    **_metro("Atlanta", "GA", 30301),
    **_metro("Houston", "TX", 77001),
    **_metro("Dallas", "TX", 75201),
    **_metro("Miami", "FL", 33101),
    **_metro("Seattle", "WA", 98101),
    **_metro("Boston", "MA", 2101),
}


def city_state_for_zip(zip_code: str | None) -> CityState | None:
    """City/state for a known metro ZIP. Unknown ZIPs return None, never a guess."""
    if not zip_code:
        return None
    return ZIP_TO_CITY_STATE.get(str(zip_code).strip()[:5])


def parse_residential_value(value: Any) -> bool:
    """Interpret a CSV residential flag; anything unrecognized is commercial."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _TRUE_VALUES


def detect_residential_from_address(address: str | None) -> tuple[bool, float]:
    """Guess residential from address text. Returns (is_residential, confidence).

    Commercial markers are checked first and win over residential ones.
    """
    if not address or not isinstance(address, str):
        return False, 0.0
    text = address.strip().lower()
    if any(p.search(text) for p in _COMMERCIAL_PATTERNS):
        return False, 0.8
    if any(p.search(text) for p in _RESIDENTIAL_PATTERNS):
        return True, 0.7
    return False, 0.2


def determine_residential_status(
    record: ShipmentRecord,
    mapping: ServiceMapping | None = None,
) -> ResidentialStatus:
    if record.is_residential is not None:
        return ResidentialStatus(
            is_residential=record.is_residential, source="csv_data", confidence=0.95
        )

    if mapping is not None and mapping.is_residential is not None:
        if mapping.residential_source == "manual":
            return ResidentialStatus(
                is_residential=mapping.is_residential, source="manual", confidence=0.9
            )
        if mapping.residential_source == "service_name":
            return ResidentialStatus(
                is_residential=mapping.is_residential, source="service_name", confidence=0.8
            )

    if record.recipient_address:
        is_res, confidence = detect_residential_from_address(record.recipient_address)
        if confidence > _ADDRESS_CONFIDENCE_FLOOR:
            return ResidentialStatus(
                is_residential=is_res, source="address_pattern", confidence=confidence
            )

    if mapping is not None and mapping.is_residential is not None:
        return ResidentialStatus(
            is_residential=mapping.is_residential, source="fallback_mapping", confidence=0.5
        )

    return ResidentialStatus(is_residential=False, source="default", confidence=0.1)
