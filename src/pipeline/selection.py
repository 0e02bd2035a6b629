# src/pipeline/selection.py — v1
"""Rate selection: best matching rate, best overall rate, mapping check."""

from __future__ import annotations

from rateshop.core.errors import InvalidRateDataError, NoRatesReturnedError
from rateshop.core.models import CarrierRate, ComparisonMethod, MappingValidation
from rateshop.taxonomy.services import UniversalServiceCategory


def ensure_priced(rates: list[CarrierRate]) -> list[CarrierRate]:
    """Every rate must carry a total charge.

    Raises:
        NoRatesReturnedError: empty list.
        InvalidRateDataError: a rate has no total charge.
    """
    if not rates:
        raise NoRatesReturnedError()
    for rate in rates:
        if rate.total_charges is None:
            raise InvalidRateDataError(
                f"Invalid rate data: {rate.carrier_id} service {rate.service_code!r} "
                "returned no total charges"
            )
    return rates


def _price(rate: CarrierRate) -> float:
    return rate.total_charges  # type: ignore[return-value]


def select_best_overall_rate(rates: list[CarrierRate]) -> CarrierRate:
    """Cheapest rate regardless of category. Ties keep the first returned."""
    return min(ensure_priced(rates), key=_price)


def select_best_rate(
    rates: list[CarrierRate],
    category: UniversalServiceCategory,
) -> tuple[CarrierRate, ComparisonMethod]:
    """Cheapest rate in the confirmed category.

    Falls back to the cheapest rate overall when no rate matches, and
    says so in the returned comparison method.
    """
    priced = ensure_priced(rates)
    matching = [r for r in priced if r.universal_category == category]
    if matching:
        return min(matching, key=_price), "confirmed_mapping"
    return min(priced, key=_price), "best_overall_fallback"


def validate_mapping(
    rate: CarrierRate,
    expected: UniversalServiceCategory,
) -> MappingValidation:
    """Observational check; never changes which rate was selected."""
    actual = rate.universal_category
    is_valid = actual == expected
    if is_valid:
        message = f"Service {rate.service_code} matches {expected.value}"
    elif actual is None:
        message = (
            f"Service {rate.service_code} from {rate.carrier_id} has no known category; "
            f"expected {expected.value}"
        )
    else:
        message = (
            f"Service {rate.service_code} resolves to {actual.value}, "
            f"expected {expected.value}"
        )
    return MappingValidation(
        is_valid=is_valid,
        expected_category=expected,
        actual_category=actual,
        actual_service_code=rate.service_code,
        actual_service_name=rate.service_name,
        message=message,
    )
