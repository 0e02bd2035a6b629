# src/carriers/rate_card.py — v1
"""Static rate-card carrier: prices shipments locally from uploaded rates.

Pricing per requested service:
  zone      CSV zone override, else distance between 3-digit ZIP prefixes
  billable  max(actual lbs, L*W*H / dimensional divisor)
  rate      row with the largest weight_break <= billable (first row if below all)
  total     rate_amount * ceil(billable), plus fuel surcharge percent
"""

from __future__ import annotations

import logging
import math

from rateshop.carriers.base_carrier import BaseCarrierClient
from rateshop.carriers.models import CarrierConfig, RateCardRate
from rateshop.core.models import CarrierQuoteRequest, CarrierRate, PackageSpec
from rateshop.taxonomy.services import native_service_name, to_universal

logger = logging.getLogger(__name__)

# (upper bound of prefix distance, zone)
_ZONE_BANDS: tuple[tuple[int, str], ...] = (
    (50, "2"),
    (150, "3"),
    (300, "4"),
    (600, "5"),
    (1000, "6"),
    (1400, "7"),
)
_FARTHEST_ZONE = "8"


def calculate_zone(from_zip: str, to_zip: str) -> str:
    """Approximate zone from the distance between 3-digit ZIP prefixes."""
    distance = abs(int(from_zip[:3]) - int(to_zip[:3]))
    for bound, zone in _ZONE_BANDS:
        if distance < bound:
            return zone
    return _FARTHEST_ZONE


def billable_weight(package: PackageSpec, dimensional_divisor: float) -> float:
    dim_weight = package.length * package.width * package.height / dimensional_divisor
    return max(package.weight, dim_weight)


def pick_weight_break(rows: list[RateCardRate], weight: float) -> RateCardRate:
    """Largest break not above `weight`; the lowest break if weight is below all."""
    ordered = sorted(rows, key=lambda r: r.weight_break)
    chosen = ordered[0]
    for row in ordered:
        if weight >= row.weight_break:
            chosen = row
        else:
            break
    return chosen


class RateCardCarrier(BaseCarrierClient):
    """Carrier account backed by an uploaded rate card instead of an API."""

    def __init__(self, config: CarrierConfig, **kwargs: object) -> None:
        super().__init__(config)
        if not config.rates:
            logger.warning("Rate card %s has no rates loaded", config.id)

    async def quote(self, request: CarrierQuoteRequest) -> list[CarrierRate]:
        cfg = self.config
        zone = (request.zone_override or "").strip() or calculate_zone(
            request.ship_from.zip_code, request.ship_to.zip_code,
        )
        weight = billable_weight(request.package, cfg.dimensional_divisor)

        rates: list[CarrierRate] = []
        for category in request.service_categories:
            rows = [
                r for r in cfg.rates
                if r.zone == zone and to_universal(cfg.carrier_type, r.service_code) == category
            ]
            if not rows:
                logger.debug("No rate card rows for %s in zone %s", category.value, zone)
                continue

            row = pick_weight_break(rows, weight)
            base = row.rate_amount * math.ceil(weight)
            fuel = base * cfg.fuel_surcharge_percent / 100
            rates.append(
                CarrierRate(
                    carrier_id=self.carrier_id,
                    carrier_type=self.carrier_type,
                    account_name=self.account_name,
                    service_code=row.service_code,
                    service_name=(
                        row.service_name
                        or native_service_name(cfg.carrier_type, category)
                        or row.service_code
                    ),
                    universal_category=category,
                    total_charges=round(base + fuel, 2),
                    metadata={
                        "is_rate_card": True,
                        "zone": zone,
                        "billable_weight": weight,
                        "rate_per_lb": row.rate_amount,
                        "base_charges": round(base, 2),
                        "fuel_surcharge": round(fuel, 2),
                        "fuel_surcharge_percent": cfg.fuel_surcharge_percent,
                        "dimensional_divisor": cfg.dimensional_divisor,
                    },
                )
            )
        return rates
