# src/validation/normalizer.py — v1
"""Shipment normalizer/validator: one raw input row -> ShipmentRecord.

Steps, in order:
  1. read every mapped column through the FieldMap and trim it
  2. collect every missing or unusable required field into ONE list
  3. clean ZIPs (digits only, >= 4 digits, first 5 kept, 4 left-padded)
  4. convert ounces to pounds, reject non-positive numbers
  5. derive the normalized service key used for mapping lookup

A row either produces a fully valid record or raises; nothing is
partially accepted.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from pydantic import BaseModel, Field

from rateshop.core.errors import InvalidZipError, MissingFieldsError, ShipmentValidationError
from rateshop.core.models import FieldMap, ShipmentRecord
from rateshop.validation.geo import parse_residential_value

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"\D")
_WHITESPACE = re.compile(r"\s+")
_OUNCE_MARKERS = ("oz", "ounce")

_DIMENSIONS = (("length", "Length"), ("width", "Width"), ("height", "Height"))


class ValidationFailure(BaseModel):
    """A row rejected by the normalizer, keyed by its input position."""

    index: int
    shipment_id: str
    tracking_id: str | None = None
    service: str | None = None
    error: str
    error_type: str
    error_category: str
    missing_fields: list[str] = Field(default_factory=list)
    raw: dict[str, Any] = Field(default_factory=dict)


class ValidationSummary(BaseModel):
    valid: list[ShipmentRecord] = Field(default_factory=list)
    failures: list[ValidationFailure] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.valid) + len(self.failures)

    @property
    def valid_count(self) -> int:
        return len(self.valid)

    @property
    def invalid_count(self) -> int:
        return len(self.failures)


# --- Field-level helpers ---


def normalize_service_name(name: str | None) -> str:
    """Lowercase, trim and collapse internal whitespace. Mapping lookups use this key."""
    if not name:
        return ""
    return _WHITESPACE.sub(" ", str(name).strip().lower())


def clean_zip(value: Any, label: str) -> str:
    """Strip non-digits, require >= 4 digits, keep the first 5.

    Extra digits (ZIP+4 in any punctuation) are silently dropped. A
    4-digit result is a ZIP whose leading zero was lost upstream and is
    left-padded back to 5.
    """
    raw = "" if value is None else str(value).strip()
    digits = _NON_DIGITS.sub("", raw)
    if len(digits) < 4:
        raise InvalidZipError(label, raw)
    return digits[:5].zfill(5)


def convert_weight(value: Any, unit: str | None = None) -> float | None:
    """Parse a weight and return pounds, or None if it is not a positive number."""
    number = _parse_number(value)
    if number is None:
        return None
    if unit and any(marker in unit.strip().lower() for marker in _OUNCE_MARKERS):
        number = number / 16
    return number if number > 0 else None


def parse_cost(value: Any) -> float | None:
    """Parse '$1,234.56' style money. Empty means 0.0; garbage or negative means None."""
    if value is None:
        return 0.0
    text = str(value).replace("$", "").replace(",", "").strip()
    if not text:
        return 0.0
    number = _parse_number(text)
    if number is None or number < 0:
        return None
    return number


def _parse_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number


def read_column(raw: dict[str, Any], column: str | None) -> str | None:
    """Trimmed string value of a mapped column; None when unmapped or blank."""
    if not column:
        return None
    value = raw.get(column)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def shipment_id_for(raw: dict[str, Any], field_map: FieldMap, index: int) -> str:
    return read_column(raw, field_map.tracking_id) or f"shipment-{index + 1}"


# --- Row normalization ---


def normalize_shipment(
    raw: dict[str, Any],
    field_map: FieldMap | None = None,
    index: int = 0,
) -> ShipmentRecord:
    """Validate and normalize one raw row.

    Raises:
        MissingFieldsError: one aggregated error for every absent or unusable field.
        InvalidZipError: a ZIP with fewer than 4 digits.
    """
    fm = field_map or FieldMap()
    missing: list[str] = []

    origin = read_column(raw, fm.origin_zip)
    dest = read_column(raw, fm.dest_zip)
    service = read_column(raw, fm.service)
    if origin is None:
        missing.append("Origin ZIP")
    if dest is None:
        missing.append("Destination ZIP")
    if service is None:
        missing.append("Service Type")

    weight_raw = read_column(raw, fm.weight)
    weight_lbs: float | None = None
    if weight_raw is None:
        missing.append("Weight")
    else:
        weight_lbs = convert_weight(weight_raw, read_column(raw, fm.weight_unit))
        if weight_lbs is None:
            missing.append("Valid Weight")

    dims: dict[str, float] = {}
    for attr, label in _DIMENSIONS:
        dim_raw = read_column(raw, getattr(fm, attr))
        if dim_raw is None:
            missing.append(label)
            continue
        dim = _parse_number(dim_raw)
        if dim is None or dim <= 0:
            missing.append(f"Valid {label}")
        else:
            dims[attr] = dim

    current_cost = parse_cost(read_column(raw, fm.current_rate))
    if current_cost is None:
        missing.append("Valid Current Rate")

    if missing:
        raise MissingFieldsError(missing)

    origin_zip = clean_zip(origin, "Origin")
    dest_zip = clean_zip(dest, "Destination")

    residential_raw = read_column(raw, fm.is_residential)
    return ShipmentRecord(
        index=index,
        shipment_id=shipment_id_for(raw, fm, index),
        tracking_id=read_column(raw, fm.tracking_id),
        origin_zip=origin_zip,
        dest_zip=dest_zip,
        weight_lbs=weight_lbs,
        length=dims["length"],
        width=dims["width"],
        height=dims["height"],
        current_cost=current_cost,
        service=service,
        service_key=normalize_service_name(service),
        carrier=read_column(raw, fm.carrier),
        is_residential=(
            parse_residential_value(residential_raw) if residential_raw is not None else None
        ),
        zone=read_column(raw, fm.zone),
        shipper_name=read_column(raw, fm.shipper_name),
        shipper_address=read_column(raw, fm.shipper_address),
        shipper_city=read_column(raw, fm.shipper_city),
        shipper_state=read_column(raw, fm.shipper_state),
        recipient_name=read_column(raw, fm.recipient_name),
        recipient_address=read_column(raw, fm.recipient_address),
        recipient_city=read_column(raw, fm.recipient_city),
        recipient_state=read_column(raw, fm.recipient_state),
    )


def failure_from_error(
    raw: dict[str, Any],
    field_map: FieldMap,
    index: int,
    error: ShipmentValidationError,
) -> ValidationFailure:
    return ValidationFailure(
        index=index,
        shipment_id=shipment_id_for(raw, field_map, index),
        tracking_id=read_column(raw, field_map.tracking_id),
        service=read_column(raw, field_map.service),
        error=str(error),
        error_type=error.error_type,
        error_category=error.error_category,
        missing_fields=error.missing_fields,
        raw=dict(raw),
    )


def validate_batch(
    rows: list[dict[str, Any]],
    field_map: FieldMap | None = None,
) -> ValidationSummary:
    """Normalize every row, splitting valid records from failures.

    Indices are positions in `rows`, so failures and records can be
    merged back in input order.
    """
    fm = field_map or FieldMap()
    summary = ValidationSummary()
    for index, raw in enumerate(rows):
        try:
            summary.valid.append(normalize_shipment(raw, fm, index))
        except ShipmentValidationError as e:
            summary.failures.append(failure_from_error(raw, fm, index, e))

    if summary.failures:
        logger.info(
            "Validation: %d valid, %d invalid of %d rows",
            summary.valid_count, summary.invalid_count, summary.total,
        )
    return summary
