# tests/unit/pipeline/test_unit_selection.py — v1
"""Tests for pipeline/selection.py and pipeline/request_builder.py."""

from __future__ import annotations

import pytest

from rateshop.core.errors import InvalidRateDataError, NoRatesReturnedError
from rateshop.pipeline.request_builder import build_quote_request, requested_categories
from rateshop.pipeline.selection import (
    select_best_overall_rate,
    select_best_rate,
    validate_mapping,
)
from rateshop.taxonomy.services import DEFAULT_SERVICE_CATEGORIES, UniversalServiceCategory

U = UniversalServiceCategory


class TestSelectBestRate:
    def test_cheapest_in_category(self, make_rate):
        rates = [
            make_rate("03", 20.0, universal_category=U.GROUND),
            make_rate("FEDEX_GROUND", 18.0, universal_category=U.GROUND),
            make_rate("02", 10.0, universal_category=U.TWO_DAY),
        ]
        best, method = select_best_rate(rates, U.GROUND)
        assert best.total_charges == 18.0
        assert method == "confirmed_mapping"
        assert select_best_overall_rate(rates).total_charges == 10.0

    def test_fallback_is_explicit(self, make_rate):
        rates = [make_rate("01", 40.0, universal_category=U.OVERNIGHT)]
        best, method = select_best_rate(rates, U.GROUND)
        assert best.service_code == "01"
        assert method == "best_overall_fallback"

    def test_tie_keeps_first(self, make_rate):
        rates = [
            make_rate("03", 20.0, carrier_id="a", universal_category=U.GROUND),
            make_rate("03", 20.0, carrier_id="b", universal_category=U.GROUND),
        ]
        assert select_best_rate(rates, U.GROUND)[0].carrier_id == "a"

    def test_empty(self):
        with pytest.raises(NoRatesReturnedError):
            select_best_rate([], U.GROUND)

    def test_unpriced_rate_rejected(self, make_rate):
        rates = [make_rate("03", 20.0, universal_category=U.GROUND), make_rate("02", None)]
        with pytest.raises(InvalidRateDataError) as exc_info:
            select_best_rate(rates, U.GROUND)
        assert exc_info.value.error_category == "Data Format"


class TestValidateMapping:
    def test_match(self, make_rate):
        check = validate_mapping(make_rate("03", 20.0, universal_category=U.GROUND), U.GROUND)
        assert check.is_valid
        assert check.actual_category == U.GROUND

    def test_mismatch(self, make_rate):
        check = validate_mapping(make_rate("02", 20.0, universal_category=U.TWO_DAY), U.GROUND)
        assert not check.is_valid
        assert "TWO_DAY" in check.message

    def test_unknown_category(self, make_rate):
        check = validate_mapping(make_rate("ZZ", 20.0), U.GROUND)
        assert not check.is_valid
        assert "no known category" in check.message


class TestRequestBuilder:
    def test_categories_primary_first(self):
        cats = requested_categories(U.THREE_DAY)
        assert cats[0] == U.THREE_DAY
        assert cats.count(U.THREE_DAY) == 1
        assert len(cats) == len(DEFAULT_SERVICE_CATEGORIES)

    def test_categories_primary_outside_defaults(self):
        cats = requested_categories(U.OVERNIGHT_EARLY)
        assert len(cats) == len(DEFAULT_SERVICE_CATEGORIES) + 1

    def test_categories_without_alternates(self):
        assert requested_categories(U.GROUND, include_alternates=False) == (U.GROUND,)

    def test_build_request(self, sample_record, ground_mapping):
        req = build_quote_request(sample_record, ground_mapping)
        assert req.shipment_id == "1Z0001"
        assert req.primary_category == U.GROUND
        assert req.ship_from.city == "New York"
        assert req.ship_from.state == "NY"
        assert req.ship_to.city == "Beverly Hills"
        assert req.package.weight == 5.0
        assert req.is_residential is False
        assert req.residential_source == "default"

    def test_unknown_zip_leaves_city_empty(self, sample_record, ground_mapping):
        record = sample_record.model_copy(update={"dest_zip": "59001"})
        req = build_quote_request(record, ground_mapping)
        assert req.ship_to.city is None
        assert req.ship_to.state is None

    def test_explicit_city_kept(self, sample_record, ground_mapping):
        record = sample_record.model_copy(update={"recipient_city": "LA", "recipient_state": "CA"})
        req = build_quote_request(record, ground_mapping, country="CA")
        assert req.ship_to.city == "LA"
        assert req.ship_to.country == "CA"
