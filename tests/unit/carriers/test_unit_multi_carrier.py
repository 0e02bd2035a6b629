# tests/unit/carriers/test_unit_multi_carrier.py — v1
"""Tests for carriers/multi_carrier.py — fan-out, tagging, error precedence."""

from __future__ import annotations

import pytest

from rateshop.carriers.multi_carrier import MultiCarrierQuoter
from rateshop.core.errors import CarrierAPIError, NetworkError, NoRatesReturnedError
from rateshop.pipeline.request_builder import build_quote_request
from rateshop.taxonomy.services import UniversalServiceCategory
from rateshop.telemetry.window import TelemetryWindow

U = UniversalServiceCategory


@pytest.fixture
def quote_request(sample_record, ground_mapping):
    return build_quote_request(sample_record, ground_mapping, include_alternates=True)


class TestMultiCarrierQuoter:
    @pytest.mark.asyncio
    async def test_merges_and_tags(self, make_carrier, make_rate, quote_request):
        ups = make_carrier([[make_rate("03", 20.0)]])
        fedex = make_carrier(
            [[make_rate("FEDEX_GROUND", 18.0, carrier_id="ignored", carrier_type="FEDEX")]],
            carrier_id="fedex-main", carrier_type="FEDEX",
        )
        result = await MultiCarrierQuoter([ups, fedex]).quote(quote_request)

        assert len(result.rates) == 2
        fx = [r for r in result.rates if r.carrier_type == "FEDEX"][0]
        assert fx.carrier_id == "fedex-main"
        assert fx.account_name == "fedex-main account"
        assert fx.universal_category == U.GROUND
        assert all(o.success for o in result.outcomes)

    @pytest.mark.asyncio
    async def test_unknown_code_kept_without_category(self, make_carrier, make_rate, quote_request):
        carrier = make_carrier([[make_rate("ZZ", 5.0)]])
        result = await MultiCarrierQuoter([carrier]).quote(quote_request)
        assert result.rates[0].universal_category is None

    @pytest.mark.asyncio
    async def test_enabled_services_narrow_request(self, make_carrier, make_rate, quote_request):
        overnight_only = make_carrier([[make_rate("01", 40.0)]], enabled_services=[U.OVERNIGHT])
        await MultiCarrierQuoter([overnight_only]).quote(quote_request)
        assert overnight_only.requests[0].service_categories == (U.OVERNIGHT,)

    @pytest.mark.asyncio
    async def test_no_eligible_carrier(self, make_carrier, quote_request):
        intl = make_carrier([[]], enabled_services=[U.INTERNATIONAL_SAVER])
        with pytest.raises(NoRatesReturnedError, match="offers"):
            await MultiCarrierQuoter([intl]).quote(quote_request)
        assert intl.requests == []

    @pytest.mark.asyncio
    async def test_partial_failure_keeps_other_rates(self, make_carrier, make_rate, quote_request):
        down = make_carrier([CarrierAPIError("HTTP 503", status_code=503)], carrier_id="down")
        up = make_carrier([[make_rate("03", 20.0)]], carrier_id="up")
        result = await MultiCarrierQuoter([down, up]).quote(quote_request)

        assert [r.carrier_id for r in result.rates] == ["up"]
        failed = [o for o in result.outcomes if not o.success]
        assert failed[0].carrier_id == "down"
        assert "503" in failed[0].error

    @pytest.mark.asyncio
    async def test_retryable_error_raised_first(self, make_carrier, quote_request):
        bad = make_carrier([CarrierAPIError("bad account", status_code=401)], carrier_id="a")
        flaky = make_carrier([NetworkError("timeout contacting b")], carrier_id="b")
        with pytest.raises(NetworkError):
            await MultiCarrierQuoter([bad, flaky]).quote(quote_request)

    @pytest.mark.asyncio
    async def test_non_retryable_error_raised(self, make_carrier, quote_request):
        bad = make_carrier([CarrierAPIError("bad account", status_code=401)])
        with pytest.raises(CarrierAPIError, match="bad account"):
            await MultiCarrierQuoter([bad]).quote(quote_request)

    @pytest.mark.asyncio
    async def test_empty_rates(self, make_carrier, quote_request):
        with pytest.raises(NoRatesReturnedError):
            await MultiCarrierQuoter([make_carrier([[]])]).quote(quote_request)

    @pytest.mark.asyncio
    async def test_records_telemetry(self, make_carrier, make_rate, quote_request):
        window = TelemetryWindow()
        ticks = iter([0.0, 0.25])
        carrier = make_carrier([[make_rate("03", 20.0)]])
        quoter = MultiCarrierQuoter([carrier], telemetry=window, clock=lambda: next(ticks))
        await quoter.quote(quote_request)

        m = window.snapshot()
        assert m.sample_count == 1
        assert m.avg_latency_ms == 250.0
        assert m.carriers["ups-main"].success_rate == 1.0
