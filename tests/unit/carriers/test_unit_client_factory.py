# tests/unit/carriers/test_unit_client_factory.py — v1
"""Tests for carriers/client_factory.py and carriers/models.py."""

from __future__ import annotations

import pytest

from rateshop.carriers.client_factory import (
    UnsupportedCarrierKindError,
    create_carrier_client,
    create_carrier_clients,
    register_carrier_kind,
)
from rateshop.carriers.http_carrier import HttpCarrierClient
from rateshop.carriers.models import CarrierConfig
from rateshop.carriers.rate_card import RateCardCarrier
from rateshop.config.settings import Settings
from rateshop.taxonomy.services import UniversalServiceCategory

U = UniversalServiceCategory


class TestCarrierConfig:
    def test_carrier_type_upper(self):
        assert CarrierConfig(id="a", carrier_type=" fedex ").carrier_type == "FEDEX"

    def test_enabled_categories_all_when_empty(self):
        cfg = CarrierConfig(id="a", carrier_type="UPS")
        assert cfg.enabled_categories((U.GROUND, U.OVERNIGHT)) == [U.GROUND, U.OVERNIGHT]

    def test_enabled_categories_filtered_in_request_order(self):
        cfg = CarrierConfig(id="a", carrier_type="UPS", enabled_services=[U.OVERNIGHT, U.GROUND])
        assert cfg.enabled_categories((U.TWO_DAY, U.GROUND, U.OVERNIGHT)) == [U.GROUND, U.OVERNIGHT]


class TestCreateCarrierClient:
    def test_api(self):
        cfg = CarrierConfig(id="a", carrier_type="UPS", endpoint="https://x.test/q")
        client = create_carrier_client(cfg, Settings(_env_file=None, carrier_http_timeout_s=5))
        assert isinstance(client, HttpCarrierClient)
        assert client.carrier_id == "a"

    def test_rate_card(self):
        cfg = CarrierConfig(id="b", carrier_type="UPS", kind="rate_card")
        assert isinstance(create_carrier_client(cfg), RateCardCarrier)

    def test_unknown_kind(self):
        cfg = CarrierConfig(id="c", carrier_type="UPS", kind="carrier_pigeon")
        with pytest.raises(UnsupportedCarrierKindError, match="carrier_pigeon"):
            create_carrier_client(cfg)

    def test_register_custom_kind(self):
        register_carrier_kind("card_alias", "rateshop.carriers.rate_card.RateCardCarrier")
        cfg = CarrierConfig(id="d", carrier_type="UPS", kind="card_alias")
        assert isinstance(create_carrier_client(cfg), RateCardCarrier)

    def test_inactive_skipped(self):
        configs = [
            CarrierConfig(id="on", carrier_type="UPS", kind="rate_card"),
            CarrierConfig(id="off", carrier_type="UPS", kind="rate_card", is_active=False),
        ]
        assert [c.carrier_id for c in create_carrier_clients(configs)] == ["on"]

    def test_misconfigured_accounts_skipped(self):
        configs = [
            CarrierConfig(id="card", carrier_type="UPS", kind="rate_card"),
            CarrierConfig(id="no-endpoint", carrier_type="UPS", kind="api"),
            CarrierConfig(id="pigeon", carrier_type="UPS", kind="carrier_pigeon"),
        ]
        clients = create_carrier_clients(configs)
        assert [c.carrier_id for c in clients] == ["card"]

    def test_all_misconfigured_yields_nothing(self):
        configs = [CarrierConfig(id="no-endpoint", carrier_type="UPS", kind="api")]
        assert create_carrier_clients(configs) == []
