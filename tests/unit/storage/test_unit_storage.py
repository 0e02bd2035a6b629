# tests/unit/storage/test_unit_storage.py — v1
"""Tests for storage/reader.py and storage/report_writer.py."""

from __future__ import annotations

import json

import pytest

from rateshop.core.errors import MappingError
from rateshop.core.models import FieldMap
from rateshop.pipeline.aggregator import AnalysisAggregator
from rateshop.storage.reader import load_carriers, load_field_map, load_mappings, load_shipments
from rateshop.storage.report_writer import load_report, write_failed_rows, write_report
from rateshop.taxonomy.services import UniversalServiceCategory


@pytest.fixture
def orphan_run():
    agg = AnalysisAggregator(run_id="r42")
    agg.register(0, "s0", raw={"service": "Mystery", "weight": "3"})
    agg.mark_processing(0)
    agg.record_error(0, MappingError("Mystery"))
    return agg.finalize()


class TestReader:
    def test_load_shipments_list_or_object(self, tmp_path, raw_row):
        plain = tmp_path / "a.json"
        plain.write_text(json.dumps([raw_row]))
        wrapped = tmp_path / "b.json"
        wrapped.write_text(json.dumps({"shipments": [raw_row]}))
        assert load_shipments(plain) == [raw_row]
        assert load_shipments(wrapped) == [raw_row]

    def test_load_shipments_rejects_non_objects(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps([1, 2]))
        with pytest.raises(ValueError, match="JSON object"):
            load_shipments(path)

    def test_load_rejects_scalar(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"mappings": "nope"}))
        with pytest.raises(ValueError, match="mappings"):
            load_mappings(path)

    def test_load_mappings_and_carriers(self, tmp_path):
        m = tmp_path / "m.json"
        m.write_text(json.dumps({"mappings": [
            {"original": "UPS Ground", "category": "GROUND", "is_confirmed": True},
        ]}))
        c = tmp_path / "c.json"
        c.write_text(json.dumps([{"id": "ups", "carrier_type": "ups", "kind": "rate_card"}]))
        assert load_mappings(m)[0].category == UniversalServiceCategory.GROUND
        assert load_carriers(c)[0].carrier_type == "UPS"

    def test_load_field_map(self, tmp_path):
        path = tmp_path / "fm.json"
        path.write_text(json.dumps({"weight": "Weight (lb)", "is_residential": "Res"}))
        fm = load_field_map(path)
        assert fm.weight == "Weight (lb)"
        assert fm.is_residential == "Res"
        assert fm.dest_zip == FieldMap().dest_zip


class TestReportWriter:
    def test_write_and_load(self, tmp_path, orphan_run):
        path = write_report(orphan_run, tmp_path / "out" / "report.json")
        loaded = load_report(path)
        assert loaded.run_id == "r42"
        assert loaded.orphaned_shipments[0].error_type == "MappingError"

    def test_failed_rows(self, tmp_path, orphan_run):
        path = write_failed_rows(orphan_run, tmp_path / "failed.json")
        assert json.loads(path.read_text()) == [{"service": "Mystery", "weight": "3"}]
