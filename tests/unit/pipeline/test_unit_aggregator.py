# tests/unit/pipeline/test_unit_aggregator.py — v1
"""Tests for pipeline/aggregator.py — state machines, totals, accountability."""

from __future__ import annotations

import pytest

from rateshop.core.errors import InvalidTransitionError, MappingError, MissingFieldsError
from rateshop.core.models import QuoteOutcome
from rateshop.pipeline.aggregator import AnalysisAggregator, check_accountability
from rateshop.pipeline.selection import validate_mapping
from rateshop.taxonomy.services import UniversalServiceCategory

U = UniversalServiceCategory


@pytest.fixture
def make_outcome(make_rate):
    def _make(current=25.0, price=20.0, method="confirmed_mapping", attempts=1) -> QuoteOutcome:
        rate = make_rate("03", price, universal_category=U.GROUND)
        return QuoteOutcome(
            current_cost=current,
            best_rate=rate,
            best_overall_rate=rate,
            savings=round(current - price, 2),
            max_savings=round(current - price, 2),
            expected_category=U.GROUND,
            comparison_method=method,
            is_mapping_exact=method == "confirmed_mapping",
            mapping_validation=validate_mapping(rate, U.GROUND),
            all_rates=[rate],
            attempt_count=attempts,
        )
    return _make


def _register_processing(agg: AnalysisAggregator, index: int, record=None) -> None:
    agg.register(index, f"s{index}", raw={"row": index})
    agg.mark_processing(index, record)


class TestCheckAccountability:
    def test_complete(self):
        acc = check_accountability(10, 8, 2)
        assert acc.is_complete
        assert acc.missing_count == 0
        assert acc.coverage == 80.0

    def test_missing(self):
        acc = check_accountability(10, 7)
        assert not acc.is_complete
        assert acc.missing_count == 3

    def test_empty(self):
        assert check_accountability(0, 0).coverage == 100.0


class TestShipmentTransitions:
    def test_happy_path(self, sample_record, make_outcome):
        agg = AnalysisAggregator(run_id="r1")
        _register_processing(agg, 0, sample_record)
        result = agg.record_success(0, make_outcome())
        assert result.status == "completed"
        assert result.attempt_count is None
        assert agg.total_savings == 5.0

    def test_attempt_count_only_when_retried(self, sample_record, make_outcome):
        agg = AnalysisAggregator()
        _register_processing(agg, 0, sample_record)
        assert agg.record_success(0, make_outcome(attempts=3)).attempt_count == 3

    def test_processing_is_idempotent(self):
        agg = AnalysisAggregator()
        _register_processing(agg, 0)
        agg.mark_processing(0)
        assert agg.get(0).status == "processing"

    def test_terminal_is_final(self, sample_record, make_outcome):
        agg = AnalysisAggregator()
        _register_processing(agg, 0, sample_record)
        agg.record_success(0, make_outcome())
        with pytest.raises(InvalidTransitionError):
            agg.record_error(0, MappingError("x"))
        with pytest.raises(InvalidTransitionError):
            agg.mark_processing(0)

    def test_pending_cannot_complete(self, make_outcome):
        agg = AnalysisAggregator()
        agg.register(0, "s0")
        with pytest.raises(InvalidTransitionError):
            agg.record_success(0, make_outcome())

    def test_duplicate_register(self):
        agg = AnalysisAggregator()
        agg.register(0, "s0")
        with pytest.raises(InvalidTransitionError):
            agg.register(0, "again")

    def test_error_fields(self):
        agg = AnalysisAggregator()
        _register_processing(agg, 0)
        result = agg.record_error(0, MissingFieldsError(["Weight"]), attempt_count=1)
        assert result.error_type == "ValidationError"
        assert result.error_category == "Data Validation"
        assert result.missing_fields == ["Weight"]

    def test_foreign_error_defaults(self):
        agg = AnalysisAggregator()
        _register_processing(agg, 0)
        result = agg.record_error(0, RuntimeError("kaboom"))
        assert result.error_type == "ProcessingError"
        assert result.error_category == "Unknown"


class TestRunTransitions:
    def test_finalize_totals(self, sample_record, make_outcome):
        agg = AnalysisAggregator(run_id="r1", carrier_ids=["ups-main"])
        # Completions arrive out of order
        for i in (2, 0, 1):
            _register_processing(agg, i, sample_record)
        agg.record_success(2, make_outcome(current=10.0, price=12.0))
        agg.record_error(1, MappingError("Mystery"))
        agg.record_success(0, make_outcome(method="best_overall_fallback"))

        run = agg.finalize()
        assert run.status == "completed"
        assert [r.index for r in run.recommendations] == [0, 2]
        assert run.total_current_cost == 35.0
        assert run.total_savings == 3.0
        assert run.savings_percentage == round(3.0 / 35.0 * 100, 2)
        assert run.fallback_comparisons == 1
        assert run.orphaned_shipments[0].raw == {"row": 1}
        assert run.accountability.is_complete
        assert run.carrier_ids == ["ups-main"]
        assert run.failed_rows() == [{"row": 1}]

    def test_finalize_refuses_open_shipments(self):
        agg = AnalysisAggregator()
        _register_processing(agg, 0)
        with pytest.raises(InvalidTransitionError, match="finalize_partial"):
            agg.finalize()

    def test_finalize_partial_excludes_open(self, sample_record, make_outcome):
        agg = AnalysisAggregator()
        _register_processing(agg, 0, sample_record)
        _register_processing(agg, 1, sample_record)
        agg.register(2, "s2")
        agg.record_success(0, make_outcome())

        run = agg.finalize_partial()
        assert run.stopped_early
        assert run.completed_shipments == 1
        assert run.error_shipments == 0
        assert run.excluded_shipments == 2
        assert run.accountability.is_complete
        assert run.accountability.coverage == round(1 / 3 * 100, 2)

    def test_pause_resume(self):
        agg = AnalysisAggregator()
        agg.pause()
        assert agg.status == "paused"
        with pytest.raises(InvalidTransitionError):
            agg.pause()
        agg.resume()
        assert agg.status == "processing"

    def test_fail(self):
        agg = AnalysisAggregator()
        run = agg.fail("no carriers")
        assert run.status == "failed"
        assert run.error == "no carriers"
        with pytest.raises(InvalidTransitionError):
            agg.finalize()

    def test_zero_cost_percentage(self, sample_record, make_outcome):
        agg = AnalysisAggregator()
        _register_processing(agg, 0, sample_record)
        agg.record_success(0, make_outcome(current=0.0, price=5.0))
        run = agg.finalize()
        assert run.savings_percentage == 0.0
        assert run.recommendations[0].savings_percent == 0.0
