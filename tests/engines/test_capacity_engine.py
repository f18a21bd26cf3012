"""
Tests for the pure CapacityCalculator.

The calculator compares a request against ``capacity - used`` with exact
Decimal arithmetic and never clamps.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from allocation_engines.capacity import CapacityCalculator, CapacityCheck
from allocation_engines.tracer import compute_input_fingerprint
from allocation_kernel.domain.scope import CommitmentScope, LineItemScope


@pytest.fixture
def calculator():
    return CapacityCalculator()


class TestCapacityCheck:

    def test_request_within_available_is_sufficient(self, calculator):
        check = calculator.check(
            scope=CommitmentScope("NE-1"),
            capacity=Decimal("20"),
            used=Decimal("10"),
            requested=Decimal("5"),
        )
        assert check.available == Decimal("10")
        assert check.is_sufficient
        assert check.remaining_after == Decimal("5")

    def test_request_exactly_at_boundary_is_sufficient(self, calculator):
        check = calculator.check(
            scope=CommitmentScope("NE-1"),
            capacity=Decimal("20"),
            used=Decimal("10"),
            requested=Decimal("10"),
        )
        assert check.is_sufficient
        assert check.remaining_after == Decimal("0")

    def test_request_over_available_is_insufficient(self, calculator):
        check = calculator.check(
            scope=CommitmentScope("NE-1"),
            capacity=Decimal("20"),
            used=Decimal("10"),
            requested=Decimal("15"),
        )
        assert not check.is_sufficient
        assert check.available == Decimal("10")

    def test_fractional_quantities_compare_exactly(self, calculator):
        check = calculator.check(
            scope=LineItemScope(uuid4()),
            capacity=Decimal("0.3"),
            used=Decimal("0.1"),
            requested=Decimal("0.2"),
        )
        assert check.is_sufficient
        assert check.remaining_after == Decimal("0")

    def test_over_allocated_scope_reports_negative_available(self, calculator):
        check = calculator.check(
            scope=CommitmentScope("NE-1"),
            capacity=Decimal("5"),
            used=Decimal("8"),
            requested=Decimal("1"),
        )
        assert check.available == Decimal("-3")
        assert not check.is_sufficient

    def test_result_is_frozen(self, calculator):
        check = calculator.check(
            scope=CommitmentScope("NE-1"),
            capacity=Decimal("1"),
            used=Decimal("0"),
            requested=Decimal("1"),
        )
        assert isinstance(check, CapacityCheck)
        with pytest.raises(AttributeError):
            check.capacity = Decimal("2")


class TestCapacityInputValidation:

    def test_negative_capacity_rejected(self, calculator):
        with pytest.raises(ValueError):
            calculator.check(
                scope=CommitmentScope("NE-1"),
                capacity=Decimal("-1"),
                used=Decimal("0"),
                requested=Decimal("1"),
            )

    def test_negative_used_rejected(self, calculator):
        with pytest.raises(ValueError):
            calculator.check(
                scope=CommitmentScope("NE-1"),
                capacity=Decimal("1"),
                used=Decimal("-1"),
                requested=Decimal("1"),
            )

    def test_float_rejected(self, calculator):
        with pytest.raises(ValueError):
            calculator.check(
                scope=CommitmentScope("NE-1"),
                capacity=Decimal("1"),
                used=Decimal("0"),
                requested=0.5,
            )

    def test_nan_rejected(self, calculator):
        with pytest.raises(ValueError):
            calculator.check(
                scope=CommitmentScope("NE-1"),
                capacity=Decimal("NaN"),
                used=Decimal("0"),
                requested=Decimal("1"),
            )


class TestEngineTrace:

    def test_fingerprint_ignores_trailing_zeros(self):
        fields = ("capacity", "used")
        a = compute_input_fingerprint(fields, {"capacity": Decimal("10"), "used": Decimal("1")})
        b = compute_input_fingerprint(fields, {"capacity": Decimal("10.000"), "used": Decimal("1.0")})
        assert a == b
        assert len(a) == 16

    def test_fingerprint_differs_for_different_inputs(self):
        fields = ("capacity",)
        assert compute_input_fingerprint(fields, {"capacity": Decimal("1")}) != (
            compute_input_fingerprint(fields, {"capacity": Decimal("2")})
        )

    def test_check_emits_trace(self, calculator, captured_logs):
        calculator.check(
            scope=CommitmentScope("NE-1"),
            capacity=Decimal("1"),
            used=Decimal("0"),
            requested=Decimal("1"),
        )
        traces = [r for r in captured_logs() if r["message"] == "ALLOCATION_ENGINE_TRACE"]
        assert len(traces) == 1
        assert traces[0]["engine_name"] == "capacity"
        assert traces[0]["level"] == "DEBUG"
        assert traces[0]["failed"] is False
        assert traces[0]["outcome"] == {"available": "1", "is_sufficient": True}

    def test_fingerprint_includes_scope(self):
        fields = ("scope",)
        assert compute_input_fingerprint(fields, {"scope": CommitmentScope("NE-1")}) != (
            compute_input_fingerprint(fields, {"scope": CommitmentScope("NE-2")})
        )

    def test_failed_check_still_traced(self, calculator, captured_logs):
        with pytest.raises(ValueError):
            calculator.check(
                scope=CommitmentScope("NE-1"),
                capacity=Decimal("-1"),
                used=Decimal("0"),
                requested=Decimal("1"),
            )
        traces = [r for r in captured_logs() if r["message"] == "ALLOCATION_ENGINE_TRACE"]
        assert traces[0]["failed"] is True
        assert "outcome" not in traces[0]
