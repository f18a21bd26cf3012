"""
Hypothesis-based property tests for allocation capacity.

Properties checked for arbitrary request sequences:
- Consumption of a scope never exceeds its capacity.
- Every accepted request lowers the scope's availability by exactly the
  requested quantity; every rejected one leaves it untouched.
- A rejection always reports the availability at the time of the request.
- Inbound invoices are never rejected, whatever they request.
"""

from decimal import Decimal

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from allocation_kernel.exceptions import InsufficientQuantityError

FUZZ_SETTINGS = settings(
    max_examples=40,
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)

quantities = st.decimals(
    min_value=Decimal("0.001"),
    max_value=Decimal("60"),
    places=3,
    allow_nan=False,
    allow_infinity=False,
)

capacities = st.decimals(
    min_value=Decimal("1"),
    max_value=Decimal("100"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)


def _apply(service, line_item_id, quantity, data):
    """Store one request and check the availability moved by exactly its size."""
    before = service.balance(line_item_id, data).available
    try:
        service.store(line_item_id, quantity, data)
    except InsufficientQuantityError as exc:
        assert quantity > before
        assert exc.available == before
        assert service.balance(line_item_id, data).available == before
        return False
    assert quantity <= before
    assert service.balance(line_item_id, data).available == before - quantity
    return True


class TestLineItemScopeProperties:

    @FUZZ_SETTINGS
    @given(total=capacities, requests=st.lists(quantities, min_size=1, max_size=12))
    def test_bare_requests_never_exceed_total(
        self, allocation_service, make_line_item, total, requests
    ):
        line_item_id = make_line_item(total)

        accepted = [
            q for q in requests if _apply(allocation_service, line_item_id, q, None)
        ]

        balance = allocation_service.balance(line_item_id)
        assert balance.used == sum(accepted, Decimal("0"))
        assert balance.used <= total
        assert balance.available >= 0

    @FUZZ_SETTINGS
    @given(total=capacities, requests=st.lists(quantities, min_size=1, max_size=8))
    def test_distinct_contracts_share_the_item_total(
        self, allocation_service, make_line_item, total, requests
    ):
        line_item_id = make_line_item(total)

        for i, quantity in enumerate(requests):
            _apply(allocation_service, line_item_id, quantity, {"contract_id": f"CT-{i}"})

        assert allocation_service.balance(line_item_id).used <= total


class TestCommitmentScopeProperties:

    @FUZZ_SETTINGS
    @given(
        reserved=capacities,
        requests=st.lists(quantities, min_size=1, max_size=8),
    )
    def test_invoices_never_exceed_commitment(
        self, allocation_service, make_line_item, make_invoice, reserved, requests
    ):
        line_item_id = make_line_item("100")
        allocation_service.store(line_item_id, reserved, {"commitment_id": "NE-1"})

        for quantity in requests:
            data = {"commitment_id": "NE-1", "invoice_id": make_invoice("outbound")}
            _apply(allocation_service, line_item_id, quantity, data)

        balance = allocation_service.balance(
            line_item_id, {"commitment_id": "NE-1", "invoice_id": "x"}
        )
        assert balance.capacity == reserved
        assert balance.used <= reserved
        # The item scope only sees the commitment itself
        assert allocation_service.balance(line_item_id).used == reserved


class TestInboundProperties:

    @FUZZ_SETTINGS
    @given(requests=st.lists(quantities, min_size=1, max_size=6))
    def test_inbound_invoices_never_rejected(
        self, allocation_service, make_line_item, make_invoice, requests
    ):
        line_item_id = make_line_item("1")
        allocation_service.store(line_item_id, "1", {"commitment_id": "NE-1"})

        for quantity in requests:
            record = allocation_service.store(
                line_item_id,
                quantity,
                {"commitment_id": "NE-1", "invoice_id": make_invoice("inbound")},
            )
            assert record.is_inbound

        balance = allocation_service.balance(
            line_item_id, {"commitment_id": "NE-1", "invoice_id": "x"}
        )
        assert balance.used == Decimal("0")
        assert balance.available == Decimal("1")


@pytest.mark.parametrize("quantity", ["0.001", "0.999", "1"])
def test_fractional_requests_fill_capacity_exactly(allocation_service, make_line_item, quantity):
    line_item_id = make_line_item("1")
    allocation_service.store(line_item_id, quantity)
    remaining = Decimal("1") - Decimal(quantity)
    if remaining > 0:
        allocation_service.store(line_item_id, remaining)
    assert allocation_service.balance(line_item_id).is_fully_consumed
