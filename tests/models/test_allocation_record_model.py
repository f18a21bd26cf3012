"""
Tests for AllocationRecordModel persistence and ORM immutability.

Verifies:
- Protected columns cannot be UPDATEd once a record is flushed
- Audit metadata (notes) stays editable
- Deletion is not blocked at the ORM level
- DTO conversion round-trips every column
"""

from decimal import Decimal

import pytest

from allocation_kernel.domain.scope import ScopeKind
from allocation_kernel.exceptions import ImmutabilityViolationError
from allocation_kernel.models.allocation_record import PROTECTED_COLUMNS, AllocationRecordModel


@pytest.fixture
def stored_record(allocation_service, line_item_id):
    return allocation_service.store(
        line_item_id,
        "10",
        {"contract_id": "CT-1", "unit_value": "2.50", "notes": "first tranche"},
    )


class TestImmutability:

    def test_quantity_update_blocked(self, session, stored_record):
        model = session.get(AllocationRecordModel, stored_record.id)
        model.quantity = Decimal("999")

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "AllocationRecord"
        assert "quantity" in exc_info.value.reason

    def test_reference_update_blocked(self, session, stored_record):
        model = session.get(AllocationRecordModel, stored_record.id)
        model.contract_id = "CT-2"

        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_scope_update_blocked(self, session, stored_record):
        model = session.get(AllocationRecordModel, stored_record.id)
        model.scope_ref = "somewhere-else"

        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_violation_is_logged(self, session, stored_record, captured_logs):
        model = session.get(AllocationRecordModel, stored_record.id)
        model.total_value = Decimal("0")

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        blocked = [r for r in captured_logs() if r["message"] == "immutability_violation_blocked"]
        assert len(blocked) == 1
        assert blocked[0]["columns"] == ["total_value"]

    def test_notes_update_allowed(self, session, stored_record):
        model = session.get(AllocationRecordModel, stored_record.id)
        model.notes = "corrected description"
        session.flush()

        session.expire_all()
        assert session.get(AllocationRecordModel, stored_record.id).notes == (
            "corrected description"
        )

    def test_delete_allowed(self, session, stored_record):
        model = session.get(AllocationRecordModel, stored_record.id)
        session.delete(model)
        session.flush()
        assert session.get(AllocationRecordModel, stored_record.id) is None

    def test_notes_are_not_protected(self):
        assert "notes" not in PROTECTED_COLUMNS
        assert "quantity" in PROTECTED_COLUMNS


class TestDtoConversion:

    def test_to_dto_round_trip(self, session, stored_record):
        session.expire_all()
        dto = session.get(AllocationRecordModel, stored_record.id).to_dto()

        assert dto.id == stored_record.id
        assert dto.quantity == Decimal("10")
        assert dto.unit_value == Decimal("2.50")
        assert dto.total_value == Decimal("25.00")
        assert dto.link_kind is ScopeKind.CONTRACT
        assert dto.link_ref == "CT-1"
        assert dto.scope_kind is ScopeKind.LINE_ITEM
        assert dto.contract_id == "CT-1"
        assert dto.invoice_kind is None
        assert dto.notes == "first tranche"
        assert dto.created_by_id == stored_record.created_by_id

    def test_reference_key_is_persisted(self, session, stored_record):
        model = session.get(AllocationRecordModel, stored_record.id)
        assert model.reference_key == "c=CT-1|sa=|cm=|inv="
