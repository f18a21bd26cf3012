"""
Module: allocation_kernel.selectors.allocation_selector
Responsibility: Read-only queries over allocation records for reporting
    callers that must not touch the write path (listing by line item or by
    document, per-scope consumption breakdown).
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Consumption is derived by summing records; nothing is cached.
    - Inbound-invoice records are excluded from consumption totals.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, or_, select

from allocation_kernel.db.types import to_decimal
from allocation_kernel.domain.dtos import AllocationRecord, InvoiceKind
from allocation_kernel.domain.scope import ScopeKind
from allocation_kernel.models.allocation_record import AllocationRecordModel
from allocation_kernel.selectors.base import BaseSelector

_DOCUMENT_COLUMNS = {
    ScopeKind.CONTRACT: AllocationRecordModel.contract_id,
    ScopeKind.SUPPLY_AUTHORIZATION: AllocationRecordModel.supply_authorization_id,
    ScopeKind.COMMITMENT: AllocationRecordModel.commitment_id,
    ScopeKind.INVOICE: AllocationRecordModel.invoice_id,
}


@dataclass(frozen=True)
class ScopeUsageRow:
    """Consumption drawn from one scope of a line item."""

    scope_kind: ScopeKind
    scope_ref: str
    used: Decimal
    record_count: int


class AllocationSelector(BaseSelector):
    """Read-only access to allocation records."""

    def list_by_item(self, line_item_id: UUID) -> list[AllocationRecord]:
        models = self.session.execute(
            select(AllocationRecordModel)
            .where(AllocationRecordModel.line_item_id == line_item_id)
            .order_by(AllocationRecordModel.created_at, AllocationRecordModel.id)
        ).scalars().all()
        return [m.to_dto() for m in models]

    def list_by_document(self, kind: ScopeKind, document_id: str) -> list[AllocationRecord]:
        """Every record, across line items, that references the document."""
        column = _DOCUMENT_COLUMNS[ScopeKind(kind)]
        models = self.session.execute(
            select(AllocationRecordModel)
            .where(column == document_id)
            .order_by(AllocationRecordModel.created_at, AllocationRecordModel.id)
        ).scalars().all()
        return [m.to_dto() for m in models]

    def usage_by_scope(self, line_item_id: UUID) -> list[ScopeUsageRow]:
        """Non-inbound consumption per scope, ordered by scope kind and ref."""
        rows = self.session.execute(
            select(
                AllocationRecordModel.scope_kind,
                AllocationRecordModel.scope_ref,
                func.sum(AllocationRecordModel.quantity),
                func.count(AllocationRecordModel.id),
            )
            .where(
                AllocationRecordModel.line_item_id == line_item_id,
                or_(
                    AllocationRecordModel.invoice_kind.is_(None),
                    AllocationRecordModel.invoice_kind != InvoiceKind.INBOUND.value,
                ),
            )
            .group_by(AllocationRecordModel.scope_kind, AllocationRecordModel.scope_ref)
            .order_by(AllocationRecordModel.scope_kind, AllocationRecordModel.scope_ref)
        ).all()
        return [
            ScopeUsageRow(
                scope_kind=ScopeKind(kind),
                scope_ref=ref,
                used=to_decimal(used or 0),
                record_count=count,
            )
            for kind, ref, used, count in rows
        ]
