"""
Module: allocation_kernel.models.allocation_record
Responsibility: ORM persistence for allocation records -- the append-only
    facts that N units of a line item were committed against a document.
Architecture position: Kernel > Models.  May import from db/ and
    exceptions.py only (DTO conversion imports domain lazily).

Invariants enforced:
    - Quantity, values and references are immutable after INSERT
      (db/immutability.py listener).  Corrections are new records or
      deletions.
    - (line_item_id, reference_key) is unique.  reference_key is the full
      reference tuple and is NULL for bare line-item records, so the same
      link cannot be created twice while distinct children of one parent
      can.
    - scope_kind/scope_ref are written once at creation; "used" quantity is
      always derived by summing rows, never stored as a counter.

Failure modes:
    - ImmutabilityViolationError on UPDATE of a protected column.
    - IntegrityError on a duplicate link (translated to
      DuplicateAllocationError by the store).
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from allocation_kernel.db.base import TrackedBase, UUIDString
from allocation_kernel.db.types import (
    DOCUMENT_REF_TYPE,
    KIND_TYPE,
    NOTES_TYPE,
    QUANTITY_TYPE,
)

if TYPE_CHECKING:
    from allocation_kernel.domain.dtos import AllocationRecord


class AllocationRecordModel(TrackedBase):
    """
    Persistent storage for allocation records ("vinculos").

    Contract:
        Once INSERTed, the quantity/value/reference columns never change.
        Rows may be deleted by AllocationService.remove when nothing draws
        from the scope they establish.

    Guarantees:
        - A record linking a child document carries every ancestor
          reference (inherited at creation by AllocationService).
        - invoice_kind is copied from the invoice at creation so sums can
          exclude inbound invoices without joining external tables.
    """

    __tablename__ = "allocation_records"

    __table_args__ = (
        UniqueConstraint(
            "line_item_id",
            "reference_key",
            name="uq_allocation_reference",
        ),
        Index("idx_allocation_scope", "line_item_id", "scope_kind", "scope_ref"),
        Index("idx_allocation_link", "line_item_id", "link_kind", "link_ref"),
        Index("idx_allocation_commitment", "commitment_id"),
        Index("idx_allocation_invoice", "invoice_id"),
    )

    line_item_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    quantity: Mapped[Decimal] = mapped_column(QUANTITY_TYPE, nullable=False)
    unit_value: Mapped[Decimal] = mapped_column(QUANTITY_TYPE, nullable=False)
    total_value: Mapped[Decimal] = mapped_column(QUANTITY_TYPE, nullable=False)

    contract_id: Mapped[str | None] = mapped_column(DOCUMENT_REF_TYPE, nullable=True)
    supply_authorization_id: Mapped[str | None] = mapped_column(
        DOCUMENT_REF_TYPE, nullable=True
    )
    commitment_id: Mapped[str | None] = mapped_column(DOCUMENT_REF_TYPE, nullable=True)
    invoice_id: Mapped[str | None] = mapped_column(DOCUMENT_REF_TYPE, nullable=True)
    invoice_kind: Mapped[str | None] = mapped_column(KIND_TYPE, nullable=True)

    # The document this record links, and the scope it draws from
    link_kind: Mapped[str] = mapped_column(KIND_TYPE, nullable=False)
    link_ref: Mapped[str | None] = mapped_column(DOCUMENT_REF_TYPE, nullable=True)
    scope_kind: Mapped[str] = mapped_column(KIND_TYPE, nullable=False)
    scope_ref: Mapped[str] = mapped_column(DOCUMENT_REF_TYPE, nullable=False)

    reference_key: Mapped[str | None] = mapped_column(String(500), nullable=True)
    notes: Mapped[str | None] = mapped_column(NOTES_TYPE, nullable=True)

    def to_dto(self) -> AllocationRecord:
        from allocation_kernel.domain.dtos import AllocationRecord, InvoiceKind
        from allocation_kernel.domain.scope import ScopeKind

        return AllocationRecord(
            id=self.id,
            line_item_id=self.line_item_id,
            quantity=self.quantity,
            unit_value=self.unit_value,
            total_value=self.total_value,
            link_kind=ScopeKind(self.link_kind),
            link_ref=self.link_ref,
            scope_kind=ScopeKind(self.scope_kind),
            scope_ref=self.scope_ref,
            contract_id=self.contract_id,
            supply_authorization_id=self.supply_authorization_id,
            commitment_id=self.commitment_id,
            invoice_id=self.invoice_id,
            invoice_kind=InvoiceKind(self.invoice_kind) if self.invoice_kind else None,
            notes=self.notes,
            created_at=self.created_at,
            created_by_id=self.created_by_id,
        )

    @classmethod
    def from_dto(cls, dto: AllocationRecord, reference_key: str | None) -> AllocationRecordModel:
        model = cls(
            id=dto.id,
            line_item_id=dto.line_item_id,
            quantity=dto.quantity,
            unit_value=dto.unit_value,
            total_value=dto.total_value,
            contract_id=dto.contract_id,
            supply_authorization_id=dto.supply_authorization_id,
            commitment_id=dto.commitment_id,
            invoice_id=dto.invoice_id,
            invoice_kind=dto.invoice_kind.value if dto.invoice_kind else None,
            link_kind=dto.link_kind.value,
            link_ref=dto.link_ref,
            scope_kind=dto.scope_kind.value,
            scope_ref=dto.scope_ref,
            reference_key=reference_key,
            notes=dto.notes,
            created_by_id=dto.created_by_id,
        )
        if dto.created_at is not None:
            model.created_at = dto.created_at
        return model

    def __repr__(self) -> str:
        return (
            f"<AllocationRecordModel {self.id} item={self.line_item_id} "
            f"{self.link_kind}:{self.link_ref} <- {self.scope_kind}:{self.scope_ref} "
            f"qty={self.quantity}>"
        )


# Columns that identify and quantify a record; never updated after INSERT.
PROTECTED_COLUMNS = (
    "line_item_id",
    "quantity",
    "unit_value",
    "total_value",
    "contract_id",
    "supply_authorization_id",
    "commitment_id",
    "invoice_id",
    "invoice_kind",
    "link_kind",
    "link_ref",
    "scope_kind",
    "scope_ref",
    "reference_key",
)
