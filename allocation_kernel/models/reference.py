"""
Module: allocation_kernel.models.reference
Responsibility: Minimal persistence for the externally owned documents the
    allocation kernel reads: procurement line items and invoices.
Architecture position: Kernel > Models.

The full lifecycle of these entities (negotiation, fiscal fields, payment
status) belongs to external collaborators.  Only the columns the kernel
reads are modeled; deployments that already own these tables can plug their
own LineItemLookup / InvoiceLookup instead.
"""

from decimal import Decimal

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from allocation_kernel.db.base import TrackedBase
from allocation_kernel.db.types import KIND_TYPE, QUANTITY_TYPE


class LineItemModel(TrackedBase):
    """A procurement line item: total ordered quantity and unit price."""

    __tablename__ = "procurement_line_items"

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    total_quantity: Mapped[Decimal] = mapped_column(QUANTITY_TYPE, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(
        QUANTITY_TYPE, nullable=False, default=Decimal("0")
    )

    def to_dto(self):
        from allocation_kernel.domain.dtos import LineItem

        return LineItem(
            id=self.id,
            total_quantity=self.total_quantity,
            unit_price=self.unit_price,
        )


class InvoiceModel(TrackedBase):
    """
    An invoice document.  ``kind`` is ``inbound`` or ``outbound``.

    ``document_id`` is the external identifier referenced by allocation
    records.
    """

    __tablename__ = "invoices"

    __table_args__ = (
        Index("idx_invoice_document", "document_id", unique=True),
    )

    document_id: Mapped[str] = mapped_column(String(100), nullable=False)
    kind: Mapped[str] = mapped_column(KIND_TYPE, nullable=False)
    number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    def to_dto(self):
        from allocation_kernel.domain.dtos import Invoice, InvoiceKind

        return Invoice(id=self.document_id, kind=InvoiceKind.parse(self.kind))
