"""SQL-backed InvoiceLookup."""

from __future__ import annotations

from sqlalchemy import select

from allocation_kernel.domain.dtos import Invoice
from allocation_kernel.models.reference import InvoiceModel
from allocation_kernel.selectors.base import BaseSelector


class InvoiceSelector(BaseSelector):
    """
    Reads invoices by their external document id.

    get() returns None for unknown invoices; DocumentClassifier decides
    that this is an error.
    """

    def get(self, invoice_id: str) -> Invoice | None:
        model = self.session.execute(
            select(InvoiceModel).where(InvoiceModel.document_id == invoice_id)
        ).scalar_one_or_none()
        return model.to_dto() if model else None
