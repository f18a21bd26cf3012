"""
Lookup ports for documents owned by external collaborators.

Line items and invoices live outside the allocation kernel.  The kernel
only needs a line item's total quantity and an invoice's kind, so it reads
them through these narrow interfaces.  ``allocation_kernel.selectors``
provides SQLAlchemy implementations.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from allocation_kernel.domain.dtos import Invoice, LineItem


class LineItemLookup(Protocol):
    """Pluggable interface for line item lookups."""

    def get(self, line_item_id: UUID) -> LineItem:
        """Return the line item; raise LineItemNotFoundError if absent."""
        ...


class InvoiceLookup(Protocol):
    """Pluggable interface for invoice lookups."""

    def get(self, invoice_id: str) -> Invoice | None:
        """Return the invoice, or None if it does not exist."""
        ...
