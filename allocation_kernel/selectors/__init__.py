"""Selectors for the allocation kernel (read side)."""

from allocation_kernel.selectors.allocation_selector import AllocationSelector, ScopeUsageRow
from allocation_kernel.selectors.invoice_selector import InvoiceSelector
from allocation_kernel.selectors.line_item_selector import LineItemSelector

__all__ = [
    "AllocationSelector",
    "InvoiceSelector",
    "LineItemSelector",
    "ScopeUsageRow",
]
