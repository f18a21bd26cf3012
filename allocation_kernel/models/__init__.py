"""ORM models of the allocation kernel."""

from allocation_kernel.models.allocation_record import AllocationRecordModel
from allocation_kernel.models.reference import InvoiceModel, LineItemModel

__all__ = [
    "AllocationRecordModel",
    "InvoiceModel",
    "LineItemModel",
]
