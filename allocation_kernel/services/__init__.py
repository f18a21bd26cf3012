"""Services for the allocation kernel (write side)."""

from allocation_kernel.services.allocation_record_store import (
    AllocationRecordStore,
    SqlAlchemyAllocationRecordStore,
    scope_lock_key,
)
from allocation_kernel.services.allocation_service import AllocationService
from allocation_kernel.services.ancestry_resolver import AncestryResolver
from allocation_kernel.services.document_classifier import DocumentClassifier
from allocation_kernel.services.quantity_validator import (
    QuantityValidator,
    ValidationOutcome,
)

__all__ = [
    "AllocationRecordStore",
    "AllocationService",
    "AncestryResolver",
    "DocumentClassifier",
    "QuantityValidator",
    "SqlAlchemyAllocationRecordStore",
    "ValidationOutcome",
    "scope_lock_key",
]
