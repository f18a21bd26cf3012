"""
Pure domain layer.

Frozen DTOs, the ScopeReference union and the scope precedence rules, with
NO dependencies on the ORM, the database or I/O.
"""

from allocation_kernel.domain.dtos import (
    AllocationData,
    AllocationRecord,
    Invoice,
    InvoiceKind,
    LineItem,
    ScopeBalance,
)
from allocation_kernel.domain.lookups import InvoiceLookup, LineItemLookup
from allocation_kernel.domain.scope import (
    AllocationContext,
    AuthorizationScope,
    CommitmentScope,
    ContractScope,
    LineItemScope,
    ScopeKind,
    ScopeReference,
    scope_from_parts,
)
from allocation_kernel.domain.scope_resolver import ScopeResolver

__all__ = [
    "AllocationContext",
    "AllocationData",
    "AllocationRecord",
    "AuthorizationScope",
    "CommitmentScope",
    "ContractScope",
    "Invoice",
    "InvoiceKind",
    "InvoiceLookup",
    "LineItem",
    "LineItemLookup",
    "LineItemScope",
    "ScopeBalance",
    "ScopeKind",
    "ScopeReference",
    "ScopeResolver",
    "scope_from_parts",
]
