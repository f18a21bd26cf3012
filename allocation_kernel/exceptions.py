"""
Typed Exception Hierarchy for the Allocation Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (controllers, use cases) must map every failure to a user-facing
response without parsing message strings.  Every exception therefore has:
  1. A TYPED class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (requested/available quantities, scope, ids)

Example:
    try:
        service.store(line_item_id, Decimal("15"), data, actor_id=actor)
    except InsufficientQuantityError as e:
        return {"error": e.code, "requested": e.requested, "available": e.available}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    AllocationKernelError (base)
    |
    +-- QuantityError
    |   +-- InvalidQuantityError
    |   +-- InvalidUnitValueError
    |   +-- InsufficientQuantityError
    |
    +-- NotFoundError
    |   +-- LineItemNotFoundError
    |   +-- InvoiceNotFoundError
    |   +-- AllocationRecordNotFoundError
    |
    +-- ScopeResolutionError
    |
    +-- InvalidNotesError
    |
    +-- AllocationIntegrityError
    |   +-- DuplicateAllocationError
    |   +-- AllocationInUseError
    |
    +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                         | When Raised
-----------|------------------------------|-----------------------------------------
Quantity   | INVALID_QUANTITY             | Requested quantity <= 0, not finite, or not
           |                              | storable as Numeric(38, 9)
           | INVALID_UNIT_VALUE           | Unit value < 0, not finite, or unit value or
           |                              | total value not storable as Numeric(38, 9)
           | INSUFFICIENT_QUANTITY        | Request exceeds the scope's available quantity
-----------|------------------------------|-----------------------------------------
NotFound   | LINE_ITEM_NOT_FOUND          | Line item id does not resolve
           | INVOICE_NOT_FOUND            | Invoice id does not resolve
           | ALLOCATION_RECORD_NOT_FOUND  | Allocation record id does not resolve
-----------|------------------------------|-----------------------------------------
Scope      | SCOPE_RESOLUTION_ERROR       | Parent document has no establishing record,
           |                              | or supplied ancestors contradict it
-----------|------------------------------|-----------------------------------------
Input      | INVALID_NOTES                | Notes longer than 1000 characters
-----------|------------------------------|-----------------------------------------
Integrity  | DUPLICATE_ALLOCATION         | Same full reference tuple already linked
           | ALLOCATION_IN_USE            | Removing a record other records draw from
-----------|------------------------------|-----------------------------------------
Immutable  | IMMUTABILITY_VIOLATION       | UPDATE of a persisted allocation record

===============================================================================
PROPAGATION
===============================================================================

All kernel errors are terminal for the current operation.  The kernel never
retries: re-running a failed invariant check without new input cannot
succeed.  Infrastructure errors (connection loss, lock timeout) are NOT part
of this hierarchy; they propagate as SQLAlchemy exceptions so the caller's
transaction layer can retry them.
"""

from __future__ import annotations

from decimal import Decimal


class AllocationKernelError(Exception):
    """
    Base exception for all allocation kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "ALLOCATION_KERNEL_ERROR"


# Quantity-related exceptions


class QuantityError(AllocationKernelError):
    """Base exception for quantity-related errors."""

    code: str = "QUANTITY_ERROR"


class InvalidQuantityError(QuantityError):
    """Requested quantity is not positive, not finite, or not storable."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: Decimal | str):
        self.quantity = quantity
        super().__init__(
            "Requested quantity must be strictly positive with at most 9 "
            f"decimal places and 29 integer digits, got {quantity}"
        )


class InvalidUnitValueError(QuantityError):
    """Unit value is negative, not finite, or yields an unstorable total."""

    code: str = "INVALID_UNIT_VALUE"

    def __init__(self, unit_value: Decimal | str):
        self.unit_value = unit_value
        super().__init__(
            "Unit value must be zero or positive and storable, with a storable "
            f"total value, got {unit_value}"
        )


class InsufficientQuantityError(QuantityError):
    """
    The request would consume more than the scope has available.

    Always carries both numbers so the caller can explain the shortfall.
    The kernel never clamps the request to the available quantity.
    """

    code: str = "INSUFFICIENT_QUANTITY"

    def __init__(
        self,
        requested: Decimal,
        available: Decimal,
        scope_kind: str | None = None,
        scope_ref: str | None = None,
    ):
        self.requested = requested
        self.available = available
        self.scope_kind = scope_kind
        self.scope_ref = scope_ref
        scope = f" for {scope_kind} {scope_ref}" if scope_kind else ""
        super().__init__(
            f"Requested quantity ({requested}) exceeds the quantity "
            f"available{scope} ({available})"
        )


# Lookup exceptions


class NotFoundError(AllocationKernelError):
    """Base exception for unresolvable references."""

    code: str = "NOT_FOUND"


class LineItemNotFoundError(NotFoundError):
    """Line item with given ID was not found."""

    code: str = "LINE_ITEM_NOT_FOUND"

    def __init__(self, line_item_id: str):
        self.line_item_id = line_item_id
        super().__init__(f"Line item not found: {line_item_id}")


class InvoiceNotFoundError(NotFoundError):
    """Invoice with given ID was not found."""

    code: str = "INVOICE_NOT_FOUND"

    def __init__(self, invoice_id: str):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice not found: {invoice_id}")


class AllocationRecordNotFoundError(NotFoundError):
    """Allocation record with given ID was not found."""

    code: str = "ALLOCATION_RECORD_NOT_FOUND"

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Allocation record not found: {record_id}")


# Scope exceptions


class ScopeResolutionError(AllocationKernelError):
    """
    The parent scope of a request cannot be resolved.

    Raised when a document is referenced as a parent but no allocation
    record established its link to the line item (so its capacity is
    unknown), or when the ancestors supplied by the caller contradict the
    ancestors recorded on the parent's own allocation record.  This is a
    caller or data-integrity bug; the kernel never falls back to the line
    item's capacity.
    """

    code: str = "SCOPE_RESOLUTION_ERROR"

    def __init__(self, scope_kind: str, scope_ref: str | None, reason: str):
        self.scope_kind = scope_kind
        self.scope_ref = scope_ref
        self.reason = reason
        super().__init__(
            f"Cannot resolve {scope_kind} {scope_ref}: {reason}"
        )


# Input-related exceptions


class InvalidNotesError(AllocationKernelError):
    """Allocation notes exceed the stored length."""

    code: str = "INVALID_NOTES"

    def __init__(self, length: int, max_length: int):
        self.length = length
        self.max_length = max_length
        super().__init__(
            f"Notes must be at most {max_length} characters, got {length}"
        )


# Integrity exceptions


class AllocationIntegrityError(AllocationKernelError):
    """Base exception for allocation record integrity violations."""

    code: str = "ALLOCATION_INTEGRITY_ERROR"


class DuplicateAllocationError(AllocationIntegrityError):
    """
    A record with the same full reference tuple already exists.

    The same link (line item + contract + supply authorization + commitment
    + invoice) may only be established once.  Several distinct children of
    one parent are the normal consumption pattern and are not duplicates.
    """

    code: str = "DUPLICATE_ALLOCATION"

    def __init__(self, line_item_id: str, reference_key: str):
        self.line_item_id = line_item_id
        self.reference_key = reference_key
        super().__init__(
            f"Allocation already exists for line item {line_item_id}: {reference_key}"
        )


class AllocationInUseError(AllocationIntegrityError):
    """Record establishes a scope that other records still draw from."""

    code: str = "ALLOCATION_IN_USE"

    def __init__(self, record_id: str, dependent_count: int):
        self.record_id = record_id
        self.dependent_count = dependent_count
        super().__init__(
            f"Allocation {record_id} cannot be removed: "
            f"{dependent_count} allocation(s) draw from it"
        )


class ImmutabilityViolationError(AllocationKernelError):
    """Attempt to modify a persisted allocation record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )
