"""
QuantityValidator -- The no-over-allocation invariant.

Responsibility:
    Decide whether a requested quantity fits in the scope it would draw
    from.  Combines DocumentClassifier (inbound exemption), AncestryResolver
    and ScopeResolver (which scope), AllocationRecordStore (capacity and
    derived consumption) and the pure CapacityCalculator (arithmetic).

Architecture position:
    Kernel > Services.  Reads only; never writes.  AllocationService calls
    it inside the same transaction as the insert, after locking the scope.

Invariants enforced:
    - requested_quantity must be a finite Decimal > 0, checked before any
      lookup.
    - Inbound invoices are exempt: no scope capacity is read for them.
    - Capacity of a document scope is the quantity of the record that
      established it; a missing establishing record is a
      ScopeResolutionError, never a fallback to the line item's capacity.
    - ``used`` is always a fresh sum of records, never a stored counter.

Failure modes:
    - InvalidQuantityError: quantity <= 0, non-finite or unparseable.
    - InvoiceNotFoundError: the referenced invoice does not exist.
    - ScopeResolutionError: unresolvable or contradictory ancestor chain.
    - InsufficientQuantityError: requested > capacity - used.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any
from uuid import UUID

from allocation_engines.capacity import CapacityCalculator, CapacityCheck
from allocation_kernel.db.types import fits_quantity_column, to_decimal
from allocation_kernel.domain.dtos import InvoiceKind, LineItem, ScopeBalance
from allocation_kernel.domain.scope import AllocationContext, LineItemScope, ScopeReference
from allocation_kernel.domain.scope_resolver import ScopeResolver
from allocation_kernel.exceptions import (
    InsufficientQuantityError,
    InvalidQuantityError,
    ScopeResolutionError,
)
from allocation_kernel.logging_config import get_logger
from allocation_kernel.services.allocation_record_store import AllocationRecordStore
from allocation_kernel.services.ancestry_resolver import AncestryResolver
from allocation_kernel.services.document_classifier import DocumentClassifier

logger = get_logger("services.quantity_validator")


@dataclass(frozen=True)
class ValidationOutcome:
    """
    Result of a successful validation.

    ``context`` is the caller's context completed with inherited ancestors;
    ``check`` is None for exempt (inbound) requests.
    """

    context: AllocationContext
    scope: ScopeReference
    requested: Decimal
    invoice_kind: InvoiceKind | None = None
    check: CapacityCheck | None = None

    @property
    def exempt(self) -> bool:
        return self.check is None


def parse_requested_quantity(value: Any) -> Decimal:
    """
    Coerce a requested quantity to Decimal and require it to be positive.

    Raises:
        InvalidQuantityError: If the value is unparseable, non-finite, <= 0
            or not storable as-is (more than nine decimal places or more
            than 29 integer digits).
    """
    try:
        quantity = to_decimal(value)
    except (TypeError, ValueError) as e:
        raise InvalidQuantityError(str(value)) from e
    if not quantity.is_finite() or quantity <= 0:
        raise InvalidQuantityError(quantity)
    if not fits_quantity_column(quantity):
        raise InvalidQuantityError(quantity)
    return quantity


class QuantityValidator:
    """
    Accept or reject a requested quantity for a line item and context.

    Contract:
        validate() returns a ValidationOutcome or raises; it performs no
        writes and no partial work is left behind on failure.
    Non-goals:
        - Does not lock; AllocationService locks the scope first.
        - Does not detect duplicate links.
    """

    def __init__(
        self,
        store: AllocationRecordStore,
        classifier: DocumentClassifier,
        resolver: ScopeResolver | None = None,
        ancestry: AncestryResolver | None = None,
        calculator: CapacityCalculator | None = None,
    ):
        self._store = store
        self._classifier = classifier
        self._resolver = resolver or ScopeResolver()
        self._ancestry = ancestry or AncestryResolver(store, self._resolver)
        self._calculator = calculator or CapacityCalculator()

    # =========================================================================
    # Building blocks
    # =========================================================================

    def classify(self, context: AllocationContext) -> InvoiceKind | None:
        """Kind of the context's invoice, or None when it names no invoice."""
        if context.invoice_id is None:
            return None
        return self._classifier.classify_invoice(context.invoice_id)

    def resolve_scope(
        self,
        line_item_id: UUID,
        context: AllocationContext,
        strict: bool = True,
    ) -> tuple[AllocationContext, ScopeReference]:
        """Complete ancestors, then resolve the scope the request draws from."""
        completed = self._ancestry.complete(line_item_id, context, strict=strict)
        return completed, self._resolver.resolve(line_item_id, completed)

    def capacity_of(self, line_item: LineItem, scope: ScopeReference) -> Decimal:
        """
        Total capacity of ``scope``.

        Raises:
            ScopeResolutionError: If no record established the document scope.
        """
        if isinstance(scope, LineItemScope):
            return line_item.total_quantity
        capacity = self._store.get_capacity(scope, line_item.id)
        if capacity is None:
            raise ScopeResolutionError(
                scope.kind.value,
                scope.ref,
                f"no allocation record establishes it for line item {line_item.id}",
            )
        return capacity

    # =========================================================================
    # Public API
    # =========================================================================

    def validate(
        self,
        line_item: LineItem,
        requested_quantity: Any,
        context: AllocationContext,
        invoice_kind: InvoiceKind | None = None,
    ) -> ValidationOutcome:
        """
        Validate ``requested_quantity`` against the scope ``context`` resolves to.

        Args:
            line_item: The line item being allocated.
            requested_quantity: Quantity requested; must be > 0.
            context: Document references of the request.
            invoice_kind: Already-classified kind of ``context.invoice_id``;
                looked up when omitted.

        Returns:
            ValidationOutcome describing the resolved scope and the check.
        """
        requested = parse_requested_quantity(requested_quantity)

        logger.info(
            "allocation_validation_started",
            extra={
                "line_item_id": str(line_item.id),
                "requested": str(requested),
                "reference_key": context.reference_key(),
            },
        )

        if invoice_kind is None:
            invoice_kind = self.classify(context)

        if invoice_kind is InvoiceKind.INBOUND:
            completed, scope = self.resolve_scope(line_item.id, context, strict=False)
            logger.info(
                "inbound_invoice_exempt",
                extra={
                    "line_item_id": str(line_item.id),
                    "invoice_id": context.invoice_id,
                    "requested": str(requested),
                },
            )
            return ValidationOutcome(
                context=completed,
                scope=scope,
                requested=requested,
                invoice_kind=invoice_kind,
            )

        completed, scope = self.resolve_scope(line_item.id, context)
        capacity = self.capacity_of(line_item, scope)
        used = self._store.sum_by_scope(line_item.id, scope, exclude_inbound=True)

        check = self._calculator.check(
            scope=scope,
            capacity=capacity,
            used=used,
            requested=requested,
        )

        if not check.is_sufficient:
            logger.warning(
                "allocation_rejected",
                extra={
                    "line_item_id": str(line_item.id),
                    "scope_kind": scope.kind.value,
                    "scope_ref": scope.ref,
                    "capacity": str(capacity),
                    "used": str(used),
                    "available": str(check.available),
                    "requested": str(requested),
                },
            )
            raise InsufficientQuantityError(
                requested=requested,
                available=check.available,
                scope_kind=scope.kind.value,
                scope_ref=scope.ref,
            )

        logger.debug(
            "allocation_validated",
            extra={
                "line_item_id": str(line_item.id),
                "scope_kind": scope.kind.value,
                "scope_ref": scope.ref,
                "available": str(check.available),
                "requested": str(requested),
            },
        )
        return ValidationOutcome(
            context=completed,
            scope=scope,
            requested=requested,
            invoice_kind=invoice_kind,
            check=check,
        )

    def balance(self, line_item: LineItem, context: AllocationContext) -> ScopeBalance:
        """Capacity, consumption and availability of the scope ``context`` draws from."""
        _, scope = self.resolve_scope(line_item.id, context)
        capacity = self.capacity_of(line_item, scope)
        used = self._store.sum_by_scope(line_item.id, scope, exclude_inbound=True)
        return ScopeBalance(
            scope=scope,
            capacity=capacity,
            used=used,
            available=capacity - used,
        )
