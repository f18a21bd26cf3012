"""
AllocationService -- Public entry point for quantity allocations.

Responsibility:
    Orchestrates one allocation ("vinculo"): input validation, line item
    lookup, scope locking, the no-over-allocation check, duplicate
    detection and the append of the new AllocationRecord.  Also exposes
    the read side (listing, scope balance) and removal of records nothing
    depends on.

Architecture position:
    Kernel > Services.  Owns no transaction: every write is flushed into
    the caller's session and the caller commits (``session_scope()`` is the
    standard boundary).  A failure at any step leaves nothing written.

Invariants enforced:
    - No over-allocation, serialized per (line item, scope) by lock_scope
      before the check and held until the caller's commit.
    - total_value = quantity x unit_value, rounded half-up to the configured
      decimal places (2 by default).
    - A record referencing a child document carries every ancestor
      reference recorded for its parent.
    - "Used" quantities are never stored; records are append-only facts.

Failure modes:
    - InvalidQuantityError / InvalidUnitValueError / InvalidNotesError before
      any lookup.
    - LineItemNotFoundError / InvoiceNotFoundError for unknown references.
    - ScopeResolutionError, InsufficientQuantityError from validation.
    - DuplicateAllocationError when the same link already exists.
    - AllocationRecordNotFoundError / AllocationInUseError from remove().

Usage:
    with session_scope() as session:
        service = AllocationService(
            store=SqlAlchemyAllocationRecordStore(session),
            line_items=LineItemSelector(session),
            invoices=InvoiceSelector(session),
        )
        record = service.store(
            item_id, Decimal("10"),
            {"commitment_id": "2024NE000123", "unit_value": "12.50"},
            actor_id=user_id,
        )
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from allocation_kernel.db.types import (
    VALUE_DECIMAL_PLACES,
    fits_quantity_column,
    multiply_exact,
    round_value,
    to_decimal,
)
from allocation_kernel.domain.clock import Clock, SystemClock
from allocation_kernel.domain.dtos import (
    AllocationData,
    AllocationRecord,
    InvoiceKind,
    ScopeBalance,
)
from allocation_kernel.domain.lookups import InvoiceLookup, LineItemLookup
from allocation_kernel.domain.scope import AllocationContext, ScopeKind, scope_from_parts
from allocation_kernel.domain.scope_resolver import ScopeResolver
from allocation_kernel.exceptions import (
    AllocationInUseError,
    AllocationRecordNotFoundError,
    DuplicateAllocationError,
    InvalidUnitValueError,
)
from allocation_kernel.logging_config import LogContext, get_logger
from allocation_kernel.services.allocation_record_store import AllocationRecordStore
from allocation_kernel.services.document_classifier import DocumentClassifier
from allocation_kernel.services.quantity_validator import (
    QuantityValidator,
    parse_requested_quantity,
)

logger = get_logger("services.allocation")

# created_by_id for allocations made without an acting user
SYSTEM_ACTOR_ID = UUID(int=0)


def _coerce_allocation_data(
    data: AllocationData | AllocationContext | Mapping | None,
) -> AllocationData:
    if data is None:
        return AllocationData()
    if isinstance(data, AllocationData):
        return data
    if isinstance(data, AllocationContext):
        return AllocationData(context=data)
    if isinstance(data, Mapping):
        return AllocationData.from_dict(dict(data))
    raise TypeError(f"Unsupported allocation data: {type(data).__name__}")


def _parse_unit_value(data: AllocationData | AllocationContext | Mapping | None) -> None:
    """Reject negative, unparseable or unstorable unit values before any lookup."""
    raw: Any = None
    if isinstance(data, AllocationData):
        raw = data.unit_value
    elif isinstance(data, Mapping):
        raw = data.get("unit_value")
    if raw is None:
        return
    try:
        value = to_decimal(raw)
    except (TypeError, ValueError) as e:
        raise InvalidUnitValueError(str(raw)) from e
    if not value.is_finite() or value < 0:
        raise InvalidUnitValueError(value)
    if not fits_quantity_column(value):
        raise InvalidUnitValueError(value)


def _total_value(quantity: Decimal, unit_value: Decimal, decimal_places: int) -> Decimal:
    """quantity x unit_value rounded half-up; rejected when the column cannot hold it."""
    total = round_value(multiply_exact(quantity, unit_value), decimal_places)
    if not fits_quantity_column(total):
        raise InvalidUnitValueError(unit_value)
    return total


class AllocationService:
    """
    Store, list, inspect and remove allocation records for line items.

    Contract:
        store() either returns the persisted record or raises without any
        write reaching the session.
    Non-goals:
        - Does not commit; the caller owns the transaction.
        - Does not edit records in place; corrections are remove() + store().
    """

    def __init__(
        self,
        store: AllocationRecordStore,
        line_items: LineItemLookup,
        invoices: InvoiceLookup,
        clock: Clock | None = None,
        resolver: ScopeResolver | None = None,
        value_decimal_places: int = VALUE_DECIMAL_PLACES,
    ):
        self._store = store
        self._line_items = line_items
        self._clock = clock or SystemClock()
        self._resolver = resolver or ScopeResolver()
        self._validator = QuantityValidator(
            store=store,
            classifier=DocumentClassifier(invoices),
            resolver=self._resolver,
        )
        self._value_decimal_places = value_decimal_places

    @property
    def validator(self) -> QuantityValidator:
        return self._validator

    # =========================================================================
    # Store
    # =========================================================================

    def store(
        self,
        line_item_id: UUID,
        requested_quantity: Decimal | str | int,
        allocation_data: AllocationData | AllocationContext | Mapping | None = None,
        actor_id: UUID | None = None,
    ) -> AllocationRecord:
        """
        Validate and persist a new allocation record.

        Args:
            line_item_id: The line item to allocate.
            requested_quantity: Quantity to reserve; must be > 0.
            allocation_data: AllocationData, a bare AllocationContext, or a
                mapping with contract_id / supply_authorization_id /
                commitment_id / invoice_id / unit_value / notes.
            actor_id: Who is allocating; stored as created_by_id.

        Returns:
            The persisted AllocationRecord, ancestors included.
        """
        # Cheap input checks first, before any lookup.
        requested = parse_requested_quantity(requested_quantity)
        _parse_unit_value(allocation_data)
        data = _coerce_allocation_data(allocation_data)
        total_value = _total_value(requested, data.unit_value, self._value_decimal_places)
        actor_id = actor_id or SYSTEM_ACTOR_ID

        with LogContext.bind(line_item_id=str(line_item_id), actor_id=str(actor_id)):
            line_item = self._line_items.get(line_item_id)

            invoice_kind = self._validator.classify(data.context)
            completed, scope = self._validator.resolve_scope(
                line_item.id,
                data.context,
                strict=invoice_kind is not InvoiceKind.INBOUND,
            )
            self._store.lock_scope(line_item.id, scope)

            outcome = self._validator.validate(
                line_item, requested, completed, invoice_kind=invoice_kind
            )
            context = outcome.context

            reference_key = context.reference_key()
            if reference_key is not None:
                existing = self._store.find_by_reference(line_item.id, reference_key)
                if existing is not None:
                    logger.warning(
                        "allocation_duplicate_rejected",
                        extra={
                            "reference_key": reference_key,
                            "existing_id": str(existing.id),
                        },
                    )
                    raise DuplicateAllocationError(str(line_item.id), reference_key)

            link_kind, link_ref = self._resolver.link_of(context)
            record = AllocationRecord(
                id=uuid4(),
                line_item_id=line_item.id,
                quantity=requested,
                unit_value=data.unit_value,
                total_value=total_value,
                link_kind=link_kind,
                link_ref=link_ref,
                scope_kind=outcome.scope.kind,
                scope_ref=outcome.scope.ref,
                contract_id=context.contract_id,
                supply_authorization_id=context.supply_authorization_id,
                commitment_id=context.commitment_id,
                invoice_id=context.invoice_id,
                invoice_kind=outcome.invoice_kind,
                notes=data.notes,
                created_at=self._clock.now(),
                created_by_id=actor_id,
            )
            persisted = self._store.insert(record, reference_key)

            logger.info(
                "allocation_stored",
                extra={
                    "allocation_id": str(persisted.id),
                    "quantity": str(persisted.quantity),
                    "total_value": str(persisted.total_value),
                    "link_kind": link_kind.value,
                    "link_ref": link_ref,
                    "scope_kind": outcome.scope.kind.value,
                    "scope_ref": outcome.scope.ref,
                    "exempt": outcome.exempt,
                },
            )
            return persisted

    # =========================================================================
    # Reads
    # =========================================================================

    def list_for_item(self, line_item_id: UUID) -> list[AllocationRecord]:
        """All records of a line item, oldest first."""
        return self._store.list_by_item(line_item_id)

    def balance(
        self,
        line_item_id: UUID,
        allocation_data: AllocationData | AllocationContext | Mapping | None = None,
    ) -> ScopeBalance:
        """Balance of the scope a request with ``allocation_data`` would draw from."""
        data = _coerce_allocation_data(allocation_data)
        line_item = self._line_items.get(line_item_id)
        return self._validator.balance(line_item, data.context)

    # =========================================================================
    # Removal
    # =========================================================================

    def remove(self, record_id: UUID, actor_id: UUID | None = None) -> None:
        """
        Delete a record nothing draws from.

        Raises:
            AllocationRecordNotFoundError: If the record does not exist.
            AllocationInUseError: If the record establishes a document scope
                that other records still draw from.
        """
        record = self._store.get(record_id)
        if record is None:
            raise AllocationRecordNotFoundError(str(record_id))

        with LogContext.bind(
            line_item_id=str(record.line_item_id),
            allocation_id=str(record.id),
            actor_id=str(actor_id) if actor_id else None,
        ):
            if record.link_ref is not None and record.link_kind is not ScopeKind.INVOICE:
                established = scope_from_parts(
                    record.line_item_id, record.link_kind, record.link_ref
                )
                self._store.lock_scope(record.line_item_id, established)
                dependents = self._store.count_children(record.line_item_id, established)
                if dependents:
                    logger.warning(
                        "allocation_removal_blocked",
                        extra={"dependent_count": dependents},
                    )
                    raise AllocationInUseError(str(record.id), dependents)

            self._store.delete(record.id)
            logger.info(
                "allocation_removed",
                extra={
                    "quantity": str(record.quantity),
                    "scope_kind": record.scope_kind.value,
                    "scope_ref": record.scope_ref,
                },
            )
