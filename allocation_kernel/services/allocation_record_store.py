"""
AllocationRecordStore -- Persistence boundary for allocation records.

This store is responsible for:
- Deriving "used" quantity per scope by summing records (never a counter)
- Locating the record that established a document's capacity
- Appending new records and translating uniqueness violations
- Serializing check-then-insert per (line item, scope)

The store follows the kernel's session pattern:
- Accepts a Session from the caller
- Uses session.flush() within the transaction
- Does NOT call session.commit() - caller controls boundaries
"""

from __future__ import annotations

import hashlib
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from sqlalchemy import func, or_, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from allocation_kernel.db.types import to_decimal
from allocation_kernel.domain.dtos import AllocationRecord, InvoiceKind
from allocation_kernel.domain.scope import LineItemScope, ScopeReference
from allocation_kernel.exceptions import (
    AllocationRecordNotFoundError,
    DuplicateAllocationError,
)
from allocation_kernel.logging_config import get_logger
from allocation_kernel.models.allocation_record import AllocationRecordModel

logger = get_logger("services.allocation_record_store")


class AllocationRecordStore(Protocol):
    """Persistence interface the validator and service depend on."""

    def sum_by_scope(
        self,
        line_item_id: UUID,
        scope: ScopeReference,
        exclude_inbound: bool = True,
    ) -> Decimal:
        """Sum of quantities of records drawing from ``scope``."""
        ...

    def get_capacity_record(
        self, scope: ScopeReference, line_item_id: UUID
    ) -> AllocationRecord | None:
        """The record that established ``scope``'s link to the line item."""
        ...

    def get_capacity(self, scope: ScopeReference, line_item_id: UUID) -> Decimal | None:
        ...

    def insert(self, record: AllocationRecord, reference_key: str | None) -> AllocationRecord:
        ...

    def find_by_reference(
        self, line_item_id: UUID, reference_key: str
    ) -> AllocationRecord | None:
        ...

    def list_by_item(self, line_item_id: UUID) -> list[AllocationRecord]:
        ...

    def get(self, record_id: UUID) -> AllocationRecord | None:
        ...

    def count_children(self, line_item_id: UUID, scope: ScopeReference) -> int:
        ...

    def delete(self, record_id: UUID) -> None:
        ...

    def lock_scope(self, line_item_id: UUID, scope: ScopeReference) -> None:
        ...


def scope_lock_key(line_item_id: UUID, scope: ScopeReference) -> int:
    """
    Deterministic signed 64-bit advisory lock key for (line item, scope).

    Derived from SHA-256 so every process computes the same key.
    """
    material = f"{line_item_id}|{scope.kind.value}|{scope.ref}".encode()
    digest = hashlib.sha256(material).digest()
    return int.from_bytes(digest[:8], "big", signed=True)


class SqlAlchemyAllocationRecordStore:
    """
    SQLAlchemy implementation of AllocationRecordStore.

    Contract:
        All reads see the caller's transaction.  insert() flushes through a
        savepoint so a uniqueness violation leaves the caller's other work
        intact.
    Non-goals:
        - Does not validate quantities; QuantityValidator does.
    """

    def __init__(self, session: Session, lock_scopes: bool = True):
        """
        Initialize the store.

        Args:
            session: SQLAlchemy session for database operations.
            lock_scopes: If False, lock_scope() is a no-op (single-writer
                deployments and tooling).
        """
        self.session = session
        self.lock_scopes = lock_scopes

    # =========================================================================
    # Derived consumption
    # =========================================================================

    def sum_by_scope(
        self,
        line_item_id: UUID,
        scope: ScopeReference,
        exclude_inbound: bool = True,
    ) -> Decimal:
        """
        Sum the quantities of all records drawing from ``scope``.

        Args:
            line_item_id: The line item.
            scope: The parent scope the records draw from.
            exclude_inbound: Skip records tied to inbound invoices; they are
                bookkeeping, not consumption.

        Returns:
            The total, Decimal("0") when no record matches.
        """
        stmt = select(func.coalesce(func.sum(AllocationRecordModel.quantity), 0)).where(
            AllocationRecordModel.line_item_id == line_item_id,
            AllocationRecordModel.scope_kind == scope.kind.value,
            AllocationRecordModel.scope_ref == scope.ref,
        )
        if exclude_inbound:
            stmt = stmt.where(
                or_(
                    AllocationRecordModel.invoice_kind.is_(None),
                    AllocationRecordModel.invoice_kind != InvoiceKind.INBOUND.value,
                )
            )
        total = self.session.execute(stmt).scalar_one()
        return to_decimal(total or 0)

    def count_children(self, line_item_id: UUID, scope: ScopeReference) -> int:
        """Number of records (inbound included) drawing from ``scope``."""
        return self.session.execute(
            select(func.count(AllocationRecordModel.id)).where(
                AllocationRecordModel.line_item_id == line_item_id,
                AllocationRecordModel.scope_kind == scope.kind.value,
                AllocationRecordModel.scope_ref == scope.ref,
            )
        ).scalar_one()

    # =========================================================================
    # Capacity records
    # =========================================================================

    def _capacity_model(
        self, scope: ScopeReference, line_item_id: UUID, for_update: bool = False
    ) -> AllocationRecordModel | None:
        stmt = (
            select(AllocationRecordModel)
            .where(
                AllocationRecordModel.line_item_id == line_item_id,
                AllocationRecordModel.link_kind == scope.kind.value,
                AllocationRecordModel.link_ref == scope.ref,
            )
            .order_by(AllocationRecordModel.created_at, AllocationRecordModel.id)
            .limit(1)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def get_capacity_record(
        self, scope: ScopeReference, line_item_id: UUID
    ) -> AllocationRecord | None:
        """
        The record whose linked document is ``scope``.

        Returns None for the line item scope (its capacity is the item's
        total quantity) and for documents never linked to this item.
        """
        if isinstance(scope, LineItemScope):
            return None
        model = self._capacity_model(scope, line_item_id)
        return model.to_dto() if model else None

    def get_capacity(self, scope: ScopeReference, line_item_id: UUID) -> Decimal | None:
        record = self.get_capacity_record(scope, line_item_id)
        return record.quantity if record else None

    # =========================================================================
    # Locking
    # =========================================================================

    def lock_scope(self, line_item_id: UUID, scope: ScopeReference) -> None:
        """
        Serialize allocations against (line item, scope) until commit.

        PostgreSQL: transaction-scoped advisory lock, plus a row lock on the
        scope's capacity record.  Other dialects: no-op.
        """
        if not self.lock_scopes:
            return
        dialect = self.session.get_bind().dialect.name
        if dialect != "postgresql":
            logger.debug(
                "scope_lock_skipped",
                extra={"dialect": dialect, "scope_kind": scope.kind.value},
            )
            return

        key = scope_lock_key(line_item_id, scope)
        self.session.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": key})
        if not isinstance(scope, LineItemScope):
            self._capacity_model(scope, line_item_id, for_update=True)
        logger.debug(
            "scope_locked",
            extra={
                "line_item_id": str(line_item_id),
                "scope_kind": scope.kind.value,
                "scope_ref": scope.ref,
                "lock_key": key,
            },
        )

    # =========================================================================
    # Writes
    # =========================================================================

    def insert(self, record: AllocationRecord, reference_key: str | None) -> AllocationRecord:
        """
        Append a record inside the caller's transaction.

        Raises:
            DuplicateAllocationError: If (line item, reference_key) exists.
        """
        model = AllocationRecordModel.from_dto(record, reference_key)
        savepoint = self.session.begin_nested()
        try:
            self.session.add(model)
            self.session.flush()
            savepoint.commit()
        except IntegrityError as e:
            # Another transaction created the same link first
            savepoint.rollback()
            raise DuplicateAllocationError(
                line_item_id=str(record.line_item_id),
                reference_key=reference_key or "",
            ) from e

        return model.to_dto()

    def delete(self, record_id: UUID) -> None:
        model = self.session.get(AllocationRecordModel, record_id)
        if model is None:
            raise AllocationRecordNotFoundError(str(record_id))
        self.session.delete(model)
        self.session.flush()

    # =========================================================================
    # Reads
    # =========================================================================

    def find_by_reference(
        self, line_item_id: UUID, reference_key: str
    ) -> AllocationRecord | None:
        model = self.session.execute(
            select(AllocationRecordModel).where(
                AllocationRecordModel.line_item_id == line_item_id,
                AllocationRecordModel.reference_key == reference_key,
            )
        ).scalar_one_or_none()
        return model.to_dto() if model else None

    def get(self, record_id: UUID) -> AllocationRecord | None:
        model = self.session.get(AllocationRecordModel, record_id)
        return model.to_dto() if model else None

    def list_by_item(self, line_item_id: UUID) -> list[AllocationRecord]:
        models = self.session.execute(
            select(AllocationRecordModel)
            .where(AllocationRecordModel.line_item_id == line_item_id)
            .order_by(AllocationRecordModel.created_at, AllocationRecordModel.id)
        ).scalars().all()
        return [m.to_dto() for m in models]
