"""
Data Transfer Objects for the allocation kernel.

Frozen dataclasses crossing the service boundary: the external line item and
invoice views, the allocation input, and the persisted allocation record.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from allocation_kernel.db.types import NOTES_MAX_LENGTH, to_decimal
from allocation_kernel.domain.scope import AllocationContext, ScopeKind, ScopeReference
from allocation_kernel.exceptions import InvalidNotesError


class InvoiceKind(str, Enum):
    """
    Direction of an invoice.

    INBOUND invoices record goods received and never consume capacity.
    OUTBOUND invoices record delivery and draw from their parent scope.
    """

    INBOUND = "inbound"
    OUTBOUND = "outbound"

    @classmethod
    def parse(cls, value: str | InvoiceKind) -> InvoiceKind:
        """Parse a kind label, accepting the legacy entrada/saida labels."""
        if isinstance(value, InvoiceKind):
            return value
        label = str(value).strip().lower()
        return cls(_LEGACY_LABELS.get(label, label))


_LEGACY_LABELS = {"entrada": "inbound", "saida": "outbound", "saída": "outbound"}


@dataclass(frozen=True)
class LineItem:
    """A priced procurement line awaiting fulfillment."""

    id: UUID
    total_quantity: Decimal
    unit_price: Decimal = Decimal("0")


@dataclass(frozen=True)
class Invoice:
    id: str
    kind: InvoiceKind

    @property
    def is_inbound(self) -> bool:
        return self.kind is InvoiceKind.INBOUND


@dataclass(frozen=True)
class AllocationData:
    """
    Caller-supplied data for a new allocation besides item and quantity.

    ``unit_value`` defaults to zero; ``notes`` is free text (max 1000 chars).
    """

    context: AllocationContext = field(default_factory=AllocationContext)
    unit_value: Decimal = Decimal("0")
    notes: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "unit_value", to_decimal(self.unit_value))
        if self.notes is not None and len(self.notes) > NOTES_MAX_LENGTH:
            raise InvalidNotesError(len(self.notes), NOTES_MAX_LENGTH)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AllocationData:
        """Build from a flat mapping of references, unit_value and notes."""
        return cls(
            context=AllocationContext.from_dict(data),
            unit_value=data.get("unit_value", Decimal("0")),
            notes=data.get("notes"),
        )


@dataclass(frozen=True)
class AllocationRecord:
    """
    An append-only reservation of a line item's quantity.

    ``link_kind``/``link_ref`` name the document this record links (the
    record that establishes that document's capacity).  ``scope_kind``/
    ``scope_ref`` name the parent it draws from, fixed at creation.
    """

    id: UUID
    line_item_id: UUID
    quantity: Decimal
    unit_value: Decimal
    total_value: Decimal
    link_kind: ScopeKind
    link_ref: str | None
    scope_kind: ScopeKind
    scope_ref: str
    contract_id: str | None = None
    supply_authorization_id: str | None = None
    commitment_id: str | None = None
    invoice_id: str | None = None
    invoice_kind: InvoiceKind | None = None
    notes: str | None = None
    created_at: datetime | None = None
    created_by_id: UUID | None = None

    @property
    def context(self) -> AllocationContext:
        return AllocationContext(
            contract_id=self.contract_id,
            supply_authorization_id=self.supply_authorization_id,
            commitment_id=self.commitment_id,
            invoice_id=self.invoice_id,
        )

    @property
    def is_inbound(self) -> bool:
        return self.invoice_kind is InvoiceKind.INBOUND


@dataclass(frozen=True)
class ScopeBalance:
    """Capacity, consumption and remaining quantity of one scope."""

    scope: ScopeReference
    capacity: Decimal
    used: Decimal
    available: Decimal

    @property
    def is_fully_consumed(self) -> bool:
        return self.available <= Decimal("0")
