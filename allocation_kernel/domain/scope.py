"""
Scope -- The document hierarchy an allocation draws its quantity from.

Responsibility:
    Defines the tagged union ``ScopeReference`` (line item, contract, supply
    authorization, commitment) and the ``AllocationContext`` of optional
    document references carried by an allocation request.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - A ScopeReference is exactly one of four frozen variants; each carries
      the single identifier that defines it.
    - AllocationContext.merge_ancestors() only fills missing references; it
      never overwrites a reference the caller supplied.

Failure modes:
    - ScopeResolutionError when an inherited ancestor contradicts one the
      caller supplied.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Union
from uuid import UUID

from allocation_kernel.exceptions import ScopeResolutionError


class ScopeKind(str, Enum):
    """Kinds of document an allocation record can link or draw from."""

    LINE_ITEM = "line_item"
    CONTRACT = "contract"
    SUPPLY_AUTHORIZATION = "supply_authorization"
    COMMITMENT = "commitment"
    INVOICE = "invoice"  # link kind only, never a scope


@dataclass(frozen=True)
class LineItemScope:
    """The bare line item: capacity is the item's total ordered quantity."""

    line_item_id: UUID

    @property
    def kind(self) -> ScopeKind:
        return ScopeKind.LINE_ITEM

    @property
    def ref(self) -> str:
        return str(self.line_item_id)


@dataclass(frozen=True)
class ContractScope:
    contract_id: str

    @property
    def kind(self) -> ScopeKind:
        return ScopeKind.CONTRACT

    @property
    def ref(self) -> str:
        return self.contract_id


@dataclass(frozen=True)
class AuthorizationScope:
    supply_authorization_id: str

    @property
    def kind(self) -> ScopeKind:
        return ScopeKind.SUPPLY_AUTHORIZATION

    @property
    def ref(self) -> str:
        return self.supply_authorization_id


@dataclass(frozen=True)
class CommitmentScope:
    commitment_id: str

    @property
    def kind(self) -> ScopeKind:
        return ScopeKind.COMMITMENT

    @property
    def ref(self) -> str:
        return self.commitment_id


ScopeReference = Union[LineItemScope, ContractScope, AuthorizationScope, CommitmentScope]


def scope_from_parts(line_item_id: UUID, kind: ScopeKind | str, ref: str) -> ScopeReference:
    """Rebuild a ScopeReference from its persisted (kind, ref) columns."""
    kind = ScopeKind(kind)
    if kind is ScopeKind.LINE_ITEM:
        return LineItemScope(line_item_id)
    if kind is ScopeKind.CONTRACT:
        return ContractScope(ref)
    if kind is ScopeKind.SUPPLY_AUTHORIZATION:
        return AuthorizationScope(ref)
    if kind is ScopeKind.COMMITMENT:
        return CommitmentScope(ref)
    raise ValueError(f"{kind.value} is not a scope kind")


def _normalize_ref(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class AllocationContext:
    """
    The optional document references present on an allocation request.

    Any combination may be set; ScopeResolver decides which one is linked
    and which one bounds the request.
    """

    contract_id: str | None = None
    supply_authorization_id: str | None = None
    commitment_id: str | None = None
    invoice_id: str | None = None

    def __post_init__(self) -> None:
        for name in _REFERENCE_FIELDS:
            object.__setattr__(self, name, _normalize_ref(getattr(self, name)))

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in _REFERENCE_FIELDS)

    def reference_key(self) -> str | None:
        """
        Canonical full reference tuple, or None for a bare line-item request.

        Two records with the same line item and reference key are the same
        link.
        """
        if self.is_empty:
            return None
        return "|".join(
            f"{label}={getattr(self, name) or ''}"
            for name, label in zip(_REFERENCE_FIELDS, ("c", "sa", "cm", "inv"))
        )

    def merge_ancestors(
        self,
        *,
        contract_id: str | None = None,
        supply_authorization_id: str | None = None,
        owner_kind: ScopeKind,
        owner_ref: str,
    ) -> AllocationContext:
        """
        Fill missing ancestor references inherited from a parent's record.

        Raises:
            ScopeResolutionError: If the caller supplied an ancestor that
                differs from the one recorded for the parent.
        """
        updates: dict[str, str] = {}
        for name, inherited in (
            ("contract_id", _normalize_ref(contract_id)),
            ("supply_authorization_id", _normalize_ref(supply_authorization_id)),
        ):
            if inherited is None:
                continue
            supplied = getattr(self, name)
            if supplied is None:
                updates[name] = inherited
            elif supplied != inherited:
                raise ScopeResolutionError(
                    owner_kind.value,
                    owner_ref,
                    f"{name} {supplied} does not match recorded ancestor {inherited}",
                )
        return replace(self, **updates) if updates else self

    @classmethod
    def from_dict(cls, data: dict) -> AllocationContext:
        return cls(**{name: data.get(name) for name in _REFERENCE_FIELDS})


_REFERENCE_FIELDS = (
    "contract_id",
    "supply_authorization_id",
    "commitment_id",
    "invoice_id",
)
