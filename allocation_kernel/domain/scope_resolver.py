"""
ScopeResolver -- Determine the nearest parent scope of an allocation request.

Responsibility:
    Given the document references of a request, decide which document the
    request links (the most specific reference) and which scope bounds it
    (the most specific reference above the linked document, or the line
    item when there is none).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Ancestor completion
    from persisted records happens before resolution, in
    ``services.ancestry_resolver``.

Invariants enforced:
    - Precedence, most specific first:
      invoice > commitment > supply authorization > contract > line item.
    - An invoice is never a scope; it always draws from its parent.
    - Resolution is exhaustive: every context maps to exactly one
      ScopeReference variant.

Usage:
    resolver = ScopeResolver()
    scope = resolver.resolve(item_id, AllocationContext(commitment_id="E-1", invoice_id="N-7"))
    assert scope == CommitmentScope("E-1")
"""

from __future__ import annotations

from uuid import UUID

from allocation_kernel.domain.scope import (
    AllocationContext,
    AuthorizationScope,
    CommitmentScope,
    ContractScope,
    LineItemScope,
    ScopeKind,
    ScopeReference,
)

# Most specific first.
PRECEDENCE: tuple[tuple[ScopeKind, str], ...] = (
    (ScopeKind.INVOICE, "invoice_id"),
    (ScopeKind.COMMITMENT, "commitment_id"),
    (ScopeKind.SUPPLY_AUTHORIZATION, "supply_authorization_id"),
    (ScopeKind.CONTRACT, "contract_id"),
)

_SCOPE_FACTORIES = {
    ScopeKind.COMMITMENT: CommitmentScope,
    ScopeKind.SUPPLY_AUTHORIZATION: AuthorizationScope,
    ScopeKind.CONTRACT: ContractScope,
}


class ScopeResolver:
    """
    Stateless precedence rules for the document hierarchy.

    Contract:
        resolve() and link_of() are pure functions of their arguments.
    Non-goals:
        - Does not look up parents' own records; callers complete the
          context with inherited ancestors first.
        - Does not check capacity.
    """

    def link_of(self, context: AllocationContext) -> tuple[ScopeKind, str | None]:
        """The document a request with this context links."""
        for kind, attr in PRECEDENCE:
            ref = getattr(context, attr)
            if ref is not None:
                return kind, ref
        return ScopeKind.LINE_ITEM, None

    def resolve(self, line_item_id: UUID, context: AllocationContext) -> ScopeReference:
        """The single scope a request with this context draws from."""
        link_kind, _ = self.link_of(context)
        below_link = False
        for kind, attr in PRECEDENCE:
            if kind is link_kind:
                below_link = True
                continue
            if not below_link:
                continue
            ref = getattr(context, attr)
            if ref is not None:
                return _SCOPE_FACTORIES[kind](ref)
        return LineItemScope(line_item_id)

    def document_scopes(self, context: AllocationContext) -> list[ScopeReference]:
        """
        Every document scope present in the context, most specific first.

        Includes the linked document itself when it can be a scope.
        """
        scopes: list[ScopeReference] = []
        for kind, attr in PRECEDENCE:
            ref = getattr(context, attr)
            if ref is not None and kind in _SCOPE_FACTORIES:
                scopes.append(_SCOPE_FACTORIES[kind](ref))
        return scopes
