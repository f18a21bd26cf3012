"""
AncestryResolver -- Complete an allocation context with inherited ancestors.

A commitment linked under a contract carries the contract id on its own
allocation record.  A later request that only names the commitment must
inherit that contract id, both so the new record carries its full ancestry
and so that ScopeResolver sees the same hierarchy the parent was created in.

For every document reference in the context, most specific first, the
resolver loads the record that established that document's link to the
line item and merges the record's contract / supply authorization into the
context.  Merging only fills gaps; an ancestor the caller supplied that
disagrees with the recorded one is a ScopeResolutionError.
"""

from __future__ import annotations

from uuid import UUID

from allocation_kernel.domain.scope import AllocationContext
from allocation_kernel.domain.scope_resolver import ScopeResolver
from allocation_kernel.exceptions import ScopeResolutionError
from allocation_kernel.logging_config import get_logger
from allocation_kernel.services.allocation_record_store import AllocationRecordStore

logger = get_logger("services.ancestry_resolver")


class AncestryResolver:
    """
    Store-backed ancestor completion.

    Non-goals:
        - Does not require every referenced document to have a record; a
          missing establishing record only matters for the resolved scope,
          which QuantityValidator checks.
    """

    def __init__(self, store: AllocationRecordStore, resolver: ScopeResolver | None = None):
        self._store = store
        self._resolver = resolver or ScopeResolver()

    def complete(
        self,
        line_item_id: UUID,
        context: AllocationContext,
        strict: bool = True,
    ) -> AllocationContext:
        """
        Return ``context`` with every recorded ancestor filled in.

        Args:
            line_item_id: The line item the request is for.
            context: References supplied by the caller.
            strict: If False, a conflicting ancestor is logged and the
                caller's value kept instead of raising.  Used for inbound
                invoices, which are bookkeeping only.

        Raises:
            ScopeResolutionError: On a conflicting ancestor when strict.
        """
        completed = context
        # Newly inherited ancestors may themselves have recorded parents.
        seen: set[tuple[str, str]] = set()
        changed = True
        while changed:
            changed = False
            for scope in self._resolver.document_scopes(completed):
                key = (scope.kind.value, scope.ref)
                if key in seen:
                    continue
                seen.add(key)
                record = self._store.get_capacity_record(scope, line_item_id)
                if record is None:
                    continue
                try:
                    merged = completed.merge_ancestors(
                        contract_id=record.contract_id,
                        supply_authorization_id=record.supply_authorization_id,
                        owner_kind=scope.kind,
                        owner_ref=scope.ref,
                    )
                except ScopeResolutionError as e:
                    if strict:
                        raise
                    logger.warning(
                        "ancestor_conflict_ignored",
                        extra={
                            "line_item_id": str(line_item_id),
                            "scope_kind": scope.kind.value,
                            "scope_ref": scope.ref,
                            "reason": e.reason,
                        },
                    )
                    continue
                if merged != completed:
                    completed = merged
                    changed = True

        if completed != context:
            logger.debug(
                "ancestors_inherited",
                extra={
                    "line_item_id": str(line_item_id),
                    "contract_id": completed.contract_id,
                    "supply_authorization_id": completed.supply_authorization_id,
                },
            )
        return completed
