"""
ORM-Level Immutability Enforcement for allocation records.

===============================================================================
WHY THIS EXISTS
===============================================================================

Consumption of a line item is derived by summing allocation records.  If a
record's quantity or references could change in place, every running total
computed from it would silently drift.  Records are therefore append-only:
quantity changes are new records, and whole-record deletion is the only
correction path (AllocationService.remove).

SQLAlchemy fires ``before_update`` before the UPDATE reaches the database:

    session.flush()
         |
         v
    [before_update] --> _check_allocation_record_immutability() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if no protected column changed)

Audit metadata (updated_at, updated_by_id, notes) may still change.
"""

from sqlalchemy import event, inspect

from allocation_kernel.exceptions import ImmutabilityViolationError
from allocation_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _check_allocation_record_immutability(mapper, connection, target):
    """Prevent updates to the identifying and quantity columns of a record."""
    from allocation_kernel.models.allocation_record import PROTECTED_COLUMNS

    state = inspect(target)
    changed = [
        name
        for name in PROTECTED_COLUMNS
        if state.attrs[name].history.has_changes()
    ]
    if not changed:
        return

    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "AllocationRecord",
            "entity_id": str(target.id),
            "operation": "UPDATE",
            "columns": changed,
        },
    )
    raise ImmutabilityViolationError(
        entity_type="AllocationRecord",
        entity_id=str(target.id),
        reason=f"Allocation records are append-only; cannot change {', '.join(changed)}",
    )


def register_immutability_listeners() -> None:
    """
    Register immutability enforcement listeners.

    Call once after models are imported and before any database work.
    Idempotent.
    """
    from allocation_kernel.models.allocation_record import AllocationRecordModel

    if not event.contains(
        AllocationRecordModel, "before_update", _check_allocation_record_immutability
    ):
        event.listen(
            AllocationRecordModel, "before_update", _check_allocation_record_immutability
        )


def unregister_immutability_listeners() -> None:
    """
    Remove immutability enforcement listeners.

    WARNING: Only use this in tests that intentionally violate the rule.
    """
    from allocation_kernel.models.allocation_record import AllocationRecordModel

    if event.contains(
        AllocationRecordModel, "before_update", _check_allocation_record_immutability
    ):
        event.remove(
            AllocationRecordModel, "before_update", _check_allocation_record_immutability
        )
