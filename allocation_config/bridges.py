"""
Config -> Kernel Bridges.

Functions that turn AllocationSettings into kernel objects.  These live in
allocation_config (the producer) because the kernel must NEVER import
allocation_config.

Usage:
    from allocation_config import get_active_config
    from allocation_config.bridges import build_allocation_service, init_engine_from_settings

    settings = get_active_config()
    init_engine_from_settings(settings)
    with session_scope() as session:
        service = build_allocation_service(session, settings)
"""

from __future__ import annotations

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from allocation_config.schema import AllocationSettings
from allocation_kernel.db.engine import init_engine_from_url
from allocation_kernel.db.immutability import register_immutability_listeners
from allocation_kernel.domain.clock import Clock
from allocation_kernel.logging_config import configure_logging
from allocation_kernel.selectors.invoice_selector import InvoiceSelector
from allocation_kernel.selectors.line_item_selector import LineItemSelector
from allocation_kernel.services.allocation_record_store import SqlAlchemyAllocationRecordStore
from allocation_kernel.services.allocation_service import AllocationService


def init_engine_from_settings(settings: AllocationSettings) -> Engine:
    """Configure logging, enforce record immutability and initialize the engine."""
    configure_logging(level=settings.log_level_value)
    register_immutability_listeners()
    return init_engine_from_url(
        settings.database_url,
        echo=settings.echo_sql,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
    )


def build_allocation_service(
    session: Session,
    settings: AllocationSettings,
    clock: Clock | None = None,
) -> AllocationService:
    """AllocationService wired to SQL-backed store and lookups on ``session``."""
    return AllocationService(
        store=SqlAlchemyAllocationRecordStore(session, lock_scopes=settings.lock_scopes),
        line_items=LineItemSelector(session),
        invoices=InvoiceSelector(session),
        clock=clock,
        value_decimal_places=settings.value_decimal_places,
    )
