"""Database layer - engine, base classes, types, and immutability."""

from allocation_kernel.db.base import Base, TrackedBase, UUIDString
from allocation_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)
from allocation_kernel.db.types import fits_quantity_column, round_value, to_decimal

__all__ = [
    "Base",
    "TrackedBase",
    "UUIDString",
    "create_tables",
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "session_scope",
    "fits_quantity_column",
    "round_value",
    "to_decimal",
]
