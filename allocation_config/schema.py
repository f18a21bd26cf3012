"""
Configuration Schema (``allocation_config.schema``).

Responsibility
--------------
Frozen dataclass describing the runtime settings of the allocation
kernel.  Instances are produced by ``allocation_config.loader`` and never
mutated afterwards.

Invariants enforced
-------------------
* Every instance is validated in ``__post_init__``; an invalid value
  raises ``ValueError`` naming the offending field.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

_VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


@dataclass(frozen=True)
class AllocationSettings:
    """
    Runtime settings of the allocation kernel.

    Attributes:
        database_url: SQLAlchemy URL (PostgreSQL in production, SQLite for
            tooling and tests).
        echo_sql: Log every SQL statement.
        pool_size: Pooled connections (ignored on SQLite).
        max_overflow: Connections allowed beyond pool_size.
        value_decimal_places: Places total_value is rounded to (half-up).
        lock_scopes: Serialize allocations per (line item, scope).  Only
            single-writer tooling should turn this off.
        log_level: Level of the ``allocation_kernel`` logger hierarchy.
    """

    database_url: str = "sqlite://"
    echo_sql: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    value_decimal_places: int = 2
    lock_scopes: bool = True
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.database_url or not self.database_url.strip():
            raise ValueError("database_url must not be empty")
        if self.pool_size < 1:
            raise ValueError(f"pool_size must be at least 1, got {self.pool_size}")
        if self.max_overflow < 0:
            raise ValueError(f"max_overflow cannot be negative, got {self.max_overflow}")
        if not 0 <= self.value_decimal_places <= 9:
            raise ValueError(
                f"value_decimal_places must be between 0 and 9, got {self.value_decimal_places}"
            )
        level = self.log_level.upper()
        if level not in _VALID_LOG_LEVELS:
            raise ValueError(f"Unknown log_level: {self.log_level}")
        object.__setattr__(self, "log_level", level)

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level)

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")
