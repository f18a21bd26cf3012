"""
Module: allocation_engines.capacity
Responsibility:
    Compare a requested quantity against what a scope has left:
    ``available = capacity - used``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import kernel domain types.

Invariants enforced:
    - No over-allocation: a check is sufficient only when
      ``requested <= capacity - used``.
    - Exact Decimal arithmetic; no rounding, no clamping.  A negative
      ``available`` (data already over-allocated) is reported as-is.

Failure modes:
    - ValueError if any input is not a finite Decimal, or if capacity or
      used is negative.

Usage:
    from allocation_engines.capacity import CapacityCalculator

    check = CapacityCalculator().check(
        scope=CommitmentScope("E-1"),
        capacity=Decimal("20"),
        used=Decimal("10"),
        requested=Decimal("15"),
    )
    assert not check.is_sufficient and check.available == Decimal("10")
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from allocation_engines.tracer import traced_engine
from allocation_kernel.domain.scope import ScopeReference


@dataclass(frozen=True)
class CapacityCheck:
    """
    Outcome of one capacity comparison.

    Guarantees:
        - ``available == capacity - used``.
        - ``is_sufficient == (requested <= available)``.
    """

    scope: ScopeReference
    capacity: Decimal
    used: Decimal
    requested: Decimal

    @property
    def available(self) -> Decimal:
        return self.capacity - self.used

    @property
    def is_sufficient(self) -> bool:
        return self.requested <= self.available

    @property
    def remaining_after(self) -> Decimal:
        """Available quantity if the request were applied."""
        return self.available - self.requested


def _require_finite(name: str, value: Decimal) -> None:
    if not isinstance(value, Decimal) or not value.is_finite():
        raise ValueError(f"{name} must be a finite Decimal, got {value!r}")


class CapacityCalculator:
    """
    Pure capacity arithmetic for one scope.

    Contract:
        No I/O, no database access; identical inputs give identical outputs.
    Non-goals:
        - Does not decide which scope applies (ScopeResolver does).
        - Does not raise on insufficiency; callers decide how to report it.
    """

    @traced_engine(
        "capacity",
        "1.0",
        fingerprint_fields=("scope", "capacity", "used", "requested"),
        outcome=lambda check: {
            "available": check.available,
            "is_sufficient": check.is_sufficient,
        },
    )
    def check(
        self,
        *,
        scope: ScopeReference,
        capacity: Decimal,
        used: Decimal,
        requested: Decimal,
    ) -> CapacityCheck:
        _require_finite("capacity", capacity)
        _require_finite("used", used)
        _require_finite("requested", requested)
        if capacity < 0:
            raise ValueError(f"capacity cannot be negative, got {capacity}")
        if used < 0:
            raise ValueError(f"used cannot be negative, got {used}")
        return CapacityCheck(
            scope=scope,
            capacity=capacity,
            used=used,
            requested=requested,
        )
