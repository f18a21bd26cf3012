"""
Module: allocation_engines
Responsibility:
    Re-exports the pure calculation engines used by the allocation kernel.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  May import kernel domain
    types; MUST NOT import kernel services, selectors or models.

Invariants enforced:
    - Decimal-only arithmetic; floats are rejected.
    - Determinism: identical inputs always produce identical outputs.
"""

from allocation_engines.capacity import CapacityCalculator, CapacityCheck
from allocation_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "CapacityCalculator",
    "CapacityCheck",
    "compute_input_fingerprint",
    "traced_engine",
]
