"""
allocation_engines.tracer -- ALLOCATION_ENGINE_TRACE for pure engine calls.

``@traced_engine`` logs one DEBUG record per engine invocation:

    engine_name, engine_version   which engine answered
    input_fingerprint             16 hex chars of SHA-256 over selected kwargs
    duration_ms                   wall time of the call
    outcome                       engine-specific summary of the result
    failed                        True when the engine raised

Two checks with the same fingerprint saw the same quantities, so a rejected
allocation can be matched against the engine call that decided it.
Quantities are normalized before hashing (``10`` and ``10.000`` agree) and
scope references hash as ``kind:ref``.
"""

from __future__ import annotations

import functools
import hashlib
import time
from collections.abc import Callable, Mapping
from decimal import Decimal
from enum import Enum
from typing import Any

from allocation_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")


def _canonicalize(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, Decimal):
        return str(value.normalize()) if value.is_finite() else str(value)
    if isinstance(value, Enum):
        return str(value.value)
    kind = getattr(value, "kind", None)
    if isinstance(kind, Enum):
        return f"{kind.value}:{value.ref}"
    if isinstance(value, Mapping):
        return "{" + ",".join(f"{k}:{_canonicalize(value[k])}" for k in sorted(value)) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    kwargs: Mapping[str, Any],
) -> str:
    """Fingerprint of ``kwargs`` restricted to ``fingerprint_fields`` (absent -> "null")."""
    canonical = "|".join(
        f"{name}={_canonicalize(kwargs.get(name))}" for name in fingerprint_fields
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
    outcome: Callable[[Any], Mapping[str, Any]] | None = None,
) -> Callable:
    """
    Decorate an engine entry point (keyword-only inputs) with trace logging.

    Args:
        engine_name: Name logged as ``engine_name``.
        engine_version: Logged as ``engine_version``.
        fingerprint_fields: kwargs hashed into ``input_fingerprint``.
        outcome: Maps the engine's result to loggable fields.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            trace: dict[str, Any] = {
                "trace_type": "ALLOCATION_ENGINE_TRACE",
                "engine_name": engine_name,
                "engine_version": engine_version,
                "input_fingerprint": compute_input_fingerprint(fingerprint_fields, kwargs),
                "function": func.__qualname__,
                "failed": True,
            }
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
                trace["failed"] = False
                if outcome is not None:
                    trace["outcome"] = dict(outcome(result))
                return result
            finally:
                trace["duration_ms"] = round((time.perf_counter() - started) * 1000, 3)
                _logger.debug("ALLOCATION_ENGINE_TRACE", extra=trace)

        return wrapper

    return decorator
