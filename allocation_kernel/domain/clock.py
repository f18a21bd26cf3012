"""
Clock -- injectable time source for record timestamps.

AllocationService stamps ``created_at`` with ``clock.now()``.  Record
listings are ordered by ``created_at`` and then id, so tests that assert on
order inject a DeterministicClock with a step.
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta

EPOCH = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)


class Clock(ABC):
    """Source of timezone-aware UTC timestamps."""

    @abstractmethod
    def now(self) -> datetime: ...


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(UTC)


class DeterministicClock(Clock):
    """
    Controlled clock for tests.

    Starts at ``start`` (default EPOCH).  With ``step`` set, every ``now()``
    call moves time forward by ``step`` first, so consecutive records get
    strictly increasing timestamps.  Without it, time only moves through
    ``advance()`` and ``tick()``.
    """

    def __init__(self, start: datetime | None = None, step: timedelta | None = None):
        self._current = start or EPOCH
        self._step = step

    def now(self) -> datetime:
        if self._step is not None:
            self._current += self._step
        return self._current

    def advance(self, seconds: float = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def tick(self) -> datetime:
        """Advance one second and return the new time."""
        self.advance(1)
        return self._current
