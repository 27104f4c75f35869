"""
Injectable time source.

LedgerStore stamps ``created_at`` / ``updated_at`` from a Clock instead of
the database, and "most recently created bucket" decides where a party-total
annotation lands.  Tests therefore pin and step time explicitly.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone

# Monday of ISO week 46, 2025; one week after the weeks most tests write.
DEFAULT_TEST_TIME = datetime(2025, 11, 10, 9, 0, tzinfo=timezone.utc)


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current timezone-aware UTC time."""

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    Threads sharing one instance all see the same ``now()`` until a test
    calls ``advance`` or ``set_time``.
    """

    def __init__(self, start: datetime | None = None):
        self._current = start or DEFAULT_TEST_TIME

    def now(self) -> datetime:
        return self._current

    def set_time(self, when: datetime) -> None:
        self._current = when

    def advance(self, seconds: int = 1) -> datetime:
        self._current += timedelta(seconds=seconds)
        return self._current
