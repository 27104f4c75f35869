"""
WeekClock -- ISO 8601 week arithmetic.

Responsibility:
    Maps a calendar date to its ISO week key, a week key back to its
    Monday..Sunday bounds, and tests inclusive interval overlap.  Every
    bucket in the ledger is addressed through these functions, so the
    day-shape and range-shape stores always agree on which week a date
    belongs to.

Architecture position:
    Domain -- pure functions, zero I/O.

Invariants enforced:
    - week_key_of(bounds_of(*week_key_of(d)).start) == week_key_of(d) for
      every date d, including the 52/53 year transitions (Dec 29..Jan 3).
    - bounds_of(...).start is a Monday at 00:00:00.000 and .end the Sunday
      six days later at 23:59:59.999.

Failure modes:
    - InvalidInputError for week 0, week > 53, or week 53 in a year that has
      only 52 ISO weeks.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from weekly_ledger.exceptions import InvalidInputError

DAYS_PER_WEEK = 7

_END_OF_DAY = time(23, 59, 59, 999000)


@dataclass(frozen=True)
class WeekBounds:
    """Inclusive instants of one ISO week."""

    start: datetime
    end: datetime

    @property
    def start_date(self) -> date:
        return self.start.date()

    @property
    def end_date(self) -> date:
        return self.end.date()

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def week_key_of(value: date | datetime) -> tuple[int, int]:
    """Return ``(week_number, week_year)`` of the ISO week containing ``value``."""
    iso = _as_date(value).isocalendar()
    return iso[1], iso[0]


def weeks_in_year(week_year: int) -> int:
    """Number of ISO weeks (52 or 53) in ``week_year``."""
    # Dec 28 always falls in the last ISO week of its year.
    return date(week_year, 12, 28).isocalendar()[1]


def bounds_of(week_number: int, week_year: int) -> WeekBounds:
    """Monday 00:00 .. Sunday 23:59:59.999 of ISO week ``week_number``."""
    if not 1 <= week_number <= 53:
        raise InvalidInputError(
            f"ISO week number must be 1..53, got {week_number}",
            field="week_number",
            value=week_number,
        )
    try:
        monday = date.fromisocalendar(week_year, week_number, 1)
    except ValueError as exc:
        raise InvalidInputError(
            f"Year {week_year} has no ISO week {week_number}",
            field="week_number",
            value=week_number,
        ) from exc
    sunday = monday + timedelta(days=DAYS_PER_WEEK - 1)
    return WeekBounds(
        start=datetime.combine(monday, time.min),
        end=datetime.combine(sunday, _END_OF_DAY),
    )


def bounds_containing(value: date | datetime) -> WeekBounds:
    """Bounds of the ISO week containing ``value``."""
    return bounds_of(*week_key_of(value))


def ranges_overlap(a_start, a_end, b_start, b_end) -> bool:
    """Inclusive-bounds interval intersection."""
    return a_start <= b_end and a_end >= b_start
