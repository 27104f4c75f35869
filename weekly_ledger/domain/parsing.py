"""Date and date-range parsing for request payloads."""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any

from weekly_ledger.exceptions import InvalidInputError

_DATE = r"(\d{4}-\d{2}-\d{2})"
# A calendar date, optionally followed by an ISO time of day and offset.
_ISO_DATE = re.compile(_DATE + r"(?:T\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?)?")
_DATE_RANGE = re.compile(_DATE + r"\s*(?:\.\.|to|-|,)\s*" + _DATE)


def parse_date(value: Any, field: str = "date") -> date:
    """
    Accept a date, a datetime, a YYYY-MM-DD string or an ISO timestamp.

    Timestamps such as ``2025-11-03T00:00:00.000Z`` keep only their calendar
    date; the ledger never buckets by time of day.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        match = _ISO_DATE.fullmatch(value.strip())
        if match:
            try:
                return date.fromisoformat(match.group(1))
            except ValueError:
                pass
    raise InvalidInputError(
        f"{field} must be a YYYY-MM-DD date, got {value!r}",
        field=field,
        value=value,
    )


def parse_optional_date(value: Any, field: str = "date") -> date | None:
    if value is None or value == "":
        return None
    return parse_date(value, field)


def parse_date_pair(value: Any, field: str = "target_range") -> tuple[date, date]:
    """
    Parse a range label into ``(start, end)`` without checking their order.

    Accepts a 2-sequence of dates or two YYYY-MM-DD dates joined by
    ``..``, ``to``, ``-`` or ``,``: ``2025-11-03..2025-11-05``,
    ``2025-11-03 to 2025-11-05``.
    """
    if isinstance(value, (list, tuple)) and len(value) == 2:
        start, end = parse_date(value[0], field), parse_date(value[1], field)
    elif isinstance(value, str):
        match = _DATE_RANGE.fullmatch(value.strip())
        if match is None:
            raise InvalidInputError(
                f"Invalid date range format: {value!r}", field=field, value=value
            )
        start, end = parse_date(match.group(1), field), parse_date(match.group(2), field)
    else:
        raise InvalidInputError(
            f"Invalid date range format: {value!r}", field=field, value=value
        )
    return start, end


def parse_date_range(value: Any, field: str = "target_range") -> tuple[date, date]:
    """Like parse_date_pair, but start after end is an error."""
    start, end = parse_date_pair(value, field)
    if start > end:
        raise InvalidInputError(
            f"{field} starts {start} after it ends {end}", field=field, value=value
        )
    return start, end


def parse_window(start: Any, end: Any) -> tuple[date, date]:
    """Inclusive query window; both bounds required and start <= end."""
    if start in (None, "") or end in (None, ""):
        raise InvalidInputError(
            "startDate and endDate (YYYY-MM-DD) are required", field="window"
        )
    start_date = parse_date(start, "start_date")
    end_date = parse_date(end, "end_date")
    if start_date > end_date:
        raise InvalidInputError(
            f"start_date {start_date} is after end_date {end_date}",
            field="window",
            value=(start, end),
        )
    return start_date, end_date
