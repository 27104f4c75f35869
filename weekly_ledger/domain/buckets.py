"""
Bucket states -- the two ledger shapes as immutable domain objects.

Responsibility:
    DayBucketState (one entry per calendar date) and RangeBucketState (an
    ordered list of non-overlapping date ranges) share a WeekKey and the
    same bucket-level header: week bounds, weekly net payable, party-total
    annotation and the approval flag.  LedgerStore hands these to mutators
    and writes back whatever the mutator returns, so every write path works
    on plain values rather than ORM rows.

Invariants enforced (check_invariants):
    - week_start_date <= week_end_date, spanning at most seven days.
    - Day keys fall inside [week_start_date, week_end_date].
    - Every range has start <= end inside the week, and sorted by start no
      range begins on or before the previous range's end.

Failure modes:
    - BucketInvariantError from check_invariants(); the store calls it before
      every write so a broken state is never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, ClassVar, Iterable, Mapping, Union

from weekly_ledger.domain.values import (
    MEASURES,
    Annotation,
    BucketShape,
    DayEntry,
    FinancialFields,
    RangeEntry,
    WeekKey,
    WeeklyNetPayable,
)
from weekly_ledger.domain.week_clock import DAYS_PER_WEEK, bounds_of
from weekly_ledger.exceptions import BucketInvariantError

if TYPE_CHECKING:
    from weekly_ledger.models.ledger_bucket import (
        DayBucket as DayBucketModel,
    )
    from weekly_ledger.models.ledger_bucket import (
        LedgerBucketBase as LedgerBucketModel,
    )
    from weekly_ledger.models.ledger_bucket import (
        RangeBucket as RangeBucketModel,
    )


def _check_week_window(key: WeekKey, start: date, end: date) -> None:
    if start > end:
        raise BucketInvariantError(str(key), f"week starts {start} after it ends {end}")
    if (end - start).days >= DAYS_PER_WEEK:
        raise BucketInvariantError(
            str(key), f"week {start}..{end} spans more than {DAYS_PER_WEEK} days"
        )


def _fields_from_payload(data: Mapping[str, Any]) -> FinancialFields:
    return FinancialFields.from_mapping({name: data.get(name) for name in MEASURES})


def _annotation_from_payload(data: Mapping[str, Any]) -> Annotation:
    raw = data.get("annotation")
    return Annotation(raw) if raw else Annotation.RED


def _header_from_model(model: LedgerBucketModel) -> dict[str, Any]:
    return {
        "key": WeekKey(model.party_id, model.week_number, model.week_year),
        "week_start_date": model.week_start_date,
        "week_end_date": model.week_end_date,
        "weekly_net_payable": WeeklyNetPayable(
            name=model.weekly_net_payable_name or "",
            amount=model.weekly_net_payable_amount,
        ),
        "party_total_annotation": Annotation(model.party_total_annotation),
        "is_approved": bool(model.is_approved),
        "created_at": model.created_at,
        "updated_at": model.updated_at,
    }


@dataclass(frozen=True)
class DayBucketState:
    """Per-day bucket for one party and ISO week."""

    shape: ClassVar[BucketShape] = BucketShape.DAY

    key: WeekKey
    week_start_date: date
    week_end_date: date
    days: Mapping[date, DayEntry] = field(default_factory=dict)
    weekly_net_payable: WeeklyNetPayable = field(default_factory=WeeklyNetPayable)
    party_total_annotation: Annotation = Annotation.RED
    is_approved: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def fresh(cls, key: WeekKey) -> DayBucketState:
        bounds = bounds_of(key.week_number, key.week_year)
        return cls(key=key, week_start_date=bounds.start_date, week_end_date=bounds.end_date)

    @classmethod
    def from_model(cls, model: DayBucketModel) -> DayBucketState:
        """Boundary converter, called from the store and selectors only."""
        return cls(days=cls.entries_from_payload(model.days), **_header_from_model(model))

    def covers_exactly(self, start: date, end: date) -> bool:
        return self.week_start_date == start and self.week_end_date == end

    def sorted_days(self) -> list[DayEntry]:
        return [self.days[d] for d in sorted(self.days)]

    def with_days(self, days: Iterable[DayEntry]) -> DayBucketState:
        return replace(self, days={entry.entry_date: entry for entry in days})

    def check_invariants(self) -> None:
        _check_week_window(self.key, self.week_start_date, self.week_end_date)
        for day, entry in self.days.items():
            if day != entry.entry_date:
                raise BucketInvariantError(
                    str(self.key), f"day key {day} holds entry dated {entry.entry_date}"
                )
            if not self.week_start_date <= day <= self.week_end_date:
                raise BucketInvariantError(
                    str(self.key),
                    f"day {day} outside week {self.week_start_date}..{self.week_end_date}",
                )

    def entries_payload(self) -> dict[str, dict[str, str]]:
        return {
            entry.entry_date.isoformat(): {
                **entry.fields.to_payload(),
                "annotation": entry.annotation.value,
            }
            for entry in self.sorted_days()
        }

    @staticmethod
    def entries_from_payload(payload: Mapping[str, Mapping[str, Any]] | None) -> dict[date, DayEntry]:
        days: dict[date, DayEntry] = {}
        for raw_date, data in (payload or {}).items():
            day = date.fromisoformat(raw_date)
            days[day] = DayEntry(
                entry_date=day,
                fields=_fields_from_payload(data),
                annotation=_annotation_from_payload(data),
            )
        return days


@dataclass(frozen=True)
class RangeBucketState:
    """Per-range bucket for one party and ISO week."""

    shape: ClassVar[BucketShape] = BucketShape.RANGE

    key: WeekKey
    week_start_date: date
    week_end_date: date
    ranges: tuple[RangeEntry, ...] = ()
    weekly_net_payable: WeeklyNetPayable = field(default_factory=WeeklyNetPayable)
    party_total_annotation: Annotation = Annotation.RED
    is_approved: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def fresh(cls, key: WeekKey) -> RangeBucketState:
        bounds = bounds_of(key.week_number, key.week_year)
        return cls(key=key, week_start_date=bounds.start_date, week_end_date=bounds.end_date)

    @classmethod
    def from_model(cls, model: RangeBucketModel) -> RangeBucketState:
        return cls(ranges=cls.entries_from_payload(model.ranges), **_header_from_model(model))

    def covers_exactly(self, start: date, end: date) -> bool:
        return self.week_start_date == start and self.week_end_date == end

    def find_range(self, start: date, end: date) -> RangeEntry | None:
        for entry in self.ranges:
            if entry.span == (start, end):
                return entry
        return None

    def with_ranges(self, ranges: Iterable[RangeEntry]) -> RangeBucketState:
        return replace(self, ranges=tuple(sorted(ranges, key=lambda r: r.span)))

    def check_invariants(self) -> None:
        _check_week_window(self.key, self.week_start_date, self.week_end_date)
        previous: RangeEntry | None = None
        for entry in sorted(self.ranges, key=lambda r: r.span):
            if entry.start_date > entry.end_date:
                raise BucketInvariantError(str(self.key), f"range {entry.label()} ends before it starts")
            if entry.start_date < self.week_start_date or entry.end_date > self.week_end_date:
                raise BucketInvariantError(
                    str(self.key),
                    f"range {entry.label()} outside week {self.week_start_date}..{self.week_end_date}",
                )
            if previous is not None and entry.start_date <= previous.end_date:
                raise BucketInvariantError(
                    str(self.key), f"range {entry.label()} overlaps {previous.label()}"
                )
            previous = entry

    def entries_payload(self) -> list[dict[str, str]]:
        return [
            {
                "start_date": entry.start_date.isoformat(),
                "end_date": entry.end_date.isoformat(),
                **entry.fields.to_payload(),
                "annotation": entry.annotation.value,
            }
            for entry in sorted(self.ranges, key=lambda r: r.span)
        ]

    @staticmethod
    def entries_from_payload(payload: Iterable[Mapping[str, Any]] | None) -> tuple[RangeEntry, ...]:
        entries = [
            RangeEntry(
                start_date=date.fromisoformat(data["start_date"]),
                end_date=date.fromisoformat(data["end_date"]),
                fields=_fields_from_payload(data),
                annotation=_annotation_from_payload(data),
            )
            for data in (payload or [])
        ]
        return tuple(sorted(entries, key=lambda r: r.span))


BucketState = Union[DayBucketState, RangeBucketState]
