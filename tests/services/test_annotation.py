"""
Tests for AnnotationService.

Covers:
- Party-total, range and day targets
- Non-zero tie-break across duplicate buckets
- Idempotence and NotFound diagnostics
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from weekly_ledger.domain.dtos import AnnotationRequest
from weekly_ledger.domain.values import (
    Annotation,
    BucketShape,
    DayEntry,
    FinancialFields,
    RangeEntry,
    WeekKey,
)
from weekly_ledger.exceptions import (
    BucketNotFoundError,
    EntryNotFoundError,
    InvalidInputError,
)


def _d(day: int, month: int = 11) -> date:
    return date(2025, month, day)


def _fields(amount: str) -> FinancialFields:
    return FinancialFields(payment_amount=Decimal(amount))


def _seed_days(store, key, *entries):
    store.days.upsert(key, lambda s: s.with_days([*s.days.values(), *entries]))


def _seed_ranges(store, key, *entries):
    store.ranges.upsert(key, lambda s: s.with_ranges([*s.ranges, *entries]))


class TestPartyTotal:
    def test_targets_most_recent_bucket(self, store, annotation_service, deterministic_clock):
        pid = uuid4()
        _seed_ranges(store, WeekKey(pid, 46, 2025), RangeEntry(_d(10), _d(11), _fields("5")))
        deterministic_clock.advance(60)
        _seed_ranges(store, WeekKey(pid, 45, 2025), RangeEntry(_d(3), _d(4), _fields("5")))

        result = annotation_service.set_annotation(
            AnnotationRequest(pid, Annotation.GREEN, BucketShape.RANGE, is_party_total=True)
        )

        assert result.target == "party_total"
        assert (result.week_number, result.week_year) == (45, 2025)
        assert store.ranges.find(WeekKey(pid, 45, 2025)).party_total_annotation == Annotation.GREEN
        assert store.ranges.find(WeekKey(pid, 46, 2025)).party_total_annotation == Annotation.RED

    def test_day_shape_party_total(self, store, annotation_service):
        pid = uuid4()
        key = WeekKey(pid, 45, 2025)
        _seed_days(store, key, DayEntry(_d(4), _fields("1")))

        annotation_service.set_annotation(
            AnnotationRequest(pid, Annotation.GREEN, BucketShape.DAY, is_party_total=True)
        )

        bucket = store.days.find(key)
        assert bucket.party_total_annotation == Annotation.GREEN
        assert bucket.days[_d(4)].annotation == Annotation.RED

    def test_no_bucket(self, annotation_service):
        pid = uuid4()
        with pytest.raises(BucketNotFoundError) as exc_info:
            annotation_service.set_annotation(
                AnnotationRequest(pid, Annotation.GREEN, BucketShape.DAY, is_party_total=True)
            )
        assert exc_info.value.code == "BUCKET_NOT_FOUND"
        assert exc_info.value.party_id == str(pid)


class TestRangeTarget:
    def test_sets_exact_range_only(self, store, annotation_service):
        pid = uuid4()
        key = WeekKey(pid, 45, 2025)
        _seed_ranges(
            store,
            key,
            RangeEntry(_d(3), _d(5), _fields("1000")),
            RangeEntry(_d(6), _d(7), _fields("20")),
        )

        result = annotation_service.set_annotation(
            AnnotationRequest(pid, Annotation.GREEN, BucketShape.RANGE, target_range=(_d(3), _d(5)))
        )

        assert result.saved_color == Annotation.GREEN
        assert result.target == "2025-11-03..2025-11-05"
        assert result.changed is True
        colors = {r.span: r.annotation for r in store.ranges.find(key).ranges}
        assert colors == {(_d(3), _d(5)): Annotation.GREEN, (_d(6), _d(7)): Annotation.RED}

    def test_financial_fields_untouched(self, store, annotation_service):
        pid = uuid4()
        key = WeekKey(pid, 45, 2025)
        entry = RangeEntry(_d(3), _d(5), FinancialFields(payment_amount=Decimal("1000"), bank=Decimal("600")))
        _seed_ranges(store, key, entry)

        annotation_service.set_annotation(
            AnnotationRequest(pid, Annotation.GREEN, BucketShape.RANGE, target_range=(_d(3), _d(5)))
        )

        assert store.ranges.find(key).ranges[0] == replace(entry, annotation=Annotation.GREEN)

    def test_zero_entry_skipped_for_non_zero_duplicate(self, store, annotation_service, deterministic_clock):
        pid = uuid4()
        real = WeekKey(pid, 45, 2025)
        _seed_ranges(store, real, RangeEntry(_d(3), _d(5), _fields("1000")))
        deterministic_clock.advance(60)
        # Newer bucket under an overridden key holding a zero placeholder.
        other = WeekKey(pid, 46, 2025)
        store.ranges.upsert(
            other,
            lambda s: replace(s, week_start_date=_d(3), week_end_date=_d(9)).with_ranges(
                [RangeEntry(_d(3), _d(5), FinancialFields())]
            ),
        )

        result = annotation_service.set_annotation(
            AnnotationRequest(pid, Annotation.GREEN, BucketShape.RANGE, target_range=(_d(3), _d(5)))
        )

        assert result.week_number == 45
        assert store.ranges.find(real).ranges[0].annotation == Annotation.GREEN
        assert store.ranges.find(other).ranges[0].annotation == Annotation.RED

    def test_only_zero_entries_is_not_found(self, store, annotation_service):
        pid = uuid4()
        _seed_ranges(store, WeekKey(pid, 45, 2025), RangeEntry(_d(3), _d(5), FinancialFields()))

        with pytest.raises(EntryNotFoundError):
            annotation_service.set_annotation(
                AnnotationRequest(pid, Annotation.GREEN, BucketShape.RANGE, target_range=(_d(3), _d(5)))
            )

    def test_not_found_lists_candidates(self, store, annotation_service):
        pid = uuid4()
        _seed_ranges(store, WeekKey(pid, 45, 2025), RangeEntry(_d(3), _d(4), _fields("1")))

        with pytest.raises(EntryNotFoundError) as exc_info:
            annotation_service.set_annotation(
                AnnotationRequest(pid, Annotation.GREEN, BucketShape.RANGE, target_range=(_d(3), _d(5)))
            )

        assert exc_info.value.code == "ENTRY_NOT_FOUND"
        assert exc_info.value.candidates == ["2025-11-03..2025-11-04"]

    def test_missing_target_range(self, annotation_service):
        with pytest.raises(InvalidInputError, match="target_range"):
            annotation_service.set_annotation(
                AnnotationRequest(uuid4(), Annotation.GREEN, BucketShape.RANGE)
            )


class TestDayTarget:
    def test_sets_single_day(self, store, annotation_service):
        pid = uuid4()
        key = WeekKey(pid, 45, 2025)
        _seed_days(store, key, DayEntry(_d(4), _fields("10")), DayEntry(_d(5), _fields("10")))

        result = annotation_service.set_annotation(
            AnnotationRequest(pid, Annotation.GREEN, BucketShape.DAY, target_date=_d(4))
        )

        assert result.target == "2025-11-04"
        days = store.days.find(key).days
        assert days[_d(4)].annotation == Annotation.GREEN
        assert days[_d(5)].annotation == Annotation.RED

    def test_most_recent_containing_bucket_wins(self, store, annotation_service, deterministic_clock):
        pid = uuid4()
        containing = WeekKey(pid, 45, 2025)
        _seed_days(store, containing, DayEntry(_d(4), _fields("10")))
        deterministic_clock.advance(60)
        # Newer bucket under an overridden key; its week also contains the date.
        stray = WeekKey(pid, 46, 2025)
        store.days.upsert(
            stray,
            lambda s: replace(s, week_start_date=_d(4), week_end_date=_d(10)).with_days(
                [DayEntry(_d(4), _fields("99"))]
            ),
        )

        result = annotation_service.set_annotation(
            AnnotationRequest(pid, Annotation.GREEN, BucketShape.DAY, target_date=_d(4))
        )

        assert result.week_number == 46
        assert store.days.find(stray).days[_d(4)].annotation == Annotation.GREEN
        assert store.days.find(containing).days[_d(4)].annotation == Annotation.RED

    def test_zero_entry_in_containing_bucket_falls_through(self, store, annotation_service):
        pid = uuid4()
        containing = WeekKey(pid, 45, 2025)
        _seed_days(store, containing, DayEntry(_d(4), FinancialFields()))
        other = WeekKey(pid, 44, 2025)
        store.days.upsert(
            other,
            lambda s: replace(s, week_start_date=_d(29, 10), week_end_date=_d(4)).with_days(
                [DayEntry(_d(4), _fields("25"))]
            ),
        )

        result = annotation_service.set_annotation(
            AnnotationRequest(pid, Annotation.GREEN, BucketShape.DAY, target_date=_d(4))
        )

        assert result.week_number == 44
        assert store.days.find(other).days[_d(4)].annotation == Annotation.GREEN

    def test_not_found_lists_candidate_dates(self, store, annotation_service):
        pid = uuid4()
        _seed_days(store, WeekKey(pid, 45, 2025), DayEntry(_d(5), _fields("1")), DayEntry(_d(3), _fields("1")))

        with pytest.raises(EntryNotFoundError) as exc_info:
            annotation_service.set_annotation(
                AnnotationRequest(pid, Annotation.GREEN, BucketShape.DAY, target_date=_d(4))
            )
        assert exc_info.value.candidates == ["2025-11-03", "2025-11-05"]

    def test_missing_target_date(self, annotation_service):
        with pytest.raises(InvalidInputError, match="target_date"):
            annotation_service.set_annotation(AnnotationRequest(uuid4(), Annotation.RED, BucketShape.DAY))


class TestIdempotence:
    def test_same_color_twice(self, store, annotation_service, captured_logs):
        pid = uuid4()
        key = WeekKey(pid, 45, 2025)
        _seed_days(store, key, DayEntry(_d(4), _fields("10")))
        request = AnnotationRequest(pid, Annotation.GREEN, BucketShape.DAY, target_date=_d(4))

        first = annotation_service.set_annotation(request)
        state_after_first = store.days.find(key)
        second = annotation_service.set_annotation(request)

        assert first.changed is True
        assert second.changed is False
        assert second.saved_color == Annotation.GREEN
        assert store.days.find(key) == state_after_first
        assert any(r["message"] == "bucket_unchanged" for r in captured_logs())

    def test_toggle_back_to_red(self, store, annotation_service):
        pid = uuid4()
        key = WeekKey(pid, 45, 2025)
        _seed_ranges(store, key, RangeEntry(_d(3), _d(5), _fields("10")))
        for color in (Annotation.GREEN, Annotation.RED):
            annotation_service.set_annotation(
                AnnotationRequest(pid, color, BucketShape.RANGE, target_range=(_d(3), _d(5)))
            )
        assert store.ranges.find(key).ranges[0].annotation == Annotation.RED

    def test_annotation_set_logged(self, store, annotation_service, captured_logs):
        pid = uuid4()
        _seed_days(store, WeekKey(pid, 45, 2025), DayEntry(_d(4), _fields("10")))
        annotation_service.set_annotation(
            AnnotationRequest(pid, Annotation.GREEN, BucketShape.DAY, target_date=_d(4))
        )

        record = next(r for r in captured_logs() if r["message"] == "annotation_set")
        assert record["operation"] == "set_annotation"
        assert record["party_id"] == str(pid)
        assert record["color"] == "green"
