"""
AnnotationService -- sets the settlement annotation on exactly one entry.

Responsibility:
    Locates the entry a SetAnnotation request means (a day, a range, or a
    bucket's party total) among possibly several buckets of the party, and
    changes only its annotation.  Financial fields are never touched.

Resolution:
    - Party total: the party's most recently created bucket of the shape.
    - Range: the exact (start, end) entry with non-zero figures, scanning
      buckets most recent first.
    - Day: the entry at the date with non-zero figures, scanning the bucket
      whose week contains the date first, then the rest most recent first.
    Zero-valued entries are placeholders, not transactions, and are never
    chosen.

Idempotence:
    Setting the color an entry already has succeeds and writes nothing.

Failure modes:
    - InvalidInputError: target missing for the shape.
    - BucketNotFoundError: party has no bucket of the shape (party total).
    - EntryNotFoundError: no matching non-zero entry; carries the candidate
      dates / ranges that were considered.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date

from weekly_ledger.domain.buckets import DayBucketState, RangeBucketState
from weekly_ledger.domain.dtos import AnnotationRequest, AnnotationResult
from weekly_ledger.domain.values import BucketShape
from weekly_ledger.exceptions import (
    BucketNotFoundError,
    EntryNotFoundError,
    InvalidInputError,
)
from weekly_ledger.logging_config import LogContext, get_logger
from weekly_ledger.services.ledger_store import LedgerStore

logger = get_logger("services.annotation")

PARTY_TOTAL_TARGET = "party_total"


class _Outcome:
    """Records what the mutator saw on the attempt that was written."""

    def __init__(self) -> None:
        self.changed = False


class AnnotationService:
    def __init__(self, store: LedgerStore):
        self._store = store

    def set_annotation(self, request: AnnotationRequest) -> AnnotationResult:
        """
        Apply ``request.color`` to the one entry the request identifies.

        Returns:
            AnnotationResult with the saved color, the bucket's week key and
            whether anything changed.
        """
        with LogContext.bind(operation="set_annotation", party_id=str(request.party_id)):
            if request.is_party_total:
                result = self._set_party_total(request)
            elif request.shape == BucketShape.RANGE:
                result = self._set_range(request)
            else:
                result = self._set_day(request)

            logger.info(
                "annotation_set",
                extra={
                    "shape": result.shape.value,
                    "target": result.target,
                    "color": result.saved_color.value,
                    "week_number": result.week_number,
                    "week_year": result.week_year,
                    "changed": result.changed,
                },
            )
            return result

    # ------------------------------------------------------------------
    # Party total
    # ------------------------------------------------------------------

    def _set_party_total(self, request: AnnotationRequest) -> AnnotationResult:
        store = self._store.for_shape(request.shape)
        buckets = store.find_for_party(request.party_id)
        if not buckets:
            raise BucketNotFoundError(str(request.party_id), request.shape.value)
        target = buckets[0]
        outcome = _Outcome()

        def mutate(current):
            outcome.changed = current.party_total_annotation != request.color
            return replace(current, party_total_annotation=request.color)

        store.upsert(target.key, mutate)
        return AnnotationResult(
            saved_color=request.color,
            shape=request.shape,
            week_number=target.key.week_number,
            week_year=target.key.week_year,
            target=PARTY_TOTAL_TARGET,
            changed=outcome.changed,
        )

    # ------------------------------------------------------------------
    # Range entries
    # ------------------------------------------------------------------

    def _set_range(self, request: AnnotationRequest) -> AnnotationResult:
        if request.target_range is None:
            raise InvalidInputError(
                "target_range is required for range annotations",
                field="target_range",
            )
        start, end = request.target_range
        label = f"{start.isoformat()}..{end.isoformat()}"

        candidates: list[str] = []
        target: RangeBucketState | None = None
        for bucket in self._store.ranges.find_for_party(request.party_id):
            candidates.extend(entry.label() for entry in bucket.ranges)
            entry = bucket.find_range(start, end)
            if entry is not None and not entry.fields.is_zero:
                target = bucket
                break

        if target is None:
            raise EntryNotFoundError(
                str(request.party_id), BucketShape.RANGE.value, label, candidates
            )

        outcome = _Outcome()

        def mutate(current: RangeBucketState) -> RangeBucketState:
            entry = current.find_range(start, end)
            if entry is None or entry.fields.is_zero:
                raise EntryNotFoundError(
                    str(request.party_id),
                    BucketShape.RANGE.value,
                    label,
                    [e.label() for e in current.ranges],
                )
            outcome.changed = entry.annotation != request.color
            return current.with_ranges(
                replace(e, annotation=request.color) if e is entry else e
                for e in current.ranges
            )

        self._store.ranges.upsert(target.key, mutate)
        return AnnotationResult(
            saved_color=request.color,
            shape=BucketShape.RANGE,
            week_number=target.key.week_number,
            week_year=target.key.week_year,
            target=label,
            changed=outcome.changed,
        )

    # ------------------------------------------------------------------
    # Day entries
    # ------------------------------------------------------------------

    @staticmethod
    def _day_scan_order(buckets: list[DayBucketState], day: date) -> list[DayBucketState]:
        return sorted(
            buckets, key=lambda b: not b.week_start_date <= day <= b.week_end_date
        )

    def _set_day(self, request: AnnotationRequest) -> AnnotationResult:
        if request.target_date is None:
            raise InvalidInputError(
                "target_date is required for day annotations",
                field="target_date",
            )
        day = request.target_date
        label = day.isoformat()

        buckets = self._store.days.find_for_party(request.party_id)
        candidates: list[str] = []
        target: DayBucketState | None = None
        for bucket in self._day_scan_order(buckets, day):
            candidates.extend(d.isoformat() for d in sorted(bucket.days))
            entry = bucket.days.get(day)
            if entry is not None and not entry.fields.is_zero:
                target = bucket
                break

        if target is None:
            raise EntryNotFoundError(
                str(request.party_id), BucketShape.DAY.value, label, candidates
            )

        outcome = _Outcome()

        def mutate(current: DayBucketState) -> DayBucketState:
            entry = current.days.get(day)
            if entry is None or entry.fields.is_zero:
                raise EntryNotFoundError(
                    str(request.party_id),
                    BucketShape.DAY.value,
                    label,
                    [d.isoformat() for d in sorted(current.days)],
                )
            outcome.changed = entry.annotation != request.color
            days = dict(current.days)
            days[day] = replace(entry, annotation=request.color)
            return replace(current, days=days)

        self._store.days.upsert(target.key, mutate)
        return AnnotationResult(
            saved_color=request.color,
            shape=BucketShape.DAY,
            week_number=target.key.week_number,
            week_year=target.key.week_year,
            target=label,
            changed=outcome.changed,
        )
