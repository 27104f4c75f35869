"""
MergeUpsertService -- bulk financial merge into weekly buckets.

Responsibility:
    Takes a batch of per-party submissions for one target week and merges
    them into the day and range buckets of that week.  Callers only know
    financial figures; any settlement annotation already stored on an entry
    with the same date (day) or the same exact start/end (range) is carried
    over onto the merged entry.

Architecture position:
    Services -- imperative shell over LedgerStore.  The merge itself is a
    pure mutator; the store supplies the fetch-or-create and the per-key
    write serialization, so an annotation set between our read and our
    write is never lost (the write is replayed on the fresh state).

Merge rules:
    - Every row of a batch lands in the bucket of the target week.  The key
      comes from the week bounds (ISO key of ``week_start_date``) unless
      both ``week_number`` and ``week_year`` are given; either way the bounds
      must be the Monday..Sunday of that key.
    - Day path: entries are merged by date; only the measures present in a
      submission overwrite stored values.  Dates outside the week are
      dropped.
    - Range path: ranges with start after end, ranges outside the week and
      ranges overlapping an earlier accepted range of the same party are
      dropped.  A range submitted twice keeps the last figures.  When at
      least one range survives, the stored range list is replaced by the
      accepted ranges; otherwise it is left alone.
    - ``weekly_net_payable`` is written only when submitted.
    - ``is_approved`` and ``created_at`` are never touched.

Failure modes:
    - InvalidInputError: empty batch or bad week bounds, before any write.
    - ConflictOnWriteError / StoreError: from LedgerStore.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import Mapping
from uuid import UUID

from weekly_ledger.domain.buckets import BucketState, DayBucketState, RangeBucketState
from weekly_ledger.domain.dtos import MergeUpsertRequest, PaymentSubmission
from weekly_ledger.domain.values import (
    Annotation,
    BucketShape,
    DayEntry,
    FinancialFields,
    RangeEntry,
    WeekKey,
    WeeklyNetPayable,
)
from weekly_ledger.domain.week_clock import DAYS_PER_WEEK, bounds_of, ranges_overlap, week_key_of
from weekly_ledger.exceptions import InvalidInputError
from weekly_ledger.logging_config import LogContext, get_logger
from weekly_ledger.services.ledger_store import LedgerStore

logger = get_logger("services.merge_upsert")


@dataclass
class _PartyBatch:
    """Accepted rows for one party, ready to merge."""

    days: dict[date, dict[str, Decimal]] = field(default_factory=dict)
    ranges: list[tuple[date, date, Mapping[str, Decimal]]] = field(default_factory=list)
    net_payable: dict[BucketShape, WeeklyNetPayable] = field(default_factory=dict)

    def touches(self, shape: BucketShape) -> bool:
        if shape in self.net_payable:
            return True
        return bool(self.days) if shape == BucketShape.DAY else bool(self.ranges)


def _resolve_week(request: MergeUpsertRequest) -> tuple[int, int]:
    start, end = request.week_start_date, request.week_end_date
    if start > end:
        raise InvalidInputError(
            f"week_start_date {start} is after week_end_date {end}",
            field="week_start_date",
            value=start,
        )
    if (end - start).days >= DAYS_PER_WEEK:
        raise InvalidInputError(
            f"Week {start}..{end} spans more than {DAYS_PER_WEEK} days",
            field="week_end_date",
            value=end,
        )
    if request.week_number is not None and request.week_year is not None:
        week_number, week_year = request.week_number, request.week_year
    else:
        week_number, week_year = week_key_of(start)
    bounds = bounds_of(week_number, week_year)
    if (start, end) != (bounds.start_date, bounds.end_date):
        raise InvalidInputError(
            f"Week {start}..{end} is not ISO week {week_year}-W{week_number:02d} "
            f"({bounds.start_date}..{bounds.end_date})",
            field="week_start_date",
            value=start,
        )
    return week_number, week_year


class MergeUpsertService:
    """
    Annotation-preserving bulk upsert.

    Contract:
        ``merge(request)`` returns the saved bucket states, one per party and
        shape touched, in submission order (day before range per party).
    """

    def __init__(self, store: LedgerStore):
        self._store = store

    # ------------------------------------------------------------------
    # Batch validation
    # ------------------------------------------------------------------

    def _accept_range(
        self,
        batch: _PartyBatch,
        party_id: UUID,
        sub: PaymentSubmission,
        request: MergeUpsertRequest,
    ) -> None:
        start, end = sub.start_date, sub.end_date
        reason = None
        if start is None or end is None:
            reason = "incomplete_range"
        elif start > end:
            reason = "start_after_end"
        elif start < request.week_start_date or end > request.week_end_date:
            reason = "outside_week"
        else:
            for i, (kept_start, kept_end, _) in enumerate(batch.ranges):
                if (kept_start, kept_end) == (start, end):
                    batch.ranges[i] = (start, end, sub.measures)
                    return
                if ranges_overlap(kept_start, kept_end, start, end):
                    reason = "overlaps_accepted_range"
                    break
        if reason is not None:
            logger.warning(
                "range_dropped",
                extra={
                    "party_id": str(party_id),
                    "start_date": start,
                    "end_date": end,
                    "reason": reason,
                },
            )
            return
        batch.ranges.append((start, end, sub.measures))

    def _group(self, request: MergeUpsertRequest) -> dict[UUID, _PartyBatch]:
        batches: dict[UUID, _PartyBatch] = {}
        for sub in request.submissions:
            if sub.party_id is None:
                logger.warning("submission_skipped", extra={"reason": "no_party"})
                continue
            batch = batches.setdefault(sub.party_id, _PartyBatch())
            shape = sub.resolved_shape(request.default_shape)

            if sub.weekly_net_payable is not None:
                batch.net_payable[shape] = sub.weekly_net_payable

            if sub.entry_date is not None:
                if request.week_start_date <= sub.entry_date <= request.week_end_date:
                    batch.days.setdefault(sub.entry_date, {}).update(sub.measures)
                else:
                    logger.warning(
                        "day_dropped",
                        extra={
                            "party_id": str(sub.party_id),
                            "entry_date": sub.entry_date,
                            "reason": "outside_week",
                        },
                    )
            elif sub.start_date is not None or sub.end_date is not None:
                self._accept_range(batch, sub.party_id, sub, request)
            elif sub.weekly_net_payable is None:
                logger.debug(
                    "submission_skipped",
                    extra={"party_id": str(sub.party_id), "reason": "no_target"},
                )
        return batches

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    @staticmethod
    def _merge_days(
        request: MergeUpsertRequest, batch: _PartyBatch
    ):
        def mutate(current: DayBucketState) -> DayBucketState:
            days = dict(current.days)
            for day, measures in batch.days.items():
                existing = days.get(day)
                if existing is None:
                    days[day] = DayEntry(day, FinancialFields().updated(measures))
                else:
                    days[day] = replace(existing, fields=existing.fields.updated(measures))
            return replace(
                current,
                week_start_date=request.week_start_date,
                week_end_date=request.week_end_date,
                days=days,
                weekly_net_payable=batch.net_payable.get(
                    BucketShape.DAY, current.weekly_net_payable
                ),
            )

        return mutate

    @staticmethod
    def _merge_ranges(
        request: MergeUpsertRequest, batch: _PartyBatch
    ):
        def mutate(current: RangeBucketState) -> RangeBucketState:
            state = replace(
                current,
                week_start_date=request.week_start_date,
                week_end_date=request.week_end_date,
                weekly_net_payable=batch.net_payable.get(
                    BucketShape.RANGE, current.weekly_net_payable
                ),
            )
            if not batch.ranges:
                return state
            merged = []
            for start, end, measures in batch.ranges:
                existing = current.find_range(start, end)
                merged.append(
                    RangeEntry(
                        start_date=start,
                        end_date=end,
                        fields=FinancialFields.from_mapping(measures),
                        annotation=existing.annotation if existing else Annotation.RED,
                    )
                )
            return state.with_ranges(merged)

        return mutate

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def merge(self, request: MergeUpsertRequest) -> list[BucketState]:
        """
        Merge one batch of submissions into the target week's buckets.

        Raises:
            InvalidInputError: No submissions, or invalid week bounds.
        """
        if not request.submissions:
            raise InvalidInputError("submissions must not be empty", field="submissions")
        week_number, week_year = _resolve_week(request)
        batches = self._group(request)

        saved: list[BucketState] = []
        with LogContext.bind(
            operation="merge_upsert",
            actor_id=str(request.actor_id) if request.actor_id else None,
        ):
            for party_id, batch in batches.items():
                key = WeekKey(party_id, week_number, week_year)
                with LogContext.bind(party_id=str(party_id), week_key=str(key)):
                    if batch.touches(BucketShape.DAY):
                        saved.append(
                            self._store.days.upsert(
                                key, self._merge_days(request, batch), request.actor_id
                            )
                        )
                    if batch.touches(BucketShape.RANGE):
                        saved.append(
                            self._store.ranges.upsert(
                                key, self._merge_ranges(request, batch), request.actor_id
                            )
                        )

            logger.info(
                "merge_upsert_completed",
                extra={
                    "week_number": week_number,
                    "week_year": week_year,
                    "submissions": len(request.submissions),
                    "parties": len(batches),
                    "buckets_saved": len(saved),
                },
            )
        return saved
