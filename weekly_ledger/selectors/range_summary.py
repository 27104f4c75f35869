"""
Module: weekly_ledger.selectors.range_summary
Responsibility: Summary report over an arbitrary [start, end] window,
    spanning every weekly bucket (both shapes) that overlaps it.
Architecture position: Selectors.  Reads through LedgerStore's overlap
    query and a party lookup; writes nothing.

Invariants enforced:
    - Day entries are reported only when their date is inside the window;
      range entries when they overlap it.
    - Exact-match gating: a bucket's weekly net payable and party-total
      annotation belong to the whole week, so they are reported only when
      the bucket's week equals the window.  A window cutting through a
      week never reports them, so two partial windows never double-count.
    - Subtotals fold the weekly net payable into payment_amount only.

Failure modes:
    - InvalidInputError when start > end.
    - Parties missing from the directory are reported as "Unknown Party"
      with an empty code.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Iterable, Mapping, Protocol
from uuid import UUID

from weekly_ledger.domain.buckets import BucketState, DayBucketState, RangeBucketState
from weekly_ledger.domain.values import (
    UNKNOWN_PARTY_NAME,
    Annotation,
    BucketShape,
    FinancialFields,
    WeeklyNetPayable,
)
from weekly_ledger.domain.week_clock import ranges_overlap
from weekly_ledger.exceptions import InvalidInputError
from weekly_ledger.logging_config import get_logger

logger = get_logger("selectors.range_summary")


class PartyRefLike(Protocol):
    name: str
    code: str


class PartyLookup(Protocol):
    def lookup_many(self, party_ids: Iterable[UUID]) -> Mapping[UUID, PartyRefLike]: ...


class OverlapSource(Protocol):
    def find_all_overlapping(self, start: date, end: date) -> list: ...


class BucketSource(Protocol):
    days: OverlapSource
    ranges: OverlapSource


@dataclass(frozen=True)
class LineItem:
    """One day or range entry as it appears in a summary."""

    shape: BucketShape
    fields: FinancialFields
    annotation: Annotation
    entry_date: date | None = None
    start_date: date | None = None
    end_date: date | None = None

    @property
    def sort_key(self) -> tuple[date, int]:
        # Day entries sort before range entries starting the same date.
        if self.shape == BucketShape.DAY:
            return self.entry_date, 0
        return self.start_date, 1


@dataclass(frozen=True)
class PartySummary:
    party_id: UUID
    name: str
    code: str
    line_items: tuple[LineItem, ...]
    subtotal: FinancialFields
    weekly_net_payable: WeeklyNetPayable | None = None
    party_total_annotation: Annotation | None = None


@dataclass(frozen=True)
class RangeSummary:
    start_date: date
    end_date: date
    parties: tuple[PartySummary, ...]
    grand_total: FinancialFields


@dataclass
class _PartyAccumulator:
    items: list[LineItem] = field(default_factory=list)
    net_payable: WeeklyNetPayable | None = None
    day_annotation: Annotation | None = None
    range_annotation: Annotation | None = None

    def gate(self, bucket: BucketState) -> None:
        if self.net_payable is None:
            self.net_payable = bucket.weekly_net_payable
        else:
            self.net_payable = self.net_payable.combined(bucket.weekly_net_payable)
        if isinstance(bucket, DayBucketState):
            self.day_annotation = self.day_annotation or bucket.party_total_annotation
        else:
            self.range_annotation = self.range_annotation or bucket.party_total_annotation

    @property
    def has_gated(self) -> bool:
        return self.net_payable is not None

    @property
    def annotation(self) -> Annotation | None:
        return self.day_annotation or self.range_annotation


def _day_items(bucket: DayBucketState, start: date, end: date) -> list[LineItem]:
    return [
        LineItem(
            shape=BucketShape.DAY,
            fields=entry.fields,
            annotation=entry.annotation,
            entry_date=entry.entry_date,
        )
        for entry in bucket.sorted_days()
        if start <= entry.entry_date <= end
    ]


def _range_items(bucket: RangeBucketState, start: date, end: date) -> list[LineItem]:
    return [
        LineItem(
            shape=BucketShape.RANGE,
            fields=entry.fields,
            annotation=entry.annotation,
            start_date=entry.start_date,
            end_date=entry.end_date,
        )
        for entry in bucket.ranges
        if ranges_overlap(entry.start_date, entry.end_date, start, end)
    ]


class RangeSummaryAggregator:
    """
    Contract:
        ``summarize(start, end)`` returns parties sorted by name, each with
        its line items sorted by date (day before range on ties), and a
        grand total equal to the sum of the party subtotals.  Parties with
        neither line items nor gated figures are omitted.
    """

    def __init__(self, store: BucketSource, parties: PartyLookup):
        self._store = store
        self._parties = parties

    def summarize(self, start: date, end: date) -> RangeSummary:
        if start > end:
            raise InvalidInputError(
                f"start_date {start} is after end_date {end}",
                field="window",
                value=(start, end),
            )

        candidates: list[BucketState] = [
            *self._store.days.find_all_overlapping(start, end),
            *self._store.ranges.find_all_overlapping(start, end),
        ]

        accumulators: dict[UUID, _PartyAccumulator] = {}
        for bucket in candidates:
            acc = accumulators.setdefault(bucket.key.party_id, _PartyAccumulator())
            if isinstance(bucket, DayBucketState):
                acc.items.extend(_day_items(bucket, start, end))
            else:
                acc.items.extend(_range_items(bucket, start, end))
            if bucket.covers_exactly(start, end):
                acc.gate(bucket)

        reported = {pid: acc for pid, acc in accumulators.items() if acc.items or acc.has_gated}
        refs = self._parties.lookup_many(reported) if reported else {}

        summaries = []
        for party_id, acc in reported.items():
            ref = refs.get(party_id)
            summaries.append(self._party_summary(party_id, ref, acc))
        summaries.sort(key=lambda s: (s.name.lower(), s.code, str(s.party_id)))

        grand_total = FinancialFields()
        for summary in summaries:
            grand_total = grand_total + summary.subtotal

        logger.info(
            "range_summary_built",
            extra={
                "start_date": start,
                "end_date": end,
                "candidate_buckets": len(candidates),
                "parties": len(summaries),
            },
        )
        return RangeSummary(
            start_date=start,
            end_date=end,
            parties=tuple(summaries),
            grand_total=grand_total,
        )

    @staticmethod
    def _party_summary(
        party_id: UUID, ref: PartyRefLike | None, acc: _PartyAccumulator
    ) -> PartySummary:
        items = tuple(sorted(acc.items, key=lambda item: item.sort_key))
        subtotal = FinancialFields()
        for item in items:
            subtotal = subtotal + item.fields
        if acc.net_payable is not None:
            subtotal = replace(
                subtotal,
                payment_amount=subtotal.payment_amount + acc.net_payable.amount,
            )
        return PartySummary(
            party_id=party_id,
            name=ref.name if ref is not None else UNKNOWN_PARTY_NAME,
            code=ref.code if ref is not None else "",
            line_items=items,
            subtotal=subtotal,
            weekly_net_payable=acc.net_payable,
            party_total_annotation=acc.annotation,
        )
