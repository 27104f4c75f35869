"""
Module: weekly_ledger.selectors.bucket_selector
Responsibility: Listing of weekly buckets for the payment pages, filtered by
    party, ISO week and/or a date window.
"""

from dataclasses import replace
from datetime import date
from uuid import UUID

from sqlalchemy import select

from weekly_ledger.domain.buckets import BucketState, DayBucketState, RangeBucketState
from weekly_ledger.domain.values import BucketShape
from weekly_ledger.exceptions import InvalidInputError
from weekly_ledger.models.ledger_bucket import DayBucket, LedgerBucketBase, RangeBucket
from weekly_ledger.selectors.base import BaseSelector

_SHAPES: dict[BucketShape, tuple[type[LedgerBucketBase], type]] = {
    BucketShape.DAY: (DayBucket, DayBucketState),
    BucketShape.RANGE: (RangeBucket, RangeBucketState),
}


class BucketSelector(BaseSelector[LedgerBucketBase]):
    """
    Contract:
        ``list_buckets`` returns bucket states ordered by week, newest first.
        Either window bound may be open.  With a window, a bucket is listed
        when its week overlaps the window, and day entries outside the
        window are trimmed from it.  Range entries are returned whole.
    """

    def list_buckets(
        self,
        shape: BucketShape,
        party_id: UUID | None = None,
        week_number: int | None = None,
        week_year: int | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[BucketState]:
        if start is not None and end is not None and start > end:
            raise InvalidInputError(
                f"start {start} is after end {end}", field="window", value=(start, end)
            )
        model, state_type = _SHAPES[shape]

        query = select(model)
        if party_id is not None:
            query = query.where(model.party_id == party_id)
        if week_number is not None:
            query = query.where(model.week_number == week_number)
        if week_year is not None:
            query = query.where(model.week_year == week_year)
        if start is not None:
            query = query.where(model.week_end_date >= start)
        if end is not None:
            query = query.where(model.week_start_date <= end)
        query = query.order_by(
            model.week_year.desc(),
            model.week_number.desc(),
            model.created_at.desc(),
        )

        rows = self.session.execute(query).scalars().all()
        states = [state_type.from_model(row) for row in rows]
        if shape == BucketShape.DAY and (start is not None or end is not None):
            states = [self._trim(state, start, end) for state in states]
        return states

    @staticmethod
    def _trim(state: DayBucketState, start: date | None, end: date | None) -> DayBucketState:
        kept = {
            day: entry
            for day, entry in state.days.items()
            if (start is None or day >= start) and (end is None or day <= end)
        }
        return replace(state, days=kept)
