"""
Module: weekly_ledger.models.ledger_bucket
Responsibility: ORM persistence for the two weekly bucket shapes.
    DayBucket stores its entries as a JSON object keyed by ISO date;
    RangeBucket stores an ordered JSON list of ranges.  Both share the
    header columns declared on LedgerBucketBase.
Architecture position: Models.  May import from db/ only.

Invariants enforced:
    - (party_id, week_number, week_year) is unique per table.
    - Both tables are versioned (VersionedMixin); LedgerStore turns the
      StaleDataError of a lost race into a retry.
    - Entry payload invariants (dates inside the week, non-overlapping ranges)
      are checked on the domain state before it is copied onto a row, not
      here.

Failure modes:
    - IntegrityError on a concurrent first insert of the same week key.
    - StaleDataError on a concurrent update of the same row.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, Boolean, Date, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from weekly_ledger.db.base import TrackedBase, UUIDString, VersionedMixin


class LedgerBucketBase(TrackedBase):
    """Header columns shared by both bucket shapes."""

    __abstract__ = True

    party_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    week_number: Mapped[int] = mapped_column(Integer, nullable=False)

    week_year: Mapped[int] = mapped_column(Integer, nullable=False)

    # Inclusive Monday..Sunday bounds of the ISO week
    week_start_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    week_end_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    weekly_net_payable_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
    )

    weekly_net_payable_amount: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )

    party_total_annotation: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default="red",
    )

    is_approved: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )


class DayBucket(VersionedMixin, LedgerBucketBase):
    """One party's per-day payments for one ISO week."""

    __tablename__ = "day_buckets"

    __table_args__ = (
        UniqueConstraint("party_id", "week_number", "week_year", name="uq_day_bucket_week_key"),
        Index("idx_day_bucket_window", "week_start_date", "week_end_date"),
        Index("idx_day_bucket_party", "party_id"),
    )

    # {"2025-11-03": {"payment_amount": "100", ..., "annotation": "red"}}
    days: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )

    def __repr__(self) -> str:
        return f"<DayBucket {self.party_id}:{self.week_year}-W{self.week_number:02d}>"


class RangeBucket(VersionedMixin, LedgerBucketBase):
    """One party's per-range payments for one ISO week."""

    __tablename__ = "range_buckets"

    __table_args__ = (
        UniqueConstraint("party_id", "week_number", "week_year", name="uq_range_bucket_week_key"),
        Index("idx_range_bucket_window", "week_start_date", "week_end_date"),
        Index("idx_range_bucket_party", "party_id"),
    )

    # [{"start_date": "2025-11-03", "end_date": "2025-11-05", ..., "annotation": "green"}]
    ranges: Mapped[list] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )

    def __repr__(self) -> str:
        return f"<RangeBucket {self.party_id}:{self.week_year}-W{self.week_number:02d}>"
