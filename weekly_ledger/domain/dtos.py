"""
DTOs -- request objects for the two write paths.

Responsibility:
    PaymentSubmission / MergeUpsertRequest feed MergeUpsertService;
    AnnotationRequest / AnnotationResult are the SetAnnotation contract.
    Parsing from wire payloads lives in ``services/ledger_gateway.py``;
    these objects hold already-typed values.

Architecture position:
    Domain -- zero I/O, no ORM imports.

Notes:
    A PaymentSubmission may carry an invalid range (start after end).  The
    merge service, not the DTO, decides to drop it, so one bad row never
    rejects a whole batch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping, Sequence
from uuid import UUID

from weekly_ledger.domain.values import (
    MEASURES,
    Annotation,
    BucketShape,
    FinancialFields,
    WeeklyNetPayable,
)
from weekly_ledger.exceptions import InvalidInputError


@dataclass(frozen=True)
class PaymentSubmission:
    """
    One row of a bulk financial submission.

    ``measures`` holds only the measures the caller actually sent; a day
    entry that already exists keeps its stored value for any measure left
    out.
    """

    party_id: UUID | None
    entry_date: date | None = None
    start_date: date | None = None
    end_date: date | None = None
    measures: Mapping[str, Decimal] = field(default_factory=dict)
    weekly_net_payable: WeeklyNetPayable | None = None
    shape: BucketShape | None = None

    def __post_init__(self) -> None:
        unknown = set(self.measures) - set(MEASURES)
        if unknown:
            raise InvalidInputError(
                f"Unknown measures: {', '.join(sorted(unknown))}",
                field="measures",
                value=sorted(unknown),
            )
        # Rejects negative or non-numeric amounts up front.
        FinancialFields().updated(self.measures)
        object.__setattr__(self, "measures", MappingProxyType(dict(self.measures)))

    def resolved_shape(self, default: BucketShape) -> BucketShape:
        """Date -> day bucket, range -> range bucket, otherwise explicit or default."""
        if self.entry_date is not None:
            return BucketShape.DAY
        if self.start_date is not None or self.end_date is not None:
            return BucketShape.RANGE
        return self.shape or default


@dataclass(frozen=True)
class MergeUpsertRequest:
    """A batch of submissions for one target week."""

    week_start_date: date
    week_end_date: date
    submissions: Sequence[PaymentSubmission]
    week_number: int | None = None
    week_year: int | None = None
    default_shape: BucketShape = BucketShape.DAY
    actor_id: UUID | None = None


@dataclass(frozen=True)
class AnnotationRequest:
    """Set the settlement annotation on one entry or on a bucket's party total."""

    party_id: UUID
    color: Annotation
    shape: BucketShape
    is_party_total: bool = False
    target_date: date | None = None
    target_range: tuple[date, date] | None = None


@dataclass(frozen=True)
class AnnotationResult:
    saved_color: Annotation
    shape: BucketShape
    week_number: int
    week_year: int
    target: str
    changed: bool
