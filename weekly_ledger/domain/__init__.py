"""
Pure domain layer: week arithmetic, value objects, bucket states and
request DTOs.  No ORM, database or I/O dependencies.
"""

from weekly_ledger.domain.buckets import (
    BucketState,
    DayBucketState,
    RangeBucketState,
)
from weekly_ledger.domain.clock import Clock, DeterministicClock, SystemClock
from weekly_ledger.domain.dtos import (
    AnnotationRequest,
    AnnotationResult,
    MergeUpsertRequest,
    PaymentSubmission,
)
from weekly_ledger.domain.values import (
    Annotation,
    BucketShape,
    DayEntry,
    FinancialFields,
    RangeEntry,
    WeekKey,
    WeeklyNetPayable,
)
from weekly_ledger.domain.week_clock import (
    WeekBounds,
    bounds_of,
    ranges_overlap,
    week_key_of,
)

__all__ = [
    "Annotation",
    "AnnotationRequest",
    "AnnotationResult",
    "BucketShape",
    "BucketState",
    "Clock",
    "DayBucketState",
    "DayEntry",
    "DeterministicClock",
    "FinancialFields",
    "MergeUpsertRequest",
    "PaymentSubmission",
    "RangeBucketState",
    "RangeEntry",
    "SystemClock",
    "WeekBounds",
    "WeekKey",
    "WeeklyNetPayable",
    "bounds_of",
    "ranges_overlap",
    "week_key_of",
]
