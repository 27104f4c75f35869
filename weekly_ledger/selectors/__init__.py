"""Selectors for the weekly ledger (read side)."""

from weekly_ledger.selectors.bucket_selector import BucketSelector
from weekly_ledger.selectors.expense_selector import ExpenseRecord, ExpenseSelector
from weekly_ledger.selectors.range_summary import (
    LineItem,
    PartySummary,
    RangeSummary,
    RangeSummaryAggregator,
)

__all__ = [
    "BucketSelector",
    "ExpenseRecord",
    "ExpenseSelector",
    "LineItem",
    "PartySummary",
    "RangeSummary",
    "RangeSummaryAggregator",
]
