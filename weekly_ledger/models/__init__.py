"""ORM models for the weekly ledger."""

from weekly_ledger.models.expense import Expense, ExpenseCategory
from weekly_ledger.models.ledger_bucket import DayBucket, LedgerBucketBase, RangeBucket
from weekly_ledger.models.party import Party, PartyType

__all__ = [
    "DayBucket",
    "Expense",
    "ExpenseCategory",
    "LedgerBucketBase",
    "Party",
    "PartyType",
    "RangeBucket",
]
