"""
Module: weekly_ledger.selectors.expense_selector
Responsibility: Read-only access to office expenses for a date window, so
    reports can show them next to the range summary of the same window.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import select

from weekly_ledger.domain.money import ZERO
from weekly_ledger.exceptions import InvalidInputError
from weekly_ledger.models.expense import Expense, ExpenseCategory
from weekly_ledger.selectors.base import BaseSelector


@dataclass(frozen=True)
class ExpenseRecord:
    """One expense as reported."""

    date: date
    amount: Decimal
    category: ExpenseCategory
    name: str


class ExpenseSelector(BaseSelector[Expense]):
    def list_for_window(self, start: date, end: date) -> list[ExpenseRecord]:
        """Expenses dated within [start, end], oldest first."""
        if start > end:
            raise InvalidInputError(
                f"start {start} is after end {end}", field="window", value=(start, end)
            )
        rows = (
            self.session.execute(
                select(Expense)
                .where(Expense.expense_date >= start, Expense.expense_date <= end)
                .order_by(Expense.expense_date, Expense.name)
            )
            .scalars()
            .all()
        )
        return [
            ExpenseRecord(
                date=row.expense_date,
                amount=row.amount,
                category=ExpenseCategory(row.category),
                name=row.name,
            )
            for row in rows
        ]

    def totals_by_category(self, start: date, end: date) -> dict[ExpenseCategory, Decimal]:
        totals: dict[ExpenseCategory, Decimal] = defaultdict(lambda: ZERO)
        for record in self.list_for_window(start, end):
            totals[record.category] += record.amount
        return dict(totals)
