"""
Module: weekly_ledger.models.expense
Responsibility: ORM persistence for office expenses.  The ledger core only
    reads these (ExpenseSelector) for the same windows it summarizes; expense
    CRUD lives outside this package.
"""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from weekly_ledger.db.base import TrackedBase


class ExpenseCategory(str, Enum):
    OFFICE = "OFFICE"
    STAFF = "STAFF"
    UTILITIES = "UTILITIES"
    MAINTENANCE = "MAINTENANCE"
    OTHER = "OTHER"


class Expense(TrackedBase):
    __tablename__ = "expenses"

    __table_args__ = (
        Index("idx_expense_date", "expense_date"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    expense_date: Mapped[date] = mapped_column(Date, nullable=False)

    category: Mapped[ExpenseCategory] = mapped_column(String(20), nullable=False)

    remarks: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    week_number: Mapped[int | None] = mapped_column(Integer, nullable=True)

    week_year: Mapped[int | None] = mapped_column(Integer, nullable=True)

    def __repr__(self) -> str:
        return f"<Expense {self.expense_date} {self.category}: {self.amount}>"
