"""
Value objects for the weekly ledger.

Pure, immutable, no ORM imports.  Amounts are Decimal.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping
from uuid import UUID

from weekly_ledger.domain.money import ZERO, money_from_value, money_to_str
from weekly_ledger.exceptions import InvalidInputError


class Annotation(str, Enum):
    """Settlement marker set only through AnnotationService."""

    RED = "red"
    GREEN = "green"

    @classmethod
    def parse(cls, value: Any) -> Annotation:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise InvalidInputError(
                f'Invalid color {value!r}. Must be "red" or "green"',
                field="color",
                value=value,
            ) from exc


class BucketShape(str, Enum):
    """Which of the two bucket collections a record lives in."""

    DAY = "day"
    RANGE = "range"

    @classmethod
    def parse(cls, value: Any) -> BucketShape:
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        # Page names used by the payment screens.
        if text in ("daily", "weekly"):
            return cls.DAY
        if text in ("multiday", "multi-day"):
            return cls.RANGE
        try:
            return cls(text)
        except ValueError as exc:
            raise InvalidInputError(
                f'Invalid bucket shape {value!r}. Must be "day" or "range"',
                field="shape",
                value=value,
            ) from exc


# Display name for a party id missing from the directory.
UNKNOWN_PARTY_NAME = "Unknown Party"


@dataclass(frozen=True)
class WeekKey:
    """Uniqueness key of one bucket, in either shape."""

    party_id: UUID
    week_number: int
    week_year: int

    def __str__(self) -> str:
        return f"{self.party_id}:{self.week_year}-W{self.week_number:02d}"


MEASURES = ("payment_amount", "pwt", "cash", "bank", "due", "tda")


def coerce_amount(name: str, value: Any) -> Decimal:
    try:
        return money_from_value(value)
    except ValueError as exc:
        raise InvalidInputError(str(exc), field=name, value=value) from exc


@dataclass(frozen=True)
class FinancialFields:
    """The six measures recorded against every day or range entry."""

    payment_amount: Decimal = ZERO
    pwt: Decimal = ZERO
    cash: Decimal = ZERO
    bank: Decimal = ZERO
    due: Decimal = ZERO
    tda: Decimal = ZERO

    def __post_init__(self) -> None:
        for name in MEASURES:
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                object.__setattr__(self, name, coerce_amount(name, value))
            if getattr(self, name) < ZERO:
                raise InvalidInputError(
                    f"{name} must be non-negative, got {value}",
                    field=name,
                    value=value,
                )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> FinancialFields:
        """Build from a mapping keyed by measure name; missing keys are zero."""
        return cls(**{name: coerce_amount(name, data.get(name)) for name in MEASURES})

    @property
    def is_zero(self) -> bool:
        return all(getattr(self, name) == ZERO for name in MEASURES)

    def updated(self, changes: Mapping[str, Decimal]) -> FinancialFields:
        """Copy with only the measures present in ``changes`` replaced."""
        return replace(self, **{k: v for k, v in changes.items() if k in MEASURES})

    def __add__(self, other: FinancialFields) -> FinancialFields:
        return FinancialFields(
            **{name: getattr(self, name) + getattr(other, name) for name in MEASURES}
        )

    def to_payload(self) -> dict[str, str]:
        return {name: money_to_str(getattr(self, name)) for name in MEASURES}


@dataclass(frozen=True)
class WeeklyNetPayable:
    """Bucket-level side figure, reported only for exact-week queries."""

    name: str = ""
    amount: Decimal = ZERO

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, "amount", coerce_amount("amount", self.amount))

    def combined(self, other: WeeklyNetPayable) -> WeeklyNetPayable:
        """Sum amounts and join non-empty names with ", "."""
        names = [n for n in (self.name, other.name) if n]
        return WeeklyNetPayable(name=", ".join(names), amount=self.amount + other.amount)


@dataclass(frozen=True)
class DayEntry:
    entry_date: date
    fields: FinancialFields = field(default_factory=FinancialFields)
    annotation: Annotation = Annotation.RED


@dataclass(frozen=True)
class RangeEntry:
    start_date: date
    end_date: date
    fields: FinancialFields = field(default_factory=FinancialFields)
    annotation: Annotation = Annotation.RED

    @property
    def span(self) -> tuple[date, date]:
        return self.start_date, self.end_date

    def label(self) -> str:
        return f"{self.start_date.isoformat()}..{self.end_date.isoformat()}"