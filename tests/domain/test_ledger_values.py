"""Tests for ledger value objects and request DTOs."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from weekly_ledger.domain.dtos import PaymentSubmission
from weekly_ledger.domain.money import money_from_value, money_to_str
from weekly_ledger.domain.values import (
    Annotation,
    BucketShape,
    FinancialFields,
    WeekKey,
    WeeklyNetPayable,
)
from weekly_ledger.exceptions import InvalidInputError


class TestMoney:
    @pytest.mark.parametrize(
        "raw, expected",
        [(None, "0"), (0.1, "0.1"), (12, "12"), ("  7.50 ", "7.50"), (Decimal("3"), "3")],
    )
    def test_from_value(self, raw, expected):
        assert money_from_value(raw) == Decimal(expected)

    @pytest.mark.parametrize("raw", [True, "abc", "NaN", float("inf")])
    def test_rejects_non_amounts(self, raw):
        with pytest.raises(ValueError):
            money_from_value(raw)

    def test_to_str_drops_trailing_zeros(self):
        assert money_to_str(Decimal("120.500000000")) == "120.5"
        assert money_to_str(Decimal("1E+2")) == "100"
        assert money_to_str(Decimal("0.000")) == "0"


class TestFinancialFields:
    def test_defaults_are_zero(self):
        assert FinancialFields().is_zero

    def test_negative_rejected(self):
        with pytest.raises(InvalidInputError) as exc_info:
            FinancialFields(cash=Decimal("-1"))
        assert exc_info.value.field == "cash"

    def test_non_numeric_rejected_as_invalid_input(self):
        with pytest.raises(InvalidInputError):
            FinancialFields.from_mapping({"bank": "lots"})

    def test_updated_only_touches_given_measures(self):
        fields = FinancialFields(payment_amount=Decimal("10"), cash=Decimal("4"))
        updated = fields.updated({"cash": Decimal("6")})
        assert updated.payment_amount == Decimal("10")
        assert updated.cash == Decimal("6")

    def test_addition(self):
        total = FinancialFields(due=Decimal("1")) + FinancialFields(due=Decimal("2"), tda=Decimal("3"))
        assert total.due == Decimal("3")
        assert total.tda == Decimal("3")


class TestEnums:
    @pytest.mark.parametrize("raw", ["green", "GREEN", " Green "])
    def test_annotation_parse(self, raw):
        assert Annotation.parse(raw) == Annotation.GREEN

    def test_annotation_parse_rejects_other_colors(self):
        with pytest.raises(InvalidInputError, match="Invalid color"):
            Annotation.parse("blue")

    @pytest.mark.parametrize(
        "raw, shape",
        [("day", BucketShape.DAY), ("daily", BucketShape.DAY), ("weekly", BucketShape.DAY),
         ("range", BucketShape.RANGE), ("multiday", BucketShape.RANGE)],
    )
    def test_shape_parse(self, raw, shape):
        assert BucketShape.parse(raw) == shape

    def test_shape_parse_rejects_unknown(self):
        with pytest.raises(InvalidInputError):
            BucketShape.parse("monthly")


class TestWeekKeyAndNetPayable:
    def test_week_key_str(self):
        pid = uuid4()
        assert str(WeekKey(pid, 5, 2026)) == f"{pid}:2026-W05"

    def test_combined_joins_names(self):
        combined = WeeklyNetPayable("Alpha", Decimal("10")).combined(WeeklyNetPayable("", Decimal("5")))
        assert combined == WeeklyNetPayable("Alpha", Decimal("15"))
        both = WeeklyNetPayable("A", Decimal("1")).combined(WeeklyNetPayable("B", Decimal("2")))
        assert both.name == "A, B"


class TestPaymentSubmission:
    def test_unknown_measure_rejected(self):
        with pytest.raises(InvalidInputError, match="Unknown measures"):
            PaymentSubmission(party_id=uuid4(), measures={"tips": Decimal("1")})

    def test_negative_measure_rejected(self):
        with pytest.raises(InvalidInputError):
            PaymentSubmission(party_id=uuid4(), measures={"bank": Decimal("-5")})

    def test_measures_are_read_only(self):
        sub = PaymentSubmission(party_id=uuid4(), measures={"cash": Decimal("1")})
        with pytest.raises(TypeError):
            sub.measures["cash"] = Decimal("2")

    def test_resolved_shape(self):
        pid = uuid4()
        assert PaymentSubmission(pid, entry_date=date(2025, 11, 3)).resolved_shape(BucketShape.RANGE) == BucketShape.DAY
        assert PaymentSubmission(pid, start_date=date(2025, 11, 3)).resolved_shape(BucketShape.DAY) == BucketShape.RANGE
        assert PaymentSubmission(pid).resolved_shape(BucketShape.RANGE) == BucketShape.RANGE
        assert PaymentSubmission(pid, shape=BucketShape.DAY).resolved_shape(BucketShape.RANGE) == BucketShape.DAY
