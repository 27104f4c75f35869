"""Tests for request date parsing (weekly_ledger/domain/parsing.py)."""

from datetime import date, datetime

import pytest

from weekly_ledger.domain.parsing import (
    parse_date,
    parse_date_pair,
    parse_date_range,
    parse_optional_date,
    parse_window,
)
from weekly_ledger.exceptions import InvalidInputError


class TestParseDate:
    @pytest.mark.parametrize(
        "raw",
        ["2025-11-03", "2025-11-03T00:00:00.000Z", " 2025-11-03 ", date(2025, 11, 3), datetime(2025, 11, 3, 18)],
    )
    def test_accepted_forms(self, raw):
        assert parse_date(raw) == date(2025, 11, 3)

    @pytest.mark.parametrize("raw", ["03/11/2025", "2025-13-01", "", None, 20251103])
    def test_rejected_forms(self, raw):
        with pytest.raises(InvalidInputError) as exc_info:
            parse_date(raw, "paymentDate")
        assert exc_info.value.field == "paymentDate"

    @pytest.mark.parametrize(
        "raw",
        ["2025-11-031", "2025-11-0399", "2025-11-03garbage", "2025-11-03 junk", "x2025-11-03", "2025-11-03T"],
    )
    def test_trailing_or_leading_text_rejected(self, raw):
        with pytest.raises(InvalidInputError, match="must be a YYYY-MM-DD date"):
            parse_date(raw)

    @pytest.mark.parametrize(
        "raw", ["2025-11-03T09:30", "2025-11-03T09:30:15+05:30", "2025-11-03T23:59:59.999+0000"]
    )
    def test_timestamps_keep_calendar_date(self, raw):
        assert parse_date(raw) == date(2025, 11, 3)

    def test_optional(self):
        assert parse_optional_date(None) is None
        assert parse_optional_date("") is None
        assert parse_optional_date("2025-11-04") == date(2025, 11, 4)


class TestParseDateRange:
    @pytest.mark.parametrize(
        "raw",
        ["2025-11-03..2025-11-05", "2025-11-03 to 2025-11-05", "2025-11-03 - 2025-11-05", ["2025-11-03", "2025-11-05"]],
    )
    def test_separators(self, raw):
        assert parse_date_range(raw) == (date(2025, 11, 3), date(2025, 11, 5))

    @pytest.mark.parametrize(
        "raw",
        [
            "2025-11-03",
            "2025-11-03..2025-11-05..2025-11-07",
            42,
            "2025-11-031..2025-11-05",
            "2025-11-03 and then 2025-11-05",
            "2025-11-032025-11-05",
        ],
    )
    def test_wrong_shape(self, raw):
        with pytest.raises(InvalidInputError, match="Invalid date range format"):
            parse_date_range(raw)

    def test_inverted_range(self):
        with pytest.raises(InvalidInputError, match="after it ends"):
            parse_date_range("2025-11-05..2025-11-03")

    def test_pair_keeps_inverted_order(self):
        assert parse_date_pair("2025-11-05..2025-11-03") == (date(2025, 11, 5), date(2025, 11, 3))


class TestParseWindow:
    def test_valid(self):
        assert parse_window("2025-11-03", "2025-11-09") == (date(2025, 11, 3), date(2025, 11, 9))

    def test_single_day(self):
        assert parse_window("2025-11-03", "2025-11-03") == (date(2025, 11, 3), date(2025, 11, 3))

    def test_missing_bound(self):
        with pytest.raises(InvalidInputError, match="required"):
            parse_window("2025-11-03", None)

    def test_inverted(self):
        with pytest.raises(InvalidInputError) as exc_info:
            parse_window("2025-11-09", "2025-11-03")
        assert exc_info.value.code == "INVALID_INPUT"
