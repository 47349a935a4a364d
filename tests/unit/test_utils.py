"""
Unit tests for utils.py module.

Tests money rounding, calendar-day arithmetic, index coercion and
timestamp helpers.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from stepsave.utils import (
    add_days,
    as_day,
    clamp,
    coerce_index,
    day_diff,
    format_currency,
    format_timestamp,
    monday_start,
    parse_date,
    parse_timestamp,
    round_money,
    valid_indices,
)


class TestRoundMoney:
    """Test cent rounding."""

    def test_half_away_from_zero(self):
        assert round_money(2.675) == 2.68
        assert round_money(0.125) == 0.13
        assert round_money(-0.125) == -0.13

    def test_non_finite_is_zero(self):
        assert round_money(None) == 0.0
        assert round_money(float("nan")) == 0.0
        assert round_money(float("inf")) == 0.0
        assert round_money("abc") == 0.0

    def test_negative_zero_normalized(self):
        assert str(round_money(-0.001)) == "0.0"


class TestFormatCurrency:
    """Test display formatting."""

    def test_default_symbol(self):
        assert format_currency(66795) == "GHS 66,795.00"

    def test_custom_symbol(self):
        assert format_currency(1234.5, symbol="$") == "$1,234.50"


class TestCalendarDays:
    """Test date helpers."""

    def test_parse_date_plain_and_iso(self):
        assert parse_date("2024-01-29") == date(2024, 1, 29)
        assert parse_date("2024-01-29T10:00:00Z") == date(2024, 1, 29)

    def test_parse_date_invalid(self):
        with pytest.raises(ValueError):
            parse_date("not a date")

    def test_as_day_drops_time(self):
        assert as_day(datetime(2024, 3, 10, 23, 59)) == date(2024, 3, 10)
        assert as_day(date(2024, 3, 10)) == date(2024, 3, 10)

    def test_day_diff_ignores_time_of_day(self):
        # Across the 2024 US DST change (March 10)
        late = datetime(2024, 3, 11, 0, 30)
        early = datetime(2024, 3, 9, 23, 30)
        assert day_diff(late, early) == 2

    def test_add_days_and_monday_start(self):
        assert add_days(date(2024, 1, 1), 28) == date(2024, 1, 29)
        assert monday_start(date(2024, 1, 7)) == date(2024, 1, 1)
        assert monday_start(date(2024, 1, 8)) == date(2024, 1, 8)


class TestIndices:
    """Test index coercion and filtering."""

    @pytest.mark.parametrize("value,expected", [
        (3, 3),
        (3.0, 3),
        ("12", 12),
        ("12.0", 12),
        (2.5, None),
        ("abc", None),
        (None, None),
        (True, None),
        (float("nan"), None),
    ])
    def test_coerce_index(self, value, expected):
        assert coerce_index(value) == expected

    def test_valid_indices_filters_and_sorts(self):
        assert valid_indices([5, "2", 2, 0, 11, 3.5, "x", 10], 10) == [2, 5, 10]

    def test_clamp(self):
        assert clamp(-1, 0, 5) == 0
        assert clamp(9, 0, 5) == 5
        assert clamp(3, 0, 5) == 3


class TestTimestamps:
    """Test timestamp parsing and formatting."""

    def test_naive_is_utc(self):
        parsed = parse_timestamp("2024-01-01T12:00:00")
        assert parsed.tzinfo is not None
        assert parsed.utcoffset() == timedelta(0)

    def test_z_suffix(self):
        parsed = parse_timestamp("2024-01-01T12:00:00.000Z")
        assert parsed == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)

    def test_invalid_is_none(self):
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp(None) is None
        assert parse_timestamp("") is None

    def test_format_timestamp(self):
        moment = datetime(2024, 1, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)
        assert format_timestamp(moment) == "2024-01-01T12:00:00.123Z"

    def test_format_timestamp_converts_offset(self):
        moment = datetime(2024, 1, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(moment) == "2024-01-01T12:00:00.000Z"
