"""Month/day arithmetic helpers."""
from datetime import date, datetime

import pytest

from utils.dates import (
    add_months, clip_day, days_in_month, month_bounds, month_index, month_key,
    month_window, parse_date, validate_period, window_bounds,
)
from utils.errors import ValidationError


class TestClipDay:
    def test_day_31_in_february(self):
        assert clip_day(2025, 2, 31) == date(2025, 2, 28)

    def test_day_31_in_leap_february(self):
        assert clip_day(2024, 2, 31) == date(2024, 2, 29)

    def test_day_within_month_unchanged(self):
        assert clip_day(2025, 4, 15) == date(2025, 4, 15)

    def test_days_in_month(self):
        assert days_in_month(2025, 4) == 30
        assert days_in_month(2025, 12) == 31


class TestMonthWindow:
    def test_add_months_crosses_year(self):
        assert add_months(2025, 11, 3) == (2026, 2)

    def test_window_includes_target_and_lookahead(self):
        assert month_window(2025, 12, 2) == [(2025, 12), (2026, 1), (2026, 2)]

    def test_window_without_lookahead(self):
        assert month_window(2025, 6) == [(2025, 6)]

    def test_bounds(self):
        assert month_bounds(2025, 2) == (date(2025, 2, 1), date(2025, 2, 28))
        assert window_bounds(2025, 1, 1) == (date(2025, 1, 1), date(2025, 2, 28))

    def test_month_index_orders_across_years(self):
        assert month_index(2024, 12) + 1 == month_index(2025, 1)

    def test_month_key(self):
        assert month_key(2025, 3) == '2025-03'


class TestParseDate:
    def test_iso_string(self):
        assert parse_date('2025-01-15') == date(2025, 1, 15)

    def test_datetime_becomes_date(self):
        assert parse_date(datetime(2025, 1, 15, 9, 30)) == date(2025, 1, 15)

    @pytest.mark.parametrize('value', ['15/01/2025', '2025-02-30', None, 20250115])
    def test_rejects_invalid(self, value):
        with pytest.raises(ValidationError):
            parse_date(value)


class TestValidatePeriod:
    def test_coerces_strings(self):
        assert validate_period('2025', '3', '2') == (2025, 3, 2)

    def test_missing_lookahead_is_zero(self):
        assert validate_period(2025, 3, None) == (2025, 3, 0)

    @pytest.mark.parametrize('year,month,lookahead', [
        (25, 1, 0),
        (2025, 0, 0),
        (2025, 13, 0),
        (2025, 1, -1),
        ('abc', 1, 0),
    ])
    def test_rejects_invalid(self, year, month, lookahead):
        with pytest.raises(ValidationError):
            validate_period(year, month, lookahead)

    def test_rejects_lookahead_over_maximum(self):
        with pytest.raises(ValidationError):
            validate_period(2025, 1, 13, max_lookahead=12)
