"""Tests for the period index."""

import pytest
from datetime import date

from monthly_closing.periods import (
    list_candidate_periods,
    month_date_range,
    period_label,
    shift_month,
    validate_period,
)


class TestMonthMath:
    """Tests for month ranges and labels."""

    def test_month_range_leap_february(self):
        """February of a leap year ends on the 29th."""
        r = month_date_range(2024, 2)
        assert r.start == date(2024, 2, 1)
        assert r.end == date(2024, 2, 29)

    def test_month_range_regular_february(self):
        assert month_date_range(2026, 2).end == date(2026, 2, 28)

    def test_month_range_december(self):
        assert month_date_range(2026, 12).end == date(2026, 12, 31)

    def test_label(self):
        assert period_label(2026, 10) == "October 2026"

    def test_shift_month_across_years(self):
        """Shifting wraps around year boundaries both ways."""
        assert shift_month(2026, 1, -1) == (2025, 12)
        assert shift_month(2026, 12, 1) == (2027, 1)
        assert shift_month(2026, 10, -22) == (2024, 12)

    @pytest.mark.parametrize("year,month", [(2026, 0), (2026, 13), (1800, 5)])
    def test_validate_period_rejects(self, year, month):
        """Out-of-range months and years are rejected."""
        with pytest.raises(ValueError):
            validate_period(year, month)


class TestCandidatePeriods:
    """Tests for the list of months offered for closing."""

    def test_newest_first(self):
        """The reference month comes first, then each previous month."""
        periods = list_candidate_periods(date(2026, 10, 19), window_months=3)
        assert [(p.year, p.month) for p in periods] == [(2026, 10), (2026, 9), (2026, 8)]
        assert periods[0].label == "October 2026"

    def test_crosses_year_boundary(self):
        """A January reference date reaches into the previous year."""
        periods = list_candidate_periods(date(2026, 1, 31), window_months=2)
        assert [(p.year, p.month) for p in periods] == [(2026, 1), (2025, 12)]

    def test_default_window(self):
        """Without an explicit window, twelve months are listed."""
        periods = list_candidate_periods(date(2026, 10, 19))
        assert len(periods) == 12
        assert (periods[-1].year, periods[-1].month) == (2025, 11)

    def test_window_from_environment(self, monkeypatch):
        """The default window is configurable."""
        monkeypatch.setenv("CLOSING_CANDIDATE_WINDOW_MONTHS", "4")
        assert len(list_candidate_periods(date(2026, 10, 19))) == 4

    def test_rejects_empty_window(self):
        with pytest.raises(ValueError):
            list_candidate_periods(date(2026, 10, 19), window_months=0)

    def test_same_result_for_same_reference(self):
        """The list depends only on the reference date."""
        assert list_candidate_periods(date(2026, 10, 1), 5) == list_candidate_periods(
            date(2026, 10, 31), 5
        )
