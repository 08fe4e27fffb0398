"""
Period Index

Enumerates the calendar months a user can pick for closing.
Pure functions of the reference date - no storage, no providers.
"""

import calendar
from datetime import date
from typing import Optional

from monthly_closing.config import get_settings
from monthly_closing.models.closure import CandidatePeriod
from monthly_closing.models.records import DateRange


def validate_period(year: int, month: int) -> None:
    """Raise ValueError for a month outside 1-12 or a nonsense year."""
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}")
    if not 1900 <= year <= 9999:
        raise ValueError(f"Year out of range: {year}")


def month_date_range(year: int, month: int) -> DateRange:
    """Inclusive [first day, last day] of a calendar month."""
    validate_period(year, month)
    last_day = calendar.monthrange(year, month)[1]
    return DateRange(start=date(year, month, 1), end=date(year, month, last_day))


def period_label(year: int, month: int) -> str:
    """e.g. 'October 2026'."""
    validate_period(year, month)
    return f"{calendar.month_name[month]} {year}"


def shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    """Move (year, month) by ``offset`` months (negative goes back)."""
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def list_candidate_periods(
    reference_date: date,
    window_months: Optional[int] = None,
) -> list[CandidatePeriod]:
    """
    List candidate periods, newest first.

    The first entry is the month containing ``reference_date``; each next
    one is the previous calendar month.

    Args:
        reference_date: Usually today
        window_months: How many months to list (defaults to the configured window)

    Raises:
        ValueError: If window_months is less than 1
    """
    if window_months is None:
        window_months = get_settings().closing.candidate_window_months
    if window_months < 1:
        raise ValueError(f"window_months must be at least 1, got {window_months}")

    periods = []
    for offset in range(window_months):
        year, month = shift_month(reference_date.year, reference_date.month, -offset)
        periods.append(
            CandidatePeriod(year=year, month=month, label=period_label(year, month))
        )
    return periods
