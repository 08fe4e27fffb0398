"""Period index package."""

from monthly_closing.periods.index import (
    list_candidate_periods,
    month_date_range,
    period_label,
    shift_month,
    validate_period,
)

__all__ = [
    "list_candidate_periods",
    "month_date_range",
    "period_label",
    "shift_month",
    "validate_period",
]
