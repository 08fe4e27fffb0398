"""Closing state machine package."""

from monthly_closing.closing.locks import PeriodLocks
from monthly_closing.closing.store import ClosureStore

__all__ = ["ClosureStore", "PeriodLocks"]
