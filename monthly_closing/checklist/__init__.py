"""Closing checklist package."""

from monthly_closing.checklist.evaluator import ChecklistEvaluator

__all__ = ["ChecklistEvaluator"]
