"""Snapshot generation package."""

from monthly_closing.snapshot.generator import SnapshotGenerator

__all__ = ["SnapshotGenerator"]
