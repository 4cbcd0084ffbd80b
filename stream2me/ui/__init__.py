"""User interaction helpers."""

from .progress import FragmentRateColumn, ProgressReporter

__all__ = ["FragmentRateColumn", "ProgressReporter"]
