"""Utility functions for isoreconcile.

- Interval operations (overlap, merge, uncovered length, sorted index)
- Logging configuration

Example:
    >>> from isoreconcile.utils.intervals import Interval, IntervalIndex
    >>> index = IntervalIndex([Interval(1, 100)])
"""

from isoreconcile.utils.intervals import (
    Interval,
    IntervalIndex,
    has_overlap,
    merge_intervals,
    overlap_length,
    uncovered_length,
)

__all__ = [
    "Interval",
    "IntervalIndex",
    "has_overlap",
    "merge_intervals",
    "overlap_length",
    "uncovered_length",
]
