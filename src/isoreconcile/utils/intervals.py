"""Genomic interval operations.

This module provides the interval primitives the reconciliation engine is
built on:

- Containment and proximity tests
- Interval merging (reduction to maximal non-overlapping intervals)
- Uncovered-length calculation between two interval sets
- A sorted, NumPy-backed interval index for overlap queries

All intervals are 1-based and inclusive on both ends, matching GTF/GFF3.

Example:
    >>> from isoreconcile.utils.intervals import Interval, merge_intervals
    >>> merge_intervals([Interval(1, 10), Interval(5, 20), Interval(30, 40)])
    [Interval(start=1, end=20), Interval(start=30, end=40)]
"""

from __future__ import annotations

from typing import Iterable, NamedTuple, Sequence

import numpy as np

# =============================================================================
# Data Structures
# =============================================================================


class Interval(NamedTuple):
    """A closed genomic interval.

    Attributes:
        start: Start position (1-based, inclusive).
        end: End position (1-based, inclusive).
    """

    start: int
    end: int

    @property
    def length(self) -> int:
        """Get interval length."""
        return self.end - self.start + 1

    def within(self, other: Interval, slack: int = 0) -> bool:
        """Check if this interval lies inside ``other`` widened by ``slack`` on both sides."""
        return self.start >= other.start - slack and self.end <= other.end + slack

    def near(self, other: Interval, max_gap: int = 0) -> bool:
        """Check if this interval overlaps ``other`` or lies within ``max_gap`` bases of it."""
        return self.start <= other.end + max_gap and other.start <= self.end + max_gap


# =============================================================================
# Overlap Operations
# =============================================================================


def overlap_length(a: Interval, b: Interval) -> int:
    """Calculate overlap length between two intervals.

    Args:
        a: First interval.
        b: Second interval.

    Returns:
        Number of shared bases (0 if disjoint).
    """
    return max(0, min(a.end, b.end) - max(a.start, b.start) + 1)


def has_overlap(
    a: Sequence[Interval],
    b: Sequence[Interval],
    min_overlap: int = 1,
) -> bool:
    """Check whether any interval of ``a`` overlaps any interval of ``b``.

    Both sequences must be sorted by start and internally non-overlapping,
    which allows a single linear sweep.

    Args:
        a: First sorted interval list.
        b: Second sorted interval list.
        min_overlap: Minimum number of shared bases for a hit.

    Returns:
        True if some pair shares at least ``min_overlap`` bases.
    """
    i = j = 0
    while i < len(a) and j < len(b):
        if overlap_length(a[i], b[j]) >= max(min_overlap, 1):
            return True
        if a[i].end < b[j].end:
            i += 1
        else:
            j += 1
    return False


# =============================================================================
# Merge Operations
# =============================================================================


def merge_intervals(
    intervals: Iterable[Interval],
    min_gap_width: int = 1,
) -> list[Interval]:
    """Merge overlapping intervals.

    Intervals separated by fewer than ``min_gap_width`` uncovered bases are
    merged, so with the default of 1 directly adjacent intervals are joined.

    Args:
        intervals: Intervals to merge, in any order.
        min_gap_width: Smallest gap that keeps two intervals apart.

    Returns:
        Sorted list of maximal, non-overlapping intervals.
    """
    sorted_intervals = sorted(intervals)
    if not sorted_intervals:
        return []

    merged = [sorted_intervals[0]]
    for current in sorted_intervals[1:]:
        last = merged[-1]
        if current.start - last.end - 1 < min_gap_width:
            merged[-1] = Interval(last.start, max(last.end, current.end))
        else:
            merged.append(current)

    return merged


def uncovered_length(
    intervals: Iterable[Interval],
    cover: Iterable[Interval],
) -> int:
    """Count bases of ``intervals`` not covered by any interval of ``cover``.

    Args:
        intervals: Intervals whose bases are counted.
        cover: Intervals that mask bases.

    Returns:
        Number of bases in the union of ``intervals`` outside the union of ``cover``.
    """
    merged = merge_intervals(intervals, min_gap_width=0)
    masks = merge_intervals(cover, min_gap_width=0)

    total = 0
    j = 0
    for interval in merged:
        remaining = interval.length
        # Skip masks that end before this interval
        while j < len(masks) and masks[j].end < interval.start:
            j += 1
        k = j
        while k < len(masks) and masks[k].start <= interval.end:
            remaining -= overlap_length(interval, masks[k])
            k += 1
        total += remaining

    return total


# =============================================================================
# Interval Index
# =============================================================================


class IntervalIndex:
    """Sorted interval index backed by NumPy arrays.

    Intervals are sorted by start once at construction. A query performs a
    binary search for the window of starts that could reach the query
    (bounded by the longest indexed interval) and filters that window by end
    position, so the cost is logarithmic plus the size of the window.

    Attributes:
        starts: Sorted start positions.
        ends: End positions in start order.
        ids: Caller-provided identifiers in start order.

    Example:
        >>> index = IntervalIndex([Interval(100, 200), Interval(300, 400)])
        >>> index.query(Interval(150, 160)).tolist()
        [0]
    """

    def __init__(
        self,
        intervals: Sequence[Interval],
        ids: Sequence[int] | None = None,
    ) -> None:
        """Build the index.

        Args:
            intervals: Intervals to index.
            ids: Identifier per interval; defaults to the input positions.
        """
        starts = np.fromiter((iv.start for iv in intervals), dtype=np.int64, count=len(intervals))
        ends = np.fromiter((iv.end for iv in intervals), dtype=np.int64, count=len(intervals))
        if ids is None:
            id_array = np.arange(len(intervals), dtype=np.int64)
        else:
            id_array = np.asarray(ids, dtype=np.int64)

        order = np.lexsort((ends, starts))
        self.starts = starts[order]
        self.ends = ends[order]
        self.ids = id_array[order]
        self._max_len = int(np.max(self.ends - self.starts + 1)) if len(order) else 0

    def __len__(self) -> int:
        return len(self.starts)

    def query(self, interval: Interval, max_gap: int = 0) -> np.ndarray:
        """Find indexed intervals near a query interval.

        Args:
            interval: Query interval.
            max_gap: Indexed intervals up to this many bases away also match.

        Returns:
            Sorted array of matching identifiers.
        """
        if len(self) == 0:
            return np.empty(0, dtype=np.int64)

        lo_bound = interval.start - max_gap
        hi_bound = interval.end + max_gap

        # Nothing longer than _max_len can start before this and still reach lo_bound
        lo = np.searchsorted(self.starts, lo_bound - self._max_len + 1, side="left")
        hi = np.searchsorted(self.starts, hi_bound, side="right")

        window = slice(lo, hi)
        mask = self.ends[window] >= lo_bound
        return np.sort(self.ids[window][mask])
