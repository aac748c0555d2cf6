"""Tests for interval utilities."""

import pytest

from isoreconcile.utils.intervals import (
    Interval,
    IntervalIndex,
    has_overlap,
    merge_intervals,
    overlap_length,
    uncovered_length,
)


# =============================================================================
# Test Interval
# =============================================================================


class TestInterval:
    """Tests for the Interval NamedTuple."""

    def test_length_is_inclusive(self):
        """Both ends count toward the length."""
        assert Interval(100, 200).length == 101
        assert Interval(5, 5).length == 1

    def test_within_slack(self):
        """Slack widens the containing interval on both sides."""
        assert Interval(95, 205).within(Interval(100, 200), slack=5)
        assert not Interval(94, 200).within(Interval(100, 200), slack=5)

    def test_near(self):
        """Intervals within the gap are near each other."""
        assert Interval(100, 200).near(Interval(210, 300), max_gap=10)
        assert not Interval(100, 200).near(Interval(211, 300), max_gap=10)
        assert not Interval(100, 200).near(Interval(201, 300))


class TestOverlapLength:
    """Tests for overlap_length."""

    @pytest.mark.parametrize(
        "a,b,expected",
        [
            (Interval(100, 200), Interval(150, 250), 51),
            (Interval(100, 200), Interval(200, 300), 1),
            (Interval(100, 200), Interval(201, 300), 0),
            (Interval(100, 200), Interval(120, 130), 11),
        ],
    )
    def test_overlap_length(self, a, b, expected):
        assert overlap_length(a, b) == expected
        assert overlap_length(b, a) == expected


class TestHasOverlap:
    """Tests for the sorted sweep overlap check."""

    def test_finds_late_overlap(self):
        a = [Interval(1, 10), Interval(100, 110)]
        b = [Interval(20, 30), Interval(105, 120)]
        assert has_overlap(a, b)

    def test_no_overlap(self):
        a = [Interval(1, 10), Interval(100, 110)]
        b = [Interval(20, 30), Interval(111, 120)]
        assert not has_overlap(a, b)

    def test_min_overlap(self):
        a = [Interval(1, 10)]
        b = [Interval(7, 20)]
        assert has_overlap(a, b, min_overlap=4)
        assert not has_overlap(a, b, min_overlap=5)


# =============================================================================
# Test Merge / Coverage
# =============================================================================


class TestMergeIntervals:
    """Tests for merge_intervals."""

    def test_empty(self):
        assert merge_intervals([]) == []

    def test_merges_overlapping_and_adjacent(self):
        """Adjacent intervals leave no gap and are merged by default."""
        merged = merge_intervals([Interval(300, 400), Interval(100, 200), Interval(150, 250), Interval(251, 260)])
        assert merged == [Interval(100, 260), Interval(300, 400)]

    def test_adjacent_kept_apart_without_gap_width(self):
        merged = merge_intervals([Interval(100, 200), Interval(201, 300)], min_gap_width=0)
        assert merged == [Interval(100, 200), Interval(201, 300)]


class TestUncoveredLength:
    """Tests for uncovered_length."""

    def test_fully_covered(self):
        assert uncovered_length([Interval(100, 200)], [Interval(50, 250)]) == 0

    def test_partial(self):
        assert uncovered_length([Interval(100, 200)], [Interval(150, 300)]) == 50

    def test_multiple_masks(self):
        ivs = [Interval(100, 200), Interval(300, 400)]
        masks = [Interval(100, 120), Interval(150, 160), Interval(390, 500)]
        # 101 - 21 - 11 = 69 ; 101 - 11 = 90
        assert uncovered_length(ivs, masks) == 159

    def test_no_cover(self):
        assert uncovered_length([Interval(1, 10)], []) == 10


# =============================================================================
# Test IntervalIndex
# =============================================================================


class TestIntervalIndex:
    """Tests for the sorted interval index."""

    def test_empty_index(self):
        index = IntervalIndex([])
        assert len(index) == 0
        assert index.query(Interval(1, 10)).tolist() == []

    def test_query_overlaps(self):
        index = IntervalIndex([Interval(300, 400), Interval(100, 200), Interval(1, 1000)])
        assert index.query(Interval(150, 160)).tolist() == [1, 2]
        assert index.query(Interval(350, 350)).tolist() == [0, 2]

    def test_query_with_gap(self):
        index = IntervalIndex([Interval(100, 200)])
        assert index.query(Interval(210, 220)).tolist() == []
        assert index.query(Interval(210, 220), max_gap=10).tolist() == [0]

    def test_long_interval_found_from_far_right(self):
        """A long interval starting far left still matches."""
        index = IntervalIndex([Interval(1, 10_000), Interval(5000, 5010)], ids=[7, 3])
        assert index.query(Interval(9000, 9001)).tolist() == [7]

    def test_custom_ids(self):
        index = IntervalIndex([Interval(100, 200), Interval(150, 250)], ids=[10, 20])
        assert index.query(Interval(240, 260)).tolist() == [20]
