"""
tests/test_statistics_collection.py

Tests for store/models.py — bucket arithmetic, gap filling and per-bucket
reduction. Pure data structures, so all tests are synchronous.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from smoothwalker.backend.display.units import METERS_PER_SECOND
from smoothwalker.backend.models import AggregationMode
from smoothwalker.backend.store.models import DateRange, Statistics, StatisticsCollection

UTC = timezone.utc
ANCHOR = datetime(2021, 5, 10, tzinfo=UTC)
DAY = timedelta(days=1)


def stats_for(index: int, value: float, collection: StatisticsCollection) -> Statistics:
    start, end = collection.bucket_bounds(index)
    return Statistics.from_values(start, end, [value], METERS_PER_SECOND, AggregationMode.AVERAGE)


# ---------------------------------------------------------------------------
# DateRange
# ---------------------------------------------------------------------------

class TestDateRange:

    def test_inclusive_bounds(self):
        r = DateRange(ANCHOR, ANCHOR + DAY)
        assert r.contains(ANCHOR)
        assert r.contains(ANCHOR + DAY)

    def test_outside(self):
        r = DateRange(ANCHOR, ANCHOR + DAY)
        assert not r.contains(ANCHOR - timedelta(seconds=1))
        assert not r.contains(ANCHOR + DAY + timedelta(seconds=1))


# ---------------------------------------------------------------------------
# Statistics.from_values
# ---------------------------------------------------------------------------

class TestStatisticsFromValues:

    def _reduce(self, mode, values):
        stats = Statistics.from_values(ANCHOR, ANCHOR + DAY, values, METERS_PER_SECOND, mode)
        return stats.quantity(mode).value_in(METERS_PER_SECOND)

    def test_sum(self):
        assert self._reduce(AggregationMode.SUM, [1.0, 2.0, 3.5]) == pytest.approx(6.5)

    def test_average(self):
        assert self._reduce(AggregationMode.AVERAGE, [1.2, 1.4]) == pytest.approx(1.3)

    def test_min(self):
        assert self._reduce(AggregationMode.MIN, [1.2, 0.9, 1.4]) == 0.9

    def test_max(self):
        assert self._reduce(AggregationMode.MAX, [1.2, 0.9, 1.4]) == 1.4

    def test_sample_count(self):
        stats = Statistics.from_values(
            ANCHOR, ANCHOR + DAY, [1.0, 2.0], METERS_PER_SECOND, AggregationMode.SUM,
        )
        assert stats.sample_count == 2

    def test_empty_values_give_empty_statistics(self):
        stats = Statistics.from_values(
            ANCHOR, ANCHOR + DAY, [], METERS_PER_SECOND, AggregationMode.AVERAGE,
        )
        assert stats.sample_count == 0
        assert stats.quantity(AggregationMode.AVERAGE) is None

    def test_other_mode_not_computed(self):
        stats = Statistics.from_values(
            ANCHOR, ANCHOR + DAY, [1.0], METERS_PER_SECOND, AggregationMode.SUM,
        )
        assert stats.quantity(AggregationMode.AVERAGE) is None


# ---------------------------------------------------------------------------
# StatisticsCollection
# ---------------------------------------------------------------------------

class TestBucketArithmetic:

    def test_anchor_starts_bucket_zero(self):
        c = StatisticsCollection(ANCHOR, DAY)
        assert c.bucket_index(ANCHOR) == 0
        assert c.bucket_bounds(0) == (ANCHOR, ANCHOR + DAY)

    def test_index_floors_before_anchor(self):
        c = StatisticsCollection(ANCHOR, DAY)
        assert c.bucket_index(ANCHOR - timedelta(seconds=1)) == -1
        assert c.bucket_index(ANCHOR - timedelta(days=3, hours=2)) == -4

    def test_bucket_end_belongs_to_next_bucket(self):
        c = StatisticsCollection(ANCHOR, DAY)
        assert c.bucket_index(ANCHOR + DAY) == 1

    def test_utc_timestamp_indexed_in_anchor_zone(self):
        new_york = ZoneInfo("America/New_York")
        # Monday after the Mar 14 2021 spring-forward change
        c = StatisticsCollection(datetime(2021, 3, 15, tzinfo=new_york), DAY)
        late_saturday = datetime(2021, 3, 13, 23, 30, tzinfo=new_york).astimezone(UTC)

        index = c.bucket_index(late_saturday)
        assert index == -2
        assert c.bucket_bounds(index)[0] == datetime(2021, 3, 13, tzinfo=new_york)

    def test_non_positive_interval_rejected(self):
        with pytest.raises(ValueError):
            StatisticsCollection(ANCHOR, timedelta(0))
        with pytest.raises(ValueError):
            StatisticsCollection(ANCHOR, -DAY)

    def test_statistics_lookup_of_empty_bucket(self):
        c = StatisticsCollection(ANCHOR, DAY)
        stats = c.statistics(ANCHOR + timedelta(hours=5))
        assert stats.start == ANCHOR
        assert stats.sample_count == 0


class TestEnumerateStatistics:

    def test_fills_gaps(self):
        empty = StatisticsCollection(ANCHOR, DAY)
        c = StatisticsCollection(ANCHOR, DAY, {-2: stats_for(-2, 1.1, empty), 1: stats_for(1, 1.5, empty)})

        buckets = list(c.enumerate_statistics(ANCHOR - 3 * DAY, ANCHOR + 3 * DAY))
        assert len(buckets) == 6
        assert [b.sample_count for b in buckets] == [0, 1, 0, 0, 1, 0]
        assert len(c) == 2

    def test_chronological_and_contiguous(self):
        c = StatisticsCollection(ANCHOR, DAY)
        buckets = list(c.enumerate_statistics(ANCHOR - 3 * DAY, ANCHOR + 4 * DAY))
        starts = [b.start for b in buckets]
        assert starts == sorted(starts)
        assert all(a.end == b.start for a, b in zip(buckets, buckets[1:]))

    def test_start_inside_bucket_includes_that_bucket(self):
        c = StatisticsCollection(ANCHOR, DAY)
        buckets = list(c.enumerate_statistics(ANCHOR + timedelta(hours=12), ANCHOR + 2 * DAY))
        assert [b.start for b in buckets] == [ANCHOR, ANCHOR + DAY]

    def test_end_is_exclusive(self):
        c = StatisticsCollection(ANCHOR, DAY)
        buckets = list(c.enumerate_statistics(ANCHOR, ANCHOR + 2 * DAY))
        assert len(buckets) == 2

    def test_empty_range(self):
        c = StatisticsCollection(ANCHOR, DAY)
        assert list(c.enumerate_statistics(ANCHOR, ANCHOR)) == []
        assert list(c.enumerate_statistics(ANCHOR + DAY, ANCHOR)) == []
