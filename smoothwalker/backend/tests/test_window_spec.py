"""
tests/test_window_spec.py

Tests for timeline/window_spec.py.
"now" is always injected, so every expectation is an exact datetime.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from smoothwalker.backend.store.models import StatisticsCollection
from smoothwalker.backend.timeline.models import SLOT_INDEX, Timeline
from smoothwalker.backend.timeline.window_spec import (
    months_before,
    resolve,
    resolve_all,
    start_of_day,
    start_of_week,
)

UTC = timezone.utc
NOW = datetime(2021, 5, 14, tzinfo=UTC)  # a Friday


def bucket_count(spec, end) -> int:
    collection = StatisticsCollection(spec.anchor_date, spec.bucket_interval)
    return sum(1 for _ in collection.enumerate_statistics(spec.window_start, end))


# ---------------------------------------------------------------------------
# Calendar helpers
# ---------------------------------------------------------------------------

class TestCalendarHelpers:

    def test_start_of_day(self):
        dt = datetime(2021, 5, 14, 17, 45, 12, tzinfo=UTC)
        assert start_of_day(dt) == datetime(2021, 5, 14, tzinfo=UTC)

    def test_start_of_week_is_monday(self):
        assert start_of_week(NOW) == datetime(2021, 5, 10, tzinfo=UTC)

    def test_start_of_week_on_monday_is_same_day(self):
        monday = datetime(2021, 5, 10, 9, 0, tzinfo=UTC)
        assert start_of_week(monday) == datetime(2021, 5, 10, tzinfo=UTC)

    def test_months_before_simple(self):
        assert months_before(NOW, 3) == datetime(2021, 2, 14, tzinfo=UTC)

    def test_months_before_clamps_day(self):
        assert months_before(datetime(2021, 5, 31), 3) == datetime(2021, 2, 28)

    def test_months_before_crosses_year(self):
        assert months_before(datetime(2021, 1, 15), 3) == datetime(2020, 10, 15)


# ---------------------------------------------------------------------------
# Daily
# ---------------------------------------------------------------------------

class TestDaily:

    def test_predicate_range(self):
        spec = resolve(Timeline.DAILY, NOW, UTC)
        assert spec.predicate_start == datetime(2021, 5, 7, tzinfo=UTC)
        assert spec.predicate_end == NOW

    def test_interval_and_window_start(self):
        spec = resolve(Timeline.DAILY, NOW, UTC)
        assert spec.bucket_interval == timedelta(days=1)
        assert spec.window_start == datetime(2021, 5, 7, tzinfo=UTC)

    def test_anchor_is_offset_from_today(self):
        spec = resolve(Timeline.DAILY, NOW, UTC)
        assert spec.anchor_date == datetime(2021, 5, 10, tzinfo=UTC)
        assert spec.anchor_date <= start_of_day(NOW)

    def test_seven_buckets(self):
        spec = resolve(Timeline.DAILY, NOW, UTC)
        assert bucket_count(spec, NOW) == 7

    def test_partial_today_adds_bucket(self):
        later = NOW + timedelta(hours=10)
        spec = resolve(Timeline.DAILY, later, UTC)
        # May 7 through May 13, plus today's partial bucket
        assert bucket_count(spec, later) == 8


# ---------------------------------------------------------------------------
# Weekly
# ---------------------------------------------------------------------------

class TestWeekly:

    def test_predicate_range(self):
        spec = resolve(Timeline.WEEKLY, NOW, UTC)
        assert spec.predicate_start == datetime(2021, 4, 16, tzinfo=UTC)
        assert spec.predicate_end == NOW

    def test_interval_anchor_window(self):
        spec = resolve(Timeline.WEEKLY, NOW, UTC)
        assert spec.bucket_interval == timedelta(days=7)
        assert spec.anchor_date == datetime(2021, 5, 14, tzinfo=UTC)
        assert spec.window_start == datetime(2021, 4, 16, tzinfo=UTC)

    def test_four_buckets(self):
        spec = resolve(Timeline.WEEKLY, NOW, UTC)
        assert bucket_count(spec, NOW) == 4


# ---------------------------------------------------------------------------
# Monthly
# ---------------------------------------------------------------------------

class TestMonthly:

    def test_predicate_is_last_seven_days(self):
        spec = resolve(Timeline.MONTHLY, NOW, UTC)
        assert spec.predicate_start == datetime(2021, 5, 7, tzinfo=UTC)
        assert spec.predicate_end == NOW

    def test_interval_anchor_window(self):
        spec = resolve(Timeline.MONTHLY, NOW, UTC)
        assert spec.bucket_interval == timedelta(days=30)
        assert spec.anchor_date == datetime(2021, 5, 14, tzinfo=UTC)
        assert spec.window_start == datetime(2021, 2, 14, tzinfo=UTC)

    def test_three_buckets(self):
        spec = resolve(Timeline.MONTHLY, NOW, UTC)
        assert bucket_count(spec, NOW) == 3


# ---------------------------------------------------------------------------
# General properties
# ---------------------------------------------------------------------------

class TestResolveProperties:

    @pytest.mark.parametrize("timeline", list(Timeline))
    def test_pure(self, timeline):
        assert resolve(timeline, NOW, UTC) == resolve(timeline, NOW, UTC)

    @pytest.mark.parametrize("timeline", list(Timeline))
    def test_slot_index_matches_table(self, timeline):
        assert resolve(timeline, NOW, UTC).slot_index == SLOT_INDEX[timeline]

    def test_slot_indexes_distinct(self):
        assert sorted(t.slot_index for t in Timeline) == [0, 1, 2]

    def test_accepts_string_timeline(self):
        assert resolve("weekly", NOW, UTC).timeline is Timeline.WEEKLY

    def test_unknown_timeline_raises(self):
        with pytest.raises(ValueError):
            resolve("yearly", NOW, UTC)

    def test_naive_now_taken_in_tz(self):
        spec = resolve(Timeline.DAILY, datetime(2021, 5, 14), UTC)
        assert spec.predicate_end == NOW

    def test_local_day_uses_timezone(self):
        la = ZoneInfo("America/Los_Angeles")
        # 03:00 UTC on May 14 is still May 13 in Los Angeles
        spec = resolve(Timeline.WEEKLY, datetime(2021, 5, 14, 3, 0, tzinfo=UTC), la)
        assert spec.anchor_date == datetime(2021, 5, 13, tzinfo=la)

    def test_resolve_all_covers_every_timeline(self):
        specs = resolve_all(NOW, UTC)
        assert set(specs) == set(Timeline)
        assert all(spec.timeline is timeline for timeline, spec in specs.items())
