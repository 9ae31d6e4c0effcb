"""
display/formatters.py

Per-metric display helpers: human-readable names, value formatting, date
formatting, and the statistics-options table that decides how samples in a
bucket are reduced.

Statistics options follow the metric's semantics: cumulative quantities
(steps, distance) are summed per bucket, point measurements (speed, heart
rate) are averaged, and a few "best of" measurements use min or max.
"""

from __future__ import annotations

from datetime import datetime

from ..models import AggregationMode, MetricKind
from .units import preferred_unit

_STATISTICS_OPTIONS: dict[MetricKind, AggregationMode] = {
    MetricKind.WALKING_SPEED:                 AggregationMode.AVERAGE,
    MetricKind.WALKING_STEP_LENGTH:           AggregationMode.AVERAGE,
    MetricKind.STEP_COUNT:                    AggregationMode.SUM,
    MetricKind.DISTANCE_WALKING_RUNNING:      AggregationMode.SUM,
    MetricKind.SIX_MINUTE_WALK_TEST_DISTANCE: AggregationMode.MAX,
    MetricKind.HEART_RATE:                    AggregationMode.AVERAGE,
    MetricKind.RESTING_HEART_RATE:            AggregationMode.MIN,
    MetricKind.VO2_MAX:                       AggregationMode.MAX,
}

_DISPLAY_NAMES: dict[MetricKind, str] = {
    MetricKind.WALKING_SPEED:                 "Walking Speed",
    MetricKind.WALKING_STEP_LENGTH:           "Walking Step Length",
    MetricKind.STEP_COUNT:                    "Step Count",
    MetricKind.DISTANCE_WALKING_RUNNING:      "Walking + Running Distance",
    MetricKind.SIX_MINUTE_WALK_TEST_DISTANCE: "Six-Minute Walk",
    MetricKind.HEART_RATE:                    "Heart Rate",
    MetricKind.RESTING_HEART_RATE:            "Resting Heart Rate",
    MetricKind.VO2_MAX:                       "Cardio Fitness",
}

# Decimal places shown for each kind
_PRECISION: dict[MetricKind, int] = {
    MetricKind.WALKING_SPEED:                 2,
    MetricKind.WALKING_STEP_LENGTH:           1,
    MetricKind.STEP_COUNT:                    0,
    MetricKind.DISTANCE_WALKING_RUNNING:      2,
    MetricKind.SIX_MINUTE_WALK_TEST_DISTANCE: 0,
    MetricKind.HEART_RATE:                    0,
    MetricKind.RESTING_HEART_RATE:            0,
    MetricKind.VO2_MAX:                       1,
}


def statistics_options(kind: MetricKind | str) -> AggregationMode:
    """Return the AggregationMode used to reduce samples of *kind* per bucket."""
    return _STATISTICS_OPTIONS[MetricKind(kind)]


def display_name(kind: MetricKind | str) -> str:
    return _DISPLAY_NAMES[MetricKind(kind)]


def formatted_value(
    value: float,
    kind: MetricKind | str,
    unit_system: str | None = None,
) -> str:
    """
    Format a bucket value (already in the preferred unit) for a table cell.

    Examples:
        formatted_value(1.3, "walking_speed")  → "1.30 m/s"
        formatted_value(10432, "step_count")   → "10,432 steps"
    """
    kind = MetricKind(kind)
    unit = preferred_unit(kind, unit_system)
    return f"{value:,.{_PRECISION[kind]}f} {unit.symbol}"


def format_date(dt: datetime) -> str:
    """Medium-style date, e.g. 'May 14, 2021'."""
    return f"{dt:%b} {dt.day}, {dt.year}"
