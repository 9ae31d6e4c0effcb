"""
store/models.py

Query and result shapes exchanged with the sample store.

DateRange                  — inclusive sample predicate
Statistics                 — aggregate of one bucket (may be empty)
StatisticsCollection       — anchor-aligned buckets produced by one query run
StatisticsCollectionQuery  — a long-lived statistics query plus its callback slots
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Iterator, Optional

from ..display.units import Quantity, Unit
from ..models import AggregationMode, MetricKind


class StoreQueryError(Exception):
    """The sample store could not evaluate a statistics query."""


# ---------------------------------------------------------------------------
# DateRange — sample predicate
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class DateRange:
    start: datetime
    end: datetime

    def contains(self, ts: datetime) -> bool:
        """Inclusive on both ends."""
        return self.start <= ts <= self.end


# ---------------------------------------------------------------------------
# Statistics — one bucket
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class Statistics:
    """
    Aggregate over the samples of one bucket.

    An empty bucket has no quantities and sample_count == 0.
    """

    start: datetime
    end: datetime
    quantities: dict[AggregationMode, Quantity] = field(default_factory=dict)
    sample_count: int = 0

    def quantity(self, mode: AggregationMode) -> Quantity | None:
        """Return the aggregate for *mode*, or None if it was not computed."""
        return self.quantities.get(mode)

    @classmethod
    def from_values(
        cls,
        start: datetime,
        end: datetime,
        values: list[float],
        unit: Unit,
        mode: AggregationMode,
    ) -> "Statistics":
        """Reduce *values* (all in *unit*) according to *mode*."""
        if not values:
            return cls(start=start, end=end)
        if mode is AggregationMode.SUM:
            result = math.fsum(values)
        elif mode is AggregationMode.AVERAGE:
            result = math.fsum(values) / len(values)
        elif mode is AggregationMode.MIN:
            result = min(values)
        else:
            result = max(values)
        return cls(
            start=start,
            end=end,
            quantities={mode: Quantity(result, unit)},
            sample_count=len(values),
        )


# ---------------------------------------------------------------------------
# StatisticsCollection — anchor-aligned buckets
# ---------------------------------------------------------------------------

class StatisticsCollection:
    """
    Buckets of length `interval` aligned so that one bucket starts exactly at
    `anchor_date`. Only non-empty buckets are stored; enumeration fills the
    gaps with empty Statistics.
    """

    def __init__(
        self,
        anchor_date: datetime,
        interval: timedelta,
        statistics: dict[int, Statistics] | None = None,
    ) -> None:
        if interval <= timedelta(0):
            raise ValueError(f"bucket interval must be positive — got {interval}")
        self.anchor_date = anchor_date
        self.interval = interval
        self._statistics: dict[int, Statistics] = dict(statistics or {})

    def bucket_index(self, ts: datetime) -> int:
        """
        Index of the bucket containing *ts* (negative before the anchor).

        *ts* is first expressed in the anchor's zone so the difference is
        wall-clock time, matching how bucket_bounds() steps the anchor.
        """
        if self.anchor_date.tzinfo is not None and ts.tzinfo is not None:
            ts = ts.astimezone(self.anchor_date.tzinfo)
        return (ts - self.anchor_date) // self.interval

    def bucket_bounds(self, index: int) -> tuple[datetime, datetime]:
        start = self.anchor_date + index * self.interval
        return start, start + self.interval

    def statistics(self, ts: datetime) -> Statistics:
        """Statistics of the bucket containing *ts* (empty if no samples)."""
        index = self.bucket_index(ts)
        if index in self._statistics:
            return self._statistics[index]
        start, end = self.bucket_bounds(index)
        return Statistics(start=start, end=end)

    def enumerate_statistics(self, start: datetime, end: datetime) -> Iterator[Statistics]:
        """
        Yield every bucket overlapping [start, end) in chronological order,
        including empty ones.
        """
        if end <= start:
            return
        index = self.bucket_index(start)
        while True:
            bucket_start, bucket_end = self.bucket_bounds(index)
            if bucket_start >= end:
                break
            stats = self._statistics.get(index)
            yield stats if stats is not None else Statistics(start=bucket_start, end=bucket_end)
            index += 1

    def __len__(self) -> int:
        return len(self._statistics)

    def __repr__(self) -> str:
        return (
            f"StatisticsCollection(anchor={self.anchor_date.isoformat()} "
            f"interval={self.interval} buckets={len(self._statistics)})"
        )


# ---------------------------------------------------------------------------
# StatisticsCollectionQuery — long-lived query with callback slots
# ---------------------------------------------------------------------------

ResultsHandler = Callable[
    ["StatisticsCollectionQuery", Optional[StatisticsCollection], Optional[Exception]],
    None,
]


@dataclass(eq=False)
class StatisticsCollectionQuery:
    """
    A statistics query the store evaluates once up front and again whenever
    samples of `metric_kind` change.

    Both handlers receive (query, collection, error); exactly one of
    collection / error is None.
    """

    metric_kind: MetricKind
    predicate: DateRange
    options: AggregationMode
    anchor_date: datetime
    interval: timedelta

    initial_results_handler: ResultsHandler | None = None
    statistics_update_handler: ResultsHandler | None = None

    query_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __repr__(self) -> str:
        return (
            f"StatisticsCollectionQuery({self.metric_kind.value} "
            f"{self.options.value} every {self.interval} id={self.query_id[:8]})"
        )
