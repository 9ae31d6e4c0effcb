"""
timeline/query_engine.py

AggregationQueryEngine — runs one long-lived statistics query for a
WindowSpec and turns every result the store delivers into a complete list
of HealthDataTypeValue rows.

Lifecycle of one execute() call:
  1. Build a StatisticsCollectionQuery from the WindowSpec and hand it to
     the store.
  2. Initial result → enumerate buckets from window_start to "now" and call
     on_update(rows) once.
  3. Every later change to samples of the same metric kind → enumerate again
     and call on_update(rows) with a full replacement list (never a delta).
  4. QueryHandle.cancel() stops the store query and trips the
     CancellationToken; on_update is never called after that.

Failures are local: a store error or an exception while building the rows
is logged and counted, and on_update is simply not called for that result.
A bucket whose aggregate cannot be converted to the preferred unit is kept
with value 0.0.
"""

from __future__ import annotations

import logging
import math
import threading
from datetime import datetime, timezone
from typing import Callable

from ..display.formatters import statistics_options
from ..display.units import Unit, UnitConversionError, preferred_unit
from ..metrics import METRICS
from ..models import AggregationMode, MetricKind
from ..store.base import BaseSampleStore
from ..store.models import (
    DateRange,
    Statistics,
    StatisticsCollection,
    StatisticsCollectionQuery,
)
from .models import HealthDataTypeValue, TimelineSlot, WindowSpec

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
UpdateCallback = Callable[[TimelineSlot], None]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------

class CancellationToken:
    """One-way flag shared by a query handle and every write it may cause."""

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"


class QueryHandle:
    """Owns a running store query; cancel() releases it."""

    def __init__(
        self,
        store: BaseSampleStore,
        query: StatisticsCollectionQuery,
        token: CancellationToken,
    ) -> None:
        self._store = store
        self._query = query
        self._token = token
        self._stopped = False
        self._lock = threading.Lock()

    @property
    def query(self) -> StatisticsCollectionQuery:
        return self._query

    @property
    def token(self) -> CancellationToken:
        return self._token

    @property
    def cancelled(self) -> bool:
        return self._token.cancelled

    def cancel(self) -> None:
        """Stop the query. Safe to call any number of times."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
        self._token.cancel()
        self._store.stop_query(self._query)
        logger.debug("Cancelled %r", self._query)

    def __repr__(self) -> str:
        return f"QueryHandle({self._query!r} cancelled={self.cancelled})"


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class AggregationQueryEngine:
    """
    Args:
        store:       Sample store the queries run against.
        unit_system: "metric" / "imperial" for the preferred unit;
                     Settings.UNIT_SYSTEM if None.
        clock:       Returns the current instant; used as the end of every
                     bucket enumeration.
    """

    def __init__(
        self,
        store: BaseSampleStore,
        unit_system: str | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._unit_system = unit_system
        self._clock = clock or utc_now

    def execute(
        self,
        metric_kind: MetricKind | str,
        window_spec: WindowSpec,
        aggregation_mode: AggregationMode | None,
        on_update: UpdateCallback,
        token: CancellationToken | None = None,
    ) -> QueryHandle:
        """
        Start a statistics query for *window_spec*.

        Args:
            metric_kind:      Quantity type to aggregate.
            window_spec:      Window produced by the resolver.
            aggregation_mode: Reduction per bucket; statistics_options(metric_kind) if None.
            on_update:        Receives the full row list after every result.
            token:            Optional shared token; a fresh one is created if None.

        Returns:
            QueryHandle whose cancel() stops the subscription.
        """
        kind = MetricKind(metric_kind)
        mode = AggregationMode(aggregation_mode) if aggregation_mode else statistics_options(kind)
        unit = preferred_unit(kind, self._unit_system)
        token = token or CancellationToken()

        query = StatisticsCollectionQuery(
            metric_kind=kind,
            predicate=DateRange(window_spec.predicate_start, window_spec.predicate_end),
            options=mode,
            anchor_date=window_spec.anchor_date,
            interval=window_spec.bucket_interval,
        )

        def initial_results(q, collection, error) -> None:
            self._handle_results(q, collection, error, window_spec, unit, token, on_update)

        def statistics_update(q, collection, error) -> None:
            # Only react to changes of the metric this engine shows
            if q.metric_kind is not kind:
                return
            self._handle_results(q, collection, error, window_spec, unit, token, on_update)

        query.initial_results_handler = initial_results
        query.statistics_update_handler = statistics_update

        handle = QueryHandle(self._store, query, token)
        try:
            self._store.execute_statistics_query(query)
        except Exception as exc:
            METRICS.query_errors.inc()
            logger.exception("Store refused %r: %s", query, exc)
            token.cancel()
            return handle

        METRICS.queries_started.inc()
        logger.info(
            "Started %s %s query — interval=%s unit=%s",
            window_spec.timeline.value,
            kind.value,
            window_spec.bucket_interval,
            unit.symbol,
        )
        return handle

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _handle_results(
        self,
        query: StatisticsCollectionQuery,
        collection: StatisticsCollection | None,
        error: Exception | None,
        window_spec: WindowSpec,
        unit: Unit,
        token: CancellationToken,
        on_update: UpdateCallback,
    ) -> None:
        if token.cancelled:
            return
        if error is not None or collection is None:
            METRICS.query_errors.inc()
            logger.warning(
                "No %s results for %r: %s",
                window_spec.timeline.value,
                query,
                error or "empty result",
            )
            return

        try:
            rows = self.collect(collection, window_spec, query.options, unit)
        except Exception as exc:
            METRICS.query_errors.inc()
            logger.exception("Failed to build %s rows: %s", window_spec.timeline.value, exc)
            return

        # Cancellation may have been requested while the rows were built
        if token.cancelled:
            return
        logger.debug("%s query produced %d row(s)", window_spec.timeline.value, len(rows))
        on_update(rows)

    def collect(
        self,
        collection: StatisticsCollection,
        window_spec: WindowSpec,
        mode: AggregationMode,
        unit: Unit,
    ) -> TimelineSlot:
        """Enumerate buckets from window_start to now into HealthDataTypeValue rows."""
        end = self._clock()
        return tuple(
            HealthDataTypeValue(
                bucket_start=stats.start,
                bucket_end=stats.end,
                value=bucket_value(stats, mode, unit),
            )
            for stats in collection.enumerate_statistics(window_spec.window_start, end)
        )


def bucket_value(stats: Statistics, mode: AggregationMode, unit: Unit) -> float:
    """
    Aggregate of *stats* in *unit*.

    Empty buckets and buckets that cannot be converted (wrong dimension,
    non-finite aggregate) yield 0.0.
    """
    quantity = stats.quantity(mode)
    if quantity is None:
        return 0.0
    try:
        value = quantity.value_in(unit)
    except UnitConversionError as exc:
        METRICS.buckets_malformed.inc()
        logger.debug("Bucket %s recorded as 0.0: %s", stats.start.isoformat(), exc)
        return 0.0
    if not math.isfinite(value):
        METRICS.buckets_malformed.inc()
        logger.debug("Bucket %s recorded as 0.0: non-finite %r", stats.start.isoformat(), value)
        return 0.0
    return value
