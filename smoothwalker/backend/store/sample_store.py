"""
store/sample_store.py

SampleStore — SQLite-backed reference implementation of BaseSampleStore.

Stands in for the device's health-record store: it keeps raw quantity
samples, answers anchored statistics-collection queries, and re-evaluates
every running query of a metric kind whenever samples of that kind are
saved or deleted.

Delivery model:
  - Handlers are never invoked synchronously from execute / save / delete.
    They are scheduled on the event loop with call_soon_threadsafe(), so
    save_samples() may be called from any thread.
  - A query stopped before its scheduled delivery runs gets no callback.
  - Evaluation errors are passed to the handler as `error`; nothing raises
    out of a delivery.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from collections import defaultdict
from datetime import datetime, timezone
from typing import Iterable

from ..display.units import canonical_unit
from ..models import MetricKind, QuantitySample
from .base import BaseSampleStore
from .database import Database
from .models import (
    ResultsHandler,
    Statistics,
    StatisticsCollection,
    StatisticsCollectionQuery,
    StoreQueryError,
)

logger = logging.getLogger(__name__)


class SampleStore(BaseSampleStore):
    """
    Args:
        db:           Database with init_schema() already applied.
        denied_kinds: Metric kinds whose authorization requests are refused.
        loop:         Event loop handlers are delivered on. Defaults to the
                      loop running when the first query is executed.
    """

    def __init__(
        self,
        db: Database,
        denied_kinds: Iterable[MetricKind | str] = (),
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._db = db
        self._denied: frozenset[MetricKind] = frozenset(MetricKind(k) for k in denied_kinds)
        self._loop = loop
        self._active: dict[str, StatisticsCollectionQuery] = {}
        self._lock = threading.Lock()

        self.fail_queries = False
        """When True every query evaluation fails with StoreQueryError."""

    # ------------------------------------------------------------------
    # BaseSampleStore
    # ------------------------------------------------------------------

    async def request_authorization(self, metric_kinds: Iterable[MetricKind]) -> bool:
        kinds = {MetricKind(k) for k in metric_kinds}
        denied = kinds & self._denied
        if denied:
            logger.info(
                "Authorization denied for %s",
                sorted(k.value for k in denied),
            )
            return False
        logger.debug("Authorization granted for %s", sorted(k.value for k in kinds))
        return True

    def execute_statistics_query(self, query: StatisticsCollectionQuery) -> None:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        with self._lock:
            self._active[query.query_id] = query
        logger.debug("Executing %r", query)
        self._schedule(query, query.initial_results_handler)

    def stop_query(self, query: StatisticsCollectionQuery) -> None:
        with self._lock:
            removed = self._active.pop(query.query_id, None)
        if removed is not None:
            logger.debug("Stopped %r", query)

    # ------------------------------------------------------------------
    # Sample management
    # ------------------------------------------------------------------

    def save_samples(self, samples: Iterable[QuantitySample]) -> int:
        """
        Insert samples (replacing any with the same sample_id) and notify
        running queries of the affected kinds.

        Returns the number of samples written.
        """
        samples = list(samples)
        if not samples:
            return 0
        rows = [
            (s.sample_id, MetricKind(s.metric_kind).value, s.timestamp.timestamp(), float(s.value))
            for s in samples
        ]
        with self._lock:
            self._db.executemany(
                """
                INSERT OR REPLACE INTO quantity_samples
                    (sample_id, metric_kind, timestamp, value)
                VALUES (?, ?, ?, ?)
                """,
                rows,
            )
            self._db.commit()
        logger.debug("Saved %d sample(s)", len(rows))
        self._notify({MetricKind(s.metric_kind) for s in samples})
        return len(rows)

    def delete_samples(self, sample_ids: Iterable[str]) -> int:
        """Delete samples by id and notify running queries. Returns rows deleted."""
        ids = list(sample_ids)
        if not ids:
            return 0
        placeholders = ", ".join("?" for _ in ids)
        with self._lock:
            kinds = {
                MetricKind(row["metric_kind"])
                for row in self._db.execute(
                    f"SELECT DISTINCT metric_kind FROM quantity_samples "
                    f"WHERE sample_id IN ({placeholders})",
                    tuple(ids),
                ).fetchall()
            }
            cur = self._db.execute(
                f"DELETE FROM quantity_samples WHERE sample_id IN ({placeholders})",
                tuple(ids),
            )
            self._db.commit()
            deleted = cur.rowcount
        logger.debug("Deleted %d sample(s)", deleted)
        self._notify(kinds)
        return deleted

    def sample_count(self, metric_kind: MetricKind | str | None = None) -> int:
        with self._lock:
            if metric_kind is None:
                row = self._db.execute("SELECT COUNT(*) FROM quantity_samples").fetchone()
            else:
                row = self._db.execute(
                    "SELECT COUNT(*) FROM quantity_samples WHERE metric_kind = ?",
                    (MetricKind(metric_kind).value,),
                ).fetchone()
        return row[0]

    @property
    def active_query_count(self) -> int:
        with self._lock:
            return len(self._active)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _notify(self, kinds: set[MetricKind]) -> None:
        """Schedule an update delivery for every running query of *kinds*."""
        with self._lock:
            targets = [q for q in self._active.values() if q.metric_kind in kinds]
        for query in targets:
            self._schedule(query, query.statistics_update_handler)

    def _schedule(self, query: StatisticsCollectionQuery, handler: ResultsHandler | None) -> None:
        if handler is None or self._loop is None:
            return
        try:
            self._loop.call_soon_threadsafe(self._deliver, query, handler)
        except RuntimeError as exc:
            # Loop already closed: nobody is listening any more
            logger.debug("Delivery for %r not scheduled: %s", query, exc)

    def _deliver(self, query: StatisticsCollectionQuery, handler: ResultsHandler) -> None:
        with self._lock:
            if query.query_id not in self._active:
                return
        try:
            collection = self._build_collection(query)
        except (sqlite3.Error, StoreQueryError) as exc:
            logger.warning("Statistics query %r failed: %s", query, exc)
            handler(query, None, exc)
            return
        handler(query, collection, None)

    def _build_collection(self, query: StatisticsCollectionQuery) -> StatisticsCollection:
        if self.fail_queries:
            raise StoreQueryError("sample store unavailable")

        with self._lock:
            rows = self._db.execute(
                """
                SELECT timestamp, value FROM quantity_samples
                WHERE metric_kind = ? AND timestamp >= ? AND timestamp <= ?
                ORDER BY timestamp
                """,
                (
                    query.metric_kind.value,
                    query.predicate.start.timestamp(),
                    query.predicate.end.timestamp(),
                ),
            ).fetchall()

        collection = StatisticsCollection(query.anchor_date, query.interval)
        grouped: dict[int, list[float]] = defaultdict(list)
        for row in rows:
            ts = datetime.fromtimestamp(row["timestamp"], timezone.utc)
            grouped[collection.bucket_index(ts)].append(row["value"])

        unit = canonical_unit(query.metric_kind)
        statistics: dict[int, Statistics] = {}
        for index, values in grouped.items():
            start, end = collection.bucket_bounds(index)
            statistics[index] = Statistics.from_values(start, end, values, unit, query.options)

        return StatisticsCollection(query.anchor_date, query.interval, statistics)
