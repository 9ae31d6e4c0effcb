"""
timeline/coordinator.py

TimelineCoordinator — runs the daily / weekly / monthly queries side by side
and funnels their results into one PresentationStore.

Scheduling:
  - start() awaits authorization, resolves three WindowSpecs from one "now",
    and starts one AggregationQueryEngine query per timeline, each with its
    own CancellationToken.
  - Engine callbacks may fire on any thread and in any interleaving. They
    never write the store: they post a SlotUpdate onto the update channel
    with run_coroutine_threadsafe(safe_put(...)).
  - A single consumer task drains the channel, checks the update's token,
    replaces the slot wholesale and then calls on_any_update(). Every call
    means "re-render everything", not "slot X changed".
  - stop() cancels all three handles and the consumer; queued updates whose
    token is cancelled are discarded, so nothing is written after stop().
  - start(), stop() and refresh() hold one asyncio.Lock, so at most one set
    of three queries and one consumer exist at a time.

Stats dict:
    queries_started    — engine queries launched (3 per start)
    updates_received   — SlotUpdates taken off the channel
    updates_applied    — SlotUpdates written to the PresentationStore
    updates_discarded  — SlotUpdates dropped because their query was cancelled
    callback_errors    — exceptions raised by on_any_update
"""

from __future__ import annotations

import asyncio
import logging
from datetime import tzinfo
from typing import Callable

from ..config import settings
from ..metrics import METRICS
from ..models import MetricKind
from ..pipeline import new_update_queue, safe_put
from ..store.base import BaseSampleStore
from .models import SlotUpdate, Timeline, TimelineSlot
from .presentation import PresentationStore
from .query_engine import (
    AggregationQueryEngine,
    CancellationToken,
    Clock,
    QueryHandle,
    utc_now,
)
from .window_spec import resolve_all

logger = logging.getLogger(__name__)

AnyUpdateCallback = Callable[[], None]


class TimelineCoordinator:
    """
    Args:
        store:        Sample store the queries run against.
        presentation: Store the results are written to (a fresh one if None).
        engine:       Query engine (built from store + clock if None).
        clock:        Returns the current instant; pinned in tests.
        tz:           Zone for local-day boundaries; Settings.TIMEZONE if None.
        queue_size:   Update channel capacity; Settings.UPDATE_QUEUE_SIZE if None.
    """

    def __init__(
        self,
        store: BaseSampleStore,
        presentation: PresentationStore | None = None,
        engine: AggregationQueryEngine | None = None,
        clock: Clock | None = None,
        tz: tzinfo | None = None,
        queue_size: int | None = None,
    ) -> None:
        self._store = store
        self._clock = clock or utc_now
        self._engine = engine or AggregationQueryEngine(store, clock=self._clock)
        self._tz = tz
        self._queue_size = queue_size if queue_size is not None else settings.UPDATE_QUEUE_SIZE
        self.presentation = presentation or PresentationStore()

        self._handles: dict[Timeline, QueryHandle] = {}
        self._queue: asyncio.Queue | None = None
        self._consumer: asyncio.Task | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._metric_kind: MetricKind | None = None
        self._on_any_update: AnyUpdateCallback | None = None
        self._lifecycle_lock = asyncio.Lock()

        self.stats: dict[str, int] = {
            "queries_started": 0,
            "updates_received": 0,
            "updates_applied": 0,
            "updates_discarded": 0,
            "callback_errors": 0,
        }

    @property
    def running(self) -> bool:
        return bool(self._handles)

    @property
    def handles(self) -> dict[Timeline, QueryHandle]:
        return dict(self._handles)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(
        self,
        metric_kind: MetricKind | str,
        on_any_update: AnyUpdateCallback | None = None,
    ) -> bool:
        """
        Authorize and start the three timeline queries.

        Overlapping start / stop / refresh calls are serialised, so a second
        start() awaiting authorization sees the first one's queries.

        Returns:
            True  — queries are running (or already were).
            False — authorization was denied; nothing will be populated.
        """
        async with self._lifecycle_lock:
            return await self._start(MetricKind(metric_kind), on_any_update)

    async def stop(self) -> None:
        """Cancel every query and the consumer task. Safe to call repeatedly."""
        async with self._lifecycle_lock:
            await self._stop()

    async def refresh(self) -> bool:
        """Restart the queries so every WindowSpec is derived from a fresh now."""
        async with self._lifecycle_lock:
            if self._metric_kind is None:
                return False
            await self._stop()
            return await self._start(self._metric_kind, self._on_any_update)

    async def _start(self, kind: MetricKind, on_any_update: AnyUpdateCallback | None) -> bool:
        if self.running:
            return True

        self._metric_kind = kind
        self._on_any_update = on_any_update

        logger.info("Requesting authorization for %s…", kind.value)
        try:
            authorized = await self._store.request_authorization({kind})
        except Exception as exc:
            logger.warning("Authorization request for %s failed: %s", kind.value, exc)
            authorized = False
        if not authorized:
            METRICS.authorization_denied.inc()
            logger.info("Not authorized to read %s — showing empty state", kind.value)
            return False

        self._loop = asyncio.get_running_loop()
        self._queue = new_update_queue(self._queue_size)
        self._consumer = asyncio.create_task(self._consume(self._queue), name="timeline-updates")

        specs = resolve_all(self._clock(), self._tz)
        for timeline, spec in specs.items():
            token = CancellationToken()
            self._handles[timeline] = self._engine.execute(
                kind,
                spec,
                None,
                self._make_callback(timeline, token),
                token=token,
            )
            self.stats["queries_started"] += 1

        logger.info("Timeline queries started for %s — %s", kind.value, [t.value for t in specs])
        return True

    async def _stop(self) -> None:
        handles, self._handles = self._handles, {}
        for handle in handles.values():
            handle.cancel()

        consumer, self._consumer = self._consumer, None
        if consumer is not None:
            consumer.cancel()
            await asyncio.gather(consumer, return_exceptions=True)
            logger.info("Timeline queries stopped — stats: %s", self.stats)
        self._queue = None

    # ------------------------------------------------------------------
    # Internal: callback → channel → store
    # ------------------------------------------------------------------

    def _make_callback(
        self, timeline: Timeline, token: CancellationToken
    ) -> Callable[[TimelineSlot], None]:
        queue = self._queue
        loop = self._loop

        def on_update(values: TimelineSlot) -> None:
            if token.cancelled:
                METRICS.updates_cancelled.inc()
                return
            update = SlotUpdate(timeline=timeline, values=tuple(values), token=token)
            # Callbacks may arrive on any thread; hop onto the loop
            put = safe_put(queue, update)
            try:
                asyncio.run_coroutine_threadsafe(put, loop)
            except RuntimeError as exc:
                # Loop already closed: nobody is consuming any more
                put.close()
                METRICS.updates_dropped.inc()
                logger.debug("%r not delivered: %s", update, exc)

        return on_update

    async def _consume(self, queue: asyncio.Queue) -> None:
        logger.debug("Update consumer started")
        try:
            while True:
                update: SlotUpdate = await queue.get()
                queue.task_done()
                self._apply(update)
        except asyncio.CancelledError:
            logger.debug("Update consumer cancelled")
            raise

    def _apply(self, update: SlotUpdate) -> None:
        self.stats["updates_received"] += 1
        if update.token.cancelled:
            self.stats["updates_discarded"] += 1
            METRICS.updates_cancelled.inc()
            logger.debug("Discarded %r from a cancelled query", update)
            return

        self.presentation.apply(update.timeline.slot_index, update.values)
        self.stats["updates_applied"] += 1
        logger.debug("Applied %r", update)

        if self._on_any_update is None:
            return
        try:
            self._on_any_update()
        except Exception as exc:
            self.stats["callback_errors"] += 1
            logger.exception("on_any_update raised: %s", exc)
