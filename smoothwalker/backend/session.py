"""
backend/session.py

WalkingSpeedSession — wires the statistics core together for a UI shell.

    session = WalkingSpeedSession()
    await session.open(on_any_update=table_view.reload)   # view appears
    ...
    await session.refresh()                                 # pull to refresh
    ...
    await session.close()                                   # screen torn down

open() mirrors the screen appearing (authorize, then start the three
timeline queries); close() stops the queries and releases the database.
"""

from __future__ import annotations

import logging

from .config import Settings, settings as default_settings
from .store import BaseSampleStore, Database, SampleStore
from .timeline import PresentationStore, TableDataSource, TimelineCoordinator
from .timeline.coordinator import AnyUpdateCallback
from .timeline.query_engine import AggregationQueryEngine, Clock

logger = logging.getLogger(__name__)


class WalkingSpeedSession:
    """
    Args:
        settings: Configuration; the module-level settings if None.
        store:    Sample store; a SQLite SampleStore at settings.DB_PATH if None.
        clock:    Returns the current instant; pinned in tests.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        store: BaseSampleStore | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.settings = settings or default_settings
        self._db: Database | None = None
        if store is None:
            self._db = Database(self.settings.DB_PATH)
            self._db.init_schema()
            store = SampleStore(self._db, denied_kinds=self.settings.DENIED_METRIC_KINDS)
        self.store = store

        self.metric_kind = self.settings.METRIC_KIND
        self.presentation = PresentationStore()
        engine = AggregationQueryEngine(
            store,
            unit_system=self.settings.UNIT_SYSTEM,
            clock=clock,
        )
        self.coordinator = TimelineCoordinator(
            store,
            presentation=self.presentation,
            engine=engine,
            clock=clock,
            tz=self.settings.tzinfo,
            queue_size=self.settings.UPDATE_QUEUE_SIZE,
        )
        self.table = TableDataSource(
            self.presentation,
            self.metric_kind,
            unit_system=self.settings.UNIT_SYSTEM,
        )
        self._closed = False

    async def open(self, on_any_update: AnyUpdateCallback | None = None) -> bool:
        """Authorize and start the queries. Returns False if authorization was denied."""
        logger.info("Opening %s session", self.metric_kind)
        return await self.coordinator.start(self.metric_kind, on_any_update)

    async def refresh(self) -> bool:
        return await self.coordinator.refresh()

    async def close(self) -> None:
        """Stop the queries and release the database this session opened."""
        if self._closed:
            return
        self._closed = True
        await self.coordinator.stop()
        if self._db is not None:
            self._db.close()
        logger.info("Closed %s session", self.metric_kind)
