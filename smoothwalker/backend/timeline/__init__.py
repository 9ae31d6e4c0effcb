"""
timeline/__init__.py

Public API for the timeline sub-package.
"""

from .coordinator import TimelineCoordinator
from .models import HealthDataTypeValue, SlotUpdate, Timeline, WindowSpec
from .presentation import PresentationStore, TableDataSource
from .query_engine import AggregationQueryEngine, CancellationToken, QueryHandle
from .window_spec import resolve, resolve_all

__all__ = [
    "AggregationQueryEngine",
    "CancellationToken",
    "HealthDataTypeValue",
    "PresentationStore",
    "QueryHandle",
    "SlotUpdate",
    "TableDataSource",
    "Timeline",
    "TimelineCoordinator",
    "WindowSpec",
    "resolve",
    "resolve_all",
]
