"""
store/base.py

Abstract interface the statistics core needs from a health-record store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from ..models import MetricKind
from .models import StatisticsCollectionQuery


class BaseSampleStore(ABC):
    """
    Contract every sample store must satisfy.

    execute_statistics_query() MUST:
        - Return immediately; results arrive later through the query's
          initial_results_handler (exactly once) and
          statistics_update_handler (on every change to matching samples).
        - Report failures by calling the handler with an error, never by raising.
        - Stop invoking handlers once stop_query() has been called.
    """

    @abstractmethod
    async def request_authorization(self, metric_kinds: Iterable[MetricKind]) -> bool:
        """Return True if read access to every kind in *metric_kinds* is granted."""
        ...

    @abstractmethod
    def execute_statistics_query(self, query: StatisticsCollectionQuery) -> None:
        ...

    @abstractmethod
    def stop_query(self, query: StatisticsCollectionQuery) -> None:
        """Stop a running query. Stopping an unknown or stopped query is a no-op."""
        ...
