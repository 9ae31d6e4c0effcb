"""store/__init__.py"""
from .base import BaseSampleStore
from .database import Database
from .models import (
    DateRange,
    Statistics,
    StatisticsCollection,
    StatisticsCollectionQuery,
    StoreQueryError,
)
from .sample_store import SampleStore

__all__ = [
    "BaseSampleStore",
    "Database",
    "DateRange",
    "SampleStore",
    "Statistics",
    "StatisticsCollection",
    "StatisticsCollectionQuery",
    "StoreQueryError",
]
