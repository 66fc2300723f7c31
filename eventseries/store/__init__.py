"""Storage backends for series templates and their instances."""

from .base import SeriesStore, SeriesStoreError
from .memory import InMemorySeriesStore
from .sqlite import SQLiteSeriesStore

__all__ = [
    "InMemorySeriesStore",
    "SQLiteSeriesStore",
    "SeriesStore",
    "SeriesStoreError",
]
