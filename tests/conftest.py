"""Shared fixtures for EventSeries tests."""

import os
from collections.abc import AsyncGenerator, Generator
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import pytest
import pytest_asyncio
import pytz

from eventseries.config.settings import EventSeriesSettings, reset_settings
from eventseries.recurrence.models import Frequency, RecurrenceRule
from eventseries.series.models import Event
from eventseries.series.service import SeriesService
from eventseries.store.memory import InMemorySeriesStore
from eventseries.store.sqlite import SQLiteSeriesStore

UTC = pytz.utc


def make_event(
    event_id: str = "standalone",
    start: datetime = datetime(2024, 1, 5, 9, 0, tzinfo=UTC),
    end: datetime = datetime(2024, 1, 5, 10, 0, tzinfo=UTC),
    **overrides: Any,
) -> Event:
    """Build a plain (non-recurring) event."""
    return Event(id=event_id, title=overrides.pop("title", "Team sync"), start=start, end=end, **overrides)


def make_series(
    event_id: str = "yoga",
    rule: Optional[RecurrenceRule] = None,
    start: datetime = datetime(2024, 1, 1, 10, 0, tzinfo=UTC),
    end: datetime = datetime(2024, 1, 1, 11, 0, tzinfo=UTC),
    **overrides: Any,
) -> Event:
    """Build a series template; weekly on Monday and Wednesday by default."""
    if rule is None:
        rule = RecurrenceRule(frequency=Frequency.WEEKLY, days_of_week=[1, 3])
    return Event(
        id=event_id,
        title=overrides.pop("title", "Morning yoga"),
        start=start,
        end=end,
        is_recurring=True,
        recurrence_rule=rule,
        **overrides,
    )


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep the developer's environment out of settings-driven tests."""
    for key in [k for k in os.environ if k.startswith("EVENTSERIES_")]:
        monkeypatch.delenv(key, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def test_settings(tmp_path: Path) -> EventSeriesSettings:
    """Settings pointing at a temporary data directory."""
    return EventSeriesSettings(
        config_dir=tmp_path / "config",
        data_dir=tmp_path / "data",
        config_file=tmp_path / "missing.yaml",
    )


@pytest.fixture
def memory_store() -> InMemorySeriesStore:
    return InMemorySeriesStore()


@pytest_asyncio.fixture
async def sqlite_store(tmp_path: Path) -> AsyncGenerator[SQLiteSeriesStore, None]:
    """SQLite store backed by a temporary database file."""
    store = SQLiteSeriesStore(tmp_path / "series.db")
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture(params=["memory", "sqlite"])
def any_store(request: pytest.FixtureRequest, tmp_path: Path) -> Any:
    """Each store implementation in turn; both initialize lazily."""
    if request.param == "memory":
        return InMemorySeriesStore()
    return SQLiteSeriesStore(tmp_path / "series.db")


@pytest.fixture
def service(memory_store: InMemorySeriesStore, test_settings: EventSeriesSettings) -> SeriesService:
    return SeriesService(memory_store, test_settings)


@pytest.fixture
def any_service(any_store: Any, test_settings: EventSeriesSettings) -> SeriesService:
    """SeriesService over each store implementation in turn."""
    return SeriesService(any_store, test_settings)


@pytest.fixture
def weekly_series() -> Event:
    """Weekly Monday/Wednesday series starting Monday Jan 1 2024, 10:00-11:00 UTC."""
    return make_series()


@pytest.fixture
def event_factory() -> Any:
    return make_event


@pytest.fixture
def series_factory() -> Any:
    return make_series
