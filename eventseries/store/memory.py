"""In-process series store, used by tests and dry runs."""

import asyncio
import logging
from datetime import date, datetime
from typing import Optional

from ..recurrence.generator import to_calendar_date
from ..series.models import Event, ModifiedOccurrence
from .base import SeriesStore

logger = logging.getLogger(__name__)


class InMemorySeriesStore(SeriesStore):
    """Dictionary-backed store with the same insert-if-absent guarantee as SQLite.

    Events are copied on the way in and out so callers never share state
    with the store.
    """

    def __init__(self) -> None:
        self._events: dict[str, Event] = {}
        self._modified: dict[tuple[str, date], ModifiedOccurrence] = {}
        self._lock = asyncio.Lock()

    async def get_event(self, event_id: str) -> Optional[Event]:
        event = self._events.get(event_id)
        return event.model_copy(deep=True) if event is not None else None

    async def save_event(self, event: Event) -> None:
        async with self._lock:
            self._events[event.id] = event.model_copy(deep=True)

    async def insert_if_absent(self, event: Event) -> bool:
        async with self._lock:
            if event.id in self._events:
                return False
            self._events[event.id] = event.model_copy(deep=True)
            return True

    async def delete_event(self, event_id: str) -> bool:
        async with self._lock:
            deleted = self._events.pop(event_id, None) is not None
            # Mirror the cascading foreign key of the SQLite schema
            for key in [k for k, m in self._modified.items() if m.event_id == event_id]:
                del self._modified[key]
            return deleted

    async def find_instances(self, parent_event_id: str) -> list[Event]:
        instances = [e for e in self._events.values() if e.parent_event_id == parent_event_id]
        return [e.model_copy(deep=True) for e in sorted(instances, key=lambda e: e.start)]

    async def find_events_in_range(self, window_start: datetime, window_end: datetime) -> list[Event]:
        events = [
            e
            for e in self._events.values()
            if not e.is_series_template and e.overlaps(window_start, window_end)
        ]
        return [e.model_copy(deep=True) for e in sorted(events, key=lambda e: e.start)]

    async def find_series_templates(self, window_start: datetime, window_end: datetime) -> list[Event]:
        templates = []
        for event in self._events.values():
            if not event.is_series_template or event.start > window_end:
                continue
            rule = event.recurrence_rule
            if rule is not None and rule.end_date is not None:
                if rule.end_date < to_calendar_date(window_start, event.local_start.tzinfo):
                    continue
            templates.append(event.model_copy(deep=True))
        return sorted(templates, key=lambda e: e.start)

    async def get_modified_occurrences(self, parent_event_id: str) -> list[ModifiedOccurrence]:
        entries = [m for (parent, _), m in self._modified.items() if parent == parent_event_id]
        return sorted(entries, key=lambda m: m.occurrence_date)

    async def save_modified_occurrence(self, modified: ModifiedOccurrence) -> None:
        async with self._lock:
            self._modified[(modified.parent_event_id, modified.occurrence_date)] = modified

    async def delete_modified_occurrence(self, parent_event_id: str, occurrence_date: date) -> bool:
        async with self._lock:
            return self._modified.pop((parent_event_id, occurrence_date), None) is not None
