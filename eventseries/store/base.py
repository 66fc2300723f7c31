"""Abstract storage interface that series stores implement."""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from ..series.models import Event, ModifiedOccurrence


# Westernmost UTC offset in use; no zone sees a calendar date earlier than this
WESTMOST_UTC_OFFSET = timedelta(hours=-12)


def earliest_local_date(dt: datetime) -> date:
    """Earliest calendar date ``dt`` falls on in any timezone."""
    utc = dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt.astimezone(timezone.utc)
    return (utc + WESTMOST_UTC_OFFSET).date()


class SeriesStoreError(Exception):
    """Exception raised when the storage backend fails."""

    def __init__(self, message: str, event_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.event_id = event_id


class SeriesStore(ABC):
    """Persistence of series templates, standalone events and instances.

    Implementations are injected into the service; nothing in the package
    picks one by inspecting its runtime environment.
    """

    async def initialize(self) -> None:
        """Prepare the backend (create schema, open files)."""

    async def close(self) -> None:
        """Release backend resources."""

    @abstractmethod
    async def get_event(self, event_id: str) -> Optional[Event]:
        """Fetch an event by id, or None when it does not exist."""

    @abstractmethod
    async def save_event(self, event: Event) -> None:
        """Insert or replace an event (template edits, occurrence edits)."""

    @abstractmethod
    async def insert_if_absent(self, event: Event) -> bool:
        """Insert an event unless its id is taken.

        Returns:
            True if the event was written, False if the id already existed
        """

    @abstractmethod
    async def delete_event(self, event_id: str) -> bool:
        """Delete an event.

        Returns:
            True if an event was deleted
        """

    @abstractmethod
    async def find_instances(self, parent_event_id: str) -> list[Event]:
        """All instances of a series, ordered by start."""

    @abstractmethod
    async def find_events_in_range(self, window_start: datetime, window_end: datetime) -> list[Event]:
        """Non-template events (standalone and instances) overlapping a window."""

    @abstractmethod
    async def find_series_templates(self, window_start: datetime, window_end: datetime) -> list[Event]:
        """Series templates that may have occurrences in a window.

        A template qualifies when it starts on or before the window end and
        its rule has no end date or ends on or after the window start.
        The rule end date is a date in the series' own timezone, so the window
        start is compared on that calendar (or, where the store cannot tell
        the zone, on the earliest date the instant falls on anywhere).
        """

    @abstractmethod
    async def get_modified_occurrences(self, parent_event_id: str) -> list[ModifiedOccurrence]:
        """ModifiedOccurrence entries of a series."""

    @abstractmethod
    async def save_modified_occurrence(self, modified: ModifiedOccurrence) -> None:
        """Record (or replace) the ModifiedOccurrence for an occurrence date."""

    @abstractmethod
    async def delete_modified_occurrence(self, parent_event_id: str, occurrence_date: date) -> bool:
        """Remove the ModifiedOccurrence for an occurrence date."""

    async def __aenter__(self) -> "SeriesStore":
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
