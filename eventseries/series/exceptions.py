"""Series-specific exceptions for error handling."""

from datetime import date
from typing import Optional


class SeriesError(Exception):
    """Base exception for series-related errors."""

    def __init__(self, message: str, event_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.event_id = event_id


class SeriesNotFoundError(SeriesError):
    """Exception raised when a parent event does not exist."""


class NotRecurringError(SeriesError):
    """Exception raised when a series operation targets a non-recurring event."""


class SeriesCancelledError(SeriesError):
    """Exception raised when editing a series that has been cancelled."""


class OccurrenceNotFoundError(SeriesError):
    """Exception raised when a date is not an occurrence of its series."""

    def __init__(self, message: str, event_id: Optional[str] = None, occurrence_date: Optional[date] = None):
        super().__init__(message, event_id)
        self.occurrence_date = occurrence_date


class MaterializationError(SeriesError):
    """Exception raised when some occurrences of a window could not be written.

    Occurrences that were written stay written; ``instances`` holds what is
    available for the window and ``failures`` the dates to retry.
    """

    def __init__(self, message: str, event_id: Optional[str] = None, instances=None, failures=None):
        super().__init__(message, event_id)
        self.instances = instances or []
        self.failures = failures or []

    @property
    def failed_dates(self) -> list[date]:
        return [failure.occurrence_date for failure in self.failures]


class OccurrenceLimitError(MaterializationError):
    """Exception raised when a window holds more occurrences than the configured cap.

    ``resume_date`` is the first occurrence that was left out; asking again
    from that date returns the rest of the window.
    """

    def __init__(
        self,
        message: str,
        event_id: Optional[str] = None,
        instances=None,
        resume_date: Optional[date] = None,
    ):
        super().__init__(message, event_id, instances=instances)
        self.resume_date = resume_date
