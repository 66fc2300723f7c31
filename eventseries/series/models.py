"""Event, instance and materialization models."""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_serializer, field_validator

from ..recurrence.models import RecurrenceRule
from ..utils.helpers import get_timezone_aware_now, resolve_timezone


class SeriesStatus(str, Enum):
    """Lifecycle state of a recurring series."""

    DRAFT = "draft"  # rule authored, nothing materialized yet
    ACTIVE = "active"
    CANCELLED = "cancelled"


class Event(BaseModel):
    """Calendar event: standalone event, series template or materialized instance."""

    # Event identification
    id: str
    title: str
    description: str = ""

    # Time information
    start: datetime
    end: datetime
    timezone: Optional[str] = None  # IANA name; the offset of `start` is used when unset

    # Display attributes
    location: str = ""
    category: str = "general"
    status: str = "published"
    is_virtual: bool = False
    meeting_url: Optional[str] = None
    price: float = 0
    image_url: Optional[str] = None
    featured: bool = False
    created_by_id: Optional[str] = None

    # Series template
    is_recurring: bool = False
    recurrence_rule: Optional[RecurrenceRule] = None
    series_status: Optional[SeriesStatus] = None

    # Materialized instance
    parent_event_id: Optional[str] = None
    original_start_date: Optional[date] = None
    is_generated: bool = False

    created_at: datetime = Field(default_factory=get_timezone_aware_now)
    updated_at: datetime = Field(default_factory=get_timezone_aware_now)

    @field_validator("start", "end")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        """Naive datetimes are taken as UTC."""
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)

    @field_serializer("start", "end", "created_at", "updated_at")
    def serialize_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        """Serialize datetime fields to ISO format."""
        return dt.isoformat() if dt is not None else None

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def local_start(self) -> datetime:
        """Start as seen in the event's own timezone.

        Without a (known) ``timezone`` the offset carried by ``start`` is
        kept, so the calendar date is the one the event was written with.
        """
        tz = resolve_timezone(self.timezone)
        return self.start.astimezone(tz) if tz is not None else self.start

    @property
    def time_of_day(self) -> time:
        """Wall-clock start time in the event's timezone, keeping the tzinfo."""
        return self.local_start.timetz()

    @property
    def is_instance(self) -> bool:
        return self.parent_event_id is not None

    @property
    def is_series_template(self) -> bool:
        return self.is_recurring and self.recurrence_rule is not None

    def overlaps(self, window_start: datetime, window_end: datetime) -> bool:
        """Check whether the event overlaps ``[window_start, window_end]``."""
        return self.start <= window_end and self.end >= window_start


class ModifiedOccurrence(BaseModel):
    """An occurrence that has been detached from its template by an edit."""

    parent_event_id: str
    occurrence_date: date
    event_id: str


def instance_id(parent_event_id: str, occurrence_date: date) -> str:
    """Deterministic id of the instance materialized for an occurrence.

    The id alone makes materialization idempotent: writing the same
    occurrence twice targets the same row.
    """
    return f"{parent_event_id}-{occurrence_date.isoformat()}"


@dataclass
class MaterializationFailure:
    """A single occurrence that could not be written."""

    occurrence_date: date
    error: str


@dataclass
class MaterializationResult:
    """Outcome of materializing a batch of occurrence dates."""

    created: list[Event] = field(default_factory=list)
    skipped: list[date] = field(default_factory=list)
    failures: list[MaterializationFailure] = field(default_factory=list)
    # Set when the occurrence cap cut the window short
    truncated: bool = False
    resume_date: Optional[date] = None

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def failed_dates(self) -> list[date]:
        return [failure.occurrence_date for failure in self.failures]
