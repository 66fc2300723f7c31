"""Recurrence rule models."""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_serializer, field_validator


class Frequency(str, Enum):
    """How often a series repeats."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class RecurrenceRule(BaseModel):
    """Compact description of a recurring pattern.

    Selector conventions:
        days_of_week: 0-6, 0 is Sunday (weekly only)
        days_of_month: 1-31 (monthly only)
        months_of_year: 0-11, 0 is January (yearly only)

    Range checks live in :mod:`eventseries.recurrence.validation`; this model
    accepts whatever it is given so that stored rules always load.
    """

    frequency: Frequency
    interval: int = 1
    days_of_week: list[int] = Field(default_factory=list)
    days_of_month: list[int] = Field(default_factory=list)
    months_of_year: list[int] = Field(default_factory=list)

    # Terminators
    end_date: Optional[date] = None
    occurrence_count: Optional[int] = None

    exceptions: set[date] = Field(default_factory=set)

    @field_validator("end_date", mode="before")
    @classmethod
    def _coerce_end_date(cls, value: object) -> object:
        """Accept a datetime and keep only its calendar date."""
        if isinstance(value, datetime):
            return value.date()
        return value

    @field_validator("exceptions", mode="before")
    @classmethod
    def _coerce_exceptions(cls, value: object) -> object:
        if value is None:
            return set()
        if isinstance(value, (list, tuple, set, frozenset)):
            return {item.date() if isinstance(item, datetime) else item for item in value}
        return value

    @field_serializer("exceptions")
    def serialize_exceptions(self, exceptions: set[date]) -> list[str]:
        """Serialize exceptions as sorted ISO dates."""
        return [day.isoformat() for day in sorted(exceptions)]

    @property
    def has_terminator(self) -> bool:
        return self.end_date is not None or self.occurrence_count is not None

    def is_exception(self, day: date) -> bool:
        """Check whether a calendar date has been excluded from the series."""
        return day in self.exceptions

    def with_exception(self, day: date) -> "RecurrenceRule":
        """Return a copy of this rule with ``day`` excluded."""
        return self.model_copy(update={"exceptions": self.exceptions | {day}})

    def without_exception(self, day: date) -> "RecurrenceRule":
        """Return a copy of this rule with ``day`` restored."""
        return self.model_copy(update={"exceptions": self.exceptions - {day}})
