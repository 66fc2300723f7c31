"""Series templates, materialized instances and the operations on them.

Only models and exceptions are re-exported here; import the materializer and
service from their modules (they depend on :mod:`eventseries.store`, which
in turn depends on these models).
"""

from .exceptions import (
    MaterializationError,
    NotRecurringError,
    OccurrenceLimitError,
    OccurrenceNotFoundError,
    SeriesCancelledError,
    SeriesError,
    SeriesNotFoundError,
)
from .models import (
    Event,
    MaterializationFailure,
    MaterializationResult,
    ModifiedOccurrence,
    SeriesStatus,
    instance_id,
)

__all__ = [
    "Event",
    "MaterializationError",
    "MaterializationFailure",
    "MaterializationResult",
    "ModifiedOccurrence",
    "NotRecurringError",
    "OccurrenceLimitError",
    "OccurrenceNotFoundError",
    "SeriesCancelledError",
    "SeriesError",
    "SeriesNotFoundError",
    "SeriesStatus",
    "instance_id",
]
