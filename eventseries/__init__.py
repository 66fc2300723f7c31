"""EventSeries - recurring event series expansion and idempotent materialization."""

__version__ = "1.0.0"
__author__ = "EventSeries Team"
__email__ = "support@eventseries.local"
__description__ = "Recurring event series expansion and idempotent instance materialization"

# Package metadata
__all__ = [
    "__author__",
    "__description__",
    "__email__",
    "__version__",
]
