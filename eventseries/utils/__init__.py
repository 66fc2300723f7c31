"""Utility modules for EventSeries."""

from .helpers import (
    combine_in_timezone,
    ensure_timezone_aware,
    get_timezone_aware_now,
    resolve_timezone,
)
from .logging import get_logger, setup_logging

__all__ = [
    "combine_in_timezone",
    "ensure_timezone_aware",
    "get_logger",
    "get_timezone_aware_now",
    "resolve_timezone",
    "setup_logging",
]
