"""Configuration for EventSeries."""

from .settings import EventSeriesSettings, LoggingSettings, get_settings, reset_settings

__all__ = [
    "EventSeriesSettings",
    "LoggingSettings",
    "get_settings",
    "reset_settings",
]
