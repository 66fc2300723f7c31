"""The ``expand`` command: preview or materialize a series described in YAML."""

import argparse
import logging
from datetime import datetime, time, timedelta
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..config.settings import EventSeriesSettings
from ..recurrence.exceptions import RuleValidationError
from ..series.exceptions import MaterializationError, SeriesError
from ..series.models import Event
from ..series.service import SeriesService
from ..store.base import SeriesStoreError
from ..store.memory import InMemorySeriesStore
from ..store.sqlite import SQLiteSeriesStore
from ..utils.helpers import combine_in_timezone, resolve_timezone

logger = logging.getLogger(__name__)


class SeriesFileError(Exception):
    """Exception raised when a series file cannot be read or parsed."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def load_series_file(path: Path) -> Event:
    """Load a series template from a YAML file.

    The file holds the event's fields at the top level and its rule under
    ``recurrence_rule``::

        id: yoga
        title: Morning yoga
        start: 2024-01-01T10:00:00+00:00
        end: 2024-01-01T11:00:00+00:00
        recurrence_rule:
          frequency: weekly
          days_of_week: [1, 3]
          occurrence_count: 10

    Raises:
        SeriesFileError: If the file is missing, is not YAML, or does not
            describe a recurring event
    """
    try:
        with path.open() as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise SeriesFileError(f"Cannot read series file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise SeriesFileError(f"Invalid YAML in series file {path}: {e}") from e

    if not isinstance(data, dict):
        raise SeriesFileError(f"Series file {path} must contain a mapping")
    if not data.get("recurrence_rule"):
        raise SeriesFileError(f"Series file {path} has no recurrence_rule")

    data.setdefault("is_recurring", True)
    try:
        return Event.model_validate(data)
    except ValidationError as e:
        raise SeriesFileError(f"Invalid series in {path}: {e}") from e


def resolve_window(
    parent: Event, args: argparse.Namespace, settings: EventSeriesSettings
) -> tuple[datetime, datetime]:
    """Whole-day window from the command line, in the series' timezone.

    ``--start`` defaults to the series' first day and ``--end`` to
    ``default_window_days`` after the start.
    """
    first_day = args.start.date() if args.start else parent.local_start.date()
    last_day = (
        args.end.date()
        if args.end
        else first_day + timedelta(days=settings.default_window_days - 1)
    )

    tz = resolve_timezone(parent.timezone) or parent.local_start.tzinfo
    return combine_in_timezone(first_day, time.min, tz), combine_in_timezone(last_day, time.max, tz)


def _print_instance(instance: Event) -> None:
    marker = "" if instance.is_generated else "  (modified)"
    print(
        f"  {instance.start.strftime('%Y-%m-%d %a %H:%M')} - "
        f"{instance.end.strftime('%H:%M')}  {instance.id}{marker}"
    )


async def preview_series(
    parent: Event, window_start: datetime, window_end: datetime, settings: EventSeriesSettings
) -> int:
    """Print occurrence dates of a window without touching any database."""
    service = SeriesService(InMemorySeriesStore(), settings)
    await service.create_series(parent)
    occurrences = await service.get_occurrences(parent.id, window_start, window_end)

    print(
        f"{parent.title}: {len(occurrences)} occurrence(s) "
        f"from {window_start.date()} to {window_end.date()}"
    )
    for occurrence_date, _ in occurrences:
        print(f"  {occurrence_date.isoformat()} {occurrence_date.strftime('%a')}")
    return 0


async def materialize_series(
    parent: Event,
    window_start: datetime,
    window_end: datetime,
    settings: EventSeriesSettings,
    database: Path,
) -> int:
    """Store the series if needed, materialize the window and print its instances."""
    async with SQLiteSeriesStore(database) as store:
        service = SeriesService(store, settings)

        existing = await store.get_event(parent.id)
        if existing is None:
            await service.create_series(parent)
        elif existing.recurrence_rule != parent.recurrence_rule:
            await service.update_rule(parent.id, parent.recurrence_rule)

        try:
            instances = await service.generate_recurring_instances(
                parent.id, window_start, window_end
            )
        except MaterializationError as e:
            print(f"{parent.title}: {len(e.instances)} instance(s) in {database}")
            for instance in e.instances:
                _print_instance(instance)
            if e.failures:
                print(f"Failed to materialize: {', '.join(d.isoformat() for d in e.failed_dates)}")
            else:
                print(f"Error: {e.message}")
            return 1

    print(f"{parent.title}: {len(instances)} instance(s) in {database}")
    for instance in instances:
        _print_instance(instance)
    return 0


async def run_expand(args: Any, settings: EventSeriesSettings) -> int:
    """Run the ``expand`` command.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    try:
        parent = load_series_file(args.series_file)
        window_start, window_end = resolve_window(parent, args, settings)
        logger.debug(f"Expanding {parent.id} over {window_start} .. {window_end}")

        if args.materialize:
            database = args.database or settings.database_file
            return await materialize_series(parent, window_start, window_end, settings, database)
        return await preview_series(parent, window_start, window_end, settings)

    except SeriesFileError as e:
        print(f"Error: {e.message}")
        return 1
    except RuleValidationError as e:
        print("Error: invalid recurrence rule")
        for problem in e.problems:
            print(f"  - {problem}")
        return 1
    except (SeriesError, SeriesStoreError) as e:
        logger.exception("Expansion failed")
        print(f"Error: {e.message}")
        return 1
