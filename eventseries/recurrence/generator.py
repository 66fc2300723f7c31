"""Occurrence expansion for recurring series."""

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from typing import Any, Optional, Union

from .models import RecurrenceRule
from .stepper import matches_rule, next_occurrence

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime]

DEFAULT_MAX_OCCURRENCES = 1000


def to_calendar_date(value: DateLike, tz: Optional[tzinfo] = None) -> date:
    """Reduce a date or datetime to the calendar date seen in ``tz``.

    Aware datetimes are converted into ``tz`` first so that an exception or
    window bound given in UTC lands on the same calendar day as the series.
    """
    if isinstance(value, datetime):
        if tz is not None and value.tzinfo is not None:
            value = value.astimezone(tz)
        return value.date()
    return value


def _series_tz(template_start: DateLike) -> Optional[tzinfo]:
    return template_start.tzinfo if isinstance(template_start, datetime) else None


def _iter_window_candidates(
    rule: RecurrenceRule,
    template_start: DateLike,
    window_start: DateLike,
    window_end: DateLike,
) -> Iterator[date]:
    tz = _series_tz(template_start)
    first = to_calendar_date(template_start, tz)
    start = to_calendar_date(window_start, tz)
    end = to_calendar_date(window_end, tz)

    if end < start:
        return

    anchor_day = first.day
    candidate = first if matches_rule(first, rule) else next_occurrence(first, rule, anchor_day)
    counted = 0

    while candidate <= end:
        if rule.end_date is not None and candidate > rule.end_date:
            break
        if rule.occurrence_count is not None and counted >= rule.occurrence_count:
            break

        counted += 1
        if candidate >= start and not rule.is_exception(candidate):
            yield candidate

        candidate = next_occurrence(candidate, rule, anchor_day)


def iter_occurrences(
    rule: RecurrenceRule,
    template_start: DateLike,
    window_start: DateLike,
    window_end: DateLike,
    existing_dates: Iterable[DateLike] = (),
) -> Iterator[date]:
    """Lazily yield occurrence dates of a series inside a window.

    The walk always starts at the template date, so ``occurrence_count`` is
    counted from the first occurrence of the series no matter which window
    is asked for. Every rule candidate consumes a slot, including exception
    dates and dates that are already materialized.

    Args:
        rule: Recurrence rule of the series
        template_start: Start of the template event
        window_start: First calendar date of interest (inclusive)
        window_end: Last calendar date of interest (inclusive)
        existing_dates: ``original_start_date`` values of instances that
            already exist; these are never yielded again

    Yields:
        Strictly increasing occurrence dates
    """
    tz = _series_tz(template_start)
    existing = {to_calendar_date(d, tz) for d in existing_dates}
    for candidate in _iter_window_candidates(rule, template_start, window_start, window_end):
        if candidate not in existing:
            yield candidate


@dataclass
class WindowExpansion:
    """Occurrence dates of a window and whether the cap cut the window short."""

    occurrences: list[date] = field(default_factory=list)
    truncated: bool = False
    # First occurrence left out by the cap
    resume_date: Optional[date] = None


def expand_window(
    rule: RecurrenceRule,
    template_start: DateLike,
    window_start: DateLike,
    window_end: DateLike,
    existing_dates: Iterable[DateLike] = (),
    max_occurrences: Optional[int] = None,
) -> WindowExpansion:
    """Expand a rule over a window, reporting truncation by the cap.

    The cap counts every occurrence of the window, already materialized or
    not, so the same window is cut at the same date on every call.

    Args:
        rule: Recurrence rule of the series
        template_start: Start of the template event
        window_start: Window start (inclusive)
        window_end: Window end (inclusive)
        existing_dates: Dates of instances that already exist
        max_occurrences: Cap on the occurrences considered in the window;
            None or 0 means uncapped

    Returns:
        WindowExpansion with the ordered, de-duplicated new occurrence dates
    """
    logger.debug(
        "Expanding rule: frequency=%s interval=%s template_start=%s window=%s..%s",
        rule.frequency.value,
        rule.interval,
        template_start,
        window_start,
        window_end,
    )

    tz = _series_tz(template_start)
    existing = {to_calendar_date(d, tz) for d in existing_dates}
    expansion = WindowExpansion()
    considered = 0

    for candidate in _iter_window_candidates(rule, template_start, window_start, window_end):
        if max_occurrences and considered >= max_occurrences:
            logger.warning(
                f"Limiting rule expansion to {max_occurrences} occurrences, "
                f"window cut before {candidate}"
            )
            expansion.truncated = True
            expansion.resume_date = candidate
            break
        considered += 1
        if candidate not in existing:
            expansion.occurrences.append(candidate)

    logger.debug(
        "Expansion result: occurrences=%d truncated=%s sample=%s",
        len(expansion.occurrences),
        expansion.truncated,
        [d.isoformat() for d in expansion.occurrences[:10]],
    )
    return expansion


def generate_occurrences(
    rule: RecurrenceRule,
    template_start: DateLike,
    window_start: DateLike,
    window_end: DateLike,
    existing_dates: Iterable[DateLike] = (),
    max_occurrences: Optional[int] = None,
) -> list[date]:
    """Expand a rule into the occurrence dates that fall inside a window.

    Same as :func:`expand_window` without the truncation report.
    """
    return expand_window(
        rule, template_start, window_start, window_end, existing_dates, max_occurrences
    ).occurrences


class OccurrenceGenerator:
    """Expands recurrence rules into bounded lists of occurrence dates.

    Stateless apart from the configured occurrence cap, so one instance can
    be shared by any number of callers.
    """

    def __init__(self, settings: Optional[Any] = None):
        """Initialize OccurrenceGenerator.

        Args:
            settings: Optional settings object; ``max_occurrences`` is read
                from it when present
        """
        self.max_occurrences = getattr(settings, "max_occurrences", DEFAULT_MAX_OCCURRENCES)

    def generate(
        self,
        rule: RecurrenceRule,
        template_start: DateLike,
        window_start: DateLike,
        window_end: DateLike,
        existing_dates: Iterable[DateLike] = (),
    ) -> list[date]:
        """Like :func:`generate_occurrences`, capped at ``max_occurrences``."""
        return self.expand(rule, template_start, window_start, window_end, existing_dates).occurrences

    def expand(
        self,
        rule: RecurrenceRule,
        template_start: DateLike,
        window_start: DateLike,
        window_end: DateLike,
        existing_dates: Iterable[DateLike] = (),
    ) -> WindowExpansion:
        return expand_window(
            rule,
            template_start,
            window_start,
            window_end,
            existing_dates,
            max_occurrences=self.max_occurrences,
        )
