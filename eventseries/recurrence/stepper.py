"""Calendar stepping for recurrence rules.

Given an anchor date and a rule, compute the next candidate date of the
series. Everything here is a pure function of its arguments: no I/O, no
clock, no shared state.

Weekday numbering follows the rule model (0 = Sunday ... 6 = Saturday) and
months are 0-based (0 = January). Out-of-range selector values are dropped
rather than rejected; a selector set that ends up empty falls back to the
"simple" same-weekday/monthday/month recurrence.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Union

from dateutil.relativedelta import relativedelta

from .models import Frequency, RecurrenceRule

DateLike = Union[date, datetime]


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def _clean_selector(values: Iterable[int], low: int, high: int) -> list[int]:
    """Sorted, de-duplicated selector values inside ``[low, high]``."""
    return sorted({int(v) for v in values if low <= int(v) <= high})


def _last_day(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def _sunday_weekday(day: date) -> int:
    """Weekday with Sunday as 0."""
    return (day.weekday() + 1) % 7


def effective_interval(rule: RecurrenceRule) -> int:
    """Rule interval, with anything below 1 treated as 1."""
    return max(1, int(rule.interval or 1))


def weekday_selector(rule: RecurrenceRule) -> list[int]:
    if rule.frequency != Frequency.WEEKLY:
        return []
    return _clean_selector(rule.days_of_week, 0, 6)


def monthday_selector(rule: RecurrenceRule) -> list[int]:
    if rule.frequency != Frequency.MONTHLY:
        return []
    return _clean_selector(rule.days_of_month, 1, 31)


def month_selector(rule: RecurrenceRule) -> list[int]:
    if rule.frequency != Frequency.YEARLY:
        return []
    return _clean_selector(rule.months_of_year, 0, 11)


def _next_weekly(anchor: date, interval: int, weekdays: list[int]) -> date:
    if not weekdays:
        return anchor + timedelta(weeks=interval)

    current = _sunday_weekday(anchor)
    for weekday in weekdays:
        if weekday > current:
            return anchor + timedelta(days=weekday - current)

    week_start = anchor - timedelta(days=current)
    return week_start + timedelta(weeks=interval, days=weekdays[0])


def _next_monthly(anchor: date, interval: int, monthdays: list[int], anchor_day: int) -> date:
    if monthdays:
        last = _last_day(anchor.year, anchor.month)
        for day in monthdays:
            clamped = min(day, last)
            if clamped > anchor.day:
                return anchor.replace(day=clamped)
        target_day = monthdays[0]
    else:
        target_day = anchor_day

    target = anchor.replace(day=1) + relativedelta(months=interval)
    return target.replace(day=min(target_day, _last_day(target.year, target.month)))


def _next_yearly(anchor: date, interval: int, months: list[int], anchor_day: int) -> date:
    if months:
        later = [m for m in months if m > anchor.month - 1]
        if later:
            year, month = anchor.year, later[0] + 1
        else:
            year, month = anchor.year + interval, months[0] + 1
    else:
        year, month = anchor.year + interval, anchor.month

    return date(year, month, min(anchor_day, _last_day(year, month)))


def next_occurrence(
    anchor: DateLike, rule: RecurrenceRule, anchor_day: Optional[int] = None
) -> date:
    """Return the next candidate date strictly after ``anchor``.

    Args:
        anchor: Current occurrence date (a datetime is reduced to its date)
        rule: Recurrence rule to step by
        anchor_day: Day-of-month the series was anchored on. "Same day"
            targets use it instead of ``anchor.day`` so that a clamped month
            (Jan 31 -> Feb 29) does not drag later months down with it.

    Returns:
        The next candidate date
    """
    current = _as_date(anchor)
    interval = effective_interval(rule)
    day_hint = anchor_day if anchor_day is not None else current.day

    if rule.frequency == Frequency.DAILY:
        return current + timedelta(days=interval)
    if rule.frequency == Frequency.WEEKLY:
        return _next_weekly(current, interval, weekday_selector(rule))
    if rule.frequency == Frequency.MONTHLY:
        return _next_monthly(current, interval, monthday_selector(rule), day_hint)
    if rule.frequency == Frequency.YEARLY:
        return _next_yearly(current, interval, month_selector(rule), day_hint)

    # Unknown frequencies cannot come out of the model; step daily so callers terminate
    return current + timedelta(days=interval)


def matches_rule(day: DateLike, rule: RecurrenceRule) -> bool:
    """Check whether a date satisfies the rule's day/month selectors.

    Dates are always accepted when the rule has no selector for its
    frequency. Used to decide whether the template date itself is an
    occurrence of its series.
    """
    current = _as_date(day)

    weekdays = weekday_selector(rule)
    if weekdays:
        return _sunday_weekday(current) in weekdays

    monthdays = monthday_selector(rule)
    if monthdays:
        last = _last_day(current.year, current.month)
        return current.day in {min(d, last) for d in monthdays}

    months = month_selector(rule)
    if months:
        return current.month - 1 in months

    return True
