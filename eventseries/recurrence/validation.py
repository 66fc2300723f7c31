"""Authoring-time validation of recurrence rules.

Expansion itself tolerates bad input; this is where bad input is refused,
before a rule is ever stored.
"""

import logging

from .exceptions import RuleValidationError
from .models import Frequency, RecurrenceRule

logger = logging.getLogger(__name__)


def _out_of_range(values: list[int], low: int, high: int) -> list[int]:
    return sorted({v for v in values if not low <= v <= high})


def collect_rule_problems(rule: RecurrenceRule) -> list[str]:
    """Return human-readable problems with a rule; empty when the rule is valid."""
    problems = []

    if rule.interval < 1:
        problems.append(f"interval must be at least 1, got {rule.interval}")

    bad_weekdays = _out_of_range(rule.days_of_week, 0, 6)
    if bad_weekdays:
        problems.append(f"days_of_week must be between 0 and 6, got {bad_weekdays}")

    bad_monthdays = _out_of_range(rule.days_of_month, 1, 31)
    if bad_monthdays:
        problems.append(f"days_of_month must be between 1 and 31, got {bad_monthdays}")

    bad_months = _out_of_range(rule.months_of_year, 0, 11)
    if bad_months:
        problems.append(f"months_of_year must be between 0 and 11, got {bad_months}")

    if rule.occurrence_count is not None and rule.occurrence_count < 1:
        problems.append(f"occurrence_count must be at least 1, got {rule.occurrence_count}")

    if rule.end_date is not None and rule.occurrence_count is not None:
        problems.append("only one of end_date and occurrence_count may be set")

    return problems


def validate_rule(rule: RecurrenceRule) -> RecurrenceRule:
    """Validate a rule before it is stored.

    Selectors that do not match the frequency (e.g. ``days_of_week`` on a
    monthly rule) are ignored by expansion and are not reported here.

    Args:
        rule: Rule to validate

    Returns:
        The same rule, for chaining

    Raises:
        RuleValidationError: If the rule has any problems
    """
    problems = collect_rule_problems(rule)
    if problems:
        logger.debug(f"Rejected {rule.frequency.value} rule: {problems}")
        raise RuleValidationError("Invalid recurrence rule: " + "; ".join(problems), problems)

    if rule.frequency != Frequency.WEEKLY and rule.days_of_week:
        logger.debug("days_of_week ignored for %s rule", rule.frequency.value)
    return rule
