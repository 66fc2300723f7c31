"""Recurrence rule model, stepping and occurrence expansion."""

from .exceptions import RecurrenceError, RuleValidationError
from .generator import (
    OccurrenceGenerator,
    WindowExpansion,
    expand_window,
    generate_occurrences,
    iter_occurrences,
    to_calendar_date,
)
from .models import Frequency, RecurrenceRule
from .stepper import matches_rule, next_occurrence
from .validation import collect_rule_problems, validate_rule

__all__ = [
    "Frequency",
    "OccurrenceGenerator",
    "RecurrenceError",
    "RecurrenceRule",
    "RuleValidationError",
    "WindowExpansion",
    "collect_rule_problems",
    "expand_window",
    "generate_occurrences",
    "iter_occurrences",
    "matches_rule",
    "next_occurrence",
    "to_calendar_date",
    "validate_rule",
]
