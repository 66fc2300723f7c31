"""Recurrence-specific exceptions."""

from typing import Optional


class RecurrenceError(Exception):
    """Base exception for recurrence rule errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RuleValidationError(RecurrenceError):
    """Exception raised when a recurrence rule is rejected at authoring time."""

    def __init__(self, message: str, problems: Optional[list[str]] = None):
        super().__init__(message)
        self.problems = problems or []
