"""Generic shape checks shared by every stage validator.

Each ``require_*`` function inspects one value and, when it does not have the
expected shape, appends a schema error to an :class:`IssueCollector`.  None of
them raise.  They return ``True`` when the value passed so callers can guard
checks on nested fields.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from aumai_rspecmeta.models import IssueCategory, ValidationIssue


class IssueCollector:
    """Accumulates errors and warnings for a single validation run."""

    def __init__(self) -> None:
        self.errors: list[ValidationIssue] = []
        self.warnings: list[ValidationIssue] = []

    def error(self, message: str, category: IssueCategory = IssueCategory.schema) -> None:
        self.errors.append(
            ValidationIssue(category=category, severity="error", message=message)
        )

    def warning(
        self, message: str, category: IssueCategory = IssueCategory.complexity
    ) -> None:
        self.warnings.append(
            ValidationIssue(category=category, severity="warning", message=message)
        )

    def __bool__(self) -> bool:
        return bool(self.errors)


def is_non_empty_string(value: Any) -> bool:
    """Return True for a string with at least one non-whitespace character."""
    return isinstance(value, str) and bool(value.strip())


def is_integer(value: Any) -> bool:
    """Return True for an int that is not a bool."""
    return isinstance(value, int) and not isinstance(value, bool)


def require_hash(value: Any, label: str, issues: IssueCollector) -> bool:
    if isinstance(value, dict):
        return True
    issues.error(f"{label} must be a Hash")
    return False


def require_array(value: Any, label: str, issues: IssueCollector) -> bool:
    if isinstance(value, list):
        return True
    issues.error(f"{label} must be an Array")
    return False


def require_string(value: Any, label: str, issues: IssueCollector) -> bool:
    if is_non_empty_string(value):
        return True
    issues.error(f"{label} must be a non-empty String")
    return False


def require_bool(value: Any, label: str, issues: IssueCollector) -> bool:
    if value is True or value is False:
        return True
    issues.error(f"{label} must be boolean")
    return False


def require_int(value: Any, label: str, issues: IssueCollector) -> bool:
    if is_integer(value):
        return True
    issues.error(f"{label} must be an Integer")
    return False


def require_enum(
    value: Any, label: str, allowed: Iterable[str], issues: IssueCollector
) -> bool:
    """Check that *value* is one of the *allowed* strings.

    Membership is tested by equality against strings only, so unhashable or
    non-string values are rejected rather than raising.
    """
    choices = list(allowed)
    if isinstance(value, str) and value in choices:
        return True
    issues.error(f"{label} must be one of: {', '.join(choices)}")
    return False


__all__ = [
    "IssueCollector",
    "is_integer",
    "is_non_empty_string",
    "require_array",
    "require_bool",
    "require_enum",
    "require_hash",
    "require_int",
    "require_string",
]
