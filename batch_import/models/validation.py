from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .resolved_record import ResolvedRecord

"""Validation findings and the session-level validation outcome."""

__all__ = [
    "Severity",
    "ValidationIssue",
    "ValidationResult",
    "HEADER_ROW",
]

HEADER_ROW = -1  # header-level issues are not tied to a data row


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class ValidationIssue:
    """One finding against a data row or the header set (row = -1)."""
    row: int
    field: str
    message: str
    severity: Severity
    value: Any = None  # offending raw value

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of one validation pass.

    Counts are derived from ``issues`` and ``valid_rows`` so that two passes
    over the same input and catalog compare equal.
    """
    total_rows: int
    issues: tuple[ValidationIssue, ...]
    valid_rows: tuple[ResolvedRecord, ...]

    @property
    def valid_count(self) -> int:
        return len(self.valid_rows)

    @property
    def error_count(self) -> int:
        return sum(1 for i in self.issues if i.severity is Severity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for i in self.issues if i.severity is Severity.WARNING)

    @property
    def is_valid(self) -> bool:
        return self.error_count == 0

    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity is Severity.ERROR]

    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity is Severity.WARNING]
