from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .validation import ValidationIssue

"""ErrorRecord model for the JSON Lines error log.

Supports row=-1 as a sentinel value for file / header level errors where no
specific data row applies.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Input file name being imported
        stage: Pipeline stage (parsing / validating / uploading)
        row: Zero-based data row. Use -1 for file or header level errors
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human readable description
    """
    timestamp: str  # ISO8601 UTC
    file: str
    stage: str
    row: int  # 不明な場合 -1
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(file: str, stage: str, row: int, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord with current UTC timestamp."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            stage=stage,
            row=row,
            error_type=error_type,
            message=message,
        )

    @classmethod
    def from_issue(cls, file: str, issue: ValidationIssue) -> ErrorRecord:
        """Validation finding -> HEADER_ERROR / ROW_ERROR / ROW_WARNING record."""
        if issue.row < 0:
            kind = "HEADER_ERROR"
        else:
            kind = "ROW_ERROR" if issue.is_error else "ROW_WARNING"
        return cls.create(file, "validating", issue.row, kind, f"{issue.field}: {issue.message}")

    def to_json_line(self) -> str:
        """Serialize ErrorRecord to JSON Lines format (no extra keys)."""
        return json.dumps(asdict(self), ensure_ascii=False)
