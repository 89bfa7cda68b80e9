from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .upload_result import UploadResult
from .validation import ValidationIssue, ValidationResult

"""ImportSession value object and SessionState enum.

The session is carried explicitly by the caller across the pipeline steps
instead of living in module state, so that many sessions can run side by side
(one per tenant / upload) without sharing anything.

State transitions:
    idle → parsing → validating → ready_to_commit → committing
         → (completed | partially_failed)
Parse and header failures go back to idle with ``error`` set.
"""

__all__ = [
    "SessionState",
    "ImportSession",
]


class SessionState(Enum):
    IDLE = "idle"
    PARSING = "parsing"
    VALIDATING = "validating"
    READY_TO_COMMIT = "ready_to_commit"
    COMMITTING = "committing"
    COMPLETED = "completed"
    PARTIALLY_FAILED = "partially_failed"


@dataclass(frozen=True)
class ImportSession:
    """Processing context for one uploaded file."""
    tenant_id: str
    dataset: str
    state: SessionState = SessionState.IDLE
    file_name: str | None = None
    validation: ValidationResult | None = None
    upload: UploadResult | None = None
    error: str | None = None  # 直近の致命的エラー (parse / header)
    header_issues: tuple[ValidationIssue, ...] = ()

    @property
    def is_terminal(self) -> bool:
        return self.state in (SessionState.COMPLETED, SessionState.PARTIALLY_FAILED)
