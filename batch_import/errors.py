from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models.validation import ValidationIssue

"""Exception hierarchy shared by the ingestion pipeline.

Fatal and header-level failures are raised to the caller; row-level findings
are never raised (they are accumulated into ValidationResult instead).
"""

__all__ = [
    "ImportPipelineError",
    "FatalParseError",
    "HeaderValidationError",
    "SessionStateError",
    "CatalogLoadError",
    "RecordStoreError",
]


class ImportPipelineError(Exception):
    """Base exception for ingestion pipeline errors."""


class FatalParseError(ImportPipelineError):
    """Input is structurally unreadable; nothing is imported."""


class HeaderValidationError(ImportPipelineError):
    """Required canonical fields are missing from the mapped header set."""

    def __init__(self, issues: list[ValidationIssue]) -> None:
        self.issues = list(issues)
        missing = ", ".join(str(i.value) for i in self.issues)
        super().__init__(f"missing required columns: {missing}")


class SessionStateError(ImportPipelineError):
    """Illegal import session transition."""


class CatalogLoadError(ImportPipelineError):
    """Reference Catalog snapshot could not be loaded."""


class RecordStoreError(ImportPipelineError):
    """Record Store rejected a single record."""
