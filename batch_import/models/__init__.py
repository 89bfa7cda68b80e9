"""Domain models for the batch record ingestion pipeline."""

from .catalog import CatalogEntry, EntityKind, ReferenceCatalog
from .config_models import DatabaseConfig, ImportConfig
from .error_record import ErrorRecord
from .resolved_record import ResolvedRecord
from .row_data import RowData
from .session import ImportSession, SessionState
from .upload_result import BatchStatsAccumulator, UploadResult
from .validation import HEADER_ROW, Severity, ValidationIssue, ValidationResult

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "ImportConfig",
    # Reference data
    "CatalogEntry",
    "EntityKind",
    "ReferenceCatalog",
    # Processing models
    "RowData",
    "ResolvedRecord",
    "Severity",
    "ValidationIssue",
    "ValidationResult",
    "HEADER_ROW",
    "UploadResult",
    "BatchStatsAccumulator",
    "ImportSession",
    "SessionState",
    "ErrorRecord",
]
