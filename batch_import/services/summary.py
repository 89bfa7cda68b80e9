from __future__ import annotations

from ..models.upload_result import UploadResult
from ..models.validation import ValidationResult

"""SUMMARY line rendering for validate / import runs.

Format (one line, space separated key=value pairs):
    SUMMARY file=<name> rows=<n> valid=<v> errors=<e> warnings=<w>
    imported=<i> failed=<x> elapsed_sec=<s>
"""

__all__ = [
    "format_seconds",
    "render_summary_line",
]


def format_seconds(value: float) -> str:
    """Compact seconds: integral values without decimals, no scientific notation."""
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(
    file_name: str,
    validation: ValidationResult | None,
    upload: UploadResult | None,
    elapsed: float,
) -> str:
    """Render the SUMMARY line; missing stages count as zero.

    >>> render_summary_line("a.csv", None, None, 0)
    'SUMMARY file=a.csv rows=0 valid=0 errors=0 warnings=0 imported=0 failed=0 elapsed_sec=0'
    """
    rows = validation.total_rows if validation else 0
    valid = validation.valid_count if validation else 0
    errors = validation.error_count if validation else 0
    warnings = validation.warning_count if validation else 0
    imported = upload.processed if upload else 0
    failed = upload.errors if upload else 0
    return (
        f"SUMMARY file={file_name} "
        f"rows={rows} "
        f"valid={valid} "
        f"errors={errors} "
        f"warnings={warnings} "
        f"imported={imported} "
        f"failed={failed} "
        f"elapsed_sec={format_seconds(elapsed)}"
    )
