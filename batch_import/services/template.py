from __future__ import annotations

import io
from datetime import date

import pandas as pd
from openpyxl.utils import get_column_letter

from ..datasets.spec import DatasetSpec

"""Template generator: blank (or sample-filled) import files per dataset.

- csv: UTF-8 with BOM (Excel opens accented headers correctly) + header line
- xlsx: one sheet named after the dataset, header row, column widths
Both parse back through the tabular parser without header errors.
"""

__all__ = [
    "TEMPLATE_FORMATS",
    "generate_template",
    "template_file_name",
]

TEMPLATE_FORMATS = ("csv", "xlsx")


def _frame(dataset: DatasetSpec, include_sample: bool) -> pd.DataFrame:
    rows = [list(r) for r in dataset.sample_rows] if include_sample else []
    return pd.DataFrame(rows, columns=dataset.template_headers, dtype=str)


def generate_template(dataset: DatasetSpec, fmt: str, include_sample: bool = False) -> bytes:
    """Return the template file content for ``fmt`` (csv / xlsx)."""
    df = _frame(dataset, include_sample)
    if fmt == "csv":
        text = df.to_csv(index=False, lineterminator="\n")
        return text.encode("utf-8-sig")
    if fmt == "xlsx":
        buf = io.BytesIO()
        with pd.ExcelWriter(buf, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name=dataset.title, index=False)
            ws = writer.sheets[dataset.title]
            for idx, spec in enumerate(dataset.template_fields, start=1):
                ws.column_dimensions[get_column_letter(idx)].width = spec.width
        return buf.getvalue()
    raise ValueError(f"unsupported template format: {fmt!r} (expected one of {', '.join(TEMPLATE_FORMATS)})")


def template_file_name(dataset: DatasetSpec, fmt: str, today: date | None = None) -> str:
    """``plantilla_servicios_2024-01-15.csv`` style download name."""
    today = today or date.today()
    return f"{dataset.file_stem}_{today.isoformat()}.{fmt}"
