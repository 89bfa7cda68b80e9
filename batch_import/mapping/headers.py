from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from functools import lru_cache

from ..datasets.spec import DatasetSpec
from ..models.row_data import RowData
from ..models.validation import HEADER_ROW, Severity, ValidationIssue
from .values import fold_text

"""Header normalizer: raw (localized / abbreviated) headers -> canonical fields.

Lookup order for a raw header:
1. exact entry of the dataset synonym table
2. canonical field name itself
3. accent / case / whitespace-insensitive entry of the synonym table
4. fallback: lowercase raw header with whitespace removed (never an error)
"""

__all__ = [
    "HeaderMappingResult",
    "normalize_header",
    "map_headers",
    "validate_headers",
    "header_issues",
    "normalize_row",
]

_WS_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class HeaderMappingResult:
    valid: bool
    missing: list[str]  # required canonical fields not present
    extra: list[str]  # mapped headers the dataset does not know


@lru_cache(maxsize=None)
def _folded_map(dataset: DatasetSpec) -> dict[str, str]:
    folded: dict[str, str] = {}
    for raw, canonical in dataset.header_map.items():
        folded.setdefault(fold_text(raw), canonical)
    for name in dataset.field_names:
        folded.setdefault(fold_text(name), name)
    return folded


@lru_cache(maxsize=4096)
def normalize_header(raw: str, dataset: DatasetSpec) -> str:
    """Map a single raw header to its canonical field name."""
    trimmed = str(raw).strip()
    mapped = dataset.header_map.get(trimmed)
    if mapped:
        return mapped
    if trimmed in dataset.field_names:
        return trimmed
    mapped = _folded_map(dataset).get(fold_text(trimmed))
    if mapped:
        return mapped
    return _WS_RE.sub("", trimmed.lower())


def map_headers(headers: Iterable[str], dataset: DatasetSpec) -> list[str]:
    return [normalize_header(h, dataset) for h in headers]


def validate_headers(headers: Iterable[str], dataset: DatasetSpec) -> HeaderMappingResult:
    mapped = map_headers(headers, dataset)
    present = set(mapped)
    known = set(dataset.field_names)
    missing = [f for f in dataset.required_fields if f not in present]
    extra = [h for h in mapped if h not in known]
    return HeaderMappingResult(valid=not missing, missing=missing, extra=extra)


def header_issues(headers: Iterable[str], dataset: DatasetSpec) -> list[ValidationIssue]:
    """Missing required canonical fields as header-level (row -1) errors."""
    result = validate_headers(headers, dataset)
    return [
        ValidationIssue(
            row=HEADER_ROW,
            field="headers",
            message=f"required column missing: {name}",
            severity=Severity.ERROR,
            value=name,
        )
        for name in result.missing
    ]


def normalize_row(row: RowData, dataset: DatasetSpec) -> RowData:
    """RawRow -> CanonicalRow. Later duplicates of a canonical name only fill blanks."""
    values: dict[str, object] = {}
    for raw_key, value in row.values.items():
        key = normalize_header(raw_key, dataset)
        if key not in values or (values[key] in (None, "") and value not in (None, "")):
            values[key] = value
    return RowData(row_number=row.row_number, values=values, raw_values=dict(row.values))
