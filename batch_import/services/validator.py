from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from ..datasets.spec import DatasetSpec, FieldType
from ..errors import HeaderValidationError
from ..mapping.headers import header_issues, normalize_row
from ..mapping.values import is_blank, parse_date, parse_number
from ..models.catalog import EntityKind, ReferenceCatalog
from ..models.resolved_record import ResolvedRecord
from ..models.row_data import RowData
from ..models.validation import Severity, ValidationIssue, ValidationResult
from .progress import ProgressSink, Stage, emit, make_event
from .resolver import DefaultPolicy, EntityResolver

"""Validator / issue aggregator.

Per row, in input order:
  (a) natural key already used in the catalog  -> error, row skipped
  (b) natural key already accepted in this pass -> error, row skipped
  field rules (required values, coercion, business rules)
      -> errors skip the row, soft findings are warnings
  (c) entity resolution (required references short-circuit)
  (d) ResolvedRecord appended to valid_rows, key marked as accepted

Warnings are only kept for rows that end up in valid_rows. The pass is pure:
the same rows and catalog always give an equal ValidationResult.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "validate_rows",
    "coerce_fields",
]


def coerce_fields(row: RowData, dataset: DatasetSpec) -> tuple[dict[str, Any], list[ValidationIssue]]:
    """Typed field values of a canonical row plus value-level errors."""
    values: dict[str, Any] = {}
    issues: list[ValidationIssue] = []
    for spec in dataset.fields:
        raw = row.values.get(spec.name)
        if is_blank(raw):
            values[spec.name] = None
            if spec.value_required:
                issues.append(
                    ValidationIssue(row.row_number, spec.name, f"{spec.name} is required", Severity.ERROR, raw)
                )
            continue
        if spec.type is FieldType.DATE:
            parsed = parse_date(raw)
            if parsed is None:
                issues.append(
                    ValidationIssue(row.row_number, spec.name, f"invalid date: {raw}", Severity.ERROR, raw)
                )
            values[spec.name] = parsed
        elif spec.type is FieldType.NUMBER:
            number = parse_number(raw)
            if number is None:
                issues.append(
                    ValidationIssue(row.row_number, spec.name, f"invalid number: {raw}", Severity.ERROR, raw)
                )
            values[spec.name] = number
        elif spec.type is FieldType.UPPER:
            values[spec.name] = str(raw).strip().upper()
        else:
            values[spec.name] = str(raw).strip()
    return values, issues


def _apply_rules(row: RowData, values: dict[str, Any], dataset: DatasetSpec) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for rule in dataset.rules:
        for finding in rule(values):
            issues.append(
                ValidationIssue(row.row_number, finding.field, finding.message, finding.severity, finding.value)
            )
    return issues


def validate_rows(
    headers: Iterable[str],
    rows: Iterable[RowData],
    dataset: DatasetSpec,
    catalog: ReferenceCatalog,
    policies: Mapping[EntityKind, DefaultPolicy] | None = None,
    on_progress: ProgressSink | None = None,
) -> ValidationResult:
    """Validate and resolve rows against the catalog.

    Raises:
        HeaderValidationError: required canonical fields are missing from
            ``headers``; no row is looked at in that case.
    """
    missing = header_issues(headers, dataset)
    if missing:
        raise HeaderValidationError(missing)

    rows = list(rows)
    total = len(rows)
    resolver = EntityResolver(catalog, policies)
    accepted: set[str] = set()
    issues: list[ValidationIssue] = []
    valid: list[ResolvedRecord] = []

    for processed, raw_row in enumerate(rows, start=1):
        row = normalize_row(raw_row, dataset)
        record, row_issues = _validate_row(row, dataset, catalog, resolver, accepted)
        issues.extend(row_issues)
        if record is not None:
            valid.append(record)
            if record.natural_key:
                accepted.add(record.natural_key)
        emit(on_progress, make_event(processed, total, Stage.VALIDATING))

    result = ValidationResult(total_rows=total, issues=tuple(issues), valid_rows=tuple(valid))
    logger.debug(
        "validated %s rows: valid=%s errors=%s warnings=%s",
        total,
        result.valid_count,
        result.error_count,
        result.warning_count,
    )
    return result


def _validate_row(
    row: RowData,
    dataset: DatasetSpec,
    catalog: ReferenceCatalog,
    resolver: EntityResolver,
    accepted: set[str],
) -> tuple[ResolvedRecord | None, list[ValidationIssue]]:
    key_field = dataset.natural_key_field
    key = row.get_text(key_field) if key_field else ""
    if key:
        if catalog.is_key_used(key):
            message = f"{key_field} {key} already exists"
            return None, [ValidationIssue(row.row_number, str(key_field), message, Severity.ERROR, key)]
        if key in accepted:
            message = f"{key_field} {key} is duplicated in this file"
            return None, [ValidationIssue(row.row_number, str(key_field), message, Severity.ERROR, key)]

    values, issues = coerce_fields(row, dataset)
    if not any(i.is_error for i in issues):
        issues.extend(_apply_rules(row, values, dataset))
    if any(i.is_error for i in issues):
        # エラー行の警告は捨てる
        return None, [i for i in issues if i.is_error]

    outcome = resolver.resolve_row(row, dataset)
    if outcome.error is not None:
        return None, [outcome.error]

    record = ResolvedRecord(
        dataset=dataset.name,
        row=row.row_number,
        natural_key=key,
        fields=values,
        references=outcome.references,
        labels=outcome.labels,
    )
    return record, issues + list(outcome.warnings)
