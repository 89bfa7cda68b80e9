from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..models.catalog import EntityKind
from ..models.validation import Severity

"""Declarative description of an importable record kind (dataset).

A DatasetSpec carries everything the generic pipeline needs to know about a
record kind: the header synonym table, which columns are required, how each
value is coerced, which loose references must be resolved against the
catalog, the business rules and the template layout.
"""

__all__ = [
    "FieldType",
    "FieldSpec",
    "ReferenceSpec",
    "RuleFinding",
    "RowRule",
    "DatasetSpec",
]


class FieldType(Enum):
    STRING = "string"
    UPPER = "upper"  # stripped + uppercased (plates, codes)
    DATE = "date"  # YYYY-MM-DD
    NUMBER = "number"  # float


@dataclass(frozen=True)
class FieldSpec:
    """One canonical field.

    ``required``: the column must be present in the header set.
    ``value_required``: an empty value is a row-level error.
    ``headers``: raw header synonyms; the first one is the template header.
    """
    name: str
    type: FieldType = FieldType.STRING
    required: bool = False
    value_required: bool = False
    headers: tuple[str, ...] = ()
    in_template: bool = True
    width: int = 15  # template column width (chars)

    @property
    def template_header(self) -> str:
        return self.headers[0] if self.headers else self.name


@dataclass(frozen=True)
class ReferenceSpec:
    """A loose external reference resolved against one catalog slice."""
    name: str  # key in ResolvedRecord.references
    kind: EntityKind
    key_field: str  # canonical field holding the natural key query
    name_field: str | None = None  # canonical field holding the display-name query
    required: bool = True
    label: str = ""  # human readable name used in messages

    @property
    def display(self) -> str:
        return self.label or self.name


@dataclass(frozen=True)
class RuleFinding:
    field: str
    message: str
    severity: Severity = Severity.ERROR
    value: Any = None


# business rule: coerced field values -> findings (empty list when the row is fine)
RowRule = Callable[[dict[str, Any]], list[RuleFinding]]


@dataclass(frozen=True)
class DatasetSpec:
    name: str
    title: str  # sheet name used by the spreadsheet template
    file_stem: str  # template download file name prefix
    fields: tuple[FieldSpec, ...]
    natural_key_field: str | None
    references: tuple[ReferenceSpec, ...] = ()
    rules: tuple[RowRule, ...] = ()
    sample_rows: tuple[tuple[str, ...], ...] = ()
    _by_name: dict[str, FieldSpec] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._by_name.update({f.name: f for f in self.fields})

    def get_field(self, name: str) -> FieldSpec | None:
        return self._by_name.get(name)

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def required_fields(self) -> list[str]:
        return [f.name for f in self.fields if f.required]

    @property
    def optional_fields(self) -> list[str]:
        return [f.name for f in self.fields if not f.required]

    @property
    def template_fields(self) -> list[FieldSpec]:
        return [f for f in self.fields if f.in_template]

    @property
    def template_headers(self) -> list[str]:
        return [f.template_header for f in self.template_fields]

    @property
    def header_map(self) -> dict[str, str]:
        """Raw header synonym -> canonical field name."""
        mapping: dict[str, str] = {}
        for f in self.fields:
            for h in f.headers:
                mapping.setdefault(h, f.name)
        return mapping
