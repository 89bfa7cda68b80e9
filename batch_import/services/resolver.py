from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from ..datasets.spec import DatasetSpec, ReferenceSpec
from ..mapping.values import fold_text, normalize_key
from ..models.catalog import CatalogEntry, EntityKind, ReferenceCatalog
from ..models.row_data import RowData
from ..models.validation import Severity, ValidationIssue

"""Entity resolver: loose external references -> catalog ids.

``resolve()`` is a pure lookup over one catalog slice:

1. exact match of the normalized key against natural / alternate keys
2. case-insensitive substring of the name query in the display name

First match in catalog order wins; empty queries never match. The resolver
never performs I/O, the catalog is loaded once per session beforehand.
"""

__all__ = [
    "resolve",
    "DefaultPolicy",
    "default_policies",
    "ResolutionOutcome",
    "EntityResolver",
]


def _key_matches(entry: CatalogEntry, normalized: str) -> bool:
    if normalize_key(entry.natural_key) == normalized:
        return True
    return any(normalize_key(k) == normalized for k in entry.alternate_keys)


def resolve(entries: Iterable[CatalogEntry], key: str | None, name: str | None = None) -> CatalogEntry | None:
    """Find the catalog entry for a key / name query (None when nothing matches)."""
    entries = tuple(entries)
    normalized = normalize_key(key)
    if normalized:
        for entry in entries:
            if _key_matches(entry, normalized):
                return entry
    query = fold_text(name if name and name.strip() else (key or ""))
    if query:
        for entry in entries:
            if query in fold_text(entry.display_name):
                return entry
    return None


@dataclass(frozen=True)
class DefaultPolicy:
    """What an optional, absent or unmatched reference falls back to.

    ``first``: first catalog entry of the kind, ``none``: leave unset,
    ``fixed:<id or name>``: a specific entry.
    """
    mode: str = "none"
    value: str | None = None

    @classmethod
    def parse(cls, text: str) -> DefaultPolicy:
        text = (text or "").strip()
        if text in ("first", "none"):
            return cls(text)
        if text.startswith("fixed:") and text[len("fixed:"):].strip():
            return cls("fixed", text[len("fixed:"):].strip())
        raise ValueError(f"invalid default policy: {text!r}")

    def select(self, entries: tuple[CatalogEntry, ...]) -> CatalogEntry | None:
        if self.mode == "first":
            return entries[0] if entries else None
        if self.mode == "fixed" and self.value:
            by_id = next((e for e in entries if e.id == self.value), None)
            return by_id or resolve(entries, self.value, self.value)
        return None

    def __str__(self) -> str:
        return f"fixed:{self.value}" if self.mode == "fixed" else self.mode


def default_policies(config: Mapping[str, str] | None = None) -> dict[EntityKind, DefaultPolicy]:
    """Policies per entity kind; category falls back to its first entry unless configured."""
    policies = {kind: DefaultPolicy("none") for kind in EntityKind}
    policies[EntityKind.CATEGORY] = DefaultPolicy("first")
    for kind_name, text in (config or {}).items():
        policies[EntityKind(kind_name)] = DefaultPolicy.parse(text)
    return policies


@dataclass(frozen=True)
class ResolutionOutcome:
    ok: bool
    references: dict[str, str | None] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)
    error: ValidationIssue | None = None
    warnings: tuple[ValidationIssue, ...] = ()


class EntityResolver:
    """Resolves every reference a dataset declares for one canonical row."""

    def __init__(self, catalog: ReferenceCatalog, policies: Mapping[EntityKind, DefaultPolicy] | None = None) -> None:
        self.catalog = catalog
        self.policies = dict(policies) if policies is not None else default_policies()

    def policy_for(self, kind: EntityKind) -> DefaultPolicy:
        return self.policies.get(kind, DefaultPolicy("none"))

    def resolve_row(self, row: RowData, dataset: DatasetSpec) -> ResolutionOutcome:
        references: dict[str, str | None] = {}
        labels: dict[str, str] = {}
        warnings: list[ValidationIssue] = []

        # 必須参照を先に解決し、最初の失敗で打ち切る
        required = [r for r in dataset.references if r.required]
        optional = [r for r in dataset.references if not r.required]
        for ref in required:
            key, name = self._queries(row, ref)
            entry = resolve(self.catalog.entries(ref.kind), key, name)
            if entry is None:
                query = key or name
                message = (
                    f"{ref.display} '{query}' not found in catalog" if query else f"{ref.display} is missing"
                )
                issue = ValidationIssue(row.row_number, ref.key_field, message, Severity.ERROR, query or None)
                return ResolutionOutcome(ok=False, error=issue)
            references[ref.name] = entry.id
            labels[ref.name] = entry.display_name

        for ref in optional:
            key, name = self._queries(row, ref)
            entries = self.catalog.entries(ref.kind)
            entry = resolve(entries, key, name) if (key or name) else None
            if entry is not None:
                references[ref.name] = entry.id
                labels[ref.name] = entry.display_name
                continue
            fallback = self.policy_for(ref.kind).select(entries)
            query = key or name
            reason = f"{ref.display} '{query}' not found" if query else f"{ref.display} not given"
            if fallback is not None:
                references[ref.name] = fallback.id
                labels[ref.name] = fallback.display_name
                message = f"{reason}; using default '{fallback.display_name}'"
            else:
                references[ref.name] = None
                message = f"{reason}; left empty"
            warnings.append(ValidationIssue(row.row_number, ref.key_field, message, Severity.WARNING, query or None))

        return ResolutionOutcome(ok=True, references=references, labels=labels, warnings=tuple(warnings))

    @staticmethod
    def _queries(row: RowData, ref: ReferenceSpec) -> tuple[str, str]:
        key = row.get_text(ref.key_field)
        name = row.get_text(ref.name_field) if ref.name_field else ""
        return key, name
