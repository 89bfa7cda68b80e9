from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Protocol

import psycopg2
import yaml

from ..errors import CatalogLoadError
from ..models.catalog import CatalogEntry, ReferenceCatalog

"""Reference Catalog sources.

PostgresCatalogSource reads the tenant's lookup tables once per session;
YamlCatalogSource reads an offline snapshot (dry runs, DISABLE_DB_CONNECT=1,
tests). Both return an immutable ReferenceCatalog.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "CatalogSource",
    "PostgresCatalogSource",
    "YamlCatalogSource",
]


class CatalogSource(Protocol):
    def load_catalog(self, tenant_id: str, dataset: str) -> ReferenceCatalog: ...


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _alternates(*values: Any) -> tuple[str, ...]:
    return tuple(t for t in (_text(v) for v in values) if t)


class PostgresCatalogSource:
    """Loads catalog slices with a psycopg2 cursor (ordered by name, then id)."""

    CLIENTS_SQL = "SELECT id, name, code, tax_id FROM clients WHERE tenant_id = %s ORDER BY name, id"
    SUPPLIERS_SQL = "SELECT id, name, code, tax_id FROM suppliers WHERE tenant_id = %s ORDER BY name, id"
    CRANES_SQL = "SELECT id, unit_number, plates FROM cranes WHERE tenant_id = %s ORDER BY unit_number, id"
    OPERATORS_SQL = (
        "SELECT id, full_name, employee_number FROM operators WHERE tenant_id = %s ORDER BY full_name, id"
    )
    CATALOG_ITEMS_SQL = (
        "SELECT id, name, code FROM catalog_items WHERE tenant_id = %s AND catalog_type = %s ORDER BY name, id"
    )
    SERVICE_FOLIOS_SQL = "SELECT folio FROM services WHERE tenant_id = %s AND folio IS NOT NULL"
    COST_INVOICES_SQL = "SELECT invoice_number FROM costs WHERE tenant_id = %s AND invoice_number IS NOT NULL"

    def __init__(self, cursor: Any) -> None:
        self.cursor = cursor

    def _fetch(self, sql: str, *params: Any) -> list[tuple[Any, ...]]:
        self.cursor.execute(sql, params)
        return list(self.cursor.fetchall())

    def _counterparties(self, sql: str, tenant_id: str) -> list[CatalogEntry]:
        return [
            CatalogEntry(str(row_id), _text(tax_id), name or "", _alternates(code))
            for row_id, name, code, tax_id in self._fetch(sql, tenant_id)
        ]

    def _categories(self, tenant_id: str, catalog_type: str) -> list[CatalogEntry]:
        return [
            CatalogEntry(str(row_id), _text(code), name or "")
            for row_id, name, code in self._fetch(self.CATALOG_ITEMS_SQL, tenant_id, catalog_type)
        ]

    def load_catalog(self, tenant_id: str, dataset: str) -> ReferenceCatalog:
        try:
            if dataset == "services":
                catalog = ReferenceCatalog.build(
                    tenant_id,
                    counterparties=self._counterparties(self.CLIENTS_SQL, tenant_id),
                    equipment_units=[
                        # パテントが主キー、号機番号は別名
                        CatalogEntry(
                            str(row_id), _text(plates), unit_number or plates or "", _alternates(unit_number)
                        )
                        for row_id, unit_number, plates in self._fetch(self.CRANES_SQL, tenant_id)
                    ],
                    personnel=[
                        CatalogEntry(str(row_id), _text(employee_number), full_name or "")
                        for row_id, full_name, employee_number in self._fetch(self.OPERATORS_SQL, tenant_id)
                    ],
                    categories=self._categories(tenant_id, "service_type"),
                    used_natural_keys=[str(r[0]) for r in self._fetch(self.SERVICE_FOLIOS_SQL, tenant_id)],
                )
            elif dataset == "costs":
                catalog = ReferenceCatalog.build(
                    tenant_id,
                    counterparties=self._counterparties(self.SUPPLIERS_SQL, tenant_id),
                    categories=self._categories(tenant_id, "cost_category"),
                    used_natural_keys=[str(r[0]) for r in self._fetch(self.COST_INVOICES_SQL, tenant_id)],
                )
            else:
                raise CatalogLoadError(f"unknown dataset: {dataset}")
        except psycopg2.Error as e:
            raise CatalogLoadError(f"catalog query failed: {e}") from e
        logger.debug(
            "catalog loaded tenant=%s dataset=%s counterparties=%s units=%s personnel=%s categories=%s used=%s",
            tenant_id,
            dataset,
            len(catalog.counterparties),
            len(catalog.equipment_units),
            len(catalog.personnel),
            len(catalog.categories),
            len(catalog.used_natural_keys),
        )
        return catalog


class YamlCatalogSource:
    """Offline catalog snapshot.

    Layout::

        tenant_id: demo            # optional; must match when present
        services:                  # one section per dataset
          counterparties:
            - {id: c1, key: 76.123.456-7, name: Acme, alternate_keys: [ACME]}
          equipment_units: [...]
          personnel: [...]
          categories: [...]
          used_natural_keys: [F-001]
    """

    SLICES = ("counterparties", "equipment_units", "personnel", "categories")

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            raise CatalogLoadError(f"catalog file not found: {self.path}")
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise CatalogLoadError(f"invalid catalog yaml: {e}") from e
        if not isinstance(data, dict):
            raise CatalogLoadError("catalog root must be a mapping")
        return data

    @staticmethod
    def _entries(items: Any, slice_name: str) -> list[CatalogEntry]:
        if items is None:
            return []
        if not isinstance(items, list):
            raise CatalogLoadError(f"{slice_name} must be a list")
        entries = []
        for item in items:
            if not isinstance(item, dict) or "id" not in item:
                raise CatalogLoadError(f"{slice_name}: every entry needs an id")
            entries.append(
                CatalogEntry(
                    id=str(item["id"]),
                    natural_key=_text(item.get("key")),
                    display_name=str(item.get("name") or ""),
                    alternate_keys=_alternates(*(item.get("alternate_keys") or ())),
                )
            )
        return entries

    def load_catalog(self, tenant_id: str, dataset: str) -> ReferenceCatalog:
        data = self._read()
        file_tenant = data.get("tenant_id")
        if file_tenant is not None and str(file_tenant) != tenant_id:
            raise CatalogLoadError(f"catalog snapshot belongs to tenant {file_tenant}, not {tenant_id}")
        section = data.get(dataset) or {}
        if not isinstance(section, dict):
            raise CatalogLoadError(f"catalog section {dataset} must be a mapping")
        slices = {name: self._entries(section.get(name), name) for name in self.SLICES}
        used = [str(k) for k in section.get("used_natural_keys") or ()]
        return ReferenceCatalog.build(tenant_id, used_natural_keys=used, **slices)
