from __future__ import annotations

from pathlib import Path

import psycopg2
import pytest

from batch_import.db.catalog_source import PostgresCatalogSource, YamlCatalogSource
from batch_import.errors import CatalogLoadError


class DummyCursor:
    """Returns canned rows keyed by the table named in the query."""

    def __init__(self, tables: dict[str, list[tuple]], fail: Exception | None = None) -> None:
        self.tables = tables
        self.fail = fail
        self.executed: list[tuple[str, tuple]] = []
        self._last: list[tuple] = []

    def execute(self, sql: str, params: tuple) -> None:
        if self.fail is not None:
            raise self.fail
        self.executed.append((sql, params))
        table = sql.split(" FROM ")[1].split()[0]
        if table == "catalog_items":
            table = f"catalog_items:{params[1]}"
        self._last = self.tables.get(table, [])

    def fetchall(self) -> list[tuple]:
        return self._last


def test_postgres_services_catalog():
    cur = DummyCursor(
        {
            "clients": [("1", "Acme", "ACM", "76.123.456-7"), ("2", "Beta", None, None)],
            "cranes": [(10, "G1", "GR-001"), (11, "G2", None)],
            "operators": [(20, "Juan Pérez", "12345678-9")],
            "catalog_items:service_type": [(30, "Grúa Pesada", "GP")],
            "services": [("OLD-1",), ("OLD-2",)],
        }
    )
    catalog = PostgresCatalogSource(cur).load_catalog("t-1", "services")
    assert [e.id for e in catalog.counterparties] == ["1", "2"]
    assert catalog.counterparties[0].alternate_keys == ("ACM",)
    assert catalog.counterparties[1].natural_key is None
    crane = catalog.equipment_units[0]
    assert (crane.id, crane.natural_key, crane.display_name, crane.alternate_keys) == ("10", "GR-001", "G1", ("G1",))
    assert catalog.equipment_units[1].natural_key is None
    assert catalog.personnel[0].display_name == "Juan Pérez"
    assert catalog.categories[0].natural_key == "GP"
    assert catalog.used_natural_keys == frozenset({"OLD-1", "OLD-2"})
    assert all(params[0] == "t-1" for _, params in cur.executed)


def test_postgres_costs_catalog_uses_cost_categories():
    cur = DummyCursor(
        {
            "suppliers": [("s1", "Copec S.A.", None, "99.520.000-7")],
            "catalog_items:cost_category": [("k1", "Combustible", "COMB")],
            "costs": [("F-1",)],
        }
    )
    catalog = PostgresCatalogSource(cur).load_catalog("t-1", "costs")
    assert catalog.counterparties[0].natural_key == "99.520.000-7"
    assert catalog.categories[0].display_name == "Combustible"
    assert catalog.equipment_units == ()
    assert catalog.is_key_used("F-1")


def test_postgres_errors_become_catalog_load_error():
    cur = DummyCursor({}, fail=psycopg2.OperationalError("connection lost"))
    with pytest.raises(CatalogLoadError, match="catalog query failed"):
        PostgresCatalogSource(cur).load_catalog("t-1", "services")


def test_postgres_unknown_dataset():
    with pytest.raises(CatalogLoadError, match="unknown dataset"):
        PostgresCatalogSource(DummyCursor({})).load_catalog("t-1", "payroll")


def test_yaml_catalog(tmp_path: Path, sample_catalog_yaml: str):
    path = tmp_path / "catalog.yml"
    path.write_text(sample_catalog_yaml, encoding="utf-8")
    catalog = YamlCatalogSource(path).load_catalog("t-1", "services")
    assert [e.id for e in catalog.counterparties] == ["c-1", "c-2"]
    assert catalog.equipment_units[0].alternate_keys == ("1",)
    assert catalog.is_key_used("OLD-1")
    costs = YamlCatalogSource(path).load_catalog("t-1", "costs")
    assert [e.display_name for e in costs.categories] == ["Otros", "Combustible"]
    assert costs.personnel == ()


def test_yaml_catalog_missing_section_is_empty(tmp_path: Path):
    path = tmp_path / "catalog.yml"
    path.write_text("services: {}\n", encoding="utf-8")
    catalog = YamlCatalogSource(path).load_catalog("t-9", "costs")
    assert catalog.tenant_id == "t-9"
    assert catalog.counterparties == ()


@pytest.mark.parametrize(
    ("content", "message"),
    [
        ("tenant_id: other\n", "belongs to tenant other"),
        ("services: [\n", "invalid catalog yaml"),
        ("- a\n- b\n", "must be a mapping"),
        ("services:\n  personnel:\n    - {name: no id}\n", "every entry needs an id"),
        ("services:\n  personnel: nope\n", "must be a list"),
    ],
)
def test_yaml_catalog_errors(tmp_path: Path, content: str, message: str):
    path = tmp_path / "catalog.yml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(CatalogLoadError, match=message):
        YamlCatalogSource(path).load_catalog("t-1", "services")


def test_yaml_catalog_missing_file(tmp_path: Path):
    with pytest.raises(CatalogLoadError, match="not found"):
        YamlCatalogSource(tmp_path / "nope.yml").load_catalog("t-1", "services")
