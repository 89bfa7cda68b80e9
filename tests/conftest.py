# Shared pytest fixtures
from __future__ import annotations

import io
import tempfile
from pathlib import Path

import pandas as pd
import pytest

from batch_import.datasets import SERVICES
from batch_import.models.catalog import CatalogEntry, ReferenceCatalog
from batch_import.models.row_data import RowData


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """tenant_id: t-1
dataset: services
batch_size: 2
pause_seconds: 0
catalog_file: config/catalog.yml
reference_defaults:
  category: first
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def sample_catalog_yaml() -> str:
    return """tenant_id: t-1
services:
  counterparties:
    - {id: c-1, key: 76123456-7, name: Transportes Santiago Ltda.}
    - {id: c-2, key: 96987654-3, name: Empresa Logística Norte S.A.}
  equipment_units:
    - {id: u-1, key: GR-001, name: Grúa 1, alternate_keys: ["1"]}
    - {id: u-2, key: GR-002, name: Grúa 2}
  personnel:
    - {id: p-1, key: 12345678-9, name: Juan Pérez}
    - {id: p-2, key: 98765432-1, name: María González}
  categories:
    - {id: s-1, key: GP, name: Grúa Pesada}
    - {id: s-2, key: GM, name: Grúa Mediana}
  used_natural_keys: [OLD-1]
costs:
  counterparties:
    - {id: sup-1, key: 99.520.000-7, name: Copec S.A.}
  categories:
    - {id: k-1, key: OTROS, name: Otros}
    - {id: k-2, key: COMB, name: Combustible}
  used_natural_keys: [F-OLD]
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str, sample_catalog_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    (temp_workdir / "config" / "catalog.yml").write_text(sample_catalog_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def catalog() -> ReferenceCatalog:
    """Services catalog matching the sample rows of the services template."""
    return ReferenceCatalog.build(
        "t-1",
        counterparties=[
            CatalogEntry("c-1", "76123456-7", "Transportes Santiago Ltda.", ("TSL",)),
            CatalogEntry("c-2", "96987654-3", "Empresa Logística Norte S.A."),
        ],
        equipment_units=[
            CatalogEntry("u-1", "GR-001", "Grúa 1", ("1",)),
            CatalogEntry("u-2", "GR-002", "Grúa 2"),
        ],
        personnel=[
            CatalogEntry("p-1", "12345678-9", "Juan Pérez"),
            CatalogEntry("p-2", "98765432-1", "María González"),
        ],
        categories=[
            CatalogEntry("s-1", "GP", "Grúa Pesada"),
            CatalogEntry("s-2", "GM", "Grúa Mediana"),
        ],
        used_natural_keys=["OLD-1"],
    )


def service_values(**overrides: str) -> dict[str, str]:
    """Canonical services row that validates cleanly against ``catalog``."""
    values = {
        "folio": "A-1",
        "requestDate": "2024-01-15",
        "serviceDate": "2024-01-16",
        "clientRut": "76123456-7",
        "clientName": "Transportes Santiago Ltda.",
        "clientDepartment": "",
        "vehicleBrand": "Volvo",
        "vehicleModel": "FH",
        "licensePlate": "abcd-12",
        "origin": "Santiago",
        "destination": "Valparaíso",
        "serviceType": "Grúa Pesada",
        "value": "150000",
        "craneLicensePlate": "GR-001",
        "operatorRut": "12345678-9",
        "operatorName": "",
        "operatorCommission": "15000",
        "observations": "",
    }
    values.update(overrides)
    return values


@pytest.fixture()
def service_row():
    def make(row_number: int = 0, **overrides: str) -> RowData:
        return RowData(row_number=row_number, values=service_values(**overrides))
    return make


@pytest.fixture()
def services_headers() -> list[str]:
    return SERVICES.field_names


@pytest.fixture()
def make_xlsx():
    """Build workbook bytes from a list of rows (first row = headers)."""
    def make(rows: list[list[object]], sheet_name: str = "Sheet1") -> bytes:
        buf = io.BytesIO()
        with pd.ExcelWriter(buf, engine="openpyxl") as writer:
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, index=False, header=False)
        return buf.getvalue()
    return make


@pytest.fixture()
def services_csv_bytes() -> bytes:
    """Three-row services CSV: valid, duplicate folio, unknown crane."""
    headers = ",".join(SERVICES.template_headers)
    base = ["A-1", "2024-01-15", "2024-01-16", "76123456-7", "Transportes Santiago Ltda.", "",
            "Volvo", "FH", "ABCD-12", "Santiago", "Valparaíso", "Grúa Pesada", "150000",
            "GR-001", "12345678-9", "15000", ""]
    dup = list(base)
    unknown_crane = list(base)
    unknown_crane[0] = "A-2"
    unknown_crane[13] = "ZZZ"
    lines = [headers] + [",".join(f'"{v}"' for v in r) for r in (base, dup, unknown_crane)]
    return ("\n".join(lines) + "\n").encode("utf-8-sig")
