from __future__ import annotations

import xml.etree.ElementTree as ET

import pytest

from batch_import.datasets import COSTS
from batch_import.errors import FatalParseError
from batch_import.markup import detect_structure, extract_rows, parse_markup
from batch_import.markup.categorize import categorize_supplier

DTE_XML = """<?xml version="1.0" encoding="ISO-8859-1"?>
<EnvioDTE xmlns="http://www.sii.cl/SiiDte">
  <SetDTE>
    <DTE version="1.0">
      <Documento ID="F1">
        <Encabezado>
          <IdDoc><TipoDTE>33</TipoDTE><Folio>1001</Folio><FchEmis>2024-02-01</FchEmis></IdDoc>
          <Emisor><RUTEmisor>99520000-7</RUTEmisor><RznSoc>Copec S.A.</RznSoc></Emisor>
          <Totales><MntNeto>38647</MntNeto><MntTotal>45990</MntTotal></Totales>
        </Encabezado>
      </Documento>
    </DTE>
  </SetDTE>
</EnvioDTE>
"""

GASTOS_XML = """<gastos>
  <gasto><fecha>01/02/2024</fecha><monto>$12.500,00</monto><descripcion>Peaje ruta 68</descripcion>
    <proveedor>Autopista Central</proveedor></gasto>
  <gasto><fecha>ayer</fecha><monto>mucho</monto><descripcion>Algo</descripcion><categoria>Otros</categoria></gasto>
</gastos>
"""

FACTURAS_XML = """<facturas>
  <factura><fecha>2024-03-05</fecha><total>80000</total><concepto>Cambio de aceite</concepto>
    <emisor>Taller Automotriz Sur</emisor><numero>F-88</numero></factura>
</facturas>
"""


def test_dte_schema_with_namespace():
    data = parse_markup(DTE_XML.encode("latin-1"))
    assert data.structure.name == "DTE"
    assert data.headers == COSTS.field_names
    assert len(data.rows) == 1
    values = data.rows[0].values
    assert values["date"] == "2024-02-01"
    assert values["amount"] == 45990.0
    assert values["supplierName"] == "Copec S.A."
    assert values["supplierTaxId"] == "99520000-7"
    assert values["invoiceNumber"] == "1001"
    # 説明なし -> 発行者名から生成, カテゴリは発行者名から推定
    assert values["description"] == "Invoice from Copec S.A."
    assert values["category"] == "combustible"


def test_every_canonical_field_present():
    data = parse_markup(FACTURAS_XML.encode("utf-8"))
    assert set(data.rows[0].values) == set(COSTS.field_names)
    assert data.rows[0].values["notes"] == ""


def test_gastos_schema_coercion_never_raises():
    data = parse_markup(GASTOS_XML.encode("utf-8"))
    assert data.structure.name == "gastos"
    first, second = (r.values for r in data.rows)
    assert first["date"] == "2024-02-01"
    assert first["amount"] == 12500.0
    assert first["category"] == "peajes"
    # 数値にならない -> 0, 日付にならない -> 元の文字列
    assert second["amount"] == 0.0
    assert second["date"] == "ayer"
    assert second["category"] == "Otros"
    assert [r.row_number for r in data.rows] == [0, 1]


def test_facturas_schema():
    data = parse_markup(FACTURAS_XML.encode("utf-8"))
    values = data.rows[0].values
    assert data.structure.name == "facturas"
    assert values["amount"] == 80000.0
    assert values["description"] == "Cambio de aceite"
    assert values["supplierName"] == "Taller Automotriz Sur"
    assert values["invoiceNumber"] == "F-88"
    assert values["category"] == "mantenimiento"


def test_heuristic_item_tag_and_field_roles():
    root = ET.fromstring(
        "<export><meta/><registro><FechaDoc>2024-01-02</FechaDoc><ValorTotal>10</ValorTotal>"
        "<Detalle>Lavado</Detalle><Otro>x</Otro></registro><registro><FechaDoc>2024-01-03</FechaDoc>"
        "</registro></export>"
    )
    structure = detect_structure(root)
    assert structure.name == "auto"
    assert structure.item_tag == "registro"
    assert [(f.path, f.target) for f in structure.fields] == [
        (("FechaDoc",), "date"),
        (("ValorTotal",), "amount"),
        (("Detalle",), "description"),
    ]
    rows = extract_rows(root, structure)
    assert len(rows) == 2
    assert rows[1].values["amount"] == ""  # 欠落値は検証で行エラーになる


def test_heuristic_falls_back_to_first_child_tag():
    root = ET.fromstring("<lista><cargo><fec>2024-01-02</fec><importe>5</importe></cargo><cargo/></lista>")
    structure = detect_structure(root)
    assert structure.item_tag == "cargo"
    assert [f.target for f in structure.fields] == ["date", "amount"]


def test_empty_document_falls_back_to_gastos():
    structure = detect_structure(ET.fromstring("<vacio/>"))
    assert structure.name == "gastos"


def test_malformed_markup_is_fatal():
    with pytest.raises(FatalParseError):
        parse_markup(b"<gastos><gasto></gastos>")
    with pytest.raises(FatalParseError):
        parse_markup(b"   ")


@pytest.mark.parametrize(
    "supplier,expected",
    [
        ("Copec S.A.", "combustible"),
        ("Shell Chile", "combustible"),
        ("Repuestos El Rápido", "repuestos"),
        ("Taller Automotriz Sur", "mantenimiento"),
        ("Seguros Generales", "seguros"),
        ("Autopista Central", "peajes"),
        ("Librería Nacional", None),
        (None, None),
    ],
)
def test_categorize_supplier(supplier, expected):
    assert categorize_supplier(supplier) == expected
