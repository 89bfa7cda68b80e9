from __future__ import annotations

from typing import Any

from ..mapping.tax_id import is_valid_tax_id
from ..models.catalog import EntityKind
from ..models.validation import Severity
from .spec import DatasetSpec, FieldSpec, FieldType, ReferenceSpec, RuleFinding

"""Operating costs (electronic invoices / expense listings).

Rows usually come from the markup extractor, which already emits canonical
field names; the spreadsheet template is offered for manual batches.
"""

__all__ = [
    "COSTS",
]

S = FieldType.STRING


def _positive_amount_rule(values: dict[str, Any]) -> list[RuleFinding]:
    amount = values.get("amount")
    if amount is not None and amount <= 0:
        return [RuleFinding("amount", "amount must be greater than 0", value=amount)]
    return []


def _supplier_tax_id_rule(values: dict[str, Any]) -> list[RuleFinding]:
    tax_id = values.get("supplierTaxId")
    if tax_id and not is_valid_tax_id(tax_id):
        return [RuleFinding("supplierTaxId", f"tax id {tax_id} may be invalid", Severity.WARNING, tax_id)]
    return []


COSTS = DatasetSpec(
    name="costs",
    title="Gastos",
    file_stem="plantilla_gastos",
    natural_key_field="invoiceNumber",
    fields=(
        FieldSpec("date", FieldType.DATE, True, True, ("Fecha", "Fecha Emisión", "Date"), width=12),
        FieldSpec("amount", FieldType.NUMBER, True, True, ("Monto", "Monto Total", "Total", "Amount"), width=12),
        FieldSpec("description", S, True, True,
                  ("Descripción", "Descripcion", "Concepto", "Detalle", "Description"), width=35),
        FieldSpec("supplierName", S, False, False, ("Proveedor", "Razón Social", "Emisor", "Supplier"), width=30),
        FieldSpec("supplierTaxId", S, False, False,
                  ("RUT Proveedor", "Proveedor RUT", "RUT Emisor", "Supplier Tax ID"), width=14),
        FieldSpec("invoiceNumber", S, False, False,
                  ("N° Factura", "Número Factura", "Factura", "Invoice Number"), width=12),
        FieldSpec("category", S, False, False, ("Categoría", "Categoria", "Category"), width=18),
        FieldSpec("notes", S, False, False, ("Notas", "Observaciones", "Notes"), width=35),
    ),
    references=(
        ReferenceSpec("supplier", EntityKind.COUNTERPARTY, "supplierTaxId", "supplierName", False, "supplier"),
        ReferenceSpec("category", EntityKind.CATEGORY, "category", "category", False, "cost category"),
    ),
    rules=(_positive_amount_rule, _supplier_tax_id_rule),
    sample_rows=(
        ("2024-02-01", "45990", "Carga combustible camión grúa", "Copec S.A.", "99.520.000-7",
         "F-10231", "Combustible", ""),
        ("2024-02-03", "120000", "Cambio de neumáticos", "Taller Automotriz Sur", "76.543.210-3",
         "F-88", "Mantenimiento", "Grúa GR-002"),
    ),
)
