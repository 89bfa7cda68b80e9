from __future__ import annotations

from typing import Any

from ..models.catalog import EntityKind
from ..models.validation import Severity
from .spec import DatasetSpec, FieldSpec, FieldType, ReferenceSpec, RuleFinding

"""Dispatch service orders (CSV / spreadsheet batch upload).

Column headers follow the Spanish template distributed to customers; common
English and abbreviated variants are accepted as synonyms.
"""

__all__ = [
    "SERVICES",
]

S = FieldType.STRING
U = FieldType.UPPER


def _amount_rules(values: dict[str, Any]) -> list[RuleFinding]:
    findings: list[RuleFinding] = []
    value = values.get("value")
    commission = values.get("operatorCommission")
    if value is not None and value < 0:
        findings.append(RuleFinding("value", "value must not be negative", value=value))
    if commission is not None and commission < 0:
        findings.append(RuleFinding("operatorCommission", "commission must not be negative", value=commission))
    elif commission is not None and value is not None and commission > value > 0:
        findings.append(
            RuleFinding(
                "operatorCommission",
                f"commission {commission:g} exceeds service value {value:g}",
                Severity.WARNING,
                commission,
            )
        )
    return findings


def _date_order_rule(values: dict[str, Any]) -> list[RuleFinding]:
    requested = values.get("requestDate")
    served = values.get("serviceDate")
    # ISO 形式なので文字列比較で十分
    if requested and served and served < requested:
        return [
            RuleFinding(
                "serviceDate",
                f"service date {served} is before request date {requested}",
                Severity.WARNING,
                served,
            )
        ]
    return []


SERVICES = DatasetSpec(
    name="services",
    title="Servicios",
    file_stem="plantilla_servicios",
    natural_key_field="folio",
    fields=(
        FieldSpec("folio", S, True, True, ("Folio", "FOLIO", "folio", "N° Folio", "Document Number"), width=12),
        FieldSpec("requestDate", FieldType.DATE, True, True,
                  ("Fecha Solicitud", "FECHA SOLICITUD", "Request Date")),
        FieldSpec("serviceDate", FieldType.DATE, True, True,
                  ("Fecha Servicio", "FECHA SERVICIO", "Service Date")),
        FieldSpec("clientRut", S, True, False, ("Cliente RUT", "RUT Cliente", "Client Tax ID"), width=12),
        FieldSpec("clientName", S, True, False, ("Cliente Nombre", "Nombre Cliente", "Client Name"), width=30),
        FieldSpec("clientDepartment", S, False, False,
                  ("Cliente Departamento", "Departamento", "Department"), width=18),
        FieldSpec("vehicleBrand", S, True, True, ("Vehículo Marca", "Marca Vehículo", "Marca", "Vehicle Brand")),
        FieldSpec("vehicleModel", S, True, True, ("Vehículo Modelo", "Modelo Vehículo", "Modelo", "Vehicle Model")),
        FieldSpec("licensePlate", U, True, True, ("Patente", "Placa", "License Plate"), width=10),
        FieldSpec("origin", S, True, True, ("Origen", "Origin"), width=20),
        FieldSpec("destination", S, True, True, ("Destino", "Destination"), width=20),
        FieldSpec("serviceType", S, True, False, ("Tipo Servicio", "Servicio", "Service Type")),
        FieldSpec("value", FieldType.NUMBER, True, True, ("Valor", "Precio", "Value"), width=12),
        FieldSpec("craneLicensePlate", U, True, False, ("Grúa Patente", "Patente Grúa", "Crane Plate"), width=12),
        FieldSpec("operatorRut", S, True, False, ("Operador RUT", "RUT Operador", "Operator ID"), width=12),
        FieldSpec("operatorName", S, False, False,
                  ("Operador Nombre", "Nombre Operador", "Operator Name"), in_template=False),
        FieldSpec("operatorCommission", FieldType.NUMBER, True, False,
                  ("Comisión Operador", "Comision Operador", "Operator Commission")),
        FieldSpec("observations", S, False, False,
                  ("Observaciones", "Notes", "Notas", "Comentarios"), width=35),
    ),
    references=(
        ReferenceSpec("client", EntityKind.COUNTERPARTY, "clientRut", "clientName", True, "client"),
        ReferenceSpec("crane", EntityKind.EQUIPMENT_UNIT, "craneLicensePlate", None, True, "crane"),
        ReferenceSpec("operator", EntityKind.PERSONNEL, "operatorRut", "operatorName", True, "operator"),
        ReferenceSpec("serviceType", EntityKind.CATEGORY, "serviceType", "serviceType", False, "service type"),
    ),
    rules=(_amount_rules, _date_order_rule),
    sample_rows=(
        ("SRV-001", "2024-01-15", "2024-01-16", "76123456-7", "Transportes Santiago Ltda.",
         "Administración", "Mercedes-Benz", "Actros", "ABCD-12", "Santiago Centro",
         "Las Condes", "Grúa Pesada", "150000", "GR-001", "12345678-9", "15000", "Ejemplo"),
        ("SRV-002", "2024-01-17", "2024-01-18", "96987654-3", "Empresa Logística Norte S.A.",
         "Operaciones", "Volvo", "FH", "MNOP-34", "Valparaíso", "Santiago",
         "Grúa Mediana", "85000", "GR-002", "98765432-1", "8500", "Cuidado especial"),
    ),
)
