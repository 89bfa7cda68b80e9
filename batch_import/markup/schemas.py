from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Callable
from dataclasses import dataclass

from ..datasets.spec import FieldType

"""Known markup layouts for cost documents and the heuristic fallback.

Schemas are checked top to bottom; the first whose discriminator accepts the
set of tag names found in the document wins. When none does, the item element
is guessed and field roles are inferred from the first item's child tags.
"""

__all__ = [
    "FieldMapping",
    "MarkupSchema",
    "SCHEMAS",
    "GASTOS",
    "HEURISTIC_ITEM_TAGS",
    "local_name",
    "tag_names",
    "detect_structure",
]


@dataclass(frozen=True)
class FieldMapping:
    path: tuple[str, ...]  # local tag names below the item element
    target: str  # canonical cost field
    type: FieldType = FieldType.STRING
    required: bool = False


@dataclass(frozen=True)
class MarkupSchema:
    name: str
    discriminator: Callable[[frozenset[str]], bool]
    item_tag: str
    fields: tuple[FieldMapping, ...]


def _has(tag: str) -> Callable[[frozenset[str]], bool]:
    return lambda tags: tag in tags


def _path(text: str) -> tuple[str, ...]:
    return tuple(text.split("/"))


DTE = MarkupSchema(
    name="DTE",  # Documento Tributario Electrónico (SII)
    discriminator=_has("DTE"),
    item_tag="Documento",
    fields=(
        FieldMapping(_path("Encabezado/IdDoc/FchEmis"), "date", FieldType.DATE, True),
        FieldMapping(_path("Encabezado/Totales/MntTotal"), "amount", FieldType.NUMBER, True),
        FieldMapping(_path("Encabezado/Emisor/RznSoc"), "supplierName"),
        FieldMapping(_path("Encabezado/Emisor/RUTEmisor"), "supplierTaxId"),
        FieldMapping(_path("Encabezado/IdDoc/Folio"), "invoiceNumber"),
    ),
)

GASTOS = MarkupSchema(
    name="gastos",
    discriminator=_has("gastos"),
    item_tag="gasto",
    fields=(
        FieldMapping(("fecha",), "date", FieldType.DATE, True),
        FieldMapping(("monto",), "amount", FieldType.NUMBER, True),
        FieldMapping(("descripcion",), "description", FieldType.STRING, True),
        FieldMapping(("proveedor",), "supplierName"),
        FieldMapping(("categoria",), "category"),
    ),
)

FACTURAS = MarkupSchema(
    name="facturas",
    discriminator=_has("facturas"),
    item_tag="factura",
    fields=(
        FieldMapping(("fecha",), "date", FieldType.DATE, True),
        FieldMapping(("total",), "amount", FieldType.NUMBER, True),
        FieldMapping(("concepto",), "description", FieldType.STRING, True),
        FieldMapping(("emisor",), "supplierName"),
        FieldMapping(("numero",), "invoiceNumber"),
    ),
)

SCHEMAS: tuple[MarkupSchema, ...] = (DTE, GASTOS, FACTURAS)

HEURISTIC_ITEM_TAGS = ("item", "row", "record", "entry", "registro", "linea")

# role -> (target, type, keywords matched as substrings of the lowercased tag)
_ROLE_KEYWORDS: tuple[tuple[str, FieldType, tuple[str, ...]], ...] = (
    ("date", FieldType.DATE, ("fecha", "date", "fch", "fec")),
    ("amount", FieldType.NUMBER, ("monto", "amount", "total", "valor", "importe")),
    ("description", FieldType.STRING, ("descripcion", "desc", "concepto", "detalle")),
)


def local_name(tag: str) -> str:
    """Tag name without its ``{namespace}`` prefix."""
    return str(tag or "").split("}", 1)[-1]


def tag_names(root: ET.Element) -> frozenset[str]:
    return frozenset(local_name(el.tag) for el in root.iter())


def _infer_fields(item: ET.Element) -> tuple[FieldMapping, ...]:
    fields: list[FieldMapping] = []
    for child in item:
        name = local_name(child.tag)
        lowered = name.lower()
        for target, ftype, keywords in _ROLE_KEYWORDS:
            if any(k in lowered for k in keywords):
                fields.append(FieldMapping((name,), target, ftype, True))
                break
    return tuple(fields)


def detect_structure(root: ET.Element) -> MarkupSchema:
    """Pick the schema for a parsed document (never fails)."""
    tags = tag_names(root)
    for schema in SCHEMAS:
        if schema.discriminator(tags):
            return schema

    for item_tag in HEURISTIC_ITEM_TAGS:
        if item_tag in tags:
            first = next(el for el in root.iter() if local_name(el.tag) == item_tag)
            return MarkupSchema("auto", _has(item_tag), item_tag, _infer_fields(first))

    children = list(root)
    if children:
        first = children[0]
        item_tag = local_name(first.tag)
        return MarkupSchema("auto", _has(item_tag), item_tag, _infer_fields(first))

    return GASTOS
