from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass

from ..datasets.costs import COSTS
from ..datasets.spec import FieldType
from ..errors import FatalParseError
from ..mapping.values import parse_date, parse_number
from ..models.row_data import RowData
from ..services.progress import ProgressSink, Stage, emit, make_event
from .categorize import categorize_supplier
from .schemas import FieldMapping, MarkupSchema, detect_structure, local_name

"""Markup extractor: cost documents (DTE / gastos / facturas / other XML) -> rows.

Every extracted row carries all canonical cost fields (missing ones as '')
so header validation always passes and absent values are reported per row by
the validator. Extraction itself never fails on content:

- malformed numbers become 0
- unparseable dates keep their raw text
- missing description -> "Invoice from <supplier>"
- missing category -> guessed from the supplier name
"""

__all__ = [
    "MarkupData",
    "decode_markup",
    "extract_rows",
    "parse_markup",
]


@dataclass
class MarkupData:
    structure: MarkupSchema
    headers: list[str]  # canonical cost fields
    rows: list[RowData]


def decode_markup(data: bytes) -> str:
    for encoding in ("utf-8-sig", "latin-1"):
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise FatalParseError("could not decode markup content")  # pragma: no cover - latin-1 never fails


def _find(element: ET.Element, path: tuple[str, ...]) -> ET.Element | None:
    # 各段で最初に一致した子孫要素を辿る
    current = element
    for part in path:
        parent = current
        found = next((el for el in parent.iter() if el is not parent and local_name(el.tag) == part), None)
        if found is None:
            return None
        current = found
    return current


def _coerce(text: str, ftype: FieldType) -> object:
    if ftype is FieldType.NUMBER:
        number = parse_number(text)
        return 0.0 if number is None else number
    if ftype is FieldType.DATE:
        return parse_date(text) or text
    if ftype is FieldType.UPPER:
        return text.upper()
    return text


def _extract_item(element: ET.Element, fields: tuple[FieldMapping, ...]) -> dict[str, object]:
    values: dict[str, object] = {name: "" for name in COSTS.field_names}
    for mapping in fields:
        node = _find(element, mapping.path)
        text = "".join(node.itertext()).strip() if node is not None else ""
        if text:
            values[mapping.target] = _coerce(text, mapping.type)

    supplier = str(values.get("supplierName") or "")
    if not values["description"] and supplier:
        values["description"] = f"Invoice from {supplier}"
    if not values["category"]:
        values["category"] = categorize_supplier(supplier) or ""
    return values


def extract_rows(root: ET.Element, structure: MarkupSchema) -> list[RowData]:
    items = [el for el in root.iter() if local_name(el.tag) == structure.item_tag]
    return [
        RowData(row_number=index, values=_extract_item(item, structure.fields))
        for index, item in enumerate(items)
    ]


def parse_markup(data: bytes, on_progress: ProgressSink | None = None) -> MarkupData:
    """Parse a markup document into canonical cost rows.

    Raises:
        FatalParseError: empty input or malformed markup.
    """
    emit(on_progress, make_event(0, 100, Stage.PARSING))
    text = decode_markup(data)
    if not text.strip():
        raise FatalParseError("file is empty")
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise FatalParseError(f"malformed markup: {e}") from e

    structure = detect_structure(root)
    rows = extract_rows(root, structure)
    emit(on_progress, make_event(100, 100, Stage.PARSING))
    return MarkupData(structure=structure, headers=list(COSTS.field_names), rows=rows)
