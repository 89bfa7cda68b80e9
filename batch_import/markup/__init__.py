from .extractor import MarkupData, extract_rows, parse_markup
from .schemas import SCHEMAS, FieldMapping, MarkupSchema, detect_structure

__all__ = [
    "SCHEMAS",
    "FieldMapping",
    "MarkupData",
    "MarkupSchema",
    "detect_structure",
    "extract_rows",
    "parse_markup",
]
