from __future__ import annotations

import math
import re
import unicodedata
from datetime import date, datetime
from typing import Any

"""Value coercion helpers shared by the parsers and the validator.

All helpers are total: malformed input returns None (or '') instead of
raising, the caller decides whether that is an error.
"""

__all__ = [
    "is_blank",
    "parse_date",
    "parse_number",
    "cell_to_text",
    "normalize_key",
    "fold_text",
]

_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})")
_YMD_SLASH_RE = re.compile(r"^(\d{4})/(\d{1,2})/(\d{1,2})$")
_DMY_RE = re.compile(r"^(\d{1,2})[/.-](\d{1,2})[/.-](\d{4})$")
_NUMBER_CHARS_RE = re.compile(r"[^\d.,-]")
_KEY_STRIP_RE = re.compile(r"[\W_]+")


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip() == ""


def _safe_date(year: int, month: int, day: int) -> str | None:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def parse_date(value: Any) -> str | None:
    """Return ``YYYY-MM-DD`` for a date-like value, None when unparseable.

    Accepted: date / datetime (pandas Timestamp included), ISO strings
    (time part ignored), ``YYYY/MM/DD`` and day-first ``DD/MM/YYYY``
    (also with '-' or '.' separators).
    """
    if is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    m = _ISO_DATE_RE.match(text)
    if m:
        return _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    m = _YMD_SLASH_RE.match(text)
    if m:
        return _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    m = _DMY_RE.match(text)
    if m:
        # 日/月/年 (ラテンアメリカ形式)
        return _safe_date(int(m.group(3)), int(m.group(2)), int(m.group(1)))
    return None


def parse_number(value: Any) -> float | None:
    """Parse a loosely formatted number (currency symbols, separators).

    ``"$150.000.000"`` -> 150000000.0, ``"1,234.50"`` -> 1234.5,
    ``"12,5"`` -> 12.5. Returns None when nothing numeric is left.
    """
    if is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = _NUMBER_CHARS_RE.sub("", str(value))
    if not text or text.strip("-.,") == "":
        return None
    if "," in text and "." in text:
        # 最後に現れた記号を小数点とみなす
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif text.count(".") > 1:
        text = text.replace(".", "")
    elif text.count(",") > 1:
        text = text.replace(",", "")
    elif "," in text:
        if re.fullmatch(r"-?\d{1,3},\d{3}", text):
            text = text.replace(",", "")
        else:
            text = text.replace(",", ".")
    try:
        return float(text)
    except ValueError:
        return None


def cell_to_text(value: Any) -> str:
    """Coerce a spreadsheet cell to its normalized string form.

    Dates become ``YYYY-MM-DD``, integral floats lose the ``.0`` suffix,
    empty / NaN cells become ''.
    """
    if is_blank(value):
        return ""
    if isinstance(value, (datetime, date)):
        return parse_date(value) or ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isinf(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value).strip()


def normalize_key(value: Any) -> str:
    """Natural key normal form: punctuation / whitespace stripped, uppercased.

    ``"76.123.456-7"`` -> ``"761234567"``, ``"gr-001"`` -> ``"GR001"``.
    """
    if is_blank(value):
        return ""
    return _KEY_STRIP_RE.sub("", str(value)).upper()


def fold_text(value: str) -> str:
    """Accent-less, case-folded, whitespace-collapsed form of ``value``."""
    decomposed = unicodedata.normalize("NFKD", value)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return " ".join(stripped.casefold().split())
