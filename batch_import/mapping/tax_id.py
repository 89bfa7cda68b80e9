from __future__ import annotations

import re

"""Chilean tax id (RUT) helpers: display formatting and check digit."""

__all__ = [
    "format_tax_id",
    "is_valid_tax_id",
]

_RUT_CHARS_RE = re.compile(r"[^\dkK]")


def format_tax_id(value: str) -> str:
    """``761234567`` -> ``76.123.456-7``; short or odd input is returned as-is."""
    cleaned = _RUT_CHARS_RE.sub("", value)
    if len(cleaned) < 8:
        return value
    body, dv = cleaned[:-1], cleaned[-1].upper()
    return f"{int(body):,}".replace(",", ".") + "-" + dv


def is_valid_tax_id(value: str) -> bool:
    """Modulo-11 check digit validation."""
    cleaned = _RUT_CHARS_RE.sub("", value)
    if len(cleaned) < 8:
        return False
    body, dv = cleaned[:-1], cleaned[-1].upper()
    if not body.isdigit():
        return False
    total = 0
    multiplier = 2
    for digit in reversed(body):
        total += int(digit) * multiplier
        multiplier = 2 if multiplier == 7 else multiplier + 1
    calculated = 11 - (total % 11)
    expected = "0" if calculated == 11 else "K" if calculated == 10 else str(calculated)
    return dv == expected
