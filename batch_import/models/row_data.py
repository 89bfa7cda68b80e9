from __future__ import annotations

from dataclasses import dataclass
from typing import Any

"""RowData model shared by the parsers and the header normalizer.

The same shape carries both stages of a row before resolution:

- RawRow: ``values`` keyed by the header text found in the input file
- CanonicalRow: ``values`` keyed by canonical field names, ``raw_values``
  keeping the original mapping for error reporting
"""

__all__ = [
    "RowData",
]


@dataclass(frozen=True)
class RowData:
    """Logical representation of a single input record.

    ``row_number`` is the zero-based position among the data rows of the
    input (header line / item order excluded). Validation issues refer to it.
    """
    row_number: int  # 0 = 最初のデータ行
    values: dict[str, Any]  # header (raw or canonical) -> value
    raw_values: dict[str, Any] | None = None  # Original raw mapping for canonical rows

    def get_text(self, key: str) -> str:
        """Return the value for ``key`` as stripped text ('' when absent)."""
        value = self.values.get(key)
        if value is None:
            return ""
        return str(value).strip()
