from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

"""ResolvedRecord: a canonical row whose references became internal ids."""

__all__ = [
    "ResolvedRecord",
]


@dataclass(frozen=True)
class ResolvedRecord:
    """Record ready to persist through the Record Store.

    ``fields`` holds coerced business values keyed by canonical field name,
    ``references`` maps reference names (client, crane...) to catalog ids
    (None when an optional reference was left unset by the default policy).
    """
    dataset: str  # services / costs
    row: int  # 元データ行 (0-based)
    natural_key: str  # '' when the dataset allows records without one
    fields: dict[str, Any]
    references: dict[str, str | None] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)  # reference -> matched display name
