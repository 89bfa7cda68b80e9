from __future__ import annotations

"""Cost category guess from the supplier name."""

__all__ = [
    "categorize_supplier",
]

_CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("combustible", ("combustible", "copec", "shell", "petrobras", "esso", "enex")),
    ("repuestos", ("repuesto",)),
    ("mantenimiento", ("mantención", "mantencion", "mantenimiento", "taller", "automotriz")),
    ("seguros", ("seguro", "póliza", "poliza")),
    ("peajes", ("peaje", "autopista", "tag")),
)


def categorize_supplier(supplier: str | None) -> str | None:
    """Return a category name for well-known supplier keywords, else None."""
    if not supplier:
        return None
    name = supplier.lower()
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(k in name for k in keywords):
            return category
    return None
