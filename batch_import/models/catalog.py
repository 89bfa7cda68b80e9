from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

"""Reference Catalog snapshot used to resolve loose external references.

A catalog is loaded once per import session for a single tenant and is
read-only afterwards. Entry order is significant: resolution ties are broken
by the order in which the entries were loaded.
"""

__all__ = [
    "EntityKind",
    "CatalogEntry",
    "ReferenceCatalog",
]


class EntityKind(Enum):
    """Lookup entity kinds held by the catalog."""
    COUNTERPARTY = "counterparty"
    EQUIPMENT_UNIT = "equipment_unit"
    PERSONNEL = "personnel"
    CATEGORY = "category"


@dataclass(frozen=True)
class CatalogEntry:
    """One lookup entity (client, crane, operator, category...)."""
    id: str
    natural_key: str | None  # tax id / plates / employee number / code
    display_name: str
    alternate_keys: tuple[str, ...] = ()  # unit number, client code, ...


@dataclass(frozen=True)
class ReferenceCatalog:
    """Immutable per-session snapshot of the tenant's lookup entities."""
    tenant_id: str
    counterparties: tuple[CatalogEntry, ...] = ()
    equipment_units: tuple[CatalogEntry, ...] = ()
    personnel: tuple[CatalogEntry, ...] = ()
    categories: tuple[CatalogEntry, ...] = ()
    used_natural_keys: frozenset[str] = field(default_factory=frozenset)

    def entries(self, kind: EntityKind) -> tuple[CatalogEntry, ...]:
        """Return the slice of the catalog for ``kind`` in load order."""
        if kind is EntityKind.COUNTERPARTY:
            return self.counterparties
        if kind is EntityKind.EQUIPMENT_UNIT:
            return self.equipment_units
        if kind is EntityKind.PERSONNEL:
            return self.personnel
        return self.categories

    def is_key_used(self, natural_key: str) -> bool:
        return natural_key in self.used_natural_keys

    @staticmethod
    def build(
        tenant_id: str,
        *,
        counterparties: Iterable[CatalogEntry] = (),
        equipment_units: Iterable[CatalogEntry] = (),
        personnel: Iterable[CatalogEntry] = (),
        categories: Iterable[CatalogEntry] = (),
        used_natural_keys: Iterable[str] = (),
    ) -> ReferenceCatalog:
        """Create a catalog from arbitrary iterables (frozen into tuples)."""
        return ReferenceCatalog(
            tenant_id=tenant_id,
            counterparties=tuple(counterparties),
            equipment_units=tuple(equipment_units),
            personnel=tuple(personnel),
            categories=tuple(categories),
            used_natural_keys=frozenset(k.strip() for k in used_natural_keys if k and k.strip()),
        )
