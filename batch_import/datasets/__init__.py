"""Registry of importable datasets."""

from .costs import COSTS
from .services import SERVICES
from .spec import DatasetSpec, FieldSpec, FieldType, ReferenceSpec, RuleFinding

__all__ = [
    "DATASETS",
    "get_dataset",
    "DatasetSpec",
    "FieldSpec",
    "FieldType",
    "ReferenceSpec",
    "RuleFinding",
    "SERVICES",
    "COSTS",
]

DATASETS: dict[str, DatasetSpec] = {
    SERVICES.name: SERVICES,
    COSTS.name: COSTS,
}


def get_dataset(name: str) -> DatasetSpec:
    try:
        return DATASETS[name]
    except KeyError:
        raise KeyError(f"unknown dataset: {name!r} (known: {', '.join(sorted(DATASETS))})") from None
