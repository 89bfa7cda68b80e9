"""Collaborators of the pipeline: Reference Catalog sources and Record Stores."""

from .catalog_source import CatalogSource, PostgresCatalogSource, YamlCatalogSource
from .record_store import InMemoryRecordStore, PostgresRecordStore, RecordStore

__all__ = [
    "CatalogSource",
    "PostgresCatalogSource",
    "YamlCatalogSource",
    "RecordStore",
    "PostgresRecordStore",
    "InMemoryRecordStore",
]
