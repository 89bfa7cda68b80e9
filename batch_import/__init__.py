"""Batch record ingestion pipeline for the operations-management backend.

Imports delimited text, spreadsheets and electronic-invoice markup into
canonical service / cost records, resolves loose references against a
tenant Reference Catalog and commits validated rows in batches.
"""

__version__ = "0.3.0"
