from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Protocol

import psycopg2

from ..errors import RecordStoreError
from ..mapping.tax_id import format_tax_id
from ..models.resolved_record import ResolvedRecord

"""Record Stores: persist one ResolvedRecord at a time.

A store raises RecordStoreError (or any exception) for a rejected record; the
commit executor catches it per record and carries on.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "RecordStore",
    "PostgresRecordStore",
    "InMemoryRecordStore",
]


class RecordStore(Protocol):
    def create_record(self, record: ResolvedRecord) -> str: ...


def _join_notes(*parts: str | None) -> str | None:
    joined = " | ".join(p for p in parts if p)
    return joined or None


class PostgresRecordStore:
    """One transaction per record (a failure never rolls back earlier rows)."""

    INSERT_SERVICE_SQL = (
        "INSERT INTO services (folio, tenant_id, created_by, client_id, service_type_id,"
        " vehicle_brand, vehicle_model, vehicle_plates, origin_address, destination_address,"
        " service_date, scheduled_date, subtotal, total, crane_id, operator_id, status, notes)"
        " VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, 'pending', %s)"
        " RETURNING id"
    )
    INSERT_SERVICE_OPERATOR_SQL = (
        "INSERT INTO service_operators (service_id, tenant_id, operator_id, role, commission)"
        " VALUES (%s, %s, %s, 'principal', %s)"
    )
    INSERT_COST_SQL = (
        "INSERT INTO costs (tenant_id, created_by, invoice_number, cost_date, description,"
        " unit_value, quantity, subtotal, tax_rate, tax_amount, discount, total,"
        " catalog_category_id, supplier_id, supplier_name, notes, status)"
        " VALUES (%s, %s, %s, %s, %s, %s, 1, %s, 0, 0, 0, %s, %s, %s, %s, %s, 'draft')"
        " RETURNING id"
    )

    def __init__(self, connection: Any, tenant_id: str, created_by: str | None = None) -> None:
        self.connection = connection
        self.tenant_id = tenant_id
        self.created_by = created_by

    def create_record(self, record: ResolvedRecord) -> str:
        try:
            with self.connection.cursor() as cur:
                if record.dataset == "services":
                    record_id = self._insert_service(cur, record)
                elif record.dataset == "costs":
                    record_id = self._insert_cost(cur, record)
                else:
                    raise RecordStoreError(f"unsupported dataset: {record.dataset}")
            self.connection.commit()
        except psycopg2.Error as e:
            self.connection.rollback()
            raise RecordStoreError(str(e).strip()) from e
        return record_id

    def _insert_service(self, cur: Any, record: ResolvedRecord) -> str:
        f = record.fields
        refs = record.references
        cur.execute(
            self.INSERT_SERVICE_SQL,
            (
                record.natural_key,
                self.tenant_id,
                self.created_by,
                refs.get("client"),
                refs.get("serviceType"),
                f.get("vehicleBrand"),
                f.get("vehicleModel"),
                f.get("licensePlate"),
                f.get("origin"),
                f.get("destination"),
                f.get("serviceDate"),
                f.get("requestDate"),
                f.get("value"),
                f.get("value"),
                refs.get("crane"),
                refs.get("operator"),
                f.get("observations") or None,
            ),
        )
        service_id = cur.fetchone()[0]
        if refs.get("operator"):
            # オペレーター割当 (歩合)
            cur.execute(
                self.INSERT_SERVICE_OPERATOR_SQL,
                (service_id, self.tenant_id, refs["operator"], f.get("operatorCommission")),
            )
        return str(service_id)

    def _insert_cost(self, cur: Any, record: ResolvedRecord) -> str:
        f = record.fields
        refs = record.references
        amount = f.get("amount")
        cur.execute(
            self.INSERT_COST_SQL,
            (
                self.tenant_id,
                self.created_by,
                record.natural_key or None,
                f.get("date"),
                f.get("description"),
                amount,
                amount,
                amount,
                refs.get("category"),
                refs.get("supplier"),
                f.get("supplierName") or record.labels.get("supplier"),
                _join_notes(
                    f.get("notes"),
                    f"RUT: {format_tax_id(f['supplierTaxId'])}" if f.get("supplierTaxId") else None,
                ),
            ),
        )
        return str(cur.fetchone()[0])


class InMemoryRecordStore:
    """Record Store kept in memory (dry runs and tests).

    ``fail_on_rows`` / ``fail_on_keys`` make the store reject specific records
    to exercise partial-failure handling.
    """

    def __init__(self, fail_on_rows: Iterable[int] = (), fail_on_keys: Iterable[str] = ()) -> None:
        self.records: list[ResolvedRecord] = []
        self.ids: list[str] = []
        self.fail_on_rows = set(fail_on_rows)
        self.fail_on_keys = set(fail_on_keys)
        self.calls = 0

    def create_record(self, record: ResolvedRecord) -> str:
        self.calls += 1
        if record.row in self.fail_on_rows or (record.natural_key and record.natural_key in self.fail_on_keys):
            raise RecordStoreError(f"record at row {record.row} rejected")
        record_id = f"mem-{len(self.records) + 1}"
        self.records.append(record)
        self.ids.append(record_id)
        return record_id
