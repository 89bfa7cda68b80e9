from __future__ import annotations

from unittest.mock import MagicMock

import psycopg2
import pytest

from batch_import.db.record_store import InMemoryRecordStore, PostgresRecordStore
from batch_import.errors import RecordStoreError
from batch_import.models.resolved_record import ResolvedRecord


def _service_record() -> ResolvedRecord:
    return ResolvedRecord(
        dataset="services",
        row=0,
        natural_key="A-1",
        fields={
            "requestDate": "2024-01-15",
            "serviceDate": "2024-01-16",
            "vehicleBrand": "Volvo",
            "vehicleModel": "FH",
            "licensePlate": "ABCD-12",
            "origin": "Santiago",
            "destination": "Valparaíso",
            "value": 150000.0,
            "operatorCommission": 15000.0,
            "observations": None,
        },
        references={"client": "c-1", "crane": "u-1", "operator": "p-1", "serviceType": "s-1"},
    )


def _cost_record() -> ResolvedRecord:
    return ResolvedRecord(
        dataset="costs",
        row=2,
        natural_key="",
        fields={
            "date": "2024-03-01",
            "amount": 12500.0,
            "description": "Invoice from Copec S.A.",
            "supplierName": "Copec S.A.",
            "supplierTaxId": "995200007",
            "notes": None,
        },
        references={"supplier": "sup-1", "category": "k-2"},
    )


@pytest.fixture()
def connection():
    conn = MagicMock()
    cur = conn.cursor.return_value.__enter__.return_value
    cur.fetchone.return_value = (101,)
    return conn


def _cursor(conn: MagicMock) -> MagicMock:
    return conn.cursor.return_value.__enter__.return_value


def test_service_insert_with_operator_assignment(connection):
    store = PostgresRecordStore(connection, "t-1", created_by="u-9")
    assert store.create_record(_service_record()) == "101"
    cur = _cursor(connection)
    assert cur.execute.call_count == 2
    sql, params = cur.execute.call_args_list[0].args
    assert sql == PostgresRecordStore.INSERT_SERVICE_SQL
    assert params[:5] == ("A-1", "t-1", "u-9", "c-1", "s-1")
    assert params[-1] is None
    op_sql, op_params = cur.execute.call_args_list[1].args
    assert op_sql == PostgresRecordStore.INSERT_SERVICE_OPERATOR_SQL
    assert op_params == (101, "t-1", "p-1", 15000.0)
    connection.commit.assert_called_once()
    connection.rollback.assert_not_called()


def test_cost_insert_notes_carry_tax_id(connection):
    store = PostgresRecordStore(connection, "t-1")
    store.create_record(_cost_record())
    sql, params = _cursor(connection).execute.call_args.args
    assert sql == PostgresRecordStore.INSERT_COST_SQL
    assert params[2] is None  # invoice number not given
    assert params[8:11] == ("k-2", "sup-1", "Copec S.A.")
    assert params[-1] == "RUT: 99.520.000-7"


def test_database_error_rolls_back(connection):
    _cursor(connection).execute.side_effect = psycopg2.IntegrityError("duplicate key value")
    store = PostgresRecordStore(connection, "t-1")
    with pytest.raises(RecordStoreError, match="duplicate key value"):
        store.create_record(_service_record())
    connection.rollback.assert_called_once()
    connection.commit.assert_not_called()


def test_unsupported_dataset(connection):
    store = PostgresRecordStore(connection, "t-1")
    record = ResolvedRecord("payroll", 0, "X", {})
    with pytest.raises(RecordStoreError, match="unsupported dataset"):
        store.create_record(record)


def test_in_memory_store_ids_and_failures():
    store = InMemoryRecordStore(fail_on_rows=[2])
    assert store.create_record(_service_record()) == "mem-1"
    with pytest.raises(RecordStoreError, match="row 2 rejected"):
        store.create_record(_cost_record())
    assert store.calls == 2
    assert [r.row for r in store.records] == [0]


def test_in_memory_store_fail_on_key():
    store = InMemoryRecordStore(fail_on_keys=["A-1"])
    with pytest.raises(RecordStoreError):
        store.create_record(_service_record())
    assert store.records == []
