from __future__ import annotations

import json
import re
from pathlib import Path

from batch_import.logging.error_log import ErrorLogBuffer, ErrorRecord
from batch_import.models.upload_result import UploadResult
from batch_import.models.validation import HEADER_ROW, Severity, ValidationIssue

KEYS = {"timestamp", "file", "stage", "row", "error_type", "message"}


def test_error_record_creation_and_json_line():
    rec = ErrorRecord.create(file="a.csv", stage="validating", row=3, error_type="ROW_ERROR", message="folio: dup")
    data = json.loads(rec.to_json_line())
    assert data["row"] == 3
    assert data["timestamp"].endswith("Z")
    assert set(data) == KEYS


def test_flush_writes_json_lines_and_clears(temp_workdir: Path):
    buf = ErrorLogBuffer()
    buf.add_issues(
        "a.csv",
        [
            ValidationIssue(HEADER_ROW, "headers", "required column missing: value", Severity.ERROR, "value"),
            ValidationIssue(2, "folio", "folio A-1 is duplicated in this file", Severity.ERROR, "A-1"),
            ValidationIssue(4, "serviceType", "service type not given; left empty", Severity.WARNING),
        ],
    )
    path = buf.flush()
    assert re.fullmatch(r"errors-\d{8}-\d{6}\.log", path.name)
    assert path.parent.resolve() == (temp_workdir / "logs").resolve()
    rows = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert [(r["row"], r["error_type"]) for r in rows] == [(-1, "HEADER_ERROR"), (2, "ROW_ERROR"), (4, "ROW_WARNING")]
    assert rows[1]["message"] == "folio: folio A-1 is duplicated in this file"
    assert all(set(r) == KEYS for r in rows)
    assert len(buf) == 0


def test_commit_failures(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path)
    result = UploadResult(
        processed=1,
        errors=2,
        message="1 imported, 2 failed",
        failed_rows=(0, 5),
        failure_messages=("duplicate key", "timeout"),
    )
    buf.add_commit_failures("a.csv", result)
    rows = [json.loads(line) for line in buf.flush().read_text(encoding="utf-8").splitlines()]
    assert [(r["row"], r["stage"], r["message"]) for r in rows] == [
        (0, "uploading", "duplicate key"),
        (5, "uploading", "timeout"),
    ]


def test_empty_flush_creates_no_file(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path / "logs")
    assert buf.flush() is None
    assert not (tmp_path / "logs").exists()


def test_multiple_flushes_append_to_same_file(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path)
    buf.append(ErrorRecord.create("a.csv", "parsing", -1, "FATAL_PARSE", "file is empty"))
    first = buf.flush()
    buf.append(ErrorRecord.create("a.csv", "parsing", -1, "FATAL_PARSE", "again"))
    assert buf.flush() == first
    assert len(first.read_text(encoding="utf-8").splitlines()) == 2


def test_record_from_issue_classification():
    warning = ValidationIssue(3, "category", "cost category not given; left empty", Severity.WARNING)
    rec = ErrorRecord.from_issue("g.xml", warning)
    assert (rec.row, rec.stage, rec.error_type) == (3, "validating", "ROW_WARNING")
    assert rec.message == "category: cost category not given; left empty"
    header = ValidationIssue(HEADER_ROW, "headers", "required column missing: amount", Severity.ERROR, "amount")
    assert ErrorRecord.from_issue("g.csv", header).error_type == "HEADER_ERROR"
