from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord
from ..models.upload_result import UploadResult
from ..models.validation import ValidationIssue

"""Error log generation & buffering.

- JSON Lines, fixed schema (no extra keys)
- one ``logs/errors-YYYYMMDD-HHMMSS.log`` (UTC) per run, created on first flush
- records are buffered and written in one go by flush()
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for error records. Flush writes JSON Lines.

    シリアル実行前提のためスレッド安全性は不要。
    """
    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir or LOGS_DIR

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def add_issues(self, file: str, issues: Iterable[ValidationIssue]) -> None:
        """Buffer validation issues (errors and warnings) for ``file``."""
        for issue in issues:
            self.append(ErrorRecord.from_issue(file, issue))

    def add_commit_failures(self, file: str, result: UploadResult) -> None:
        """Buffer Record Store rejections from a commit pass."""
        messages = dict(zip(result.failed_rows, result.failure_messages, strict=False))
        for row in result.failed_rows:
            self.append(
                ErrorRecord.create(
                    file=file,
                    stage="uploading",
                    row=row,
                    error_type="COMMIT_FAILED",
                    message=messages.get(row, "record store rejected the record"),
                )
            )

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records; returns the log path or None when empty."""
        if not self._records:
            return None  # 空の場合はファイルを作らない
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
