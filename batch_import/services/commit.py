from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..models.resolved_record import ResolvedRecord
from ..models.upload_result import BatchStatsAccumulator, UploadResult
from .progress import ProgressSink, Stage, emit, make_event

if TYPE_CHECKING:
    from ..db.record_store import RecordStore

"""Batch commit executor.

Valid records are written through the Record Store in ordered, sequential
batches. Each record is persisted on its own: a rejected record is logged and
counted, and the executor carries on with the next one (no rollback of rows
already written). A short pause separates consecutive batches to keep the
backing store responsive; there is no pause before the first batch or after
the last one.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "BatchMetrics",
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_PAUSE_SECONDS",
    "commit_records",
]

DEFAULT_BATCH_SIZE = 25
DEFAULT_PAUSE_SECONDS = 0.1


@dataclass(frozen=True)
class BatchMetrics:
    """Timing of one committed batch."""
    batch_number: int  # 1-based
    batch_size: int  # records attempted in this batch
    succeeded: int
    elapsed_seconds: float
    start_time: float  # time.time()
    end_time: float


def _message(processed: int, errors: int) -> str:
    if errors == 0:
        return f"{processed} records imported"
    return f"{processed} imported, {errors} failed"


def commit_records(
    records: Iterable[ResolvedRecord],
    store: RecordStore,
    batch_size: int = DEFAULT_BATCH_SIZE,
    pause_seconds: float = DEFAULT_PAUSE_SECONDS,
    on_progress: ProgressSink | None = None,
    on_complete: Callable[[], None] | None = None,
    sleep: Callable[[float], None] = time.sleep,
    metrics_callback: Callable[[BatchMetrics], None] | None = None,
) -> UploadResult:
    """Persist ``records`` in batches and aggregate the outcome.

    Parameters
    ----------
    records: ValidationResult.valid_rows (never re-validated here)
    store: RecordStore receiving one ``create_record`` call per record
    batch_size: records per batch (>= 1)
    pause_seconds: pause between two consecutive batches
    on_progress: receives one event per attempted record (stage ``uploading``)
    on_complete: called once after the last batch (catalog / cache refresh)
    sleep: injectable for tests
    metrics_callback: receives BatchMetrics after every batch
    """
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")

    pending = list(records)
    total = len(pending)
    total_batches = math.ceil(total / batch_size)
    stats = BatchStatsAccumulator()
    inserted: list[str] = []
    failed_keys: list[str] = []
    failed_rows: list[int] = []
    failure_messages: list[str] = []
    done = 0

    for batch_index in range(total_batches):
        if batch_index > 0 and pause_seconds > 0:
            sleep(pause_seconds)
        batch = pending[batch_index * batch_size:(batch_index + 1) * batch_size]
        succeeded = 0
        start_time = time.time()
        for record in batch:
            try:
                record_id = store.create_record(record)
            except Exception as e:  # 1 行の失敗でバッチ全体を止めない
                logger.error(
                    "row %s (%s) rejected by record store: %s",
                    record.row,
                    record.natural_key or "-",
                    e,
                )
                failed_keys.append(record.natural_key)
                failed_rows.append(record.row)
                failure_messages.append(str(e))
            else:
                succeeded += 1
                inserted.append(record.natural_key or str(record_id))
            done += 1
            emit(
                on_progress,
                make_event(
                    done,
                    total,
                    Stage.UPLOADING,
                    current_batch=batch_index + 1,
                    total_batches=total_batches,
                ),
            )
        end_time = time.time()
        stats.add_batch_time(end_time - start_time)
        logger.debug(
            "batch %s/%s committed: %s/%s ok (%.3fs)",
            batch_index + 1,
            total_batches,
            succeeded,
            len(batch),
            end_time - start_time,
        )
        if metrics_callback is not None:
            metrics_callback(
                BatchMetrics(
                    batch_number=batch_index + 1,
                    batch_size=len(batch),
                    succeeded=succeeded,
                    elapsed_seconds=end_time - start_time,
                    start_time=start_time,
                    end_time=end_time,
                )
            )

    n_batches, avg_seconds, p95_seconds = stats.get_stats()
    processed = len(inserted)
    errors = len(failed_rows)
    if on_complete is not None:
        on_complete()
    return UploadResult(
        processed=processed,
        errors=errors,
        message=_message(processed, errors),
        inserted_keys=tuple(inserted),
        failed_keys=tuple(failed_keys),
        failed_rows=tuple(failed_rows),
        failure_messages=tuple(failure_messages),
        total_batches=n_batches,
        avg_batch_seconds=avg_seconds,
        p95_batch_seconds=p95_seconds,
    )
