from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..datasets import get_dataset
from ..errors import FatalParseError, HeaderValidationError, SessionStateError
from ..logging.error_log import ErrorLogBuffer
from ..markup.extractor import parse_markup
from ..models.catalog import ReferenceCatalog
from ..models.config_models import ImportConfig
from ..models.error_record import ErrorRecord
from ..models.row_data import RowData
from ..models.session import ImportSession
from ..tabular.reader import InputKind, detect_kind, parse_tabular
from .commit import BatchMetrics, commit_records
from .progress import ProgressSink
from .resolver import default_policies
from .session import begin_committing, begin_parsing, begin_validating, fail_to_idle, finish, mark_ready
from .validator import validate_rows

if TYPE_CHECKING:
    from ..db.record_store import RecordStore

"""Session-level orchestration of one import.

validate_file():  idle -> parsing -> validating -> ready_to_commit
                  (fatal parse / header failure -> idle, error on the session)
commit_session(): ready_to_commit -> committing -> completed | partially_failed

The caller owns the ImportSession value and gets a new one back from every
step. Issues and commit failures are also buffered into the ErrorLogBuffer
when one is given.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "ParsedInput",
    "parse_input",
    "validate_file",
    "commit_session",
]


@dataclass
class ParsedInput:
    kind: InputKind
    headers: list[str]
    rows: Iterable[RowData]
    structure: str | None = None  # markup schema name


def parse_input(file_name: str, data: bytes, on_progress: ProgressSink | None = None) -> ParsedInput:
    """Dispatch to the tabular parser or the markup extractor."""
    kind = detect_kind(file_name, data)
    if kind is InputKind.MARKUP:
        markup = parse_markup(data, on_progress)
        logger.debug("markup structure detected: %s (%s items)", markup.structure.name, len(markup.rows))
        return ParsedInput(kind, markup.headers, markup.rows, markup.structure.name)
    tabular = parse_tabular(data, kind, on_progress)
    return ParsedInput(kind, tabular.headers, tabular.rows)


def validate_file(
    session: ImportSession,
    file_name: str,
    data: bytes,
    catalog: ReferenceCatalog,
    config: ImportConfig,
    on_progress: ProgressSink | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> ImportSession:
    """Parse and validate ``data``; returns the session in ready_to_commit or idle."""
    session = begin_parsing(session, file_name)
    started = time.perf_counter()
    try:
        parsed = parse_input(file_name, data, on_progress)
    except FatalParseError as e:
        logger.error("parse failed file=%s: %s", file_name, e)
        if error_log is not None:
            error_log.append(ErrorRecord.create(file_name, "parsing", -1, "FATAL_PARSE", str(e)))
        return fail_to_idle(session, str(e))

    session = begin_validating(session)
    dataset = get_dataset(session.dataset)
    policies = default_policies(config.reference_defaults)
    try:
        result = validate_rows(parsed.headers, parsed.rows, dataset, catalog, policies, on_progress)
    except HeaderValidationError as e:
        logger.error("header check failed file=%s: %s", file_name, e)
        if error_log is not None:
            error_log.add_issues(file_name, e.issues)
        return fail_to_idle(session, str(e), e.issues)

    if error_log is not None:
        error_log.add_issues(file_name, result.issues)
    logger.info(
        "validated file=%s rows=%s valid=%s errors=%s warnings=%s (%.2fs)",
        file_name,
        result.total_rows,
        result.valid_count,
        result.error_count,
        result.warning_count,
        time.perf_counter() - started,
    )
    return mark_ready(session, result)


def commit_session(
    session: ImportSession,
    store: RecordStore,
    config: ImportConfig,
    on_progress: ProgressSink | None = None,
    on_complete: Callable[[], None] | None = None,
    error_log: ErrorLogBuffer | None = None,
    sleep: Callable[[float], None] = time.sleep,
    metrics_callback: Callable[[BatchMetrics], None] | None = None,
) -> ImportSession:
    """Commit the session's valid rows; returns the session in a terminal state."""
    session = begin_committing(session)
    validation = session.validation
    if validation is None:
        raise SessionStateError("nothing to commit: no valid rows")
    upload = commit_records(
        validation.valid_rows,
        store,
        batch_size=config.batch_size,
        pause_seconds=config.pause_seconds,
        on_progress=on_progress,
        on_complete=on_complete,
        sleep=sleep,
        metrics_callback=metrics_callback,
    )
    if error_log is not None and upload.errors:
        error_log.add_commit_failures(session.file_name or "", upload)
    if upload.success:
        logger.info("import finished: %s", upload.message)
    else:
        logger.warning("import finished with failures: %s", upload.message)
    return finish(session, upload)
