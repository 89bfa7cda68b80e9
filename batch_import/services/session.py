from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace

from ..errors import SessionStateError
from ..models.session import ImportSession, SessionState
from ..models.upload_result import UploadResult
from ..models.validation import ValidationIssue, ValidationResult

"""Import session transitions.

Every function takes the current ImportSession and returns a new one; an
illegal move raises SessionStateError and leaves the caller's value intact.
"""

__all__ = [
    "new_session",
    "begin_parsing",
    "begin_validating",
    "mark_ready",
    "fail_to_idle",
    "begin_committing",
    "finish",
    "reset",
]


def _require(session: ImportSession, action: str, *allowed: SessionState) -> None:
    if session.state not in allowed:
        expected = "/".join(s.value for s in allowed)
        raise SessionStateError(f"cannot {action} in state {session.state.value} (expected {expected})")


def new_session(tenant_id: str, dataset: str) -> ImportSession:
    return ImportSession(tenant_id=tenant_id, dataset=dataset)


def begin_parsing(session: ImportSession, file_name: str) -> ImportSession:
    _require(session, "start parsing", SessionState.IDLE)
    return replace(
        session,
        state=SessionState.PARSING,
        file_name=file_name,
        validation=None,
        upload=None,
        error=None,
        header_issues=(),
    )


def begin_validating(session: ImportSession) -> ImportSession:
    _require(session, "start validation", SessionState.PARSING)
    return replace(session, state=SessionState.VALIDATING)


def mark_ready(session: ImportSession, validation: ValidationResult) -> ImportSession:
    _require(session, "finish validation", SessionState.VALIDATING)
    return replace(session, state=SessionState.READY_TO_COMMIT, validation=validation)


def fail_to_idle(
    session: ImportSession,
    error: str,
    header_issues: Iterable[ValidationIssue] = (),
) -> ImportSession:
    """Fatal parse / header failure: back to idle with the error surfaced."""
    _require(session, "abort", SessionState.PARSING, SessionState.VALIDATING)
    return replace(
        session,
        state=SessionState.IDLE,
        validation=None,
        error=error,
        header_issues=tuple(header_issues),
    )


def begin_committing(session: ImportSession) -> ImportSession:
    _require(session, "commit", SessionState.READY_TO_COMMIT)
    if session.validation is None or session.validation.valid_count == 0:
        raise SessionStateError("nothing to commit: no valid rows")
    return replace(session, state=SessionState.COMMITTING)


def finish(session: ImportSession, upload: UploadResult) -> ImportSession:
    _require(session, "finish commit", SessionState.COMMITTING)
    state = SessionState.COMPLETED if upload.success else SessionState.PARTIALLY_FAILED
    return replace(session, state=state, upload=upload)


def reset(session: ImportSession) -> ImportSession:
    """Back to idle from any state, dropping file / results."""
    return new_session(session.tenant_id, session.dataset)
