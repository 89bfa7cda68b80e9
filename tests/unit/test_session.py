from __future__ import annotations

import pytest

from batch_import.errors import SessionStateError
from batch_import.models.resolved_record import ResolvedRecord
from batch_import.models.session import SessionState
from batch_import.models.upload_result import UploadResult
from batch_import.models.validation import ValidationResult
from batch_import.services.session import (
    begin_committing,
    begin_parsing,
    begin_validating,
    fail_to_idle,
    finish,
    mark_ready,
    new_session,
    reset,
)

VALID = ValidationResult(total_rows=1, issues=(), valid_rows=(ResolvedRecord("services", 0, "A-1", {}),))


def _ready():
    s = begin_parsing(new_session("t-1", "services"), "a.csv")
    return mark_ready(begin_validating(s), VALID)


def test_happy_path_to_completed():
    s = _ready()
    assert s.state is SessionState.READY_TO_COMMIT
    assert s.file_name == "a.csv"
    s = begin_committing(s)
    s = finish(s, UploadResult(processed=1, errors=0, message="1 records imported"))
    assert s.state is SessionState.COMPLETED
    assert s.is_terminal


def test_partial_failure_state():
    s = finish(begin_committing(_ready()), UploadResult(processed=0, errors=1, message="0 imported, 1 failed"))
    assert s.state is SessionState.PARTIALLY_FAILED


def test_transitions_return_new_values():
    idle = new_session("t-1", "services")
    parsing = begin_parsing(idle, "a.csv")
    assert idle.state is SessionState.IDLE
    assert parsing is not idle


def test_fatal_error_returns_to_idle_with_error():
    s = fail_to_idle(begin_parsing(new_session("t-1", "services"), "a.csv"), "file is empty")
    assert s.state is SessionState.IDLE
    assert s.error == "file is empty"
    assert s.file_name == "a.csv"


@pytest.mark.parametrize(
    "move",
    [
        lambda s: begin_validating(s),
        lambda s: mark_ready(s, VALID),
        lambda s: begin_committing(s),
        lambda s: finish(s, UploadResult(0, 0, "")),
        lambda s: fail_to_idle(s, "x"),
    ],
)
def test_illegal_moves_from_idle(move):
    with pytest.raises(SessionStateError):
        move(new_session("t-1", "services"))


def test_commit_requires_valid_rows():
    s = begin_validating(begin_parsing(new_session("t-1", "services"), "a.csv"))
    s = mark_ready(s, ValidationResult(total_rows=1, issues=(), valid_rows=()))
    with pytest.raises(SessionStateError):
        begin_committing(s)


def test_reset_from_any_state():
    s = reset(begin_committing(_ready()))
    assert s.state is SessionState.IDLE
    assert s.validation is None and s.file_name is None
    assert s.tenant_id == "t-1"
