from __future__ import annotations

import logging
from io import StringIO

import pytest

from batch_import.logging import init as log_init
from batch_import.logging.init import LabeledFormatter, get_logger, log_summary, reset_logging, setup_logging


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


def test_setup_logging_creates_logger_with_labeled_formatter():
    logger = setup_logging()
    assert logger.name == "batch_import"
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, LabeledFormatter)
    assert logger.propagate is False


def test_setup_logging_is_idempotent():
    first = setup_logging()
    second = setup_logging()
    assert first is second
    assert len(second.handlers) == 1


def test_debug_lowers_level():
    logger = setup_logging(debug=True)
    assert logger.level == logging.DEBUG
    assert all(h.level == logging.DEBUG for h in logger.handlers)


def test_labeled_prefixes_and_summary(capsys):
    setup_logging()
    child = logging.getLogger("batch_import.services.validator")
    child.info("info message")
    child.warning("warn message")
    child.error("error message")
    log_summary("file=a.csv rows=1")
    out = capsys.readouterr().out.splitlines()
    assert out == [
        "INFO info message",
        "WARN warn message",
        "ERROR error message",
        "SUMMARY file=a.csv rows=1",
    ]


def test_error_with_exception_includes_traceback():
    stream = StringIO()
    logger = logging.getLogger("test_batch_import_tb")
    logger.handlers[:] = []
    handler = logging.StreamHandler(stream)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    logger.propagate = False
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        logger.exception("failed")
    text = stream.getvalue()
    assert text.startswith("ERROR failed")
    assert "RuntimeError: boom" in text


def test_get_logger_configures_on_first_use():
    assert log_init._logger is None
    logger = get_logger()
    assert logger is setup_logging()


def test_stream_override():
    stream = StringIO()
    setup_logging(stream=stream)
    log_summary("rows=2")
    assert stream.getvalue() == "SUMMARY rows=2\n"
