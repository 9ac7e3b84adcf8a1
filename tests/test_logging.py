"""Tests for context-aware logging."""

from __future__ import annotations

import logging

import pytest
from rich.logging import RichHandler

from lexground.logging import (
    _ContextFilter,
    candidate_context,
    configure_logging,
    current_context,
    log_exception,
    request_context,
    set_stage,
)


def _record() -> logging.LogRecord:
    return logging.LogRecord("lexground.test", logging.INFO, __file__, 1, "msg", None, None)


def test_filter_injects_request_stage_and_candidate() -> None:
    """It should stamp records with the bound context and reset it afterwards."""

    with request_context(request_id="ret_1", stage="fetch"):
        with candidate_context("https://kenyalaw.org/case/1"):
            record = _record()
            _ContextFilter().filter(record)
            assert record.request_id == "ret_1"
            assert record.stage == "fetch"
            assert record.candidate == "https://kenyalaw.org/case/1"
        set_stage("finish")
        assert current_context()["candidate"] == "-"
        assert current_context()["stage"] == "finish"

    assert current_context() == {"request_id": "-", "stage": "-", "candidate": "-"}


def test_configure_logging_installs_one_handler_and_quiets_clients() -> None:
    """It should replace its own handler on repeated calls."""

    root_level = logging.getLogger().level
    configure_logging("INFO")
    configure_logging("ERROR")

    ours = [h for h in logging.getLogger().handlers if h.get_name() == "lexground"]
    assert len(ours) == 1
    assert isinstance(ours[0], RichHandler)
    assert logging.getLogger().level == logging.ERROR
    assert logging.getLogger("httpx").level == logging.WARNING

    logging.getLogger().removeHandler(ours[0])
    logging.getLogger().setLevel(root_level)


def test_log_exception_includes_bound_context(caplog: pytest.LogCaptureFixture) -> None:
    """It should merge the request context into the logged context."""

    logger = logging.getLogger("lexground.test")
    with caplog.at_level(logging.ERROR, logger="lexground.test"):
        with request_context(request_id="ret_9", stage="propose"):
            try:
                raise RuntimeError("boom")
            except RuntimeError:
                log_exception(logger, "Proposer failed", concept="hearsay")

    assert len(caplog.records) == 1
    message = caplog.records[0].getMessage()
    assert "Proposer failed" in message
    assert "'request_id': 'ret_9'" in message
    assert "'concept': 'hearsay'" in message
    assert caplog.records[0].exc_info is not None
