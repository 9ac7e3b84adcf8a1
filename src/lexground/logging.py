"""Logging utilities.

Log records carry the retrieval or validation request they belong to, the
pipeline stage, and, inside the candidate fan-out, the candidate URL being
worked on. Worker threads inherit these through ``contextvars``.
"""

from __future__ import annotations

import contextlib
import contextvars
import logging
from typing import Any, Iterator

from rich.logging import RichHandler

_request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("lexground_request_id", default="-")
_stage_var: contextvars.ContextVar[str] = contextvars.ContextVar("lexground_stage", default="-")
_candidate_var: contextvars.ContextVar[str] = contextvars.ContextVar("lexground_candidate", default="-")

_NOISY_LOGGERS = ("httpx", "httpcore", "openai")

_FORMAT = "%(asctime)s %(levelname)s req=%(request_id)s stage=%(stage)s cand=%(candidate)s %(name)s: %(message)s"


class _ContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        record.request_id = _request_id_var.get()  # type: ignore[attr-defined]
        record.stage = _stage_var.get()  # type: ignore[attr-defined]
        record.candidate = _candidate_var.get()  # type: ignore[attr-defined]
        return True


@contextlib.contextmanager
def request_context(*, request_id: str, stage: str | None = None) -> Iterator[None]:
    """Bind a request id (and optionally a stage) for the duration of the block."""

    token_request = _request_id_var.set(request_id)
    token_stage = _stage_var.set(stage or _stage_var.get())
    try:
        yield
    finally:
        _request_id_var.reset(token_request)
        _stage_var.reset(token_stage)


@contextlib.contextmanager
def candidate_context(url: str) -> Iterator[None]:
    """Tag records emitted while one candidate URL is fetched and verified."""

    token = _candidate_var.set(url)
    try:
        yield
    finally:
        _candidate_var.reset(token)


def set_stage(stage: str) -> None:
    _stage_var.set(stage)


def current_context() -> dict[str, str]:
    """Snapshot of the bound request id, stage and candidate."""

    return {
        "request_id": _request_id_var.get(),
        "stage": _stage_var.get(),
        "candidate": _candidate_var.get(),
    }


def configure_logging(level: str = "INFO") -> None:
    """Install a single context-aware rich handler on the root logger.

    Calling it again replaces the handler installed by a previous call, so the
    CLI and tests can reconfigure the level freely. Client libraries stay at
    WARNING unless ``level`` is DEBUG.
    """

    handler = RichHandler(rich_tracebacks=True, show_time=False, show_level=True, show_path=False)
    handler.addFilter(_ContextFilter())
    handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handler.set_name("lexground")

    root = logging.getLogger()
    for h in list(root.handlers):
        if h.get_name() == "lexground":
            root.removeHandler(h)
    root.addHandler(handler)
    root.setLevel(level.upper())

    library_level = logging.DEBUG if level.upper() == "DEBUG" else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_exception(logger: logging.Logger, msg: str, **context: Any) -> None:
    """Log the active exception with the bound request context and any extras."""

    merged = {k: v for k, v in current_context().items() if v != "-"}
    merged.update(context)
    if merged:
        logger.exception("%s | context=%s", msg, merged)
    else:
        logger.exception("%s", msg)
