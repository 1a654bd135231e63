"""
Structured logging for the recruiter service.

structlog renders JSON in production and colored console lines in
development. Two context variables travel with every entry: the
``trace_id`` of the HTTP request and the ``session_id`` of the chat
turn being processed, so one conversation can be followed across
requests.

Usage:
    from src.logging_config import get_logger

    logger = get_logger(__name__)
    logger.info("turn_started", status="collecting")
"""

from __future__ import annotations

import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator

import structlog

from src.config import Settings, get_settings

trace_id_var: ContextVar[str] = ContextVar("trace_id", default="")
session_id_var: ContextVar[str] = ContextVar("session_id", default="")

# Libraries that log every request at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "urllib3", "asyncio")


def _add_correlation_ids(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    trace_id = trace_id_var.get()
    if trace_id:
        event_dict["trace_id"] = trace_id
    session_id = session_id_var.get()
    if session_id:
        # An explicit session_id= in the call wins
        event_dict.setdefault("session_id", session_id)
    return event_dict


def generate_trace_id() -> str:
    return uuid.uuid4().hex[:12]


@contextmanager
def bound_session(session_id: str) -> Iterator[None]:
    """Tag every log entry inside the block with ``session_id``."""
    token = session_id_var.set(session_id)
    try:
        yield
    finally:
        session_id_var.reset(token)


def _renderer(settings: Settings) -> structlog.types.Processor:
    if settings.is_production:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=True)


def setup_logging(settings: Settings | None = None) -> None:
    """
    Configure structlog and send stdlib logging (uvicorn, httpx)
    through the same renderer, so every line shares one format.
    """
    settings = settings or get_settings()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _add_correlation_ids,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(settings),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(settings.log_level.upper())

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Named structured logger; pass ``__name__``."""
    return structlog.get_logger(name)
