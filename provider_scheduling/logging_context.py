"""Per-request correlation ids for log records.

The API middleware opens a ``request_scope`` around every HTTP request. Any
logger obtained through ``get_request_logger`` then stamps its records with
``request_id``, so a booking request can be followed from the route through
conflict detection, the cascade commit and the background notification task
that runs after the response.

Usage:
    from provider_scheduling.logging_context import get_request_logger, request_scope

    logger = get_request_logger(__name__)
    with request_scope("REQ-abc123"):
        logger.info("Extending booking")  # record.request_id == "REQ-abc123"
"""

import logging
import re
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

OUTSIDE_REQUEST = "-"

# Client-supplied ids end up verbatim in log lines.
_ACCEPTED_ID = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")

_request_id: ContextVar[str] = ContextVar("request_id", default=OUTSIDE_REQUEST)


def new_request_id() -> str:
    return f"REQ-{uuid.uuid4().hex[:12]}"


def accept_request_id(candidate: Optional[str]) -> str:
    """Use a caller's ``X-Request-ID`` when it is a plain token, else mint one."""
    if candidate and _ACCEPTED_ID.match(candidate.strip()):
        return candidate.strip()
    return new_request_id()


def set_request_id(request_id: Optional[str] = None) -> str:
    """Bind ``request_id`` (validated, or freshly minted) to the current context."""
    value = accept_request_id(request_id)
    _request_id.set(value)
    return value


def get_request_id() -> str:
    return _request_id.get()


@contextmanager
def request_scope(request_id: Optional[str] = None) -> Iterator[str]:
    """Bind a request id for the duration of the block, restoring the previous one after."""
    token = _request_id.set(accept_request_id(request_id))
    try:
        yield _request_id.get()
    finally:
        _request_id.reset(token)


class RequestIdFilter(logging.Filter):
    """Copies the bound request id onto each record as ``request_id``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get()  # type: ignore[attr-defined]
        return True


def get_request_logger(name: str) -> logging.Logger:
    """``logging.getLogger(name)`` with a single RequestIdFilter attached."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, RequestIdFilter) for f in logger.filters):
        logger.addFilter(RequestIdFilter())
    return logger
