"""
Request context management for tracking requests across the application.

The request ID travels in the X-Request-ID header and is bound to the
structlog context, so every log line emitted while serving a request (the
cascade attempts included) carries it.
"""

import re
import uuid
from contextvars import ContextVar
from typing import Optional

import structlog

REQUEST_ID_HEADER = "X-Request-ID"

# Client-supplied IDs are echoed back, so keep them to a safe alphabet
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: Optional[str] = None) -> str:
    """
    Set the request ID for the current context.

    Args:
        request_id: Incoming ID to reuse. A new UUID is generated when it is
            missing or malformed.

    Returns:
        The request ID that was set.
    """
    if not request_id or not _VALID_REQUEST_ID.match(request_id):
        request_id = str(uuid.uuid4())

    request_id_var.set(request_id)

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)

    return request_id


def bind_task(task: str) -> None:
    """Tag subsequent log lines of this request with the task being served."""
    structlog.contextvars.bind_contextvars(task=task)


def clear_request_context():
    """Clear the request context at end of request."""
    request_id_var.set(None)
    structlog.contextvars.clear_contextvars()
