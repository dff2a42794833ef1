"""
Client-disconnect cancellation for long-running workflow calls.

A cascade can spend tens of seconds walking provider candidates. When the
HTTP client goes away the in-flight provider call is cancelled and no
further candidates are tried.
"""

import asyncio
from typing import Awaitable, TypeVar

import structlog
from starlette.requests import Request

logger = structlog.get_logger()

T = TypeVar("T")

# Non-standard status used by proxies for "client closed request"
CLIENT_CLOSED_REQUEST = 499

DISCONNECT_POLL_INTERVAL = 0.5


class ClientDisconnected(Exception):
    """Raised when the client disconnected before the workflow finished."""
    pass


async def run_until_disconnect(
    request: Request,
    work: Awaitable[T],
    poll_interval: float = DISCONNECT_POLL_INTERVAL
) -> T:
    """
    Await `work`, cancelling it if the client disconnects first.

    Args:
        request: Incoming request, polled for disconnection
        work: Coroutine running the workflow
        poll_interval: Seconds between disconnect checks

    Returns:
        The workflow's result

    Raises:
        ClientDisconnected: If the client went away; `work` has been cancelled
    """
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info("client_disconnected", path=request.url.path)
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
                raise ClientDisconnected(request.url.path)
    finally:
        # Cancellation of the handler itself must not leak the task
        if not task.done():
            task.cancel()
