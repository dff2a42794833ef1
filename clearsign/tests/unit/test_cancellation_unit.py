"""
Unit tests for client-disconnect cancellation.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock


def _request(disconnected):
    request = MagicMock()
    request.url.path = "/api/chat"
    request.is_disconnected = AsyncMock(side_effect=disconnected)
    return request


class TestRunUntilDisconnect:
    """Test cancelling workflow work when the client goes away."""

    @pytest.mark.asyncio
    async def test_returns_result_while_connected(self):
        """Test that work finishing first returns its result."""
        from clearsign.utils.cancellation import run_until_disconnect

        async def work():
            await asyncio.sleep(0.01)
            return "answer"

        request = _request(lambda: False)

        assert await run_until_disconnect(request, work(), poll_interval=0.005) == "answer"

    @pytest.mark.asyncio
    async def test_disconnect_cancels_work(self):
        """Test that a disconnect cancels the work and raises ClientDisconnected."""
        from clearsign.utils.cancellation import ClientDisconnected, run_until_disconnect

        cancelled = asyncio.Event()

        async def work():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        request = _request(lambda: True)

        with pytest.raises(ClientDisconnected):
            await run_until_disconnect(request, work(), poll_interval=0.01)
        assert cancelled.is_set()

    @pytest.mark.asyncio
    async def test_errors_propagate(self):
        """Test that exceptions from the work reach the caller."""
        from clearsign.utils.cancellation import run_until_disconnect

        async def work():
            raise RuntimeError("workflow failed")

        with pytest.raises(RuntimeError, match="workflow failed"):
            await run_until_disconnect(_request(lambda: False), work(), poll_interval=0.01)
