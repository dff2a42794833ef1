"""
Unit tests for Observability components.

Tests cover:
- Structured logging setup
- Request ID tracking
- Performance logging decorator
"""

import asyncio

import pytest


class TestStructuredLogging:
    """Test structured logging setup."""

    def test_logging_setup_json_format(self):
        """Test that logging can be configured for JSON output."""
        from clearsign.utils.logging import setup_logging
        import structlog

        setup_logging(log_level="INFO", json_format=True)

        assert structlog.get_logger() is not None

    def test_logging_setup_pretty_format(self):
        """Test that logging can be configured for console output."""
        from clearsign.utils.logging import setup_logging
        import structlog

        setup_logging(log_level="DEBUG", json_format=False)

        assert structlog.get_logger() is not None

    def test_noisy_sdk_loggers_are_quieted(self):
        """Test that SDK loggers stay at WARNING or above."""
        import logging
        from clearsign.utils.logging import NOISY_LOGGERS, setup_logging

        setup_logging(log_level="DEBUG", json_format=False)

        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level >= logging.WARNING


class TestRequestContext:
    """Test request ID tracking."""

    def test_set_and_get_request_id(self):
        """Test setting and getting request ID."""
        from clearsign.utils.request_context import get_request_id, set_request_id

        request_id = set_request_id("test-123")

        assert request_id == "test-123"
        assert get_request_id() == "test-123"

    def test_generate_request_id_if_none(self):
        """Test that request ID is generated if not provided."""
        from clearsign.utils.request_context import get_request_id, set_request_id

        request_id = set_request_id()

        assert request_id
        assert get_request_id() == request_id

    def test_malformed_request_id_is_replaced(self):
        """Test that unsafe client IDs are not echoed back."""
        from clearsign.utils.request_context import set_request_id

        request_id = set_request_id("bad id\r\nX-Injected: 1")

        assert "\n" not in request_id
        assert request_id != "bad id\r\nX-Injected: 1"

    def test_bind_task_adds_context(self):
        """Test that the task is bound alongside the request ID."""
        import structlog
        from clearsign.utils.request_context import bind_task, set_request_id

        set_request_id("req-1")
        bind_task("chat")

        context = structlog.contextvars.get_contextvars()
        assert context == {"request_id": "req-1", "task": "chat"}

    def test_clear_request_context(self):
        """Test clearing request context."""
        from clearsign.utils.request_context import (
            clear_request_context,
            get_request_id,
            set_request_id,
        )

        set_request_id("test-123")
        clear_request_context()

        assert get_request_id() is None


class TestPerformanceLogging:
    """Test performance logging decorator."""

    @pytest.mark.asyncio
    async def test_log_execution_time(self):
        """Test that the wrapped coroutine's result is returned."""
        from clearsign.utils.performance import log_execution_time

        @log_execution_time("test_operation")
        async def test_function():
            await asyncio.sleep(0.01)
            return "result"

        assert await test_function() == "result"

    @pytest.mark.asyncio
    async def test_log_execution_time_on_error(self):
        """Test that errors are re-raised."""
        from clearsign.utils.performance import log_execution_time

        @log_execution_time("test_operation")
        async def test_function():
            raise ValueError("Test error")

        with pytest.raises(ValueError):
            await test_function()

    @pytest.mark.asyncio
    async def test_log_execution_time_on_cancel(self):
        """Test that cancellation passes through the decorator."""
        from clearsign.utils.performance import log_execution_time

        @log_execution_time("test_operation")
        async def test_function():
            await asyncio.sleep(10)

        task = asyncio.create_task(test_function())
        await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
