"""
Performance monitoring utilities.
"""

import asyncio
import time
from functools import wraps
from typing import Callable, Optional

import structlog

logger = structlog.get_logger()


def log_execution_time(operation_name: Optional[str] = None):
    """
    Decorator to log execution time of async workflow runs.

    Logs `operation_complete`, `operation_failed` or `operation_cancelled`
    and always re-raises.

    Usage:
        @log_execution_time("chat_workflow")
        async def run(...):
            ...
    """
    def decorator(func: Callable):
        name = operation_name or func.__name__

        @wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.perf_counter()

            def elapsed() -> float:
                return round((time.perf_counter() - start_time) * 1000, 2)

            try:
                result = await func(*args, **kwargs)
            except asyncio.CancelledError:
                logger.info(
                    "operation_cancelled",
                    operation=name,
                    duration_ms=elapsed()
                )
                raise
            except Exception as e:
                logger.error(
                    "operation_failed",
                    operation=name,
                    duration_ms=elapsed(),
                    status="error",
                    error=str(e)
                )
                raise

            logger.info(
                "operation_complete",
                operation=name,
                duration_ms=elapsed(),
                status="success"
            )
            return result

        return wrapper

    return decorator
