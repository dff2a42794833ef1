"""
Decorators for FastAPI endpoints.

Provides reusable decorators for common patterns like error handling.
"""

import logging
from functools import wraps
from typing import Callable, TypeVar

from fastapi import HTTPException
from pydantic import ValidationError

from .cancellation import ClientDisconnected

logger = logging.getLogger(__name__)

T = TypeVar('T')


def handle_endpoint_errors(error_type: str) -> Callable:
    """
    Decorator for consistent endpoint error handling.

    Wraps async endpoint functions to:
    - Re-raise HTTPException and ClientDisconnected unchanged
    - Convert ValueError (malformed input found past schema validation)
      to a 400 with error "ValidationError"
    - Treat pydantic ValidationError from building internal models as a
      server fault (500), even though it subclasses ValueError
    - Convert other exceptions to 500 HTTPException with structured detail

    Cancellation is not an Exception and passes through untouched.

    Args:
        error_type: Error type string for the 500 response detail

    Example:
        @app.post("/api/negotiate")
        @handle_endpoint_errors("NegotiationError")
        async def negotiate(body: NegotiateRequest):
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except (HTTPException, ClientDisconnected):
                raise
            except ValidationError as e:
                logger.error(
                    f"Invalid internal model in {func.__name__}: {e}",
                    exc_info=True
                )
                raise HTTPException(
                    status_code=500,
                    detail={
                        "error": error_type,
                        "message": str(e)
                    }
                )
            except ValueError as e:
                logger.info(f"Rejected input in {func.__name__}: {e}")
                raise HTTPException(
                    status_code=400,
                    detail={
                        "error": "ValidationError",
                        "message": str(e)
                    }
                )
            except Exception as e:
                logger.error(
                    f"Error in {func.__name__}: {e}",
                    exc_info=True
                )
                raise HTTPException(
                    status_code=500,
                    detail={
                        "error": error_type,
                        "message": str(e)
                    }
                )
        return wrapper
    return decorator
