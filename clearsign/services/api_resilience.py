"""
API resilience utilities including circuit breaker pattern.

Each provider+model pairing gets its own breaker so that a model
that keeps failing is skipped quickly by the cascade instead of burning the
request's time budget on calls that will not succeed.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict

from pybreaker import (
    STATE_OPEN,
    CircuitBreaker,
    CircuitBreakerError,
    CircuitBreakerListener,
)
import structlog

from .errors import EmptyResponseError, ServiceUnavailableError

logger = structlog.get_logger()


class LoggingCircuitBreakerListener(CircuitBreakerListener):
    """Circuit breaker listener that logs state changes."""

    def state_change(self, cb, old_state, new_state):
        """Called when circuit breaker changes state."""
        logger.warning(
            "circuit_breaker_state_change",
            breaker=cb.name,
            old_state=str(old_state),
            new_state=str(new_state)
        )

    def failure(self, cb, exc):
        """Called when a function wrapped by the circuit breaker fails."""
        logger.debug(
            "circuit_breaker_failure",
            breaker=cb.name,
            error=str(exc),
            fail_counter=cb.fail_counter
        )


def _new_breaker(name: str, fail_max: int, reset_timeout: int) -> CircuitBreaker:
    # An empty answer says nothing about provider health
    return CircuitBreaker(
        fail_max=fail_max,
        reset_timeout=reset_timeout,
        exclude=[EmptyResponseError],
        name=name,
        listeners=[LoggingCircuitBreakerListener()]
    )


BREAKER_FAIL_MAX = 5
BREAKER_RESET_TIMEOUT = 60

# One breaker per provider+model pairing, keyed by candidate source
# ("gemini:gemini-2.0-flash"). A retired model id must not take down the
# rest of its provider's models.
PROVIDER_BREAKERS: Dict[str, CircuitBreaker] = {}


def get_breaker(source: str) -> CircuitBreaker:
    """Get the breaker for a candidate source, creating it on first use."""
    breaker = PROVIDER_BREAKERS.get(source)
    if breaker is None:
        breaker = _new_breaker(
            source,
            fail_max=BREAKER_FAIL_MAX,
            reset_timeout=BREAKER_RESET_TIMEOUT,
        )
        PROVIDER_BREAKERS[source] = breaker
    return breaker


def _passthrough(value: Any = None) -> Any:
    return value


def _reraise(exc: BaseException) -> None:
    raise exc


def _reset_timeout_elapsed(breaker: CircuitBreaker) -> bool:
    opened_at = breaker._state_storage.opened_at
    if opened_at is None:
        return True
    reset_at = opened_at + timedelta(seconds=breaker.reset_timeout)
    return datetime.now(timezone.utc) >= reset_at


def _unavailable(breaker: CircuitBreaker, detail: str = "") -> ServiceUnavailableError:
    message = f"{breaker.name} service is temporarily unavailable"
    if detail:
        message = f"{message}: {detail}"
    provider_id, _, model_id = (breaker.name or "").partition(":")
    return ServiceUnavailableError(message, provider_id=provider_id, model_id=model_id)


async def call_through_breaker(
    breaker: CircuitBreaker,
    func: Callable[..., Awaitable[Any]],
    *args,
    **kwargs
) -> Any:
    """
    Await func(*args, **kwargs) under the protection of a circuit breaker.

    pybreaker doesn't natively support coroutines, so the call is awaited
    first and its outcome is then replayed through the breaker to update
    its counters. While the breaker is open no call is made at all. Once
    reset_timeout has elapsed the real call is the half-open trial: its
    failure re-opens the breaker and its success closes it.

    Raises:
        ServiceUnavailableError: If the breaker is open, or the failure
            just tripped it
    """
    if breaker.current_state == STATE_OPEN and not _reset_timeout_elapsed(breaker):
        logger.error(
            "circuit_breaker_open",
            breaker=breaker.name,
            message="Service unavailable, circuit breaker open"
        )
        raise _unavailable(breaker)

    try:
        result = await func(*args, **kwargs)
    except Exception as exc:
        try:
            breaker.call(_reraise, exc)
        except CircuitBreakerError:
            logger.error(
                "circuit_breaker_tripped",
                breaker=breaker.name,
                error=str(exc)
            )
            raise _unavailable(breaker, str(exc)) from exc
        raise

    try:
        breaker.call(_passthrough, result)
    except CircuitBreakerError:
        # A concurrent trial re-opened the breaker; this answer still stands
        logger.debug("circuit_breaker_success_not_recorded", breaker=breaker.name)
    return result


def get_breaker_status(breaker: CircuitBreaker) -> dict:
    """
    Get the current status of a circuit breaker.

    Returns:
        Dict with state, fail_count, and other stats
    """
    return {
        "name": breaker.name,
        "state": str(breaker.current_state),
        "fail_counter": breaker.fail_counter,
        "fail_max": breaker.fail_max,
        "reset_timeout": breaker.reset_timeout,
    }
