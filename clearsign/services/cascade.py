"""
Cascade Orchestrator - ordered, first-success-wins fallback across providers.

Given a task and a normalized request, candidates from the registry are
tried strictly one after another. Each attempt ends in a typed outcome:

    SKIPPED  - provider not configured (or no time left); not a real attempt
    FAILED   - provider error, timeout, empty output or extraction failure
    SUCCESS  - provider output extracted and validated

The first SUCCESS ends the cascade as DONE. Running out of candidates ends
it as EXHAUSTED and the caller applies its own fallback policy. Failures of
individual candidates never escape this module; caller cancellation does.
"""

import asyncio
from collections import deque
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, Tuple

import structlog
from pydantic import ValidationError

from .errors import ExtractionError, ProviderError, ProviderNotConfiguredError
from .providers import ProviderAdapter, ProviderRequest
from .response_extractor import Validator, extract_json, extract_text
from .task_registry import Capability, ProviderCandidate, TaskRegistry, TaskType

logger = structlog.get_logger()

AdapterFactory = Callable[[ProviderCandidate], ProviderAdapter]


class AttemptOutcome(str, Enum):
    """Outcome of trying one candidate."""
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


class CascadeStatus(str, Enum):
    """Terminal state of a cascade run."""
    DONE = "done"
    EXHAUSTED = "exhausted"


@dataclass
class AttemptRecord:
    """What happened when one candidate was tried."""
    candidate: ProviderCandidate
    outcome: AttemptOutcome
    reason: Optional[str] = None
    latency_ms: float = 0.0


@dataclass
class CascadeResult:
    """Result of a cascade run: the winning value or exhaustion."""
    status: CascadeStatus
    value: Any = None
    source: Optional[str] = None
    attempts: List[AttemptRecord] = field(default_factory=list)

    @property
    def done(self) -> bool:
        return self.status is CascadeStatus.DONE

    @property
    def failed_attempts(self) -> List[AttemptRecord]:
        return [a for a in self.attempts if a.outcome is AttemptOutcome.FAILED]

    @property
    def skipped_attempts(self) -> List[AttemptRecord]:
        return [a for a in self.attempts if a.outcome is AttemptOutcome.SKIPPED]

    def failure_summary(self) -> str:
        """One line per failed candidate, for error details."""
        return "; ".join(
            f"{a.candidate.source}: {a.reason}" for a in self.failed_attempts
        )


class CascadeOrchestrator:
    """
    Drives an ordered list of provider candidates for a task.

    Usage:
        orchestrator = CascadeOrchestrator(registry, adapter_factory)
        result = await orchestrator.run(TaskType.NEGOTIATION, request)
        if result.done:
            negotiation = result.value
    """

    def __init__(
        self,
        registry: TaskRegistry,
        adapter_factory: AdapterFactory,
        attempt_timeout: float = 30.0,
        deadline: float = 90.0,
    ):
        """
        Args:
            registry: Schema & prompt registry supplying candidates and schemas
            adapter_factory: Builds the adapter for a candidate
            attempt_timeout: Time budget for a single provider call in seconds
            deadline: Time budget for the whole cascade in seconds
        """
        self.registry = registry
        self.adapter_factory = adapter_factory
        self.attempt_timeout = attempt_timeout
        self.deadline = deadline

    async def run(
        self,
        task: TaskType,
        request: ProviderRequest,
        candidates: Optional[Sequence[ProviderCandidate]] = None,
        validator: Optional[Validator] = None,
    ) -> CascadeResult:
        """
        Try candidates in order until one succeeds.

        Args:
            task: Task type, selects schema and default candidates
            request: Normalized provider request
            candidates: Explicit candidate order (defaults to the registry's)
            validator: Extra shape check replacing the registry's validation

        Returns:
            CascadeResult, DONE with the coerced value or EXHAUSTED
        """
        if candidates is None:
            candidates = self.registry.get_candidates(task)

        pending = deque(candidates)
        attempts: List[AttemptRecord] = []
        loop = asyncio.get_running_loop()
        started = loop.time()

        while pending:
            candidate = pending.popleft()

            remaining = self.deadline - (loop.time() - started)
            if remaining <= 0:
                logger.warning(
                    "cascade_deadline_exceeded",
                    task=task.value,
                    skipped=1 + len(pending)
                )
                for late in [candidate, *pending]:
                    attempts.append(AttemptRecord(
                        candidate=late,
                        outcome=AttemptOutcome.SKIPPED,
                        reason="cascade deadline exceeded",
                    ))
                break

            record, value = await self._attempt(
                task,
                candidate,
                request,
                timeout=min(self.attempt_timeout, remaining),
                validator=validator,
            )
            attempts.append(record)

            if record.outcome is AttemptOutcome.SUCCESS:
                logger.info(
                    "cascade_done",
                    task=task.value,
                    source=candidate.source,
                    failed=len([a for a in attempts if a.outcome is AttemptOutcome.FAILED]),
                    latency_ms=round(record.latency_ms, 2)
                )
                return CascadeResult(
                    status=CascadeStatus.DONE,
                    value=value,
                    source=candidate.source,
                    attempts=attempts,
                )

        result = CascadeResult(status=CascadeStatus.EXHAUSTED, attempts=attempts)
        logger.warning(
            "cascade_exhausted",
            task=task.value,
            candidates=len(attempts),
            failed=len(result.failed_attempts),
            skipped=len(result.skipped_attempts)
        )
        return result

    async def _attempt(
        self,
        task: TaskType,
        candidate: ProviderCandidate,
        request: ProviderRequest,
        timeout: float,
        validator: Optional[Validator],
    ) -> Tuple[AttemptRecord, Any]:
        adapter = self.adapter_factory(candidate)

        if not adapter.is_configured:
            logger.debug(
                "cascade_attempt_skipped",
                task=task.value,
                candidate=candidate.source,
                reason="not configured"
            )
            return AttemptRecord(candidate, AttemptOutcome.SKIPPED, "not configured"), None

        spec = self.registry.spec(task)
        attempt_request = replace(
            request,
            json_mode=spec.expects_json and Capability.JSON in candidate.capabilities,
        )

        loop = asyncio.get_running_loop()
        started = loop.time()
        try:
            response = await adapter.generate(attempt_request, timeout=timeout)
            value = self._extract(task, response.text, validator)
        except ProviderNotConfiguredError as e:
            return AttemptRecord(candidate, AttemptOutcome.SKIPPED, str(e)), None
        except (ProviderError, ExtractionError) as e:
            reason = f"{type(e).__name__}: {e}"
        except Exception as e:
            # SDK errors outside the adapter's mapped set still only fail this candidate
            reason = f"unexpected {type(e).__name__}: {e}"
        else:
            latency_ms = (loop.time() - started) * 1000
            return AttemptRecord(
                candidate, AttemptOutcome.SUCCESS, latency_ms=latency_ms
            ), value

        latency_ms = (loop.time() - started) * 1000
        logger.warning(
            "cascade_attempt_failed",
            task=task.value,
            candidate=candidate.source,
            reason=reason,
            latency_ms=round(latency_ms, 2)
        )
        return AttemptRecord(
            candidate, AttemptOutcome.FAILED, reason, latency_ms=latency_ms
        ), None

    def _extract(self, task: TaskType, raw: str, validator: Optional[Validator]) -> Any:
        """Run the response extractor and coerce into the task's model."""
        spec = self.registry.spec(task)

        if not spec.expects_json:
            text = extract_text(raw)
            if validator is not None and not validator(text):
                raise ExtractionError("Provider reply rejected by validator")
            return text

        check = validator or (lambda parsed: self.registry.validate(task, parsed))
        parsed = extract_json(raw, check)
        try:
            return self.registry.coerce(task, parsed)
        except ValidationError as e:
            raise ExtractionError(f"Provider output does not match schema: {e}") from e
