"""
Negotiation workflow - suggests a safer rewrite of a risky clause.
"""

from typing import Optional

import structlog

from ..models.schemas import NegotiationResult
from ..services.cascade import CascadeOrchestrator
from ..services.providers import ProviderRequest
from ..services.task_registry import TaskRegistry, TaskType
from ..utils.performance import log_execution_time

logger = structlog.get_logger()

PENDING_SUGGESTION = "Pending expert review. (AI Service temporarily unavailable)"
PENDING_REASON = (
    "The AI service is currently at capacity or unavailable. "
    "Please review this clause manually."
)
PENDING_TIP = (
    "Ask for clarification on the specific terms of this clause "
    "while our system is being updated."
)


def pending_review(clause: str) -> NegotiationResult:
    """Placeholder result echoing the clause when no provider answered."""
    return NegotiationResult(
        original_clause=clause,
        suggested_clause=PENDING_SUGGESTION,
        why_it_is_better=PENDING_REASON,
        negotiation_tip=PENDING_TIP,
    )


class NegotiationWorkflow:
    """
    Usage:
        workflow = NegotiationWorkflow(registry, orchestrator)
        result = await workflow.run("The Company may terminate at any time.")
    """

    def __init__(self, registry: TaskRegistry, orchestrator: CascadeOrchestrator):
        self.registry = registry
        self.orchestrator = orchestrator

    @log_execution_time("negotiation_workflow")
    async def run(
        self,
        clause: str,
        explanation: Optional[str] = None,
        context: Optional[str] = None
    ) -> NegotiationResult:
        """
        Suggest a more balanced version of a clause.

        Args:
            clause: Clause the user considers risky
            explanation: Why the clause is risky
            context: Contract type or context

        Returns:
            NegotiationResult from the first successful provider, or a
            pending-review placeholder
        """
        request = ProviderRequest(
            instruction=self.registry.get_prompt(
                TaskType.NEGOTIATION,
                clause,
                explanation=explanation,
                context=context,
            )
        )

        outcome = await self.orchestrator.run(TaskType.NEGOTIATION, request)
        if outcome.done:
            return outcome.value

        logger.warning(
            "negotiation_pending_review",
            failed_attempts=len(outcome.failed_attempts)
        )
        return pending_review(clause)
