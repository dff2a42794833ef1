"""
Contract chat workflow.

Answers the user's latest message grounded in the contract text. The
contract is the fixed system instruction and the conversation is passed as
turns, so providers never confuse the document with what the user said.
"""

from typing import List, Sequence

import structlog

from ..models.schemas import ChatMessage
from ..services.cascade import CascadeOrchestrator
from ..services.providers import ProviderRequest
from ..services.task_registry import TaskRegistry, TaskType
from ..utils.performance import log_execution_time

logger = structlog.get_logger()

FALLBACK_REPLY = (
    "I'm sorry, I'm having trouble connecting to my brain right now. "
    "Please try again in a moment or check your internet connection."
)


class ChatWorkflow:
    """
    Grounded Q&A over a single contract.

    Usage:
        workflow = ChatWorkflow(registry, orchestrator)
        reply = await workflow.run(
            contract_text=text,
            messages=[ChatMessage(role="user", content="Can I cancel early?")]
        )
    """

    def __init__(self, registry: TaskRegistry, orchestrator: CascadeOrchestrator):
        self.registry = registry
        self.orchestrator = orchestrator

    @log_execution_time("chat_workflow")
    async def run(self, contract_text: str, messages: Sequence[ChatMessage]) -> str:
        """
        Reply to the last user message.

        Args:
            contract_text: Document text used as grounding
            messages: Conversation so far, last turn from the user

        Returns:
            Reply text, or a fixed apology when no provider answered
        """
        turns: List[ChatMessage] = list(messages)
        request = ProviderRequest(
            instruction=self.registry.get_prompt(TaskType.CHAT, contract_text),
            turns=turns,
        )

        outcome = await self.orchestrator.run(TaskType.CHAT, request)
        if outcome.done:
            return outcome.value

        logger.warning(
            "chat_fallback_reply",
            turns=len(turns),
            failed_attempts=len(outcome.failed_attempts)
        )
        return FALLBACK_REPLY
