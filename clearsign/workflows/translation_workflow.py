"""
LangGraph workflow for translating an assessment into another language.

Two tiers are tried in order:

1. full_translation - every human-readable string is translated. The reply
   must keep the same number of risks; severity, category, who_benefits,
   confidence, score and analysis_source are always restored from the input.
2. summary_translation - only the summary is translated and the rest of the
   assessment is returned unchanged, marked `isPartial`.

If both tiers are exhausted the workflow raises TranslationUnavailableError.
"""

import json
from typing import Any, List, Optional, TypedDict

import structlog
from langgraph.graph import END, StateGraph

from ..models.schemas import AnalysisResult, TranslationResult
from ..services.cascade import CascadeOrchestrator
from ..services.errors import TranslationUnavailableError
from ..services.providers import ProviderRequest
from ..services.task_registry import TaskRegistry, TaskType
from ..utils.performance import log_execution_time

logger = structlog.get_logger()

PARTIAL_NOTE = "Partial translation (summary only) due to complexity."
EXHAUSTED_MESSAGE = "All providers failed to translate the content."

# Fields a provider is allowed to change on each risk
TRANSLATED_RISK_FIELDS = ("clause", "explanation", "simple_explanation", "impact")


class TranslationState(TypedDict, total=False):
    """
    State schema for the translation workflow.

    Input fields:
        content: Assessment to translate
        target_language: Human language name, e.g. "Spanish"

    Output fields:
        result: TranslationResult from whichever tier succeeded
        failures: Reasons of failed attempts across both tiers
    """
    content: AnalysisResult
    target_language: str
    result: Optional[TranslationResult]
    failures: List[str]


def merge_translation(source: AnalysisResult, translated: TranslationResult) -> TranslationResult:
    """
    Combine translated text with the untranslatable fields of the source.

    Risks are paired by position; the caller guarantees equal counts. Key
    details are only taken over when none were dropped.
    """
    risks = [
        original.model_copy(update={
            field: getattr(translated_risk, field) for field in TRANSLATED_RISK_FIELDS
        })
        for original, translated_risk in zip(source.risks, translated.risks)
    ]
    key_details = translated.key_details
    if len(key_details) != len(source.key_details):
        key_details = source.key_details
    return TranslationResult(
        summary=translated.summary,
        key_details=key_details,
        risks=risks,
        score=source.score,
        analysis_source=source.analysis_source,
        is_partial=False,
    )


def partial_translation(source: AnalysisResult, summary: str) -> TranslationResult:
    """Source assessment with only its summary replaced."""
    data = source.model_dump()
    data.update(summary=summary, is_partial=True, note=PARTIAL_NOTE)
    return TranslationResult.model_validate(data)


class TranslationWorkflow:
    """
    Assessment translation with a summary-only fallback tier.

    Usage:
        workflow = TranslationWorkflow(registry, orchestrator)
        translated = await workflow.run(assessment, "Spanish")
    """

    def __init__(self, registry: TaskRegistry, orchestrator: CascadeOrchestrator):
        self.registry = registry
        self.orchestrator = orchestrator
        self.workflow = self._build_workflow()

    def _build_workflow(self):
        workflow = StateGraph(TranslationState)

        workflow.add_node("full_translation", self._full_translation_node)
        workflow.add_node("summary_translation", self._summary_translation_node)

        workflow.set_entry_point("full_translation")
        workflow.add_conditional_edges(
            "full_translation",
            self._route_after_full,
            {"done": END, "summary": "summary_translation"}
        )
        workflow.add_edge("summary_translation", END)

        return workflow.compile()

    @staticmethod
    def _route_after_full(state: TranslationState) -> str:
        return "done" if state.get("result") is not None else "summary"

    async def _full_translation_node(self, state: TranslationState) -> dict:
        content = state["content"]
        document = json.dumps(
            content.model_dump(mode="json", exclude={"analysis_source"}),
            ensure_ascii=False,
        )
        request = ProviderRequest(
            instruction=self.registry.get_prompt(
                TaskType.TRANSLATION,
                document,
                target_language=state["target_language"],
            )
        )

        def same_shape(parsed: Any) -> bool:
            if not self.registry.validate(TaskType.TRANSLATION, parsed):
                return False
            return len(parsed.get("risks") or []) == len(content.risks)

        outcome = await self.orchestrator.run(
            TaskType.TRANSLATION, request, validator=same_shape
        )
        if not outcome.done:
            return {"result": None, "failures": self._reasons(outcome)}

        return {"result": merge_translation(content, outcome.value)}

    async def _summary_translation_node(self, state: TranslationState) -> dict:
        content = state["content"]
        request = ProviderRequest(
            instruction=self.registry.get_prompt(
                TaskType.SUMMARY_TRANSLATION,
                content.summary,
                target_language=state["target_language"],
            )
        )

        outcome = await self.orchestrator.run(TaskType.SUMMARY_TRANSLATION, request)
        failures = list(state.get("failures") or [])
        if not outcome.done:
            return {"result": None, "failures": failures + self._reasons(outcome)}

        logger.info(
            "translation_partial",
            target_language=state["target_language"],
            source=outcome.source
        )
        return {"result": partial_translation(content, outcome.value.summary)}

    @staticmethod
    def _reasons(outcome) -> List[str]:
        return [f"{a.candidate.source}: {a.reason}" for a in outcome.failed_attempts]

    @log_execution_time("translation_workflow")
    async def run(self, content: AnalysisResult, target_language: str) -> TranslationResult:
        """
        Translate an assessment.

        Args:
            content: Assessment to translate
            target_language: Target language name

        Returns:
            Fully translated result, or a partial one with only the summary
            translated

        Raises:
            TranslationUnavailableError: If both tiers were exhausted
        """
        final_state = await self.workflow.ainvoke({
            "content": content,
            "target_language": target_language,
            "result": None,
            "failures": [],
        })

        result = final_state.get("result")
        if result is None:
            failures = final_state.get("failures") or []
            logger.error(
                "translation_exhausted",
                target_language=target_language,
                failed_attempts=len(failures)
            )
            raise TranslationUnavailableError(
                EXHAUSTED_MESSAGE,
                details="; ".join(failures) or "No translation provider configured",
            )
        return result
