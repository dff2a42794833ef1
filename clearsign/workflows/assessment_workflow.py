"""
LangGraph workflow for contract risk assessment.

Runs the assessment cascade across the configured providers and, when every
candidate fails or none is configured, falls back to the local heuristic
analyzer. The result always names where it came from in `analysis_source`.

Flow:
    START ─┬─> cascade ─┬─> END
           │            └─> local_fallback ─> END
           └────────────────> local_fallback (no usable input)
"""

from typing import List, Optional, TypedDict

import structlog
from langgraph.graph import END, START, StateGraph

from ..models.schemas import AnalysisResult
from ..services.cascade import CascadeOrchestrator
from ..services.local_analyzer import LocalHeuristicAnalyzer
from ..services.providers import ProviderRequest
from ..services.task_registry import Capability, TaskRegistry, TaskType
from ..utils.performance import log_execution_time

logger = structlog.get_logger()


class AssessmentState(TypedDict, total=False):
    """
    State schema for the assessment workflow.

    Input fields:
        text: Decoded document text
        image: Raw image bytes (alternative to text)
        mime_type: MIME type of the image

    Output fields:
        result: Final AnalysisResult
        failures: Reasons of failed cascade attempts
    """
    # Input
    text: Optional[str]
    image: Optional[bytes]
    mime_type: Optional[str]

    # Output
    result: Optional[AnalysisResult]
    failures: List[str]


class AssessmentWorkflow:
    """
    Contract assessment with provider cascade and local fallback.

    Usage:
        workflow = AssessmentWorkflow(registry, orchestrator)
        result = await workflow.run(text=contract_text)
        print(result.score, result.analysis_source)
    """

    def __init__(
        self,
        registry: TaskRegistry,
        orchestrator: CascadeOrchestrator,
        analyzer: Optional[LocalHeuristicAnalyzer] = None
    ):
        self.registry = registry
        self.orchestrator = orchestrator
        self.analyzer = analyzer or LocalHeuristicAnalyzer()
        self.workflow = self._build_workflow()

    def _build_workflow(self):
        workflow = StateGraph(AssessmentState)

        workflow.add_node("cascade", self._cascade_node)
        workflow.add_node("local_fallback", self._local_fallback_node)

        workflow.add_conditional_edges(
            START,
            self._route_input,
            {"cascade": "cascade", "local": "local_fallback"}
        )
        workflow.add_conditional_edges(
            "cascade",
            self._route_after_cascade,
            {"done": END, "fallback": "local_fallback"}
        )
        workflow.add_edge("local_fallback", END)

        return workflow.compile()

    @staticmethod
    def _route_input(state: AssessmentState) -> str:
        if state.get("image") or (state.get("text") or "").strip():
            return "cascade"
        return "local"

    @staticmethod
    def _route_after_cascade(state: AssessmentState) -> str:
        return "done" if state.get("result") is not None else "fallback"

    async def _cascade_node(self, state: AssessmentState) -> dict:
        image = state.get("image")
        text = state.get("text") or ""

        if image:
            request = ProviderRequest(
                instruction=self.registry.get_prompt(TaskType.ASSESSMENT, "", has_image=True),
                binary=image,
                mime_type=state.get("mime_type"),
            )
            candidates = self.registry.get_candidates(
                TaskType.ASSESSMENT, required=[Capability.IMAGE]
            )
        else:
            request = ProviderRequest(
                instruction=self.registry.get_prompt(TaskType.ASSESSMENT, text)
            )
            candidates = self.registry.get_candidates(TaskType.ASSESSMENT)

        outcome = await self.orchestrator.run(
            TaskType.ASSESSMENT, request, candidates=candidates
        )

        if not outcome.done:
            return {
                "result": None,
                "failures": [a.reason for a in outcome.failed_attempts if a.reason],
            }

        result = outcome.value.model_copy(update={"analysis_source": outcome.source})
        return {"result": result, "failures": []}

    async def _local_fallback_node(self, state: AssessmentState) -> dict:
        # Image payloads carry no text for the heuristics to read
        text = None if state.get("image") else state.get("text")
        result = self.analyzer.analyze(text)

        logger.info(
            "assessment_local_fallback",
            score=result.score,
            risks=len(result.risks),
            failed_attempts=len(state.get("failures") or [])
        )
        return {"result": result}

    @log_execution_time("assessment_workflow")
    async def run(
        self,
        text: Optional[str] = None,
        image: Optional[bytes] = None,
        mime_type: Optional[str] = None
    ) -> AnalysisResult:
        """
        Assess a contract.

        Args:
            text: Decoded document text
            image: Raw image bytes, used instead of text when present
            mime_type: MIME type of the image

        Returns:
            AnalysisResult from the first successful provider, or from the
            local analyzer when no provider succeeded
        """
        final_state = await self.workflow.ainvoke({
            "text": text,
            "image": image,
            "mime_type": mime_type,
            "result": None,
            "failures": [],
        })
        return final_state["result"]
