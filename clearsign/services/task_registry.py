"""
Schema & Prompt Registry.

For every task this module holds the ordered provider candidates to try,
the instruction text sent to a provider, and the pydantic model that
provider output must satisfy. Everything here is read-only at request time.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple, Type

from pydantic import BaseModel, ValidationError

from ..config import (
    DEFAULT_ASSESSMENT_GEMINI_MODELS,
    DEFAULT_GEMINI_MODELS,
    DEFAULT_OPENAI_MODELS,
    Settings,
)
from ..models.schemas import (
    AnalysisResult,
    NegotiationResult,
    SummaryTranslation,
    TranslationResult,
)


class TaskType(str, Enum):
    """Tasks served by the cascade."""
    ASSESSMENT = "assessment"
    CHAT = "chat"
    NEGOTIATION = "negotiation"
    TRANSLATION = "translation"
    SUMMARY_TRANSLATION = "summary_translation"


class Capability(str, Enum):
    """What a provider+model pairing can accept or produce."""
    TEXT = "text"
    IMAGE = "image"
    JSON = "json"


@dataclass(frozen=True)
class ProviderCandidate:
    """One (provider, model) pairing considered by the cascade."""
    provider_id: str
    model_id: str
    capabilities: FrozenSet[Capability]

    @property
    def source(self) -> str:
        return f"{self.provider_id}:{self.model_id}"

    def supports(self, required: Iterable[Capability]) -> bool:
        return set(required) <= self.capabilities


@dataclass(frozen=True)
class TaskSpec:
    """Static description of a task."""
    task: TaskType
    required: FrozenSet[Capability]
    schema: Optional[Type[BaseModel]]

    @property
    def expects_json(self) -> bool:
        return self.schema is not None


ALL_CAPABILITIES = frozenset({Capability.TEXT, Capability.IMAGE, Capability.JSON})

# Legacy model ids that predate image input or native JSON output
TEXT_ONLY_MODELS = frozenset({
    "gemini-pro",
    "gemini-1.0-pro",
    "gemini-1.0-pro-001",
    "gemini-1.0-pro-latest",
    "gpt-3.5-turbo",
    "gpt-3.5-turbo-0125",
    "gpt-4",
    "gpt-4-0613",
})
NO_JSON_MODE_MODELS = frozenset({
    "gemini-pro",
    "gemini-1.0-pro",
    "gemini-1.0-pro-001",
    "gemini-1.0-pro-latest",
    "gpt-4",
    "gpt-4-0613",
})


def model_capabilities(model_id: str) -> FrozenSet[Capability]:
    """Capabilities of a model id; anything not listed as legacy has them all."""
    capabilities = set(ALL_CAPABILITIES)
    if model_id in TEXT_ONLY_MODELS:
        capabilities.discard(Capability.IMAGE)
    if model_id in NO_JSON_MODE_MODELS:
        capabilities.discard(Capability.JSON)
    return frozenset(capabilities)

TASK_SPECS: Dict[TaskType, TaskSpec] = {
    TaskType.ASSESSMENT: TaskSpec(
        TaskType.ASSESSMENT, frozenset({Capability.TEXT}), AnalysisResult
    ),
    TaskType.CHAT: TaskSpec(
        TaskType.CHAT, frozenset({Capability.TEXT}), None
    ),
    TaskType.NEGOTIATION: TaskSpec(
        TaskType.NEGOTIATION, frozenset({Capability.TEXT}), NegotiationResult
    ),
    TaskType.TRANSLATION: TaskSpec(
        TaskType.TRANSLATION, frozenset({Capability.TEXT, Capability.JSON}), TranslationResult
    ),
    TaskType.SUMMARY_TRANSLATION: TaskSpec(
        TaskType.SUMMARY_TRANSLATION,
        frozenset({Capability.TEXT, Capability.JSON}),
        SummaryTranslation,
    ),
}


# ═══════════════════════════════════════════════════════════════════════════════
# Instruction Text
# ═══════════════════════════════════════════════════════════════════════════════

ASSESSMENT_INSTRUCTION = """You are an expert legal aide. Analyze the provided contract document and provide a high-quality legal assessment.

Required Output Format (JSON):
{
  "summary": "High-level summary of what this contract is about (2-3 complete sentences).",
  "key_details": [
    "List of 3-5 crucial details (e.g., Parties involved, Effective Date, Payment Terms, Termination conditions)."
  ],
  "risks": [
    {
      "severity": "High" | "Medium" | "Low",
      "category": "Termination" | "Payment" | "Arbitration" | "Auto-renewal" | "Liability" | "Confidentiality" | "Other",
      "clause": "Quote the specific clause or section title",
      "explanation": "Clear legal explanation of why this is risky.",
      "simple_explanation": "Plain English version of the explanation.",
      "who_benefits": "User" | "Company" | "Neutral",
      "impact": "Real-world consequence for the user",
      "confidence": 0-100
    }
  ],
  "score": 0-100 (Integer, 100 = Very Safe/Standard, 0 = Extremely Dangerous)
}

Do NOT use Markdown formatting (like ```json) in the response. Return raw JSON only."""

CHAT_INSTRUCTION = """You are an AI Contract Assistant. You are here to help the user understand their contract.

RULES:
1. ONLY answer questions based on the provided contract text below.
2. If the answer is not in the contract, say: "I'm sorry, I couldn't find information about that in this specific contract."
3. Be concise, professional, and helpful.
4. Use bullet points for lists.
5. Never give legal advice. Always remind the user to consult with a professional.

CONTRACT CONTENT:
\"\"\"
{document}
\"\"\""""

NEGOTIATION_INSTRUCTION = """You are an expert legal negotiator representing the USER.
The user is presented with a contract clause they feel is risky or unfair.

Your Goal:
1. Analyze the original clause.
2. Suggest a "Safer/More Balanced" version that protects the user's interests while remaining professional and realistic.
3. Provide a brief explanation (1-2 sentences) of why the suggestion is better.
4. Suggest a "Counter-Argument" the user can say to the other party.

Return valid JSON only:
{{
  "original_clause": "The original text",
  "suggested_clause": "The improved version",
  "why_it_is_better": "Explanation of protection",
  "negotiation_tip": "What to say to the other party"
}}

Original Clause: "{document}"
Risk Explanation: "{explanation}"
Contract Type/Context: "{context}"

Provide a safer alternative."""

TRANSLATION_INSTRUCTION = """You are a professional legal translator.
Translate the string values in the following JSON into {target_language}.

CRITICAL RULES:
1. Maintain the EXACT same JSON structure and keys.
2. Translate ONLY the values for these keys: "summary", "clause", "explanation", "simple_explanation", "impact", "key_details".
3. Do NOT translate technical keys like "severity", "category", "who_benefits", "score", or "confidence".
4. Return valid JSON only. NO markdown, NO code blocks.

JSON to translate:
{document}"""

SUMMARY_TRANSLATION_INSTRUCTION = """Translate the following contract summary into {target_language}.

Return valid JSON only, in the form {{"summary": "<translated text>"}}.

Summary:
{document}"""


def _assessment_prompt(document: str, has_image: bool = False, **_: Any) -> str:
    if has_image:
        return f"Analyze the contract shown in this image.\n\n{ASSESSMENT_INSTRUCTION}"
    return f"Analyze the following contract text:\n\n{document}\n\n{ASSESSMENT_INSTRUCTION}"


def _chat_prompt(document: str, **_: Any) -> str:
    return CHAT_INSTRUCTION.format(document=document)


def _negotiation_prompt(
    document: str,
    explanation: Optional[str] = None,
    context: Optional[str] = None,
    **_: Any
) -> str:
    return NEGOTIATION_INSTRUCTION.format(
        document=document,
        explanation=explanation or "None provided",
        context=context or "General Agreement",
    )


def _translation_prompt(document: str, target_language: str = "English", **_: Any) -> str:
    return TRANSLATION_INSTRUCTION.format(document=document, target_language=target_language)


def _summary_translation_prompt(document: str, target_language: str = "English", **_: Any) -> str:
    return SUMMARY_TRANSLATION_INSTRUCTION.format(
        document=json.dumps(document, ensure_ascii=False),
        target_language=target_language,
    )


# Translation documents are serialized JSON and must not be cut
TRUNCATED_TASKS = frozenset({TaskType.ASSESSMENT, TaskType.CHAT, TaskType.NEGOTIATION})

PROMPT_BUILDERS = {
    TaskType.ASSESSMENT: _assessment_prompt,
    TaskType.CHAT: _chat_prompt,
    TaskType.NEGOTIATION: _negotiation_prompt,
    TaskType.TRANSLATION: _translation_prompt,
    TaskType.SUMMARY_TRANSLATION: _summary_translation_prompt,
}


class TaskRegistry:
    """
    Per-task candidates, prompts and output validation.

    Candidate order is preference order: the cascade stops at the first
    candidate that succeeds, so cheaper and faster models come first.

    Usage:
        registry = TaskRegistry(settings)
        for candidate in registry.get_candidates(TaskType.CHAT):
            ...
    """

    def __init__(self, settings: Settings):
        self.max_document_chars = settings.max_document_chars

        gemini_models = settings.gemini_models or DEFAULT_GEMINI_MODELS
        assessment_gemini = settings.gemini_models or DEFAULT_ASSESSMENT_GEMINI_MODELS
        openai_models = settings.openai_models or DEFAULT_OPENAI_MODELS

        gemini = [self._candidate("gemini", m) for m in gemini_models]
        gemini_assessment = [self._candidate("gemini", m) for m in assessment_gemini]
        openai_list = [self._candidate("openai", m) for m in openai_models]

        self._candidates: Dict[TaskType, Tuple[ProviderCandidate, ...]] = {
            TaskType.ASSESSMENT: tuple(gemini_assessment + openai_list),
            TaskType.CHAT: tuple(openai_list + gemini),
            TaskType.NEGOTIATION: tuple(openai_list + gemini),
            TaskType.TRANSLATION: tuple(gemini + openai_list),
            TaskType.SUMMARY_TRANSLATION: tuple(gemini + openai_list),
        }

    @staticmethod
    def _candidate(provider_id: str, model_id: str) -> ProviderCandidate:
        return ProviderCandidate(provider_id, model_id, model_capabilities(model_id))

    def spec(self, task: TaskType) -> TaskSpec:
        return TASK_SPECS[task]

    def schema_for(self, task: TaskType) -> Optional[Type[BaseModel]]:
        return TASK_SPECS[task].schema

    def get_candidates(
        self,
        task: TaskType,
        required: Iterable[Capability] = (),
    ) -> Tuple[ProviderCandidate, ...]:
        """
        Get the ordered candidates able to serve a task.

        Args:
            task: Task type
            required: Extra capabilities this particular request needs
                (e.g. IMAGE for an image upload)

        Returns:
            Ordered tuple of candidates, possibly empty
        """
        needed = set(TASK_SPECS[task].required) | set(required)
        return tuple(c for c in self._candidates[task] if c.supports(needed))

    def get_prompt(self, task: TaskType, document: str, **params: Any) -> str:
        """
        Build the instruction text for a task, bound to a document.

        Document text is truncated to the configured maximum length for
        tasks that embed raw document text.
        """
        bounded = document or ""
        if task in TRUNCATED_TASKS:
            bounded = bounded[: self.max_document_chars]
        return PROMPT_BUILDERS[task](bounded, **params)

    def validate(self, task: TaskType, parsed: Any) -> bool:
        """Check that parsed provider output matches the task's shape."""
        schema = TASK_SPECS[task].schema
        if schema is None:
            return isinstance(parsed, str) and bool(parsed.strip())
        if not isinstance(parsed, dict):
            return False
        try:
            schema.model_validate(parsed)
        except ValidationError:
            return False
        return True

    def coerce(self, task: TaskType, parsed: Any) -> Any:
        """
        Convert validated output into the task's model instance.

        Raises:
            ValidationError: If parsed does not match the schema
        """
        schema = TASK_SPECS[task].schema
        if schema is None:
            return parsed.strip()
        return schema.model_validate(parsed)
