"""
Services package for the ClearSign Contract Intelligence API.

Core services for provider calls, the fallback cascade, response
extraction, and local heuristic analysis.
"""

from .api_resilience import get_breaker, get_breaker_status
from .cascade import (
    AttemptOutcome,
    AttemptRecord,
    CascadeOrchestrator,
    CascadeResult,
    CascadeStatus,
)
from .errors import (
    EmptyResponseError,
    ExtractionError,
    ProviderCallError,
    ProviderError,
    ProviderNotConfiguredError,
    ProviderTimeoutError,
    ServiceUnavailableError,
    TranslationUnavailableError,
)
from .local_analyzer import LocalHeuristicAnalyzer
from .providers import (
    GeminiAdapter,
    OpenAIAdapter,
    ProviderAdapter,
    ProviderRequest,
    ProviderResponse,
    build_adapter,
    make_adapter_factory,
)
from .response_extractor import extract_json, extract_text
from .task_registry import Capability, ProviderCandidate, TaskRegistry, TaskType

__all__ = [
    # Resilience
    "get_breaker",
    "get_breaker_status",
    # Cascade
    "AttemptOutcome",
    "AttemptRecord",
    "CascadeOrchestrator",
    "CascadeResult",
    "CascadeStatus",
    # Errors
    "EmptyResponseError",
    "ExtractionError",
    "ProviderCallError",
    "ProviderError",
    "ProviderNotConfiguredError",
    "ProviderTimeoutError",
    "ServiceUnavailableError",
    "TranslationUnavailableError",
    # Analysis
    "LocalHeuristicAnalyzer",
    # Providers
    "GeminiAdapter",
    "OpenAIAdapter",
    "ProviderAdapter",
    "ProviderRequest",
    "ProviderResponse",
    "build_adapter",
    "make_adapter_factory",
    # Registry & extraction
    "extract_json",
    "extract_text",
    "Capability",
    "ProviderCandidate",
    "TaskRegistry",
    "TaskType",
]
