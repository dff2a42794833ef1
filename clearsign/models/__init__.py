"""
Models package for the ClearSign Contract Intelligence API.

Pydantic schemas for API requests, responses, and provider output validation.
"""

from .schemas import (
    Severity,
    RiskCategory,
    Beneficiary,
    Risk,
    AnalysisResult,
    TranslationResult,
    SummaryTranslation,
    NegotiationResult,
    ChatMessage,
    AnalyzeRequest,
    ChatRequest,
    ChatResponse,
    NegotiateRequest,
    TranslateRequest,
    ErrorResponse,
)

__all__ = [
    "Severity",
    "RiskCategory",
    "Beneficiary",
    "Risk",
    "AnalysisResult",
    "TranslationResult",
    "SummaryTranslation",
    "NegotiationResult",
    "ChatMessage",
    "AnalyzeRequest",
    "ChatRequest",
    "ChatResponse",
    "NegotiateRequest",
    "TranslateRequest",
    "ErrorResponse",
]
