"""
Pydantic schemas for the ClearSign Contract Intelligence API.

These models define the API request/response structures and the shapes
that provider output must satisfy for each task.
"""

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _clamp_percent(value: Any) -> int:
    """Coerce a numeric value into an integer in [0, 100].

    Anything that is not a finite number raises ValueError so pydantic
    reports it as a validation error.
    """
    if isinstance(value, bool):
        raise ValueError("boolean is not a valid percentage")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{value!r} is not a valid percentage")
    if not math.isfinite(number):
        raise ValueError(f"{value!r} is not a finite percentage")
    number = int(round(number))
    return max(0, min(100, number))


def _match_enum(enum_cls, value: Any):
    """Case-insensitive lookup of an enum member by value."""
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        wanted = value.strip().lower()
        for member in enum_cls:
            if member.value.lower() == wanted:
                return member
    raise ValueError(f"{value!r} is not a valid {enum_cls.__name__}")


class Severity(str, Enum):
    """Risk severity levels."""
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class RiskCategory(str, Enum):
    """Clause categories a risk can belong to."""
    TERMINATION = "Termination"
    PAYMENT = "Payment"
    ARBITRATION = "Arbitration"
    AUTO_RENEWAL = "Auto-renewal"
    LIABILITY = "Liability"
    CONFIDENTIALITY = "Confidentiality"
    OTHER = "Other"


class Beneficiary(str, Enum):
    """Which party a clause favours."""
    USER = "User"
    COMPANY = "Company"
    NEUTRAL = "Neutral"


class Risk(BaseModel):
    """A single risky clause identified in a document."""
    severity: Severity = Field(..., description="High, Medium or Low")
    category: RiskCategory = Field(
        default=RiskCategory.OTHER,
        description="Clause category"
    )
    clause: str = Field(..., min_length=1, description="Quoted clause or clause title")
    explanation: str = Field(..., min_length=1, description="Professional explanation")
    simple_explanation: Optional[str] = Field(
        None,
        description="Plain-language explanation (defaults to explanation)"
    )
    who_benefits: Beneficiary = Field(
        default=Beneficiary.NEUTRAL,
        description="Party favoured by the clause"
    )
    impact: str = Field(default="", description="Practical consequence")
    confidence: int = Field(default=50, ge=0, le=100, description="Confidence 0-100")

    @field_validator("severity", mode="before")
    @classmethod
    def normalize_severity(cls, v: Any) -> Severity:
        return _match_enum(Severity, v)

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v: Any) -> RiskCategory:
        if v is None:
            return RiskCategory.OTHER
        try:
            return _match_enum(RiskCategory, v)
        except ValueError:
            return RiskCategory.OTHER

    @field_validator("who_benefits", mode="before")
    @classmethod
    def normalize_who_benefits(cls, v: Any) -> Beneficiary:
        if v is None:
            return Beneficiary.NEUTRAL
        return _match_enum(Beneficiary, v)

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v: Any) -> int:
        if v is None:
            return 50
        return _clamp_percent(v)

    @model_validator(mode="after")
    def default_simple_explanation(self) -> "Risk":
        if not self.simple_explanation:
            self.simple_explanation = self.explanation
        return self


class AnalysisResult(BaseModel):
    """Structured risk assessment of a document."""
    summary: str = Field(..., min_length=1, description="High-level summary")
    key_details: List[str] = Field(
        default_factory=list,
        description="Crucial details such as parties, dates and amounts"
    )
    risks: List[Risk] = Field(
        default_factory=list,
        description="Identified risks, in document order"
    )
    score: int = Field(..., ge=0, le=100, description="Safety score, 100 = safest")
    analysis_source: Optional[str] = Field(
        None,
        description="Provider candidate or 'local' fallback that produced the result"
    )

    @field_validator("score", mode="before")
    @classmethod
    def clamp_score(cls, v: Any) -> int:
        return _clamp_percent(v)

    @field_validator("key_details", mode="before")
    @classmethod
    def stringify_details(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if not isinstance(v, list):
            raise ValueError("key_details must be a list")
        return [item if isinstance(item, str) else str(item) for item in v]

    @field_validator("risks", mode="before")
    @classmethod
    def risks_not_null(cls, v: Any) -> Any:
        return [] if v is None else v


class TranslationResult(AnalysisResult):
    """An AnalysisResult with its text fields translated."""
    model_config = ConfigDict(populate_by_name=True)

    is_partial: bool = Field(
        default=False,
        alias="isPartial",
        description="True when only the summary could be translated"
    )
    note: Optional[str] = Field(None, description="Explanation for partial results")


class SummaryTranslation(BaseModel):
    """Output shape of the summary-only translation tier."""
    summary: str = Field(..., min_length=1)


class NegotiationResult(BaseModel):
    """A safer rewrite of a clause. All four fields are produced together."""
    original_clause: str = Field(..., min_length=1)
    suggested_clause: str = Field(..., min_length=1)
    why_it_is_better: str = Field(..., min_length=1)
    negotiation_tip: str = Field(..., min_length=1)


class ChatMessage(BaseModel):
    """One turn of a conversation about a document."""
    role: Literal["user", "assistant"]
    content: str


# API-specific request/response models for FastAPI endpoints

class AnalyzeRequest(BaseModel):
    """Request body for document assessment."""
    model_config = ConfigDict(populate_by_name=True)

    text: Optional[str] = Field(None, description="Already-extracted document text")
    base64: Optional[str] = Field(None, description="Base64-encoded document payload")
    mime_type: Optional[str] = Field(
        None,
        alias="mimeType",
        description="MIME type of the base64 payload"
    )


class ChatRequest(BaseModel):
    """Request body for a conversational turn."""
    model_config = ConfigDict(populate_by_name=True)

    messages: List[ChatMessage] = Field(..., description="Conversation so far, oldest first")
    contract_text: str = Field(..., alias="contractText")

    @field_validator("contract_text")
    @classmethod
    def contract_text_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("No contract content available for chat")
        return v

    @field_validator("messages")
    @classmethod
    def last_turn_from_user(cls, v: List[ChatMessage]) -> List[ChatMessage]:
        if not v:
            raise ValueError("At least one message is required")
        if v[-1].role != "user":
            raise ValueError("The last message must come from the user")
        return v


class ChatResponse(BaseModel):
    """Assistant reply to a conversational turn."""
    message: str


class NegotiateRequest(BaseModel):
    """Request body for clause negotiation."""
    clause: str = Field(..., description="Clause the user finds risky")
    explanation: Optional[str] = Field(None, description="Why the clause is risky")
    context: Optional[str] = Field(None, description="Contract type or context")

    @field_validator("clause")
    @classmethod
    def clause_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("No clause provided")
        return v


class TranslateRequest(BaseModel):
    """Request body for translating a prior assessment."""
    model_config = ConfigDict(populate_by_name=True)

    content: AnalysisResult = Field(..., description="Assessment to translate")
    target_language: str = Field(..., alias="targetLanguage", min_length=1)


class ErrorResponse(BaseModel):
    """Standard error response format."""
    error: str = Field(..., description="Error type or code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Any] = Field(None, description="Additional error details")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the error occurred"
    )
