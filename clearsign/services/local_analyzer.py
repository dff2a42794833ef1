"""
Local Heuristic Analyzer - deterministic, provider-free assessment.

Used when every provider candidate fails (or none is configured). It never
performs I/O: the same text always produces the same AnalysisResult, which
keeps it testable without network access.

Risk detection is a static keyword table. Each keyword maps to a fixed
RiskTemplate; nothing in a risk entry is generated from the document.
"""

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple

from ..models.schemas import (
    AnalysisResult,
    Beneficiary,
    Risk,
    RiskCategory,
    Severity,
)

LOCAL_SOURCE = "local"
MIN_TEXT_LENGTH = 50
PREVIEW_LENGTH = 300


@dataclass(frozen=True)
class RiskTemplate:
    """Fixed risk entry contributed by one keyword."""
    severity: Severity
    category: RiskCategory
    clause: str
    explanation: str
    simple_explanation: str
    who_benefits: Beneficiary
    impact: str
    penalty: int
    confidence: int = 40

    def to_risk(self) -> Risk:
        return Risk(
            severity=self.severity,
            category=self.category,
            clause=self.clause,
            explanation=self.explanation,
            simple_explanation=self.simple_explanation,
            who_benefits=self.who_benefits,
            impact=self.impact,
            confidence=self.confidence,
        )


# Insertion order is the order risks are reported in
RISK_KEYWORDS: Mapping[str, RiskTemplate] = MappingProxyType({
    "indemnify": RiskTemplate(
        severity=Severity.HIGH,
        category=RiskCategory.LIABILITY,
        clause="Indemnification obligation",
        explanation=(
            "The document contains an indemnification obligation, which can shift "
            "third-party claims, losses and legal costs onto the indemnifying party."
        ),
        simple_explanation="You may have to pay for the other side's losses or legal bills.",
        who_benefits=Beneficiary.COMPANY,
        impact="Potentially uncapped financial exposure for claims you did not cause.",
        penalty=15,
    ),
    "liability": RiskTemplate(
        severity=Severity.HIGH,
        category=RiskCategory.LIABILITY,
        clause="Liability limitation mentioned",
        explanation=(
            "The document allocates or limits liability. Caps and exclusions may "
            "restrict the remedies available if the other party fails to perform."
        ),
        simple_explanation="If something goes wrong, you may not be able to recover your full losses.",
        who_benefits=Beneficiary.COMPANY,
        impact="Recoverable damages may be capped or excluded entirely.",
        penalty=15,
    ),
    "termination": RiskTemplate(
        severity=Severity.MEDIUM,
        category=RiskCategory.TERMINATION,
        clause="Termination clause present",
        explanation=(
            "The document defines termination rights. Notice periods and grounds "
            "for termination may be unevenly distributed between the parties."
        ),
        simple_explanation="The agreement can be ended under certain conditions, possibly at short notice.",
        who_benefits=Beneficiary.NEUTRAL,
        impact="The relationship could end sooner than expected, or be hard to exit.",
        penalty=10,
    ),
    "arbitration": RiskTemplate(
        severity=Severity.HIGH,
        category=RiskCategory.ARBITRATION,
        clause="Forced arbitration clause",
        explanation=(
            "Disputes are routed to arbitration, which typically waives the right "
            "to a court trial and may restrict class actions and appeals."
        ),
        simple_explanation="You probably cannot take a dispute to court.",
        who_benefits=Beneficiary.COMPANY,
        impact="Limited ability to challenge decisions, with costs and venue set by the contract.",
        penalty=15,
    ),
    "auto-renew": RiskTemplate(
        severity=Severity.MEDIUM,
        category=RiskCategory.AUTO_RENEWAL,
        clause="Automatic renewal",
        explanation=(
            "The agreement renews automatically unless cancelled within a "
            "defined window, extending obligations without affirmative consent."
        ),
        simple_explanation="The contract keeps going, and charging, unless you cancel in time.",
        who_benefits=Beneficiary.COMPANY,
        impact="Missed cancellation windows lock you into another term.",
        penalty=10,
    ),
    "confidential": RiskTemplate(
        severity=Severity.MEDIUM,
        category=RiskCategory.CONFIDENTIALITY,
        clause="Confidentiality requirements",
        explanation=(
            "The document imposes confidentiality obligations whose scope and "
            "duration may outlast the agreement itself."
        ),
        simple_explanation="You must keep certain information secret, possibly for years.",
        who_benefits=Beneficiary.NEUTRAL,
        impact="Disclosure, even accidental, may be treated as a breach.",
        penalty=10,
    ),
    "penalty": RiskTemplate(
        severity=Severity.MEDIUM,
        category=RiskCategory.PAYMENT,
        clause="Penalty clauses detected",
        explanation=(
            "The document provides for penalties or liquidated damages, which "
            "may be triggered by late payment or minor breaches."
        ),
        simple_explanation="You could be charged extra fees if you miss a deadline or obligation.",
        who_benefits=Beneficiary.COMPANY,
        impact="Additional charges on top of the amounts you already owe.",
        penalty=10,
    ),
    "jurisdiction": RiskTemplate(
        severity=Severity.LOW,
        category=RiskCategory.OTHER,
        clause="Specific jurisdiction defined",
        explanation=(
            "The document fixes the governing law or forum, which determines "
            "where and under which rules disputes are resolved."
        ),
        simple_explanation="Any dispute will be handled in a place and under laws chosen in the contract.",
        who_benefits=Beneficiary.NEUTRAL,
        impact="Resolving a dispute may require travel or a lawyer in another region.",
        penalty=10,
    ),
})

NO_MATCH_RISK = Risk(
    severity=Severity.LOW,
    category=RiskCategory.OTHER,
    clause="No obvious risk keywords found",
    explanation="Standard keyword scan returned no matches. A full review is still recommended.",
    simple_explanation="Nothing obviously risky was spotted by the basic scan.",
    who_benefits=Beneficiary.NEUTRAL,
    impact="None identified by the basic scan.",
    confidence=20,
)

# First matching type wins
DOCUMENT_TYPES: Tuple[Tuple[str, re.Pattern], ...] = (
    ("Non-Disclosure Agreement", re.compile(
        r"\bnon-?disclosure\b|\bnda\b|\bconfidentiality agreement\b", re.IGNORECASE)),
    ("Employment Agreement", re.compile(
        r"\bemployment\b|\bemployee\b|\bemployer\b", re.IGNORECASE)),
    ("Service Agreement", re.compile(
        r"\bservice agreement\b|\bservices\b|\bstatement of work\b", re.IGNORECASE)),
    ("Lease Agreement", re.compile(
        r"\blease\b|\blandlord\b|\btenant\b", re.IGNORECASE)),
    ("Sales Agreement", re.compile(
        r"\bpurchase\b|\bsale of goods\b|\bbuyer\b|\bseller\b", re.IGNORECASE)),
)
GENERIC_DOCUMENT_TYPE = "General Agreement"

DATE_PATTERN = re.compile(
    r"\b\d{1,2}[-/]\d{1,2}[-/]\d{2,4}\b"
    r"|\b(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?\s\d{1,2},?\s\d{4}\b",
    re.IGNORECASE,
)
MONEY_PATTERN = re.compile(
    r"[$€£]\s?\d{1,3}(?:,\d{3})*(?:\.\d{2})?|\b\d+\s(?:dollars|euros|pounds)\b",
    re.IGNORECASE,
)

INSUFFICIENT_CONTENT = AnalysisResult(
    summary="Document appears to be too short or empty to analyze.",
    key_details=[],
    risks=[],
    score=0,
    analysis_source=LOCAL_SOURCE,
)


def classify_document(text: str) -> str:
    """Coarse document type from characteristic keywords."""
    for label, pattern in DOCUMENT_TYPES:
        if pattern.search(text):
            return label
    return GENERIC_DOCUMENT_TYPE


def find_first_date(text: str) -> Optional[str]:
    match = DATE_PATTERN.search(text)
    return match.group(0) if match else None


def find_amounts(text: str, limit: int = 3) -> List[str]:
    """Unique monetary figures in order of appearance."""
    seen: List[str] = []
    for match in MONEY_PATTERN.finditer(text):
        value = match.group(0)
        if value not in seen:
            seen.append(value)
        if len(seen) == limit:
            break
    return seen


def content_preview(text: str) -> str:
    """First paragraph (or first characters) of the document, whitespace-collapsed."""
    paragraph_end = text.find("\n\n")
    end = paragraph_end if paragraph_end > MIN_TEXT_LENGTH else PREVIEW_LENGTH
    preview = re.sub(r"\s+", " ", text[:end][:PREVIEW_LENGTH]).strip()
    return preview


def match_risk_keywords(text: str) -> List[str]:
    """Keywords from RISK_KEYWORDS present in the text, in table order."""
    lowered = text.lower()
    return [keyword for keyword in RISK_KEYWORDS if keyword in lowered]


class LocalHeuristicAnalyzer:
    """
    Keyword-based fallback analyzer.

    Usage:
        analyzer = LocalHeuristicAnalyzer()
        result = analyzer.analyze(document_text)
    """

    def __init__(self, starting_score: int = 100):
        self.starting_score = starting_score

    def analyze(self, text: Optional[str]) -> AnalysisResult:
        """
        Produce a best-effort assessment from raw document text.

        Args:
            text: Document text, possibly None or empty

        Returns:
            AnalysisResult tagged with analysis_source "local"
        """
        if not text or len(text) < MIN_TEXT_LENGTH:
            return INSUFFICIENT_CONTENT.model_copy(deep=True)

        document_type = classify_document(text)

        details: List[str] = [f"Document type (estimated): {document_type}"]
        first_date = find_first_date(text)
        if first_date:
            details.append(f"Mentioned Date: {first_date}")
        amounts = find_amounts(text)
        if amounts:
            details.append(f"Financial Figures: {', '.join(amounts)}")
        if not first_date and not amounts:
            details.append("No specific dates or financial figures found.")

        matched = match_risk_keywords(text)
        score = self.starting_score
        risks: List[Risk] = []
        for keyword in matched:
            template = RISK_KEYWORDS[keyword]
            risks.append(template.to_risk())
            score -= template.penalty

        if not risks:
            risks.append(NO_MATCH_RISK.model_copy(deep=True))

        summary = (
            f"Basic Analysis (AI Unavailable): This document appears to be a "
            f"{document_type}. Content Preview: {content_preview(text)}..."
        )

        return AnalysisResult(
            summary=summary,
            key_details=details,
            risks=risks,
            score=max(0, score),
            analysis_source=LOCAL_SOURCE,
        )
