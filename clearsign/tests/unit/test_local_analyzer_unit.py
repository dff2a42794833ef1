"""
Unit tests for the local heuristic analyzer.

Tests cover:
- Insufficient content handling
- Keyword risk table and score penalties
- Document type, date and amount detection
- Determinism
"""

import pytest


INDEMNITY_AND_ARBITRATION = (
    "The Supplier shall indemnify the Customer, and any dispute goes to "
    "binding arbitration in good faith."
)


class TestInsufficientContent:
    """Test short or empty input."""

    @pytest.mark.parametrize("text", [None, "", "Too short to be a contract."])
    def test_short_text_scores_zero(self, text):
        """Test that short text yields score 0 and no risks."""
        from clearsign.services.local_analyzer import LocalHeuristicAnalyzer

        result = LocalHeuristicAnalyzer().analyze(text)

        assert result.score == 0
        assert result.risks == []
        assert result.analysis_source == "local"
        assert "too short" in result.summary

    def test_insufficient_result_is_a_copy(self):
        """Test that callers cannot mutate the shared canned result."""
        from clearsign.services.local_analyzer import INSUFFICIENT_CONTENT, LocalHeuristicAnalyzer

        result = LocalHeuristicAnalyzer().analyze("")
        result.key_details.append("mutated")

        assert INSUFFICIENT_CONTENT.key_details == []


class TestRiskKeywords:
    """Test keyword matching and scoring."""

    def test_indemnify_and_arbitration(self):
        """Test two High risks and score 70."""
        from clearsign.models.schemas import Severity
        from clearsign.services.local_analyzer import LocalHeuristicAnalyzer

        result = LocalHeuristicAnalyzer().analyze(INDEMNITY_AND_ARBITRATION)

        assert len(result.risks) == 2
        assert all(risk.severity == Severity.HIGH for risk in result.risks)
        assert result.score == 70

    def test_risks_follow_table_order(self):
        """Test that risks are reported in keyword table order."""
        from clearsign.models.schemas import RiskCategory
        from clearsign.services.local_analyzer import LocalHeuristicAnalyzer

        text = (
            "Disputes are settled by arbitration. The customer must indemnify "
            "the company for every claim without limitation."
        )
        result = LocalHeuristicAnalyzer().analyze(text)

        assert [r.category for r in result.risks] == [
            RiskCategory.LIABILITY,
            RiskCategory.ARBITRATION,
        ]

    def test_matching_is_case_insensitive(self):
        """Test that upper-case keywords match."""
        from clearsign.services.local_analyzer import LocalHeuristicAnalyzer

        result = LocalHeuristicAnalyzer().analyze(
            "THIS AGREEMENT MAY BE SUBJECT TO TERMINATION AT ANY TIME BY EITHER PARTY."
        )

        assert len(result.risks) == 1
        assert result.score == 90

    def test_no_match_adds_placeholder(self):
        """Test that a document without keywords gets one Low risk."""
        from clearsign.models.schemas import Severity
        from clearsign.services.local_analyzer import LocalHeuristicAnalyzer

        result = LocalHeuristicAnalyzer().analyze(
            "The parties agree to meet every Tuesday to discuss the weekly menu options."
        )

        assert len(result.risks) == 1
        assert result.risks[0].severity == Severity.LOW
        assert result.score == 100

    def test_score_floor_is_zero(self):
        """Test that the score never drops below 0."""
        from clearsign.services.local_analyzer import LocalHeuristicAnalyzer

        text = " ".join([
            "indemnify liability termination arbitration auto-renew",
            "confidential penalty jurisdiction",
        ])
        result = LocalHeuristicAnalyzer(starting_score=50).analyze(text * 2)

        assert result.score == 0
        assert len(result.risks) == 8

    def test_score_is_non_increasing_with_more_matches(self):
        """Test that adding keywords never raises the score."""
        from clearsign.services.local_analyzer import RISK_KEYWORDS, LocalHeuristicAnalyzer

        analyzer = LocalHeuristicAnalyzer()
        base = "This document was prepared for review by both parties involved. "
        previous = analyzer.analyze(base).score

        text = base
        for keyword in RISK_KEYWORDS:
            text += f" Section on {keyword}."
            score = analyzer.analyze(text).score
            assert 0 <= score <= previous
            previous = score

    def test_keyword_table_is_read_only(self):
        """Test that the keyword table cannot be modified."""
        from clearsign.services.local_analyzer import RISK_KEYWORDS

        with pytest.raises(TypeError):
            RISK_KEYWORDS["new"] = RISK_KEYWORDS["penalty"]


class TestDocumentDetails:
    """Test summary and key detail extraction."""

    def test_service_agreement(self, sample_contract_text):
        """Test type, date and amounts on a realistic contract."""
        from clearsign.services.local_analyzer import LocalHeuristicAnalyzer

        result = LocalHeuristicAnalyzer().analyze(sample_contract_text)

        assert result.key_details[0] == "Document type (estimated): Service Agreement"
        assert "Mentioned Date: January 1, 2025" in result.key_details
        assert "Financial Figures: $150, $1,000,000" in result.key_details
        assert result.summary.startswith(
            "Basic Analysis (AI Unavailable): This document appears to be a Service Agreement."
        )

    def test_generic_type_without_figures(self):
        """Test the generic type and the no-figures detail."""
        from clearsign.services.local_analyzer import LocalHeuristicAnalyzer

        result = LocalHeuristicAnalyzer().analyze(
            "Both parties promise to keep the shared garden tidy and water the plants."
        )

        assert result.key_details == [
            "Document type (estimated): General Agreement",
            "No specific dates or financial figures found.",
        ]

    def test_nda_detection(self):
        """Test NDA classification takes priority."""
        from clearsign.services.local_analyzer import classify_document

        assert classify_document("This Non-Disclosure Agreement covers employee data.") == (
            "Non-Disclosure Agreement"
        )

    def test_amounts_are_unique_and_limited(self):
        """Test at most three unique figures in order of appearance."""
        from clearsign.services.local_analyzer import find_amounts

        text = "Fees: $10, $20, $10, $30, $40"

        assert find_amounts(text) == ["$10", "$20", "$30"]


class TestDeterminism:
    """Test that analysis is pure."""

    def test_identical_output_across_calls(self, sample_contract_text):
        """Test that repeated runs serialize identically."""
        from clearsign.services.local_analyzer import LocalHeuristicAnalyzer

        analyzer = LocalHeuristicAnalyzer()
        first = analyzer.analyze(sample_contract_text).model_dump_json()
        second = LocalHeuristicAnalyzer().analyze(sample_contract_text).model_dump_json()

        assert first == second
