"""
Integration tests running real workflows behind the API.

Provider adapters are scripted, everything else (registry, cascade,
extraction, local fallback, endpoints) is the production code path.
"""

import json

import pytest
from fastapi.testclient import TestClient

from clearsign.main import app
from clearsign.utils import dependencies
from clearsign.workflows.assessment_workflow import AssessmentWorkflow
from clearsign.workflows.chat_workflow import FALLBACK_REPLY, ChatWorkflow
from clearsign.workflows.negotiation_workflow import PENDING_SUGGESTION, NegotiationWorkflow
from clearsign.workflows.translation_workflow import TranslationWorkflow


@pytest.fixture
def install(registry, make_orchestrator):
    """Install real workflows over a scripted cascade."""
    def build(script):
        orchestrator, factory = make_orchestrator(script)
        app.dependency_overrides[dependencies.get_assessment_workflow] = (
            lambda: AssessmentWorkflow(registry, orchestrator)
        )
        app.dependency_overrides[dependencies.get_chat_workflow] = (
            lambda: ChatWorkflow(registry, orchestrator)
        )
        app.dependency_overrides[dependencies.get_negotiation_workflow] = (
            lambda: NegotiationWorkflow(registry, orchestrator)
        )
        app.dependency_overrides[dependencies.get_translation_workflow] = (
            lambda: TranslationWorkflow(registry, orchestrator)
        )
        return factory

    yield build
    app.dependency_overrides.clear()


@pytest.mark.integration
class TestNoProvidersConfigured:
    """Every task degrades gracefully with zero configured providers."""

    SCRIPT = {
        "gemini:gemini-a": None,
        "gemini:gemini-b": None,
        "openai:gpt-a": None,
    }

    def test_analyze_uses_local_analysis(self, install, sample_contract_text):
        """Test that assessment still answers from the local analyzer."""
        factory = install(self.SCRIPT)
        client = TestClient(app)

        response = client.post("/api/analyze", json={"text": sample_contract_text})

        assert response.status_code == 200
        data = response.json()
        assert data["analysis_source"] == "local"
        assert data["summary"].startswith("Basic Analysis (AI Unavailable)")
        assert all(not adapter.requests for adapter in factory.adapters.values())

    def test_chat_apologizes(self, install):
        """Test the static apology."""
        install(self.SCRIPT)
        client = TestClient(app)

        response = client.post("/api/chat", json={
            "contractText": "Rent is due monthly.",
            "messages": [{"role": "user", "content": "When is rent due?"}],
        })

        assert response.json() == {"message": FALLBACK_REPLY}

    def test_negotiate_pending_review(self, install):
        """Test the pending-review placeholder."""
        install(self.SCRIPT)
        client = TestClient(app)

        response = client.post("/api/negotiate", json={"clause": "No refunds."})

        assert response.status_code == 200
        assert response.json()["suggested_clause"] == PENDING_SUGGESTION

    def test_translate_fails_with_502(self, install, sample_assessment):
        """Test that translation exhaustion is an error."""
        install(self.SCRIPT)
        client = TestClient(app)

        response = client.post("/api/translate", json={
            "content": sample_assessment,
            "targetLanguage": "German",
        })

        assert response.status_code == 502


@pytest.mark.integration
class TestProviderFallback:
    """Later candidates answer when earlier ones fail."""

    def test_analyze_falls_through_to_openai(self, install, sample_assessment):
        """Test that the OpenAI candidate answers after both Gemini models fail."""
        install({
            "gemini:gemini-a": "Sorry, I cannot do that.",
            "openai:gpt-a": "Sure! " + json.dumps(sample_assessment),
        })
        client = TestClient(app)

        response = client.post("/api/analyze", json={"text": "A contract long enough."})

        assert response.status_code == 200
        data = response.json()
        assert data["analysis_source"] == "openai:gpt-a"
        assert data["score"] == 72
