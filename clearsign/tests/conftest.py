"""
Shared pytest fixtures for clearsign tests.

Provides reusable settings, scripted provider adapters and test data for
unit and integration tests. Nothing here touches the network.
"""

import inspect

import pytest

from clearsign.config import Settings
from clearsign.services.api_resilience import PROVIDER_BREAKERS
from clearsign.services.cascade import CascadeOrchestrator
from clearsign.services.errors import ProviderCallError
from clearsign.services.providers import ProviderResponse
from clearsign.services.task_registry import TaskRegistry


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "unit: marks tests as unit tests")


@pytest.fixture(autouse=True)
def reset_circuit_breakers():
    """Breakers are process-wide; start every test with them closed."""
    for breaker in PROVIDER_BREAKERS.values():
        breaker.close()
    yield
    for breaker in PROVIDER_BREAKERS.values():
        breaker.close()


class ScriptedAdapter:
    """
    Stand-in for a ProviderAdapter whose behaviour is fixed by a test.

    Behaviour is one of:
        str            - returned as the provider's raw text
        exception      - raised from generate()
        async function - awaited with the request; its return value is the text
        None           - adapter reports itself as not configured
    """

    def __init__(self, candidate, behaviour):
        self.candidate = candidate
        self.behaviour = behaviour
        self.requests = []

    @property
    def is_configured(self):
        return self.behaviour is not None

    async def generate(self, request, timeout):
        self.requests.append(request)
        behaviour = self.behaviour
        if isinstance(behaviour, BaseException):
            raise behaviour
        if inspect.iscoroutinefunction(behaviour):
            behaviour = await behaviour(request)
        return ProviderResponse(
            text=behaviour,
            provider_id=self.candidate.provider_id,
            model_id=self.candidate.model_id,
            latency_ms=1.0,
        )


@pytest.fixture
def scripted_factory():
    """
    Build an adapter factory from a {candidate source: behaviour} script.

    Unscripted candidates fail with ProviderCallError. The adapters created
    so far are exposed as `factory.adapters`, keyed by source.
    """
    def build(script):
        adapters = {}

        def factory(candidate):
            if candidate.source not in adapters:
                behaviour = script.get(
                    candidate.source, ProviderCallError("unscripted candidate")
                )
                adapters[candidate.source] = ScriptedAdapter(candidate, behaviour)
            return adapters[candidate.source]

        factory.adapters = adapters
        return factory

    return build


@pytest.fixture
def test_settings():
    """Settings with both providers configured and short time budgets."""
    return Settings(
        gemini_api_key="test-gemini-key",
        openai_api_key="test-openai-key",
        attempt_timeout=1.0,
        cascade_deadline=5.0,
        gemini_models=("gemini-a", "gemini-b"),
        openai_models=("gpt-a",),
        log_json=False,
    )


@pytest.fixture
def registry(test_settings):
    """TaskRegistry over the test settings.

    Assessment and translation try gemini:gemini-a, gemini:gemini-b, then
    openai:gpt-a. Chat and negotiation try openai:gpt-a first.
    """
    return TaskRegistry(test_settings)


@pytest.fixture
def make_orchestrator(registry, scripted_factory):
    """Build a CascadeOrchestrator over a scripted adapter factory."""
    def build(script, attempt_timeout=1.0, deadline=5.0):
        factory = scripted_factory(script)
        orchestrator = CascadeOrchestrator(
            registry,
            factory,
            attempt_timeout=attempt_timeout,
            deadline=deadline,
        )
        return orchestrator, factory

    return build


@pytest.fixture
def sample_contract_text():
    """Sample contract text for testing."""
    return """
SERVICE AGREEMENT

This Agreement is entered into as of January 1, 2025 between:

Party A: Acme Corporation, a Delaware corporation ("Client")
Party B: TechServ Inc., a California corporation ("Provider")

1. PAYMENT TERMS

Payment shall be made within Net 30 days of invoice date. The hourly rate
for services is $150 per hour. Late payment incurs a penalty of 1.5% per month.

2. LIABILITY AND INDEMNIFICATION

Provider's total liability under this Agreement shall not exceed $1,000,000.
Each party shall indemnify the other against third-party claims arising from
its breach of this Agreement.

3. TERMINATION

Either party may terminate this Agreement with 30 days written notice.

4. GOVERNING LAW

This Agreement shall be governed by the laws of the State of Delaware, and the
courts of Delaware shall have exclusive jurisdiction.
"""


@pytest.fixture
def sample_assessment():
    """Provider-shaped assessment payload."""
    return {
        "summary": "A service agreement between Acme and TechServ.",
        "key_details": [
            "Parties: Acme Corporation and TechServ Inc.",
            "Effective Date: January 1, 2025",
        ],
        "risks": [
            {
                "severity": "High",
                "category": "Liability",
                "clause": "2. LIABILITY AND INDEMNIFICATION",
                "explanation": "Mutual indemnification exposes the client to third-party claims.",
                "simple_explanation": "You might pay for their legal problems.",
                "who_benefits": "Company",
                "impact": "Unexpected legal costs.",
                "confidence": 85,
            },
            {
                "severity": "Low",
                "category": "Termination",
                "clause": "3. TERMINATION",
                "explanation": "Either party may terminate on 30 days notice.",
                "simple_explanation": "Either side can end it with a month's notice.",
                "who_benefits": "Neutral",
                "impact": "Service could stop with short notice.",
                "confidence": 70,
            },
        ],
        "score": 72,
    }
