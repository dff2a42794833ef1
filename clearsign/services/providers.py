"""
Provider adapters - one uniform call interface per provider+model pairing.

Every adapter performs exactly one outbound call per `generate()` and never
retries; choosing another candidate after a failure is the cascade's job.
Failures are surfaced as the distinct types in `errors.py`.
"""

import asyncio
import base64
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional, Type

import google.api_core.exceptions
import google.generativeai as genai
import openai
from openai import AsyncOpenAI

from .api_resilience import call_through_breaker, get_breaker
from .errors import (
    EmptyResponseError,
    ProviderCallError,
    ProviderNotConfiguredError,
    ProviderTimeoutError,
)
from .task_registry import ProviderCandidate
from ..config import Settings
from ..models.schemas import ChatMessage


logger = logging.getLogger(__name__)


@dataclass
class ProviderRequest:
    """
    Normalized request handed to every adapter.

    For single-shot tasks `instruction` carries the whole prompt. For chat,
    `instruction` is the system grounding and `turns` the conversation, the
    last of which is the message being answered.
    """
    instruction: str
    turns: List[ChatMessage] = field(default_factory=list)
    binary: Optional[bytes] = None
    mime_type: Optional[str] = None
    json_mode: bool = False

    @property
    def is_chat(self) -> bool:
        return bool(self.turns)


@dataclass
class ProviderResponse:
    """Raw output of one successful provider call."""
    text: str
    provider_id: str
    model_id: str
    latency_ms: float

    @property
    def source(self) -> str:
        return f"{self.provider_id}:{self.model_id}"


class ProviderAdapter(ABC):
    """Base class wrapping one provider+model pairing."""

    provider_id: str = ""

    def __init__(
        self,
        model_id: str,
        api_key: Optional[str] = None,
        temperature: float = 0.2,
    ):
        self.model_id = model_id
        self._api_key = api_key
        self.temperature = temperature
        self.breaker = get_breaker(self.source)

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    @property
    def source(self) -> str:
        return f"{self.provider_id}:{self.model_id}"

    async def generate(self, request: ProviderRequest, timeout: float) -> ProviderResponse:
        """
        Make one call to the provider.

        Args:
            request: Normalized request
            timeout: Time budget for this call in seconds

        Returns:
            ProviderResponse with the raw text

        Raises:
            ProviderNotConfiguredError: If the credential is absent
            ProviderCallError: On transport/provider failure or timeout
            EmptyResponseError: If the provider returned no text
        """
        if not self.is_configured:
            raise ProviderNotConfiguredError(
                f"{self.provider_id} credential not configured",
                provider_id=self.provider_id,
                model_id=self.model_id,
            )

        start_time = time.time()
        text = await call_through_breaker(
            self.breaker, self._bounded_call, request, timeout
        )
        latency_ms = (time.time() - start_time) * 1000

        logger.info(
            f"{self.source} answered in {latency_ms:.0f}ms ({len(text)} chars)"
        )
        return ProviderResponse(
            text=text,
            provider_id=self.provider_id,
            model_id=self.model_id,
            latency_ms=latency_ms,
        )

    async def _bounded_call(self, request: ProviderRequest, timeout: float) -> str:
        try:
            text = await asyncio.wait_for(self._call(request, timeout), timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(f"{self.source} timed out after {timeout}s")
            raise ProviderTimeoutError(
                f"{self.source} timed out after {timeout}s",
                provider_id=self.provider_id,
                model_id=self.model_id,
            )

        if not text or not text.strip():
            raise EmptyResponseError(
                f"{self.source} returned an empty response",
                provider_id=self.provider_id,
                model_id=self.model_id,
            )
        return text

    @abstractmethod
    async def _call(self, request: ProviderRequest, timeout: float) -> Optional[str]:
        """
        Perform the provider call and return its text (or None).

        The timeout is also handed to the SDK so the outbound request itself
        is bounded, not only the await on it.
        """


class GeminiAdapter(ProviderAdapter):
    """Google Gemini models through the google-generativeai SDK."""

    provider_id = "gemini"

    def __init__(self, model_id: str, api_key: Optional[str] = None, temperature: float = 0.2):
        super().__init__(model_id, api_key=api_key, temperature=temperature)
        if api_key:
            genai.configure(api_key=api_key)

    def get_model(self, request: ProviderRequest) -> genai.GenerativeModel:
        """Build a GenerativeModel configured for this request."""
        config_kwargs: Dict[str, Any] = {
            "temperature": self.temperature,
            "top_p": 0.95,
            "top_k": 40,
            "max_output_tokens": 8192,
        }
        if request.json_mode:
            config_kwargs["response_mime_type"] = "application/json"

        return genai.GenerativeModel(
            model_name=self.model_id,
            generation_config=genai.GenerationConfig(**config_kwargs),
            system_instruction=request.instruction if request.is_chat else None,
        )

    def _generate_sync(self, request: ProviderRequest, timeout: float) -> Optional[str]:
        model = self.get_model(request)
        request_options = {"timeout": timeout}

        if request.is_chat:
            history = [
                {
                    "role": "user" if turn.role == "user" else "model",
                    "parts": [turn.content],
                }
                for turn in request.turns[:-1]
            ]
            chat = model.start_chat(history=history)
            response = chat.send_message(
                request.turns[-1].content, request_options=request_options
            )
        else:
            parts: List[Any] = []
            if request.binary is not None:
                parts.append({"mime_type": request.mime_type, "data": request.binary})
            parts.append(request.instruction)
            response = model.generate_content(parts, request_options=request_options)

        try:
            return response.text
        except ValueError:
            # Blocked or candidate-less responses have no text accessor
            return None

    async def _call(self, request: ProviderRequest, timeout: float) -> Optional[str]:
        try:
            # Run blocking SDK call in thread pool
            return await asyncio.to_thread(self._generate_sync, request, timeout)
        except google.api_core.exceptions.DeadlineExceeded as e:
            raise ProviderTimeoutError(
                str(e), provider_id=self.provider_id, model_id=self.model_id
            ) from e
        except (google.api_core.exceptions.GoogleAPIError, ConnectionError) as e:
            logger.warning(f"{self.source} failed: {e}")
            raise ProviderCallError(
                str(e), provider_id=self.provider_id, model_id=self.model_id
            ) from e


class OpenAIAdapter(ProviderAdapter):
    """OpenAI chat-completions models through the openai SDK."""

    provider_id = "openai"

    def __init__(self, model_id: str, api_key: Optional[str] = None, temperature: float = 0.2):
        super().__init__(model_id, api_key=api_key, temperature=temperature)
        # SDK retries are disabled, the cascade moves on instead
        self._client = AsyncOpenAI(api_key=api_key, max_retries=0) if api_key else None

    def build_messages(self, request: ProviderRequest) -> List[Dict[str, Any]]:
        """Translate a ProviderRequest into chat-completions messages."""
        if request.is_chat:
            return [{"role": "system", "content": request.instruction}] + [
                {"role": turn.role, "content": turn.content} for turn in request.turns
            ]

        if request.binary is not None:
            encoded = base64.b64encode(request.binary).decode("ascii")
            content: Any = [
                {"type": "text", "text": request.instruction},
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{request.mime_type};base64,{encoded}"},
                },
            ]
        else:
            content = request.instruction
        return [{"role": "user", "content": content}]

    async def _call(self, request: ProviderRequest, timeout: float) -> Optional[str]:
        kwargs: Dict[str, Any] = {
            "model": self.model_id,
            "messages": self.build_messages(request),
            "temperature": self.temperature,
            "timeout": timeout,
        }
        if request.json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            completion = await self._client.chat.completions.create(**kwargs)
        except openai.APITimeoutError as e:
            raise ProviderTimeoutError(
                str(e), provider_id=self.provider_id, model_id=self.model_id
            ) from e
        except openai.OpenAIError as e:
            logger.warning(f"{self.source} failed: {e}")
            raise ProviderCallError(
                str(e), provider_id=self.provider_id, model_id=self.model_id
            ) from e

        if not completion.choices:
            return None
        return completion.choices[0].message.content


ADAPTER_TYPES: Dict[str, Type[ProviderAdapter]] = {
    GeminiAdapter.provider_id: GeminiAdapter,
    OpenAIAdapter.provider_id: OpenAIAdapter,
}


def build_adapter(candidate: ProviderCandidate, settings: Settings) -> ProviderAdapter:
    """
    Create the adapter for a candidate.

    Raises:
        ValueError: If no adapter exists for the candidate's provider
    """
    adapter_cls = ADAPTER_TYPES.get(candidate.provider_id)
    if adapter_cls is None:
        raise ValueError(f"No adapter for provider {candidate.provider_id!r}")
    return adapter_cls(
        model_id=candidate.model_id,
        api_key=settings.api_key_for(candidate.provider_id),
    )


def make_adapter_factory(settings: Settings) -> Callable[[ProviderCandidate], ProviderAdapter]:
    """
    Build an adapter factory that reuses one adapter per candidate.

    Adapters keep no per-request state, so a single instance can serve
    concurrent requests.
    """
    @lru_cache(maxsize=None)
    def factory(candidate: ProviderCandidate) -> ProviderAdapter:
        return build_adapter(candidate, settings)

    return factory
