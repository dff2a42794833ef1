"""
Exception hierarchy shared by provider adapters, the response extractor and
the cascade orchestrator.
"""


class ProviderError(Exception):
    """Base class for a single candidate attempt that did not produce output."""

    def __init__(self, message: str, provider_id: str = "", model_id: str = ""):
        super().__init__(message)
        self.provider_id = provider_id
        self.model_id = model_id


class ProviderNotConfiguredError(ProviderError):
    """Raised when the provider credential is absent. Never a real attempt."""
    pass


class ProviderCallError(ProviderError):
    """Raised on transport or provider-side failure (rate limit, 5xx, ...)."""
    pass


class ProviderTimeoutError(ProviderCallError):
    """Raised when a provider call exceeds its time budget."""
    pass


class ServiceUnavailableError(ProviderCallError):
    """Raised when a provider is unavailable due to an open circuit breaker."""
    pass


class EmptyResponseError(ProviderError):
    """Raised when the provider answered but returned no text."""
    pass


class ExtractionError(Exception):
    """Raised when provider output holds no valid structured payload."""
    pass


class TranslationUnavailableError(Exception):
    """Raised when neither full nor summary-only translation succeeded."""

    def __init__(self, message: str, details: str = ""):
        super().__init__(message)
        self.details = details
