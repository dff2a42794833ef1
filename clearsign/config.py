"""
Runtime configuration for the ClearSign API.

Settings are read from the process environment. A local `.env` file is
loaded first so development credentials do not need to be exported.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from dotenv import load_dotenv

load_dotenv()


PROVIDER_IDS: Tuple[str, ...] = ("gemini", "openai")

DEFAULT_GEMINI_MODELS: Tuple[str, ...] = (
    "gemini-2.0-flash",
    "gemini-flash-latest",
    "gemini-pro-latest",
    "gemini-1.5-flash",
)

# Assessment also tries the experimental and pinned flash builds
DEFAULT_ASSESSMENT_GEMINI_MODELS: Tuple[str, ...] = (
    "gemini-2.0-flash",
    "gemini-2.0-flash-exp",
    "gemini-1.5-flash",
    "gemini-1.5-flash-001",
    "gemini-pro",
)

DEFAULT_OPENAI_MODELS: Tuple[str, ...] = ("gpt-4o",)


def _split_models(value: Optional[str]) -> Optional[Tuple[str, ...]]:
    if not value:
        return None
    models = tuple(m.strip() for m in value.split(",") if m.strip())
    return models or None


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, read once at startup."""
    gemini_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    attempt_timeout: float = 30.0
    cascade_deadline: float = 90.0
    max_document_chars: int = 50_000
    gemini_models: Optional[Tuple[str, ...]] = None
    openai_models: Optional[Tuple[str, ...]] = None
    log_level: str = "INFO"
    log_json: bool = True
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY"),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            attempt_timeout=float(os.getenv("CLEARSIGN_ATTEMPT_TIMEOUT", "30")),
            cascade_deadline=float(os.getenv("CLEARSIGN_CASCADE_DEADLINE", "90")),
            max_document_chars=int(os.getenv("CLEARSIGN_MAX_DOCUMENT_CHARS", "50000")),
            gemini_models=_split_models(os.getenv("CLEARSIGN_GEMINI_MODELS")),
            openai_models=_split_models(os.getenv("CLEARSIGN_OPENAI_MODELS")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_json=_env_bool("LOG_JSON", True),
            cors_origins=[
                o.strip()
                for o in os.getenv("CLEARSIGN_CORS_ORIGINS", "*").split(",")
                if o.strip()
            ],
        )

    def api_key_for(self, provider_id: str) -> Optional[str]:
        """Return the credential for a provider, or None when unset."""
        if provider_id == "gemini":
            return self.gemini_api_key
        if provider_id == "openai":
            return self.openai_api_key
        return None

    def configured_providers(self) -> List[str]:
        return [p for p in PROVIDER_IDS if self.api_key_for(p)]


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
