"""
concept-llm - Configuration Schemas

Defines typed configuration models using Pydantic for validation and type safety.
All configuration is read from environment variables at startup; the runtime
(provider, model, temperature) tuple is afterwards owned by an LLMClient.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from ..semantic_cache.config import SemanticCacheConfig as SemanticCacheConfig

DEFAULT_TEMPERATURE = 0.7


class Environment(str, Enum):
    """Runtime environment."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TEST = "test"


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ProviderName(str, Enum):
    """Generative backends a cache row or client can be bound to."""

    OPENAI = "openai"
    GEMINI = "gemini"


DEFAULT_MODELS: dict[ProviderName, str] = {
    ProviderName.GEMINI: "gemini-3-pro-preview",
    ProviderName.OPENAI: "gpt-4o-mini",
}


class LLMSettings(BaseModel):
    """
    Mutable (provider, model, temperature) tuple.

    A single instance is owned by one LLMClient and changed only through its
    setters. Unset fields are resolved by the client from available credentials.
    """

    provider: ProviderName | None = Field(default=None, description="Active provider")
    model: str | None = Field(default=None, description="Active model identifier")
    temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=0.0, le=2.0, description="Sampling temperature")

    model_config = ConfigDict(validate_assignment=True)


class ProviderCredentials(BaseModel):
    """Per-provider credentials consumed but not owned by this package."""

    openai_api_key: SecretStr | None = Field(default=None, description="OpenAI API key")
    openai_base_url: str | None = Field(default=None, description="Custom OpenAI-compatible base URL")
    google_api_key: SecretStr | None = Field(default=None, description="Google Generative AI key")

    def api_key_for(self, provider: ProviderName) -> str | None:
        """Return the plain-text key for a provider, or None when unset."""
        secret = self.google_api_key if provider == ProviderName.GEMINI else self.openai_api_key
        if secret is None:
            return None
        value = secret.get_secret_value()
        return value or None


class ProviderTimeouts(BaseModel):
    """Bounds applied to every backend call."""

    timeout: float = Field(default=60.0, ge=1.0, description="Per-request timeout in seconds")
    max_retries: int = Field(default=2, ge=0, description="SDK-level transport retries")
    discovery_timeout: float = Field(default=10.0, ge=1.0, description="Model-list query timeout in seconds")


class ConceptLLMConfig(BaseModel):
    """Root configuration for concept-llm."""

    environment: Environment = Field(default=Environment.DEVELOPMENT, description="Runtime environment")
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")

    llm: LLMSettings = Field(default_factory=LLMSettings)
    credentials: ProviderCredentials = Field(default_factory=ProviderCredentials)
    timeouts: ProviderTimeouts = Field(default_factory=ProviderTimeouts)
    semantic_cache: SemanticCacheConfig = Field(default_factory=SemanticCacheConfig)

    model_config = ConfigDict(use_enum_values=False, validate_assignment=True)
