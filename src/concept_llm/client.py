"""
LLM Client

Single facade over the active provider. One LLMClient owns one LLMSettings
object (provider, model, temperature); consumers receive the client by
injection and change settings only through its setters.
"""

import logging
from collections.abc import Sequence
from typing import Any

from .config.schemas import (
    DEFAULT_MODELS,
    ConceptLLMConfig,
    LLMSettings,
    ProviderCredentials,
    ProviderName,
    ProviderTimeouts,
)
from .errors import ConfigurationError
from .providers.base import DEFAULT_JSON_RETRIES, BaseProvider, ConversationMessage, ProviderConfig
from .providers.factory import ProviderFactory

logger = logging.getLogger(__name__)

_CREDENTIAL_ENV = {
    ProviderName.OPENAI: "OPENAI_API_KEY",
    ProviderName.GEMINI: "GOOGLE_API_KEY",
}


class LLMClient:
    """
    Unified LLM client supporting multiple providers.

    Usage:
        >>> client = LLMClient.from_config(load_config())
        >>> text = await client.complete("Summarize ...", system_prompt="Be brief")
        >>> data = await client.complete_json("List three themes as {\"themes\": [...]}")
        >>> vector = await client.embed("Leadership principles")
    """

    def __init__(
        self,
        settings: LLMSettings | None = None,
        credentials: ProviderCredentials | None = None,
        timeouts: ProviderTimeouts | None = None,
        factory: ProviderFactory | None = None,
    ) -> None:
        """
        Initialize the client and its active provider.

        Args:
            settings: Initial (provider, model, temperature); copied, not shared
            credentials: Per-provider API keys
            timeouts: Request bounds applied to every provider
            factory: Provider factory (defaults to the OpenAI + Gemini registry)

        Raises:
            ConfigurationError: If no usable credential is configured
        """
        self._settings = (settings or LLMSettings()).model_copy()
        self._credentials = credentials or ProviderCredentials()
        self._timeouts = timeouts or ProviderTimeouts()
        self._factory = factory or ProviderFactory()

        provider_name = (
            ProviderName(self._settings.provider) if self._settings.provider else self._default_provider()
        )
        model = self._settings.model or DEFAULT_MODELS[provider_name]

        self._provider = self._build_provider(provider_name, model, self._settings.temperature)
        self._settings.provider = provider_name
        self._settings.model = model

        logger.info(
            "LLM client initialized",
            extra={"provider": provider_name.value, "model": model, "temperature": self._settings.temperature},
        )

    @classmethod
    def from_config(cls, config: ConceptLLMConfig, factory: ProviderFactory | None = None) -> "LLMClient":
        """Build a client from the root configuration."""
        return cls(
            settings=config.llm,
            credentials=config.credentials,
            timeouts=config.timeouts,
            factory=factory,
        )

    def _default_provider(self) -> ProviderName:
        """Prefer Gemini when a Google key is available, then OpenAI."""
        if self._credentials.api_key_for(ProviderName.GEMINI):
            return ProviderName.GEMINI
        if self._credentials.api_key_for(ProviderName.OPENAI):
            return ProviderName.OPENAI
        raise ConfigurationError(
            "No LLM provider API keys found. Set OPENAI_API_KEY or GOOGLE_API_KEY.",
            details={"providers": [p.value for p in ProviderName]},
        )

    def _build_provider(self, provider: ProviderName, model: str, temperature: float) -> BaseProvider:
        api_key = self._credentials.api_key_for(provider)
        if not api_key:
            raise ConfigurationError(
                f"{_CREDENTIAL_ENV[provider]} environment variable not set. Set it to use {provider.value}.",
                details={"provider": provider.value},
            )

        config = ProviderConfig(
            api_key=api_key,
            model=model,
            temperature=temperature,
            base_url=self._credentials.openai_base_url if provider == ProviderName.OPENAI else None,
            timeout=self._timeouts.timeout,
            max_retries=self._timeouts.max_retries,
            discovery_timeout=self._timeouts.discovery_timeout,
        )
        return self._factory.create_provider(provider.value, config)

    # ----- Settings ------------------------------------------------------------

    @property
    def settings(self) -> LLMSettings:
        """Snapshot of the current settings."""
        self._sync_model()
        return self._settings.model_copy()

    @property
    def provider(self) -> BaseProvider:
        """Active provider instance."""
        return self._provider

    @property
    def embedding_model(self) -> str:
        """Embedding model of the active provider; changes with ``set_provider``."""
        return self._provider.embedding_model

    def get_provider(self) -> ProviderName:
        return ProviderName(self._settings.provider)

    def set_provider(self, provider: ProviderName | str) -> None:
        """
        Switch to another provider with that provider's default model.

        Raises:
            ConfigurationError: If the provider is unknown or lacks a credential;
                the current provider stays active
        """
        try:
            provider_name = ProviderName(provider)
        except ValueError as e:
            raise ConfigurationError(f"Unsupported provider: {provider}", details={"provider": str(provider)}) from e

        if provider_name == self._settings.provider:
            return

        model = DEFAULT_MODELS[provider_name]
        self._provider = self._build_provider(provider_name, model, self._settings.temperature)
        self._settings.provider = provider_name
        self._settings.model = model

        logger.info("Switched LLM provider", extra={"provider": provider_name.value, "model": model})

    def get_model(self) -> str:
        self._sync_model()
        return self._settings.model or self._provider.get_model()

    def set_model(self, model: str) -> None:
        if not model:
            raise ValueError("model must be a non-empty string")
        self._provider.set_model(model)
        self._settings.model = model

    def get_temperature(self) -> float:
        return self._settings.temperature

    def set_temperature(self, temperature: float) -> None:
        self._provider.set_temperature(temperature)
        self._settings.temperature = temperature

    def _sync_model(self) -> None:
        # A fallback switch inside the provider changes the effective model
        current = self._provider.get_model()
        if current != self._settings.model:
            self._settings.model = current

    # ----- Requests --------------------------------------------------------------

    async def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        conversation_history: Sequence[ConversationMessage] | None = None,
    ) -> str:
        try:
            return await self._provider.complete(
                prompt,
                system_prompt,
                max_tokens,
                temperature,
                conversation_history=conversation_history,
            )
        finally:
            self._sync_model()

    async def complete_json(
        self,
        prompt: str,
        system_prompt: str | None = None,
        max_retries: int = DEFAULT_JSON_RETRIES,
        conversation_history: Sequence[ConversationMessage] | None = None,
    ) -> dict[str, Any]:
        try:
            return await self._provider.complete_json(
                prompt,
                system_prompt,
                max_retries,
                conversation_history=conversation_history,
            )
        finally:
            self._sync_model()

    async def embed(self, text: str) -> list[float]:
        return await self._provider.embed(text)

    async def close(self) -> None:
        """Close every provider this client created."""
        await self._factory.close_all()
