"""
OpenAI Provider Implementation

Provides integration with OpenAI's API (chat completions, JSON mode,
embeddings, model listing for fallback).
"""

import logging
from collections.abc import Sequence
from typing import Any

try:
    import openai
    from openai import AsyncOpenAI

    OPENAI_AVAILABLE = True
except ImportError:
    openai = None  # type: ignore[assignment]
    AsyncOpenAI = None  # type: ignore[assignment, misc]
    OPENAI_AVAILABLE = False

from ..errors import (
    ConfigurationError,
    DependencyError,
    ModelUnavailableError,
    ProviderRateLimitError,
    ProviderRequestError,
    ProviderTimeoutError,
)
from ..resilience.retry import RetryConfig
from .base import BaseProvider, ConversationMessage, ProviderConfig, looks_like_model_unavailable

logger = logging.getLogger(__name__)

# Listing entries that are not chat-completion models
_NON_CHAT_MARKERS = ("audio", "realtime", "tts", "transcribe", "image", "search", "instruct")


class OpenAIProvider(BaseProvider):
    """OpenAI API provider implementation."""

    KNOWN_MODELS = ("gpt-4o-mini", "gpt-4o", "gpt-4.1-mini", "gpt-4.1")
    EMBEDDING_MODEL = "text-embedding-3-small"
    EMBEDDING_DIMENSIONS = 1536

    def __init__(
        self,
        config: ProviderConfig,
        client: Any | None = None,
        json_retry_config: RetryConfig | None = None,
    ) -> None:
        """
        Initialize OpenAI provider.

        Args:
            config: Provider configuration
            client: Pre-built AsyncOpenAI-compatible client (tests, custom transports)
            json_retry_config: Backoff between JSON re-asks

        Raises:
            DependencyError: If OpenAI SDK is not installed
            ConfigurationError: If configuration is invalid
        """
        super().__init__(config, json_retry_config=json_retry_config)

        if client is not None:
            self.client = client
            return

        if not OPENAI_AVAILABLE or AsyncOpenAI is None:
            logger.error("OpenAI SDK is not installed", extra={"package": "openai", "provider": "openai"})
            raise DependencyError(
                package="openai",
                feature="OpenAI provider",
                install_hint="pip install 'openai>=1.40.0'",
                details={"provider": "openai"},
            )

        client_kwargs: dict[str, Any] = {
            "api_key": config.api_key,
            "timeout": config.timeout,
            "max_retries": config.max_retries,
        }
        if config.base_url:
            client_kwargs["base_url"] = config.base_url

        self.client = AsyncOpenAI(**client_kwargs)

        logger.info(
            "OpenAI provider initialized",
            extra={
                "provider": "openai",
                "model": config.model,
                "base_url": config.base_url or "default",
                "timeout": config.timeout,
            },
        )

    def _validate_config(self) -> None:
        if not self.config.api_key:
            logger.error("OpenAI API key is missing", extra={"provider": "openai"})
            raise ConfigurationError(
                "OpenAI API key is required. Set OPENAI_API_KEY environment variable.",
                details={"provider": "openai"},
            )

    @property
    def name(self) -> str:
        """Return provider name."""
        return "openai"

    def _translate_error(self, e: Exception, model: str) -> Exception:
        """Map an OpenAI SDK exception onto the package error taxonomy."""
        if isinstance(e, ProviderRequestError):
            return e

        status_code = getattr(e, "status_code", None)

        if openai is not None:
            if isinstance(e, openai.APITimeoutError):
                return ProviderTimeoutError(self.name, self.config.timeout, model=model)

            if isinstance(e, openai.NotFoundError) or (
                isinstance(e, openai.BadRequestError) and "model" in str(e).lower() and looks_like_model_unavailable(e)
            ):
                return ModelUnavailableError(self.name, model, reason=str(e))

            if isinstance(e, openai.RateLimitError):
                retry_after = None
                response = getattr(e, "response", None)
                if response is not None:
                    header = response.headers.get("retry-after")
                    retry_after = float(header) if header and header.replace(".", "", 1).isdigit() else None
                return ProviderRateLimitError(self.name, retry_after, model=model)

            if isinstance(e, openai.AuthenticationError):
                return ProviderRequestError(
                    "OpenAI authentication failed. Check your API key.",
                    provider=self.name,
                    model=model,
                    status_code=status_code,
                )

            if isinstance(e, openai.APIError):
                return ProviderRequestError(
                    f"OpenAI API error: {e}",
                    provider=self.name,
                    model=model,
                    status_code=status_code,
                )

        return ProviderRequestError(
            f"Unexpected error calling OpenAI: {e}",
            provider=self.name,
            model=model,
            status_code=status_code,
        )

    async def _generate(
        self,
        model: str,
        prompt: str,
        system_prompt: str | None,
        max_tokens: int | None,
        temperature: float,
        json_mode: bool,
        history: Sequence[ConversationMessage] = (),
    ) -> str:
        messages: list[dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.extend({"role": turn.role, "content": turn.content} for turn in history)
        messages.append({"role": "user", "content": prompt})

        api_params: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens:
            api_params["max_tokens"] = max_tokens
        if json_mode:
            api_params["response_format"] = {"type": "json_object"}

        logger.debug(
            f"Calling OpenAI API with model {model}",
            extra={
                "provider": self.name,
                "model": model,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "json_mode": json_mode,
            },
        )

        try:
            response = await self.client.chat.completions.create(**api_params)
        except Exception as e:
            translated = self._translate_error(e, model)
            if not isinstance(translated, ModelUnavailableError):
                logger.error(
                    f"OpenAI completion failed: {e}",
                    extra={"provider": self.name, "model": model, "error": str(e)},
                )
            raise translated from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def _embed(self, text: str) -> list[float]:
        try:
            response = await self.client.embeddings.create(model=self.EMBEDDING_MODEL, input=text)
        except Exception as e:
            raise self._translate_error(e, self.EMBEDDING_MODEL) from e

        data = getattr(response, "data", None)
        if not data:
            return []
        return list(data[0].embedding)

    async def _fetch_model_ids(self) -> list[str]:
        page = await self.client.models.list()
        ids = [
            model.id
            for model in page.data
            if model.id.startswith("gpt-") and not any(marker in model.id for marker in _NON_CHAT_MARKERS)
        ]
        # Known-good models first, then the remainder alphabetically
        preferred = [m for m in self.KNOWN_MODELS if m in ids]
        return preferred + sorted(m for m in ids if m not in preferred)

    async def close(self) -> None:
        """Clean up OpenAI client resources."""
        try:
            if hasattr(self.client, "close"):
                await self.client.close()
                logger.debug("Closed OpenAI client", extra={"provider": self.name})
        except Exception as e:
            logger.warning(f"Error closing OpenAI client: {e}", extra={"provider": self.name, "error": str(e)})
