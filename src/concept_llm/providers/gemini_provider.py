"""
Gemini Provider Implementation

Provides integration with Google's Gemini API through the google-genai SDK.
Model discovery uses the Generative Language REST listing endpoint; when that
query fails the provider falls back to a list of last known good models.
"""

import logging
from collections.abc import Sequence
from typing import Any

import httpx

try:
    from google import genai
    from google.genai import errors as genai_errors
    from google.genai.types import GenerateContentConfig, HttpOptions

    GEMINI_AVAILABLE = True
except ImportError:
    genai = None  # type: ignore[assignment]
    genai_errors = None  # type: ignore[assignment]
    GenerateContentConfig = None  # type: ignore[assignment, misc]
    HttpOptions = None  # type: ignore[assignment, misc]
    GEMINI_AVAILABLE = False

from ..errors import (
    ConfigurationError,
    DependencyError,
    ModelUnavailableError,
    ProviderRateLimitError,
    ProviderRequestError,
)
from ..resilience.retry import RetryConfig
from .base import BaseProvider, ConversationMessage, ProviderConfig, looks_like_model_unavailable

logger = logging.getLogger(__name__)

MODELS_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models"


class GeminiProvider(BaseProvider):
    """Google Gemini API provider implementation with model discovery."""

    KNOWN_MODELS = (
        "gemini-3-pro-preview",
        "gemini-2.5-pro",
        "gemini-2.5-flash",
        "gemini-2.0-flash",
        "gemini-1.5-flash",
        "gemini-1.5-pro",
    )
    EMBEDDING_MODEL = "text-embedding-004"
    EMBEDDING_DIMENSIONS = 768

    def __init__(
        self,
        config: ProviderConfig,
        client: Any | None = None,
        http_client: httpx.AsyncClient | None = None,
        json_retry_config: RetryConfig | None = None,
    ) -> None:
        """
        Initialize Gemini provider.

        Args:
            config: Provider configuration
            client: Pre-built genai.Client-compatible client (tests, custom transports)
            http_client: httpx client used for model discovery
            json_retry_config: Backoff between JSON re-asks

        Raises:
            DependencyError: If Gemini SDK is not installed
            ConfigurationError: If configuration is invalid
        """
        super().__init__(config, json_retry_config=json_retry_config)

        self._http_client = http_client

        if client is not None:
            self.client = client
            return

        if not GEMINI_AVAILABLE or genai is None:
            logger.error("Google Gemini SDK is not installed", extra={"package": "google-genai", "provider": "gemini"})
            raise DependencyError(
                package="google-genai",
                feature="Gemini provider",
                install_hint="pip install 'google-genai>=1.0.0'",
                details={"provider": "gemini"},
            )

        # HttpOptions.timeout is in milliseconds
        self.client = genai.Client(
            api_key=config.api_key,
            http_options=HttpOptions(timeout=int(config.timeout * 1000)),
        )

        logger.info(
            "Gemini provider initialized",
            extra={"provider": "gemini", "model": config.model, "timeout": config.timeout},
        )

    def _validate_config(self) -> None:
        if not self.config.api_key:
            logger.error("Gemini API key is missing", extra={"provider": "gemini"})
            raise ConfigurationError(
                "GOOGLE_API_KEY environment variable not set. Set it to use Gemini.",
                details={"provider": "gemini"},
            )

    @property
    def name(self) -> str:
        """Return provider name."""
        return "gemini"

    def _translate_error(self, e: Exception, model: str) -> Exception:
        """Map a google-genai exception onto the package error taxonomy."""
        if isinstance(e, ProviderRequestError):
            return e

        status_code = getattr(e, "code", None)
        if not isinstance(status_code, int):
            status_code = None

        error_str = str(e).lower()

        # Checked before model-unavailable: "API key not found" is an auth failure
        if status_code in (401, 403) or "api key" in error_str or "unauthorized" in error_str:
            return ProviderRequestError(
                "Gemini authentication failed. Check your API key.",
                provider=self.name,
                model=model,
                status_code=status_code,
            )

        if status_code == 429 or "rate limit" in error_str or "quota" in error_str:
            return ProviderRateLimitError(self.name, None, model=model)

        if status_code == 404 or ("model" in error_str and looks_like_model_unavailable(e)):
            return ModelUnavailableError(self.name, model, reason=str(e))

        if genai_errors is not None and isinstance(e, genai_errors.APIError):
            return ProviderRequestError(
                f"Gemini API error: {e}",
                provider=self.name,
                model=model,
                status_code=status_code,
            )

        return ProviderRequestError(
            f"Error calling Gemini API: {e}",
            provider=self.name,
            model=model,
            status_code=status_code,
        )

    def _build_config(
        self,
        system_prompt: str | None,
        max_tokens: int | None,
        temperature: float,
        json_mode: bool,
    ) -> Any:
        kwargs: dict[str, Any] = {"temperature": temperature}
        if max_tokens:
            kwargs["max_output_tokens"] = max_tokens
        if system_prompt:
            kwargs["system_instruction"] = system_prompt
        if json_mode:
            # Structured output mode
            kwargs["response_mime_type"] = "application/json"

        if GenerateContentConfig is None:
            return kwargs
        return GenerateContentConfig(**kwargs)

    @staticmethod
    def _build_contents(prompt: str, history: Sequence[ConversationMessage]) -> Any:
        """Plain prompt for single-turn calls, role-tagged contents otherwise."""
        turns = [turn for turn in history if turn.role != "system"]
        if not turns:
            return prompt

        contents: list[dict[str, Any]] = [
            {"role": "model" if turn.role == "assistant" else "user", "parts": [{"text": turn.content}]}
            for turn in turns
        ]
        contents.append({"role": "user", "parts": [{"text": prompt}]})
        return contents

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
        # System turns from the history join the system instruction; the rest become contents
        system_parts = [turn.content for turn in history if turn.role == "system"]
        if system_prompt:
            system_parts.append(system_prompt)
        system_instruction = "\n\n".join(system_parts) or None

        config = self._build_config(system_instruction, max_tokens, temperature, json_mode)
        contents = self._build_contents(prompt, history)

        logger.debug(
            f"Calling Gemini API with model {model}",
            extra={
                "provider": self.name,
                "model": model,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "json_mode": json_mode,
                "has_system": system_instruction is not None,
                "history_turns": len(history),
            },
        )

        try:
            response = await self.client.aio.models.generate_content(
                model=model,
                contents=contents,
                config=config,
            )
        except Exception as e:
            translated = self._translate_error(e, model)
            if not isinstance(translated, ModelUnavailableError):
                logger.error(
                    f"Gemini completion failed: {e}",
                    extra={"provider": self.name, "model": model, "error": str(e)},
                )
            raise translated from e

        return getattr(response, "text", None) or ""

    async def _embed(self, text: str) -> list[float]:
        try:
            response = await self.client.aio.models.embed_content(model=self.EMBEDDING_MODEL, contents=text)
        except Exception as e:
            raise self._translate_error(e, self.EMBEDDING_MODEL) from e

        embeddings = getattr(response, "embeddings", None)
        if not embeddings:
            return []
        values = getattr(embeddings[0], "values", None)
        return list(values) if values else []

    async def _fetch_model_ids(self) -> list[str]:
        params = {"key": self.config.api_key, "pageSize": 1000}
        if self._http_client is not None:
            response = await self._http_client.get(MODELS_ENDPOINT, params=params, timeout=self.config.discovery_timeout)
        else:
            async with httpx.AsyncClient(timeout=self.config.discovery_timeout) as http_client:
                response = await http_client.get(MODELS_ENDPOINT, params=params)

        response.raise_for_status()
        data = response.json()

        names = [str(entry.get("name", "")).removeprefix("models/") for entry in data.get("models", [])]
        return [name for name in names if name.startswith("gemini-")]

    async def close(self) -> None:
        """Clean up Gemini client resources."""
        try:
            # Gemini SDK doesn't require explicit cleanup
            if self._http_client is not None:
                await self._http_client.aclose()
            logger.debug("Closed Gemini client", extra={"provider": self.name})
        except Exception as e:
            logger.warning(f"Error closing Gemini client: {e}", extra={"provider": self.name, "error": str(e)})
