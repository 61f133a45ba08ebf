"""
Base Provider Interface

Defines the abstract interface for generative-AI providers.
Concrete providers (OpenAI, Gemini) implement the raw backend calls; this base
class layers on top of them:

- bounded timeouts on every call
- fallback to other models when the configured one is unavailable
- JSON completion with fence stripping and bounded re-asking
- embedding validation (never an empty vector)
"""

import asyncio
import json
import logging
import re
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Sequence
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, Field

from ..errors import (
    ConceptLLMError,
    EmbeddingError,
    JSONParseError,
    ProviderRequestError,
    ProviderTimeoutError,
    truncate_prompt,
)
from ..resilience.retry import FatalFailure, RetryableFailure, RetryConfig, Success, retry_outcomes
from .fallback import ModelFallbackChain

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_JSON_RETRIES = 3

_MODEL_UNAVAILABLE_MARKERS = (
    "404",
    "not found",
    "is not found",
    "not supported",
    "does not exist",
    "model_not_found",
)

_CODE_FENCE = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?\s*```$", re.DOTALL)


class ProviderConfig(BaseModel):
    """Base configuration for all providers."""

    api_key: str = Field(..., description="API key for the provider")
    model: str = Field(..., description="Model used for completions")
    temperature: float = Field(0.7, ge=0.0, le=2.0, description="Default sampling temperature")
    base_url: str | None = Field(None, description="Custom base URL (optional)")
    timeout: float = Field(60.0, ge=0.001, description="Request timeout in seconds")
    max_retries: int = Field(2, ge=0, description="SDK-level transport retries")
    discovery_timeout: float = Field(10.0, ge=0.001, description="Model-list query timeout in seconds")


class ConversationMessage(BaseModel):
    """One earlier turn of a multi-turn exchange, sent ahead of the prompt."""

    role: Literal["system", "user", "assistant"]
    content: str


def looks_like_model_unavailable(error: BaseException, status_code: int | None = None) -> bool:
    """
    Check whether a backend error says the requested model is not available.

    Args:
        error: Exception raised by the vendor SDK
        status_code: HTTP status code, when the SDK exposes one

    Returns:
        True for "not found" / "not supported" style rejections
    """
    if status_code == 404:
        return True
    message = str(error).lower()
    return any(marker in message for marker in _MODEL_UNAVAILABLE_MARKERS)


def extract_json_text(raw: str) -> str:
    """Strip surrounding whitespace and a markdown code fence, if any."""
    text = raw.strip()
    match = _CODE_FENCE.match(text)
    if match:
        return match.group(1).strip()
    return text


class BaseProvider(ABC):
    """
    Abstract base class for generative-AI providers.

    Subclasses implement ``_generate``, ``_embed`` and ``_fetch_model_ids``
    against their SDK and translate SDK exceptions into the package error
    taxonomy (``ModelUnavailableError`` for unknown models).
    """

    KNOWN_MODELS: tuple[str, ...] = ()
    EMBEDDING_MODEL: str = ""
    EMBEDDING_DIMENSIONS: int = 0

    def __init__(self, config: ProviderConfig, json_retry_config: RetryConfig | None = None) -> None:
        """
        Initialize the provider.

        Args:
            config: Provider configuration
            json_retry_config: Backoff between JSON re-asks (default 1s, 2s, 4s...)
        """
        self.config = config
        self._json_retry_config = json_retry_config or RetryConfig()
        self._validate_config()
        self._fallback_chain = ModelFallbackChain(
            provider_name=self.name,
            fetch_models=self._fetch_model_ids,
            known_models=self.KNOWN_MODELS,
        )

    # ----- Subclass contract -------------------------------------------------

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the provider name (e.g., 'openai', 'gemini')."""

    @abstractmethod
    def _validate_config(self) -> None:
        """
        Validate provider-specific configuration.

        Raises:
            ConfigurationError: If configuration is invalid
        """

    @abstractmethod
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
        """
        Issue one completion request against ``model``.

        ``history`` holds earlier turns in order; ``prompt`` is the new user turn.

        Raises:
            ModelUnavailableError: If the backend rejects the model
            ProviderRequestError: On any other transport/API failure
        """

    @abstractmethod
    async def _embed(self, text: str) -> list[float]:
        """Issue one embedding request and return the raw vector."""

    @abstractmethod
    async def _fetch_model_ids(self) -> list[str]:
        """Query the backend for available completion models, in preference order."""

    async def close(self) -> None:
        """Clean up resources. Override if needed."""

    # ----- Model / temperature ------------------------------------------------

    def get_model(self) -> str:
        return self.config.model

    def set_model(self, model: str) -> None:
        self.config.model = model

    def get_temperature(self) -> float:
        return self.config.temperature

    def set_temperature(self, temperature: float) -> None:
        if not 0.0 <= temperature <= 2.0:
            raise ValueError("temperature must be between 0.0 and 2.0")
        self.config.temperature = temperature

    @property
    def embedding_model(self) -> str:
        return self.EMBEDDING_MODEL

    @property
    def fallback_chain(self) -> ModelFallbackChain:
        return self._fallback_chain

    async def list_available_models(self) -> list[str]:
        """
        List models this provider can fall back to.

        Resolved once per provider instance; later calls reuse the result.
        """
        return await self._fallback_chain.resolve()

    # ----- Shared call plumbing -------------------------------------------------

    async def _with_timeout(self, awaitable: Awaitable[T], model: str, prompt: str | None = None) -> T:
        """Bound a backend call by the configured timeout."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self.config.timeout)
        except TimeoutError as e:
            logger.error(
                f"{self.name} request timed out after {self.config.timeout}s",
                extra={"provider": self.name, "model": model, "timeout": self.config.timeout},
            )
            raise ProviderTimeoutError(self.name, self.config.timeout, model=model, prompt=prompt) from e

    async def _complete_with_fallback(
        self,
        prompt: str,
        system_prompt: str | None,
        max_tokens: int | None,
        temperature: float,
        json_mode: bool,
        history: Sequence[ConversationMessage] = (),
    ) -> str:
        start_time = time.time()

        async def request(model: str) -> str:
            return await self._with_timeout(
                self._generate(model, prompt, system_prompt, max_tokens, temperature, json_mode, history),
                model=model,
                prompt=prompt,
            )

        model, content = await self._fallback_chain.run(request, self.config.model, prompt=prompt)

        if model != self.config.model:
            logger.info(
                f"Switched to working {self.name} model",
                extra={"provider": self.name, "old_model": self.config.model, "new_model": model},
            )
            self.config.model = model

        logger.debug(
            f"{self.name} completion successful",
            extra={
                "provider": self.name,
                "model": model,
                "json_mode": json_mode,
                "history_turns": len(history),
                "latency_ms": (time.time() - start_time) * 1000,
                "response_chars": len(content),
            },
        )
        return content

    # ----- Public capability set ------------------------------------------------

    async def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        conversation_history: Sequence[ConversationMessage] | None = None,
    ) -> str:
        """
        Generate a text completion.

        Args:
            prompt: User prompt
            system_prompt: Optional system instruction
            max_tokens: Optional cap on generated tokens
            temperature: Overrides the configured temperature for this call
            conversation_history: Earlier turns, oldest first

        Returns:
            Generated text

        Raises:
            ProviderRequestError: On transport/API failure (incl. timeout)
            ProviderUnavailableError: If every fallback model is unavailable
        """
        return await self._complete_with_fallback(
            prompt,
            system_prompt,
            max_tokens,
            self.config.temperature if temperature is None else temperature,
            json_mode=False,
            history=conversation_history or (),
        )

    async def complete_json(
        self,
        prompt: str,
        system_prompt: str | None = None,
        max_retries: int = DEFAULT_JSON_RETRIES,
        conversation_history: Sequence[ConversationMessage] | None = None,
    ) -> dict[str, Any]:
        """
        Generate a completion and parse it as a JSON object.

        Unparseable output and non-object JSON (arrays, scalars) are re-asked
        up to ``max_retries`` total attempts.

        Args:
            prompt: User prompt
            system_prompt: Optional system instruction
            max_retries: Total attempts allowed (>= 1)
            conversation_history: Earlier turns, oldest first

        Returns:
            Parsed JSON object

        Raises:
            JSONParseError: If no attempt produced a JSON object
            ProviderRequestError: On transport/API failure (not retried here)
            ProviderUnavailableError: If every fallback model is unavailable
        """
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")

        last_raw = ""
        history = conversation_history or ()

        async def attempt(attempt_number: int) -> Success[dict[str, Any]] | RetryableFailure | FatalFailure:
            nonlocal last_raw
            try:
                raw = await self._complete_with_fallback(
                    prompt,
                    system_prompt,
                    None,
                    self.config.temperature,
                    json_mode=True,
                    history=history,
                )
            except ConceptLLMError as e:
                return FatalFailure(e)

            last_raw = raw
            return self._parse_json_object(raw)

        def log_reask(next_attempt: int, failure: RetryableFailure) -> None:
            logger.debug(
                f"Re-asking {self.name} for JSON",
                extra={
                    "provider": self.name,
                    "model": self.config.model,
                    "attempt": next_attempt,
                    "reason": failure.reason,
                    "raw_preview": truncate_prompt(failure.context.get("raw"), 100),
                },
            )

        result = await retry_outcomes(attempt, max_retries, self._json_retry_config, on_retry=log_reask)
        outcome = result.outcome

        if result.succeeded:
            return outcome.value  # type: ignore[union-attr]
        if isinstance(outcome, FatalFailure):
            raise outcome.error

        logger.error(
            f"JSON completion failed after {result.attempts} attempts",
            extra={
                "provider": self.name,
                "model": self.config.model,
                "reason": outcome.reason,
                "prompt": truncate_prompt(prompt, 100),
            },
        )
        raise JSONParseError(
            raw_response=last_raw,
            attempts=result.attempts,
            provider=self.name,
            model=self.config.model,
            prompt=prompt,
            reason=outcome.reason,
        )

    @staticmethod
    def _parse_json_object(raw: str) -> Success[dict[str, Any]] | RetryableFailure:
        try:
            parsed = json.loads(extract_json_text(raw))
        except (json.JSONDecodeError, ValueError) as e:
            return RetryableFailure(reason=f"invalid JSON: {e}", context={"raw": raw})

        if not isinstance(parsed, dict):
            return RetryableFailure(
                reason=f"response is not a JSON object: {type(parsed).__name__}",
                context={"raw": raw},
            )
        return Success(parsed)

    async def embed(self, text: str) -> list[float]:
        """
        Generate an embedding vector for ``text``.

        Returns:
            The provider's native fixed-length vector

        Raises:
            EmbeddingError: On any failure, including an empty vector
        """
        try:
            vector = await self._with_timeout(self._embed(text), model=self.EMBEDDING_MODEL, prompt=text)
        except EmbeddingError:
            raise
        except ProviderRequestError as e:
            raise EmbeddingError(
                f"{self.name} embedding request failed: {e}",
                provider=self.name,
                model=self.EMBEDDING_MODEL,
                text=text,
                details={"error_type": type(e).__name__, **e.details},
            ) from e
        except Exception as e:
            logger.error(
                f"{self.name} embedding generation failed: {e}",
                extra={"provider": self.name, "model": self.EMBEDDING_MODEL, "error": str(e)},
                exc_info=True,
            )
            raise EmbeddingError(
                f"{self.name} embedding generation failed: {e}",
                provider=self.name,
                model=self.EMBEDDING_MODEL,
                text=text,
                details={"error_type": type(e).__name__},
            ) from e

        if not vector:
            raise EmbeddingError(
                f"{self.name} returned an empty embedding",
                provider=self.name,
                model=self.EMBEDDING_MODEL,
                text=text,
            )
        return [float(x) for x in vector]

    def __repr__(self) -> str:
        """Return string representation."""
        return f"{self.__class__.__name__}(name={self.name}, model={self.config.model})"
