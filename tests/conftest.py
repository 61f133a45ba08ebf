"""
concept-llm - Test Configuration and Shared Fixtures

Provides pytest configuration and shared fixtures for unit and integration tests.
Python 3.12+ with modern type hints and async patterns.
"""

import asyncio
import os
from collections.abc import Callable, Generator, Sequence
from typing import Any

import pytest

from concept_llm.config import loader
from concept_llm.errors import ModelUnavailableError
from concept_llm.providers.base import BaseProvider, ConversationMessage, ProviderConfig
from concept_llm.providers.factory import ProviderFactory
from concept_llm.resilience.retry import RetryConfig

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "DEBUG"

_CONFIG_ENV_VARS = (
    "LLM_PROVIDER",
    "LLM_MODEL",
    "LLM_TEMPERATURE",
    "LLM_TIMEOUT",
    "LLM_MAX_RETRIES",
    "LLM_DISCOVERY_TIMEOUT",
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "GOOGLE_API_KEY",
    "GEMINI_API_KEY",
    "SEMANTIC_CACHE_ENABLED",
    "SEMANTIC_CACHE_DB_PATH",
    "SEMANTIC_CACHE_THRESHOLD",
    "SEMANTIC_CACHE_MAX_SIZE",
    "SEMANTIC_CACHE_RECLAIM_BATCH",
    "SEMANTIC_CACHE_CANDIDATE_LIMIT",
)


class StubProvider(BaseProvider):
    """
    Scripted provider for exercising BaseProvider behavior without a backend.

    ``replies`` maps a model id (or ``"*"`` for any model) to a queue of
    responses; each item is returned or, if it is an exception, raised. The
    last item repeats once the queue is down to one. Models without replies
    are rejected as unavailable.
    """

    provider_name = "stub"
    KNOWN_MODELS = ("stub-known-1", "stub-known-2")
    EMBEDDING_MODEL = "stub-embedding"
    EMBEDDING_DIMENSIONS = 3

    def __init__(
        self,
        config: ProviderConfig,
        replies: dict[str, list[Any]] | None = None,
        models: list[str] | Exception | None = None,
        embedding: list[float] | Exception | None = None,
        delay: float = 0.0,
        json_retry_config: RetryConfig | None = None,
    ) -> None:
        self.replies: dict[str, list[Any]] = replies if replies is not None else {"*": ['{"ok": true}']}
        self.models: list[str] | Exception = models if models is not None else ["stub-a", "stub-b", "stub-c"]
        self.embedding: list[float] | Exception = embedding if embedding is not None else [0.1, 0.2, 0.3]
        self.delay = delay
        self.generate_calls: list[dict[str, Any]] = []
        self.fetch_calls = 0
        self.closed = False
        super().__init__(config, json_retry_config=json_retry_config)

    @property
    def name(self) -> str:
        return self.provider_name

    def _validate_config(self) -> None:
        pass

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
        self.generate_calls.append(
            {
                "model": model,
                "prompt": prompt,
                "system_prompt": system_prompt,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "json_mode": json_mode,
                "history": list(history),
            }
        )
        if self.delay:
            await asyncio.sleep(self.delay)

        queue = self.replies.get(model, self.replies.get("*"))
        if queue is None:
            raise ModelUnavailableError(self.name, model, reason="404 model not found")

        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    async def _embed(self, text: str) -> list[float]:
        if isinstance(self.embedding, Exception):
            raise self.embedding
        return list(self.embedding)

    async def _fetch_model_ids(self) -> list[str]:
        self.fetch_calls += 1
        if isinstance(self.models, Exception):
            raise self.models
        return list(self.models)

    async def close(self) -> None:
        self.closed = True

    @property
    def called_models(self) -> list[str]:
        return [call["model"] for call in self.generate_calls]


class StubOpenAIProvider(StubProvider):
    provider_name = "openai"
    KNOWN_MODELS = ("gpt-4o-mini", "gpt-4o")
    EMBEDDING_MODEL = "stub-openai-embedding"


class StubGeminiProvider(StubProvider):
    provider_name = "gemini"
    KNOWN_MODELS = ("gemini-3-pro-preview", "gemini-2.5-flash")
    EMBEDDING_MODEL = "stub-gemini-embedding"


@pytest.fixture(autouse=True)
def clean_config_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Isolate tests from real credentials and cached configuration."""
    for name in _CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(loader, "_config_instance", None)
    yield


@pytest.fixture
def fast_retry() -> RetryConfig:
    """Retry configuration without backoff delays."""
    return RetryConfig(base_delay=0.0, max_delay=0.0, jitter=False)


@pytest.fixture
def make_provider(fast_retry: RetryConfig) -> Callable[..., StubProvider]:
    """Build a StubProvider with a test config and no backoff delays."""

    def _make(model: str = "stub-a", timeout: float = 5.0, temperature: float = 0.7, **kwargs: Any) -> StubProvider:
        config = ProviderConfig(api_key="test-key", model=model, timeout=timeout, temperature=temperature)
        kwargs.setdefault("json_retry_config", fast_retry)
        return StubProvider(config, **kwargs)

    return _make


@pytest.fixture
def stub_factory() -> ProviderFactory:
    """Provider factory whose registry builds scripted providers."""
    return ProviderFactory(registry={"openai": StubOpenAIProvider, "gemini": StubGeminiProvider})
