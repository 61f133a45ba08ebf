"""
Tests for GeminiProvider with a mocked google-genai client and an httpx
mock transport for model discovery.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from concept_llm.errors import (
    EmbeddingError,
    ModelUnavailableError,
    ProviderRateLimitError,
    ProviderRequestError,
    ProviderUnavailableError,
)
from concept_llm.providers import ConversationMessage, GeminiProvider, ProviderConfig
from concept_llm.providers.gemini_provider import MODELS_ENDPOINT
from concept_llm.resilience import RetryConfig


class FakeAPIError(Exception):
    """Stand-in for google.genai.errors.APIError carrying an HTTP code."""

    def __init__(self, code: int, message: str):
        super().__init__(f"{code} {message}")
        self.code = code


def instruction_text(config) -> str:
    """System instruction as text, whether the SDK kept the string or wrapped it in a Content."""
    instruction = config.system_instruction
    if isinstance(instruction, str):
        return instruction
    return "".join(part.text for part in instruction.parts)


def listing_transport(payload: dict | None = None, status: int = 200):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status, json=payload or {})

    return httpx.MockTransport(handler), requests


@pytest.fixture
def mock_client() -> MagicMock:
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(return_value=SimpleNamespace(text='{"ok": true}'))
    client.aio.models.embed_content = AsyncMock(
        return_value=SimpleNamespace(embeddings=[SimpleNamespace(values=[0.5] * 768)])
    )
    return client


def build_provider(client: MagicMock, transport: httpx.MockTransport | None = None) -> GeminiProvider:
    transport = transport or listing_transport(
        {"models": [{"name": "models/gemini-3-pro-preview"}, {"name": "models/gemini-2.5-flash"}]}
    )[0]
    return GeminiProvider(
        ProviderConfig(api_key="google-test-key", model="gemini-3-pro-preview", temperature=0.4),
        client=client,
        http_client=httpx.AsyncClient(transport=transport),
        json_retry_config=RetryConfig(base_delay=0.0, max_delay=0.0, jitter=False),
    )


class TestGeminiProvider:
    """Test GeminiProvider request shaping, discovery and error translation."""

    async def test_complete_json_requests_json_mime_type(self, mock_client: MagicMock) -> None:
        provider = build_provider(mock_client)

        assert await provider.complete_json("Return JSON", system_prompt="You extract themes") == {"ok": True}

        kwargs = mock_client.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-3-pro-preview"
        assert kwargs["contents"] == "Return JSON"
        assert kwargs["config"].response_mime_type == "application/json"
        assert kwargs["config"].system_instruction is not None
        assert kwargs["config"].temperature == 0.4

    async def test_complete_plain_text(self, mock_client: MagicMock) -> None:
        mock_client.aio.models.generate_content.return_value = SimpleNamespace(text="Plain answer")
        provider = build_provider(mock_client)

        assert await provider.complete("Question", max_tokens=64) == "Plain answer"

        config = mock_client.aio.models.generate_content.call_args.kwargs["config"]
        assert config.response_mime_type is None
        assert config.max_output_tokens == 64

    async def test_embed(self, mock_client: MagicMock) -> None:
        provider = build_provider(mock_client)

        vector = await provider.embed("Leadership principles")

        assert len(vector) == provider.EMBEDDING_DIMENSIONS == 768
        mock_client.aio.models.embed_content.assert_awaited_once_with(
            model="text-embedding-004", contents="Leadership principles"
        )

    async def test_embed_without_values(self, mock_client: MagicMock) -> None:
        mock_client.aio.models.embed_content.return_value = SimpleNamespace(embeddings=[])
        provider = build_provider(mock_client)

        with pytest.raises(EmbeddingError):
            await provider.embed("text")

    async def test_discovery_uses_rest_listing(self, mock_client: MagicMock) -> None:
        transport, requests = listing_transport(
            {
                "models": [
                    {"name": "models/gemini-2.5-flash"},
                    {"name": "models/text-embedding-004"},
                    {"name": "models/gemini-2.0-flash"},
                ]
            }
        )
        provider = build_provider(mock_client, transport)

        assert await provider.list_available_models() == ["gemini-2.5-flash", "gemini-2.0-flash"]
        assert len(requests) == 1
        assert str(requests[0].url).startswith(MODELS_ENDPOINT)
        assert requests[0].url.params["key"] == "google-test-key"
        assert requests[0].url.params["pageSize"] == "1000"

    async def test_discovery_http_error_uses_known_models(self, mock_client: MagicMock) -> None:
        transport, _ = listing_transport(status=500)
        provider = build_provider(mock_client, transport)

        assert await provider.list_available_models() == list(GeminiProvider.KNOWN_MODELS)

    async def test_not_found_falls_back(self, mock_client: MagicMock) -> None:
        mock_client.aio.models.generate_content.side_effect = [
            FakeAPIError(404, "models/gemini-3-pro-preview is not found for API version v1beta"),
            SimpleNamespace(text="fallback answer"),
        ]
        provider = build_provider(mock_client)

        assert await provider.complete("Question") == "fallback answer"
        assert provider.get_model() == "gemini-2.5-flash"

    async def test_all_models_not_found(self, mock_client: MagicMock) -> None:
        mock_client.aio.models.generate_content.side_effect = FakeAPIError(404, "model not found")
        provider = build_provider(mock_client)

        with pytest.raises(ProviderUnavailableError) as exc_info:
            await provider.complete("Question")

        assert exc_info.value.attempted_models == ["gemini-3-pro-preview", "gemini-2.5-flash"]

    async def test_rate_limit(self, mock_client: MagicMock) -> None:
        mock_client.aio.models.generate_content.side_effect = FakeAPIError(429, "RESOURCE_EXHAUSTED")
        provider = build_provider(mock_client)

        with pytest.raises(ProviderRateLimitError):
            await provider.complete("Question")

    async def test_permission_denied(self, mock_client: MagicMock) -> None:
        mock_client.aio.models.generate_content.side_effect = FakeAPIError(403, "PERMISSION_DENIED")
        provider = build_provider(mock_client)

        with pytest.raises(ProviderRequestError) as exc_info:
            await provider.complete("Question")

        assert exc_info.value.status_code == 403

    async def test_history_becomes_role_tagged_contents(self, mock_client: MagicMock) -> None:
        provider = build_provider(mock_client)
        history = [
            ConversationMessage(role="system", content="Answers cite sources"),
            ConversationMessage(role="user", content="What is servant leadership?"),
            ConversationMessage(role="assistant", content="Leading by serving the team."),
        ]

        await provider.complete("Who coined it?", system_prompt="Be brief", conversation_history=history)

        kwargs = mock_client.aio.models.generate_content.call_args.kwargs
        assert kwargs["contents"] == [
            {"role": "user", "parts": [{"text": "What is servant leadership?"}]},
            {"role": "model", "parts": [{"text": "Leading by serving the team."}]},
            {"role": "user", "parts": [{"text": "Who coined it?"}]},
        ]
        assert instruction_text(kwargs["config"]) == "Answers cite sources\n\nBe brief"

    async def test_system_only_history_keeps_plain_prompt(self, mock_client: MagicMock) -> None:
        provider = build_provider(mock_client)

        await provider.complete(
            "Question",
            conversation_history=[ConversationMessage(role="system", content="Stay formal")],
        )

        kwargs = mock_client.aio.models.generate_content.call_args.kwargs
        assert kwargs["contents"] == "Question"
        assert instruction_text(kwargs["config"]) == "Stay formal"

    @pytest.mark.parametrize(
        "error",
        [
            FakeAPIError(400, "API key not found. Please pass a valid API key."),
            FakeAPIError(401, "404 credentials not found"),
        ],
    )
    async def test_auth_failure_does_not_walk_fallback_chain(self, mock_client: MagicMock, error) -> None:
        mock_client.aio.models.generate_content.side_effect = error
        provider = build_provider(mock_client)

        with pytest.raises(ProviderRequestError) as exc_info:
            await provider.complete("Question")

        assert not isinstance(exc_info.value, ModelUnavailableError)
        assert "authentication" in str(exc_info.value)
        assert mock_client.aio.models.generate_content.await_count == 1
        assert provider.get_model() == "gemini-3-pro-preview"

    async def test_unrelated_not_found_is_not_model_unavailable(self, mock_client: MagicMock) -> None:
        mock_client.aio.models.generate_content.side_effect = FakeAPIError(400, "cached content not found")
        provider = build_provider(mock_client)

        with pytest.raises(ProviderRequestError) as exc_info:
            await provider.complete("Question")

        assert not isinstance(exc_info.value, ModelUnavailableError)
        assert mock_client.aio.models.generate_content.await_count == 1

    async def test_close_releases_http_client(self, mock_client: MagicMock) -> None:
        provider = build_provider(mock_client)

        await provider.close()

        assert provider._http_client.is_closed
