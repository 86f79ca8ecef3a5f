"""Tests for the OpenRouter client."""

from __future__ import annotations

import os
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from httpx import Response

from ferryman.server.llm.openrouter import (
    SYSTEM_PROMPT,
    OpenRouterAuthenticationError,
    OpenRouterClient,
    OpenRouterError,
    OpenRouterRateLimitError,
    strip_code_fence,
)

REQUEST = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")


@pytest.fixture
def client() -> OpenRouterClient:
    """Create an OpenRouter client with a dummy key."""
    return OpenRouterClient(api_key="test-key")


def _reply(content: object, status_code: int = 200, **kwargs: object) -> Response:
    return Response(
        status_code=status_code,
        json={"choices": [{"message": {"role": "assistant", "content": content}}]},
        request=REQUEST,
        **kwargs,
    )


class TestInit:
    """Client construction."""

    def test_defaults(self) -> None:
        client = OpenRouterClient(api_key="k")

        assert client.model == OpenRouterClient.DEFAULT_MODEL
        assert client.base_url == OpenRouterClient.BASE_URL
        assert client.timeout == 30.0

    def test_key_from_environment(self) -> None:
        with patch.dict(os.environ, {"OPENROUTER_API_KEY": "env-key"}):
            assert OpenRouterClient().api_key == "env-key"

    def test_missing_key(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(OpenRouterAuthenticationError, match="API key is required"):
                OpenRouterClient()


class TestComplete:
    """Chat completion requests."""

    async def test_payload(self, client: OpenRouterClient) -> None:
        mock_post = AsyncMock(return_value=_reply("hello"))

        with patch.object(client._client, "post", mock_post):
            result = await client.complete("Question?", max_tokens=64, temperature=0.0, top_p=0.5)

        assert result == "hello"
        url, = mock_post.call_args[0]
        payload = mock_post.call_args[1]["json"]
        assert url == "/chat/completions"
        assert payload["model"] == client.model
        assert payload["messages"] == [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": "Question?"},
        ]
        assert payload["max_tokens"] == 64
        assert payload["temperature"] == 0.0
        assert payload["top_p"] == 0.5

    async def test_without_system_prompt(self, client: OpenRouterClient) -> None:
        mock_post = AsyncMock(return_value=_reply("ok"))

        with patch.object(client._client, "post", mock_post):
            await client.complete("Q", system=None, model="other/model")

        payload = mock_post.call_args[1]["json"]
        assert payload["messages"] == [{"role": "user", "content": "Q"}]
        assert payload["model"] == "other/model"

    async def test_rate_limit(self, client: OpenRouterClient) -> None:
        response = Response(429, text="slow down", headers={"Retry-After": "12"}, request=REQUEST)

        with patch.object(client._client, "post", AsyncMock(return_value=response)):
            with pytest.raises(OpenRouterRateLimitError, match="Rate limit exceeded") as exc_info:
                await client.complete("Q")

        assert exc_info.value.retry_after == 12.0

    @pytest.mark.parametrize("status_code", [401, 402, 403])
    async def test_authentication_failure(self, client: OpenRouterClient, status_code: int) -> None:
        response = Response(status_code, text="no", request=REQUEST)

        with patch.object(client._client, "post", AsyncMock(return_value=response)):
            with pytest.raises(OpenRouterAuthenticationError, match="Authentication failed"):
                await client.complete("Q")

    async def test_server_error(self, client: OpenRouterClient) -> None:
        response = Response(503, text="down", request=REQUEST)

        with patch.object(client._client, "post", AsyncMock(return_value=response)):
            with pytest.raises(OpenRouterError, match=r"API error \(503\): down"):
                await client.complete("Q")

    async def test_network_error(self, client: OpenRouterClient) -> None:
        error = httpx.ConnectError("refused", request=REQUEST)

        with patch.object(client._client, "post", AsyncMock(side_effect=error)):
            with pytest.raises(OpenRouterError, match="Request failed"):
                await client.complete("Q")

    async def test_unexpected_shape(self, client: OpenRouterClient) -> None:
        response = Response(200, json={"choices": []}, request=REQUEST)

        with patch.object(client._client, "post", AsyncMock(return_value=response)):
            with pytest.raises(OpenRouterError, match="Unexpected response shape"):
                await client.complete("Q")

    async def test_non_text_content(self, client: OpenRouterClient) -> None:
        with patch.object(client._client, "post", AsyncMock(return_value=_reply(None))):
            with pytest.raises(OpenRouterError, match="no text content"):
                await client.complete("Q")


class TestCompleteJson:
    """JSON replies."""

    async def test_fenced_reply(self, client: OpenRouterClient) -> None:
        mock_post = AsyncMock(return_value=_reply('```json\n{"status": "native"}\n```'))

        with patch.object(client._client, "post", mock_post):
            data = await client.complete_json("Q")

        assert data == {"status": "native"}
        assert mock_post.call_args[1]["json"]["response_format"] == {"type": "json_object"}

    async def test_invalid_json(self, client: OpenRouterClient) -> None:
        with patch.object(client._client, "post", AsyncMock(return_value=_reply("not json"))):
            with pytest.raises(OpenRouterError, match="not valid JSON"):
                await client.complete_json("Q")

    async def test_non_object(self, client: OpenRouterClient) -> None:
        with patch.object(client._client, "post", AsyncMock(return_value=_reply("[1, 2]"))):
            with pytest.raises(OpenRouterError, match="not a JSON object"):
                await client.complete_json("Q")

    async def test_context_manager_closes(self) -> None:
        async with OpenRouterClient(api_key="k") as client:
            inner = client._client

        assert inner.is_closed


def test_strip_code_fence() -> None:
    assert strip_code_fence("  {}  ") == "{}"
    assert strip_code_fence("```\n{}\n```") == "{}"
