"""OpenRouter chat-completions client used for capability enrichment."""

from __future__ import annotations

import json
import os
from typing import Any

import httpx

SYSTEM_PROMPT = (
    "You are a CI/CD migration assistant. You answer questions about moving "
    "Jenkins pipelines to GitLab CI/CD and reply with JSON only."
)


class OpenRouterError(Exception):
    """Base exception for OpenRouter errors."""

    pass


class OpenRouterRateLimitError(OpenRouterError):
    """Rate limit exceeded.

    Attributes:
        retry_after: Seconds the API asked us to wait, when it said so.
    """

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class OpenRouterAuthenticationError(OpenRouterError):
    """Missing, invalid or unfunded API key."""

    pass


def error_for_response(response: httpx.Response) -> OpenRouterError:
    """Map a failed OpenRouter response to an exception."""
    status = response.status_code
    body = response.text[:500]
    if status == 429:
        retry_after: float | None
        try:
            retry_after = float(response.headers.get("Retry-After", ""))
        except ValueError:
            retry_after = None
        return OpenRouterRateLimitError(f"Rate limit exceeded: {body}", retry_after=retry_after)
    if status in (401, 402, 403):
        return OpenRouterAuthenticationError(f"Authentication failed ({status}): {body}")
    return OpenRouterError(f"API error ({status}): {body}")


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    text = text.strip()
    if not text.startswith("```"):
        return text
    _, _, rest = text.partition("\n")
    return rest.rsplit("```", 1)[0].strip()


class OpenRouterClient:
    """Async client for the OpenRouter chat completions API."""

    BASE_URL = "https://openrouter.ai/api/v1"
    DEFAULT_MODEL = "anthropic/claude-3-haiku"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float = 30.0,
        base_url: str | None = None,
    ) -> None:
        """
        Initialize OpenRouter client.

        Args:
            api_key: OpenRouter API key. Falls back to OPENROUTER_API_KEY env var.
            model: Default model for completions.
            timeout: Request timeout in seconds.
            base_url: API root, for tests or self-hosted proxies.

        Raises:
            OpenRouterAuthenticationError: If no API key is provided or found.
        """
        self.api_key = api_key or os.getenv("OPENROUTER_API_KEY")
        if not self.api_key:
            raise OpenRouterAuthenticationError(
                "OpenRouter API key is required. Set OPENROUTER_API_KEY or pass api_key."
            )

        self.model = model or self.DEFAULT_MODEL
        self.base_url = base_url or self.BASE_URL
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
                "X-Title": "ferryman",
            },
        )

    async def complete(
        self,
        prompt: str,
        *,
        system: str | None = SYSTEM_PROMPT,
        model: str | None = None,
        max_tokens: int = 512,
        temperature: float = 0.2,
        **kwargs: Any,
    ) -> str:
        """
        Send one user prompt and return the reply text.

        Args:
            prompt: User message.
            system: System message; None sends the prompt alone.
            model: Override the default model for this request.
            max_tokens: Maximum number of tokens to generate.
            temperature: Sampling temperature.
            **kwargs: Extra request fields such as response_format.

        Returns:
            The reply text.

        Raises:
            OpenRouterRateLimitError: On HTTP 429.
            OpenRouterAuthenticationError: On HTTP 401, 402 or 403.
            OpenRouterError: On other failures, including malformed replies.
        """
        messages = [{"role": "user", "content": prompt}]
        if system:
            messages.insert(0, {"role": "system", "content": system})
        payload = {
            "model": model or self.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
            **kwargs,
        }

        try:
            response = await self._client.post("/chat/completions", json=payload)
        except httpx.RequestError as e:
            raise OpenRouterError(f"Request failed: {e!s}") from e

        if response.status_code >= 400:
            raise error_for_response(response)

        try:
            data: dict[str, Any] = response.json()
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise OpenRouterError(f"Unexpected response shape: {e!s}") from e
        if not isinstance(content, str):
            raise OpenRouterError("Reply has no text content")
        return content

    async def complete_json(self, prompt: str, **kwargs: Any) -> dict[str, Any]:
        """
        Send a prompt and parse the reply as a JSON object.

        Raises:
            OpenRouterError: If the API fails or the reply is not a JSON object.
        """
        kwargs.setdefault("response_format", {"type": "json_object"})
        text = strip_code_fence(await self.complete(prompt, **kwargs))
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as e:
            raise OpenRouterError(f"Model reply is not valid JSON: {e}") from e
        if not isinstance(parsed, dict):
            raise OpenRouterError("Model reply is not a JSON object")
        return parsed

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> OpenRouterClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
