"""OpenAI provider implementation.

Async HTTP adapter for the OpenAI Chat Completions API, registered under
the name ``openai``.  The shared role vocabulary maps one-to-one onto
OpenAI's, so messages are sent as-is.
"""

from __future__ import annotations

from typing import Any

import httpx

from llm_dispatch.exceptions import ProviderCallError
from llm_dispatch.models import CompletionResult
from llm_dispatch.providers.base import DEFAULT_TEMPERATURE, DEFAULT_TIMEOUT, Provider
from llm_dispatch.types import GenerationOptions, Message, Usage

OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-mini"


class OpenAIProvider(Provider):
    """Adapter for the OpenAI Chat Completions API.

    Args:
        api_key: OpenAI API key, or ``None`` (always unavailable).
        base_url: API root.  Any OpenAI-compatible endpoint works.
        timeout: Request timeout in seconds.
        transport: Optional ``httpx`` transport override.
    """

    name = "openai"

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = OPENAI_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(base_url, timeout=timeout, transport=transport)
        self._api_key = api_key

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def is_available(self) -> bool:
        """Probe ``GET /models``; ``False`` without a key."""
        if not self._api_key:
            return False
        return await self._probe(f"{self._base_url}/models")

    async def generate_completion(
        self,
        messages: list[Message],
        options: GenerationOptions | None = None,
    ) -> CompletionResult:
        """Send one chat completion request.

        Defaults: model ``gpt-4o-mini``, temperature 0.7.  ``max_tokens``
        and ``top_p`` are only sent when set.
        """
        if not self._api_key:
            raise ProviderCallError(self.name, "OpenAI API key is not configured")

        opts = options or GenerationOptions()
        payload: dict[str, Any] = {
            "model": opts.model or DEFAULT_MODEL,
            "messages": [msg.to_dict() for msg in messages],
            "temperature": DEFAULT_TEMPERATURE if opts.temperature is None else opts.temperature,
            "stream": False,
        }
        if opts.max_tokens is not None:
            payload["max_tokens"] = opts.max_tokens
        if opts.top_p is not None:
            payload["top_p"] = opts.top_p

        data = await self._post(f"{self._base_url}/chat/completions", payload)

        return CompletionResult(
            content=_extract_content(data),
            provider=self.name,
            usage=_extract_usage(data),
            model=data.get("model"),
        )


def _extract_content(data: dict[str, Any]) -> str:
    """Return the first choice's message text.

    A ``null`` content (e.g. a pure tool call) maps to an empty string.

    Raises:
        ProviderCallError: If the response has no choices.
    """
    try:
        message = data["choices"][0]["message"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ProviderCallError("openai", f"Failed to parse response: {data}") from exc
    if not isinstance(message, dict):
        raise ProviderCallError("openai", f"Failed to parse response: {data}")
    content = message.get("content")
    if content is not None and not isinstance(content, str):
        raise ProviderCallError("openai", f"Failed to parse response: {data}")
    return content or ""


def _extract_usage(data: dict[str, Any]) -> Usage | None:
    """Map the ``usage`` block; ``None`` when absent or malformed."""
    usage = data.get("usage")
    if not isinstance(usage, dict):
        return None
    try:
        prompt = int(usage["prompt_tokens"])
        completion = int(usage["completion_tokens"])
        total = usage.get("total_tokens")
        total = prompt + completion if total is None else int(total)
    except (KeyError, TypeError, ValueError):
        return None
    return Usage(prompt_tokens=prompt, completion_tokens=completion, total_tokens=total)
