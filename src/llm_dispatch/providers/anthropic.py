"""Anthropic provider implementation.

Async HTTP adapter for the Anthropic Messages API, registered under the
name ``claude``.  Uses ``httpx`` directly — no SDK dependency required.

Key differences from the OpenAI-style chat API:

- Auth via ``x-api-key`` header (not ``Authorization: Bearer``).
- ``max_tokens`` is required in every request payload.
- System messages must be hoisted to a top-level ``system`` field.
- Response content is an array of typed blocks, not a plain string.

Typical usage::

    import asyncio
    from llm_dispatch.providers.anthropic import ClaudeProvider
    from llm_dispatch.types import Message

    async def main():
        provider = ClaudeProvider(api_key="sk-ant-...")
        result = await provider.generate_completion(
            [Message("user", "Hello")],
        )

    asyncio.run(main())
"""

from __future__ import annotations

from typing import Any

import httpx

from llm_dispatch.exceptions import ProviderCallError
from llm_dispatch.models import CompletionResult
from llm_dispatch.providers.base import DEFAULT_TEMPERATURE, DEFAULT_TIMEOUT, Provider
from llm_dispatch.types import GenerationOptions, Message, Role, Usage

ANTHROPIC_BASE_URL = "https://api.anthropic.com/v1"
ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_MODEL = "claude-3-5-sonnet-latest"
DEFAULT_MAX_TOKENS = 4096


class ClaudeProvider(Provider):
    """Adapter for the Anthropic Messages API.

    Constructible without a key so it can be listed in status output;
    in that state it always reports unavailable.

    Args:
        api_key: Anthropic API key, or ``None``.
        base_url: API root.  Defaults to the public endpoint.
        timeout: Request timeout in seconds.  Defaults to 120s.
        transport: Optional ``httpx`` transport override.

    Example::

        provider = ClaudeProvider(api_key="sk-ant-...")
        result = await provider.generate_completion(
            [Message("system", "Be terse."), Message("user", "What is 2+2?")],
        )
        print(result.content)
    """

    name = "claude"

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = ANTHROPIC_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(base_url, timeout=timeout, transport=transport)
        self._api_key = api_key

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        headers["anthropic-version"] = ANTHROPIC_VERSION
        if self._api_key:
            headers["x-api-key"] = self._api_key
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
        """Send one Messages API request.

        System-role messages are extracted and hoisted to the top-level
        ``system`` field, as required by the Anthropic API.

        Args:
            messages: Conversation in chronological order.
            options: Generation options.  Defaults: model
                ``claude-3-5-sonnet-latest``, temperature 0.7,
                max_tokens 4096.

        Returns:
            CompletionResult with the joined text blocks and token usage.

        Raises:
            ProviderCallError: If no key is configured or the call fails.
        """
        if not self._api_key:
            raise ProviderCallError(self.name, "Anthropic API key is not configured")

        opts = options or GenerationOptions()
        system_text, chat_messages = _extract_system(messages)

        payload: dict[str, Any] = {
            "model": opts.model or DEFAULT_MODEL,
            "max_tokens": opts.max_tokens or DEFAULT_MAX_TOKENS,
            "temperature": DEFAULT_TEMPERATURE if opts.temperature is None else opts.temperature,
            "messages": chat_messages,
        }
        if system_text is not None:
            payload["system"] = system_text
        if opts.top_p is not None:
            payload["top_p"] = opts.top_p

        data = await self._post(f"{self._base_url}/messages", payload)

        return CompletionResult(
            content=_extract_content(data),
            provider=self.name,
            usage=_extract_usage(data),
            model=data.get("model"),
        )


def _extract_system(
    messages: list[Message],
) -> tuple[str | None, list[dict[str, str]]]:
    """Separate system messages from chat messages.

    Args:
        messages: Conversation, possibly including system messages.

    Returns:
        Tuple of (system_text, remaining_messages).  System messages are
        concatenated with double newlines if multiple exist.  Returns
        ``None`` for system_text if no system messages are present.
    """
    system_parts: list[str] = []
    chat_messages: list[dict[str, str]] = []

    for msg in messages:
        if msg.role is Role.SYSTEM:
            system_parts.append(msg.content)
        else:
            chat_messages.append(msg.to_dict())

    system_text = "\n\n".join(system_parts) if system_parts else None
    return system_text, chat_messages


def _extract_content(data: dict[str, Any]) -> str:
    """Join the text blocks of a Messages API response.

    Non-text blocks (``tool_use``, ``thinking``, ...) are ignored.

    Raises:
        ProviderCallError: If ``content`` is missing or malformed.
    """
    blocks = data.get("content")
    if not isinstance(blocks, list):
        raise ProviderCallError("claude", f"Failed to parse response: {data}")
    return "".join(
        str(block.get("text", ""))
        for block in blocks
        if isinstance(block, dict) and block.get("type") == "text"
    )


def _extract_usage(data: dict[str, Any]) -> Usage | None:
    """Map ``input_tokens``/``output_tokens`` into ``Usage``.

    Returns:
        Usage if both counts are reported as integers, None otherwise.
    """
    usage = data.get("usage")
    if not isinstance(usage, dict):
        return None
    try:
        prompt = int(usage["input_tokens"])
        completion = int(usage["output_tokens"])
    except (KeyError, TypeError, ValueError):
        return None
    return Usage(prompt_tokens=prompt, completion_tokens=completion, total_tokens=prompt + completion)
