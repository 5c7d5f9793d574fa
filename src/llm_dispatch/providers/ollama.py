"""Ollama provider implementation.

Adapter for a local Ollama runtime, registered under the name ``ollama``.
No auth; liveness is a plain ``GET /api/tags``.
"""

from __future__ import annotations

from typing import Any

import httpx

from llm_dispatch.exceptions import ProviderCallError
from llm_dispatch.models import CompletionResult
from llm_dispatch.providers.base import DEFAULT_TEMPERATURE, DEFAULT_TIMEOUT, Provider
from llm_dispatch.types import GenerationOptions, Message, Usage

OLLAMA_BASE_URL = "http://localhost:11434"
DEFAULT_MODEL = "llama3.2"


class OllamaProvider(Provider):
    """Adapter for the Ollama ``/api/chat`` endpoint.

    Args:
        base_url: Runtime root.  Defaults to ``http://localhost:11434``.
        timeout: Request timeout in seconds.
        transport: Optional ``httpx`` transport override.
    """

    name = "ollama"

    def __init__(
        self,
        base_url: str = OLLAMA_BASE_URL,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(base_url, timeout=timeout, transport=transport)

    async def is_available(self) -> bool:
        return await self._probe(f"{self._base_url}/api/tags")

    async def generate_completion(
        self,
        messages: list[Message],
        options: GenerationOptions | None = None,
    ) -> CompletionResult:
        """Send one non-streaming chat request.

        Sampling settings travel in the nested ``options`` object:
        ``temperature`` (default 0.7), ``num_predict`` and ``top_p``.
        """
        opts = options or GenerationOptions()
        sampling: dict[str, Any] = {
            "temperature": DEFAULT_TEMPERATURE if opts.temperature is None else opts.temperature,
        }
        if opts.max_tokens is not None:
            sampling["num_predict"] = opts.max_tokens
        if opts.top_p is not None:
            sampling["top_p"] = opts.top_p

        payload: dict[str, Any] = {
            "model": opts.model or DEFAULT_MODEL,
            "messages": [msg.to_dict() for msg in messages],
            "stream": False,
            "options": sampling,
        }

        data = await self._post(f"{self._base_url}/api/chat", payload)

        message = data.get("message")
        if not isinstance(message, dict):
            raise ProviderCallError(self.name, f"Failed to parse response: {data}")

        return CompletionResult(
            content=str(message.get("content") or ""),
            provider=self.name,
            usage=_extract_usage(data),
            model=data.get("model"),
        )


def _extract_usage(data: dict[str, Any]) -> Usage | None:
    """Build usage from ``prompt_eval_count``/``eval_count``.

    Ollama omits ``eval_count`` on some responses (e.g. cached prompts);
    usage is only reported when it is present.
    """
    if not data.get("eval_count"):
        return None
    try:
        prompt = int(data.get("prompt_eval_count") or 0)
        completion = int(data["eval_count"])
    except (TypeError, ValueError):
        return None
    return Usage(prompt_tokens=prompt, completion_tokens=completion, total_tokens=prompt + completion)
