"""Completion facade — the single object the serving layer depends on.

Owns the provider registry and the current dispatch configuration, and
hands each ``complete`` call a consistent snapshot of both to a fresh
``DispatchPolicy``.

Typical usage::

    from llm_dispatch.config import load_config
    from llm_dispatch.service import CompletionService

    service = CompletionService.from_settings(load_config())
    result = await service.complete(
        [{"role": "user", "content": "Hello"}],
    )
    print(result.provider, result.content)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from llm_dispatch.config import Settings
from llm_dispatch.dispatch import DispatchPolicy, Sleep
from llm_dispatch.models import CompletionResult
from llm_dispatch.providers.anthropic import ANTHROPIC_BASE_URL, ClaudeProvider
from llm_dispatch.providers.base import Provider
from llm_dispatch.providers.ollama import OLLAMA_BASE_URL, OllamaProvider
from llm_dispatch.providers.openai import OPENAI_BASE_URL, OpenAIProvider
from llm_dispatch.registry import ProviderRegistry
from llm_dispatch.types import DispatchConfig, GenerationOptions, Message

logger = logging.getLogger(__name__)


class CompletionService:
    """Entry point for completions and provider status queries.

    ``configure`` may be called at any time; an in-flight ``complete``
    keeps the configuration it started with.  Errors from dispatch pass
    through uninterpreted.

    Args:
        config: Initial dispatch configuration.  Defaults to
            ``DispatchConfig()`` (no default provider).
        registry: Provider registry.  A fresh one is created if omitted.
        sleep: Backoff awaitable handed to each ``DispatchPolicy``.
    """

    def __init__(
        self,
        config: DispatchConfig | None = None,
        registry: ProviderRegistry | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._config = config or DispatchConfig()
        self._registry = registry if registry is not None else ProviderRegistry()
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> CompletionService:
        """Build a service wired with the built-in providers.

        Cloud providers are registered only when their API key is set;
        the local Ollama runtime is always registered.

        Args:
            settings: Loaded startup settings.
            **kwargs: Passed through to the constructor (e.g. ``sleep``).

        Raises:
            ConfigurationError: If the dispatch settings are invalid.
        """
        service = cls(settings.dispatch_config(), **kwargs)

        openai_key = settings.get_provider_key("openai")
        if openai_key:
            service.register_provider(
                OpenAIProvider(openai_key, base_url=settings.get_endpoint("openai") or OPENAI_BASE_URL)
            )

        anthropic_key = settings.get_provider_key("anthropic")
        if anthropic_key:
            service.register_provider(
                ClaudeProvider(
                    anthropic_key,
                    base_url=settings.get_endpoint("anthropic") or ANTHROPIC_BASE_URL,
                )
            )

        service.register_provider(OllamaProvider(settings.get_endpoint("ollama") or OLLAMA_BASE_URL))
        return service

    @property
    def config(self) -> DispatchConfig:
        return self._config

    def configure(self, config: DispatchConfig) -> None:
        """Replace the dispatch configuration (last write wins)."""
        self._config = config
        logger.info(
            "Dispatch configured: default=%s fallback=%s attempts=%d delay=%.3fs",
            config.default_provider,
            list(config.fallback_order),
            config.retry_attempts,
            config.retry_base_delay,
        )

    def register_provider(self, provider: Provider) -> None:
        self._registry.register(provider)

    async def complete(
        self,
        messages: Iterable[Message | Mapping[str, Any]],
        options: GenerationOptions | None = None,
    ) -> CompletionResult:
        """Generate a completion via retry and fallback.

        Args:
            messages: ``Message`` objects or ``{"role", "content"}`` dicts.
            options: Generation options; ``provider`` overrides the default.

        Returns:
            ``CompletionResult`` naming the provider that answered.

        Raises:
            ConfigurationError: If no primary provider can be resolved.
            AllProvidersExhaustedError: If every attempt failed.
            ValueError: If a message has an unknown role.
        """
        conversation = [
            msg if isinstance(msg, Message) else Message.from_dict(dict(msg)) for msg in messages
        ]
        policy = DispatchPolicy(self._registry, self._config, sleep=self._sleep)
        return await policy.execute(conversation, options)

    def list_providers(self) -> list[str]:
        """Registered provider names, in registration order."""
        return self._registry.list_names()

    async def check_availability(self) -> dict[str, bool]:
        """Probe every registered provider."""
        return await self._registry.availability()
