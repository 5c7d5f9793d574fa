"""Dispatch policy: bounded retry on the primary, then a fallback chain.

Turns one logical completion request into a strictly sequential series of
adapter calls:

1. Resolve the primary provider (explicit ``options.provider``, else the
   configured default).  An unresolvable primary fails immediately.
2. Try the primary up to ``retry_attempts`` times with linear backoff
   (``retry_base_delay * attempt``) between tries.
3. Walk ``fallback_order`` once, skipping the primary, unregistered
   names, and any candidate whose liveness probe fails.  Fallback
   attempts are single-shot.
4. If nothing succeeds, raise ``AllProvidersExhaustedError`` carrying the
   primary's final error.

Each attempt yields an explicit ``AttemptOutcome`` value; exceptions from
adapters are converted at the attempt boundary and never drive the loop.
The policy holds no state between calls.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from llm_dispatch.exceptions import (
    AllProvidersExhaustedError,
    ConfigurationError,
    DispatchError,
    ProviderCallError,
    ProviderUnavailableError,
)
from llm_dispatch.models import CompletionResult
from llm_dispatch.providers.base import Provider
from llm_dispatch.registry import ProviderRegistry
from llm_dispatch.types import AttemptRecord, DispatchConfig, GenerationOptions, Message

PHASE_PRIMARY = "primary"
PHASE_FALLBACK = "fallback"

Sleep = Callable[[float], Awaitable[None]]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttemptOutcome:
    """Result of a single attempt: exactly one of ``result``/``error`` is set."""

    result: CompletionResult | None = None
    error: DispatchError | None = None


class DispatchPolicy:
    """Retry-then-fallback executor over a provider registry.

    Args:
        registry: Registered provider adapters.
        config: Dispatch settings snapshot, read-only for the policy's life.
        sleep: Awaitable used for backoff waits.  Injected by tests.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        config: DispatchConfig,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._registry = registry
        self._config = config
        self._sleep = sleep

    def resolve_primary(self, options: GenerationOptions) -> tuple[str, Provider]:
        """Pick the primary provider for a request.

        Raises:
            ConfigurationError: If no name resolves or the name is not
                registered.
        """
        name = options.provider or self._config.default_provider
        if not name:
            raise ConfigurationError("No provider specified and no default provider configured")
        provider = self._registry.get(name)
        if provider is None:
            available = ", ".join(self._registry.list_names()) or "none"
            raise ConfigurationError(f"Provider {name} not found. Available: {available}")
        return name, provider

    async def execute(
        self,
        messages: list[Message],
        options: GenerationOptions | None = None,
    ) -> CompletionResult:
        """Run one completion through retry and fallback.

        Args:
            messages: Conversation to complete.
            options: Generation options; ``provider`` selects the primary.

        Returns:
            The first successful result, with ``provider`` set to the
            provider that produced it and ``attempts`` holding the trace.

        Raises:
            ConfigurationError: If no primary provider can be resolved.
            AllProvidersExhaustedError: If every attempt failed.
        """
        opts = options or GenerationOptions()
        primary_name, primary = self.resolve_primary(opts)
        trace: list[AttemptRecord] = []

        total = self._config.retry_attempts
        primary_error: DispatchError | None = None
        attempt = 1
        while attempt <= total:
            outcome = await self._attempt(
                primary_name, primary, PHASE_PRIMARY, attempt, messages, opts, trace
            )
            if outcome.result is not None:
                return outcome.result.with_trace(primary_name, trace)

            primary_error = outcome.error
            logger.warning(
                "Attempt %d/%d failed for provider %s: %s",
                attempt,
                total,
                primary_name,
                primary_error,
            )
            if attempt < total:
                await self._sleep(self._config.retry_base_delay * attempt)
            attempt += 1

        if primary_error is None:
            raise ConfigurationError(f"retry_attempts must be at least 1, got {total}")
        logger.error("Failed to generate completion with %s: %s", primary_name, primary_error)

        tried = {primary_name}
        for candidate_name in self._config.fallback_order:
            if candidate_name in tried:
                continue
            candidate = self._registry.get(candidate_name)
            if candidate is None:
                logger.debug("Skipping unregistered fallback provider: %s", candidate_name)
                continue
            tried.add(candidate_name)

            logger.info("Falling back to provider: %s", candidate_name)
            outcome = await self._attempt(
                candidate_name, candidate, PHASE_FALLBACK, 1, messages, opts, trace
            )
            if outcome.result is not None:
                return outcome.result.with_trace(candidate_name, trace)
            logger.error("Fallback provider %s also failed: %s", candidate_name, outcome.error)

        raise AllProvidersExhaustedError(primary_error, trace) from primary_error

    async def _attempt(
        self,
        name: str,
        provider: Provider,
        phase: str,
        attempt: int,
        messages: list[Message],
        options: GenerationOptions,
        trace: list[AttemptRecord],
    ) -> AttemptOutcome:
        """Probe, then call, one provider once.  Never raises."""
        if not await self._probe(name, provider):
            error: DispatchError = ProviderUnavailableError(name)
            trace.append(AttemptRecord(name, phase, attempt, "unavailable", str(error)))
            return AttemptOutcome(error=error)

        timeout = options.timeout if options.timeout is not None else self._config.request_timeout
        try:
            if timeout is None:
                result = await provider.generate_completion(messages, options)
            else:
                result = await asyncio.wait_for(
                    provider.generate_completion(messages, options), timeout
                )
        except asyncio.TimeoutError as exc:
            error = ProviderCallError(name, f"Attempt timed out after {timeout}s")
            error.__cause__ = exc
        except ProviderCallError as exc:
            error = exc
        except Exception as exc:
            error = ProviderCallError(name, f"{type(exc).__name__}: {exc}")
            error.__cause__ = exc
        else:
            trace.append(AttemptRecord(name, phase, attempt, "success"))
            return AttemptOutcome(result=result)

        trace.append(AttemptRecord(name, phase, attempt, "error", str(error)))
        return AttemptOutcome(error=error)

    async def _probe(self, name: str, provider: Provider) -> bool:
        try:
            return bool(await provider.is_available())
        except Exception as exc:
            logger.error("Availability probe for %s raised: %s", name, exc)
            return False
