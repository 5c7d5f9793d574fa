"""Provider registry.

Maps provider names to adapter instances.  Registration usually happens
once at startup, possibly from async initialization code, so the map is
guarded by a lock and every read works on a snapshot.
"""

from __future__ import annotations

import asyncio
import logging
import threading

from llm_dispatch.providers.base import Provider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Name-keyed set of provider adapters.

    Keys are unique: registering a second adapter under an existing name
    replaces the first (keeping its position in registration order).
    Lookups of unknown names return ``None``; callers decide whether that
    is an error.
    """

    def __init__(self) -> None:
        self._providers: dict[str, Provider] = {}
        self._lock = threading.Lock()

    def register(self, provider: Provider) -> None:
        """Insert or replace ``provider`` under ``provider.name``."""
        with self._lock:
            replaced = provider.name in self._providers
            self._providers[provider.name] = provider
        if replaced:
            logger.warning("Replacing existing provider: %s", provider.name)
        else:
            logger.info("Registered LLM provider: %s", provider.name)

    def get(self, name: str) -> Provider | None:
        with self._lock:
            return self._providers.get(name)

    def has(self, name: str) -> bool:
        with self._lock:
            return name in self._providers

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __len__(self) -> int:
        with self._lock:
            return len(self._providers)

    def list_names(self) -> list[str]:
        """Registered provider names, in registration order."""
        with self._lock:
            return list(self._providers)

    def _snapshot(self) -> list[Provider]:
        with self._lock:
            return list(self._providers.values())

    async def availability(self) -> dict[str, bool]:
        """Probe every registered provider concurrently.

        Probes are isolated: one that raises despite the ``is_available``
        contract is logged and reported as ``False`` without affecting
        the others.

        Returns:
            Mapping of provider name to liveness, in registration order.
        """
        providers = self._snapshot()
        results = await asyncio.gather(
            *(provider.is_available() for provider in providers),
            return_exceptions=True,
        )

        availability: dict[str, bool] = {}
        for provider, result in zip(providers, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.error("Availability probe for %s raised: %s", provider.name, result)
                availability[provider.name] = False
            else:
                availability[provider.name] = bool(result)
        return availability
