"""Error taxonomy for the dispatch layer.

Every error raised out of ``llm_dispatch`` derives from ``DispatchError``
so the serving layer can catch a single type and degrade gracefully.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from llm_dispatch.types import AttemptRecord


class DispatchError(Exception):
    """Base class for all dispatch-layer errors."""


class ConfigurationError(DispatchError):
    """No usable primary provider, or invalid dispatch settings.

    Raised immediately; never retried and never triggers fallback.
    """


class ProviderUnavailableError(DispatchError):
    """A provider's liveness probe returned ``False`` at dispatch time.

    Args:
        provider: Name of the provider that reported unavailable.
    """

    def __init__(self, provider: str) -> None:
        super().__init__(f"Provider '{provider}' is not available")
        self.provider = provider


class ProviderCallError(DispatchError):
    """A provider's completion call failed.

    Covers transport failures, timeouts, auth errors and any non-success
    vendor response.

    Args:
        provider: Name of the provider whose call failed.
        message: Human-readable failure description.
        status_code: HTTP status code, when the vendor answered at all.
    """

    def __init__(self, provider: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.status_code = status_code


class AllProvidersExhaustedError(DispatchError):
    """Every primary retry and every fallback candidate failed.

    The surfaced ``cause`` is always the primary provider's final error,
    never a fallback's, so callers see one reproducible failure.

    Args:
        cause: The primary provider's last captured error.
        attempts: Ordered trace of every attempt made.
    """

    def __init__(self, cause: Exception, attempts: list[AttemptRecord] | None = None) -> None:
        super().__init__(f"All providers exhausted; primary failure: {cause}")
        self.cause = cause
        self.attempts = list(attempts or [])
