"""Shared value types for the dispatch layer.

Vendor-neutral shapes passed between the facade, the dispatch policy and
the provider adapters.  All are immutable dataclasses; none are persisted.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from llm_dispatch.exceptions import ConfigurationError


class Role(str, Enum):
    """Conversation role of a message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    """One entry in a conversation.

    Order within a conversation is chronological; a system message, when
    present, conventionally comes first.

    Args:
        role: ``Role`` member or its string value.
        content: Message text.

    Raises:
        ValueError: If ``role`` is not a known role.
    """

    role: Role
    content: str

    def __post_init__(self) -> None:
        if not isinstance(self.role, Role):
            object.__setattr__(self, "role", Role(self.role))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        """Build a message from the ``{"role", "content"}`` chat shape."""
        return cls(role=data["role"], content=str(data["content"]))

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True)
class GenerationOptions:
    """Per-call generation options.

    Every field is optional; ``None`` means "use the adapter's or the
    policy's default".

    Attributes:
        provider: Explicit provider name, overriding the configured default.
        model: Vendor model identifier.
        temperature: Sampling temperature.
        max_tokens: Upper bound on generated tokens.
        top_p: Nucleus sampling mass.
        timeout: Per-attempt timeout in seconds, overriding the
            configured ``request_timeout``.
    """

    provider: str | None = None
    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    top_p: float | None = None
    timeout: float | None = None


@dataclass(frozen=True)
class Usage:
    """Token accounting reported by a vendor."""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int

    def to_dict(self) -> dict[str, int]:
        return {
            "promptTokens": self.prompt_tokens,
            "completionTokens": self.completion_tokens,
            "totalTokens": self.total_tokens,
        }


@dataclass(frozen=True)
class AttemptRecord:
    """One step of a dispatch, for diagnostics.

    Attributes:
        provider: Provider the attempt targeted.
        phase: ``"primary"`` or ``"fallback"``.
        attempt: 1-based attempt number within the phase for that provider.
        outcome: ``"success"``, ``"unavailable"`` or ``"error"``.
        error: Error description for failed attempts.
    """

    provider: str
    phase: str
    attempt: int
    outcome: str
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "phase": self.phase,
            "attempt": self.attempt,
            "outcome": self.outcome,
            "error": self.error,
        }


@dataclass(frozen=True)
class DispatchConfig:
    """Process-wide dispatch settings.

    Set once at startup and read-only thereafter.  ``fallback_order`` may
    name providers that are never registered; those are skipped at
    dispatch time rather than rejected here.

    Attributes:
        default_provider: Provider used when a request names none.
        fallback_order: Providers tried, once each, after the primary's
            retries are exhausted.
        retry_attempts: Tries against the primary provider (at least 1).
        retry_base_delay: Backoff unit in seconds; the wait after attempt
            ``n`` is ``retry_base_delay * n``.
        request_timeout: Per-attempt timeout in seconds, or ``None``.

    Raises:
        ConfigurationError: If any numeric setting is out of range.
    """

    default_provider: str | None = None
    fallback_order: tuple[str, ...] = field(default_factory=tuple)
    retry_attempts: int = 3
    retry_base_delay: float = 1.0
    request_timeout: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "fallback_order", tuple(self.fallback_order))
        if isinstance(self.retry_attempts, bool) or not isinstance(self.retry_attempts, int):
            raise ConfigurationError(f"retry_attempts must be an integer, got {self.retry_attempts!r}")
        if self.retry_attempts < 1:
            raise ConfigurationError(f"retry_attempts must be >= 1, got {self.retry_attempts}")
        if not _is_number(self.retry_base_delay):
            raise ConfigurationError(
                f"retry_base_delay must be a number, got {self.retry_base_delay!r}"
            )
        if self.retry_base_delay < 0 or math.isnan(self.retry_base_delay):
            raise ConfigurationError(
                f"retry_base_delay must be >= 0 seconds, got {self.retry_base_delay}"
            )
        if self.request_timeout is not None and not _is_number(self.request_timeout):
            raise ConfigurationError(
                f"request_timeout must be a number, got {self.request_timeout!r}"
            )
        if self.request_timeout is not None and not self.request_timeout > 0:
            raise ConfigurationError(
                f"request_timeout must be > 0 seconds, got {self.request_timeout}"
            )


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
