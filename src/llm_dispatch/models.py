"""Completion result model.

``CompletionResult`` is the contract the serving layer re-serializes.
Its ``provider`` field always names the adapter that actually produced
the content, which differs from the requested one after a fallback.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from llm_dispatch.types import AttemptRecord, Usage


@dataclass
class CompletionResult:
    """Generated text plus optional token accounting.

    Attributes:
        content: The generated text.
        provider: Name of the provider that produced ``content``.
        usage: Token counts, or ``None`` when the vendor does not report them.
        model: Model identifier reported by the vendor, if any.
        attempts: Trace of the dispatch that produced this result.
    """

    content: str
    provider: str
    usage: Usage | None = None
    model: str | None = None
    attempts: list[AttemptRecord] = field(default_factory=list)

    def with_trace(self, provider: str, attempts: list[AttemptRecord]) -> CompletionResult:
        """Return a copy stamped with the dispatching provider and trace."""
        return replace(self, provider=provider, attempts=list(attempts))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the serving layer's JSON shape."""
        return {
            "content": self.content,
            "provider": self.provider,
            "usage": self.usage.to_dict() if self.usage is not None else None,
            "model": self.model,
        }
