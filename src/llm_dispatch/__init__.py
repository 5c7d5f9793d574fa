"""LLM dispatch layer: provider registry, retry policy and fallback chain.

Re-exports the public interface so callers can write::

    from llm_dispatch import CompletionService, GenerationOptions, Message
"""

__version__ = "0.1.0"

from llm_dispatch.exceptions import (
    AllProvidersExhaustedError,
    ConfigurationError,
    DispatchError,
    ProviderCallError,
    ProviderUnavailableError,
)
from llm_dispatch.models import CompletionResult
from llm_dispatch.service import CompletionService
from llm_dispatch.types import DispatchConfig, GenerationOptions, Message, Role, Usage

__all__ = [
    "AllProvidersExhaustedError",
    "CompletionResult",
    "CompletionService",
    "ConfigurationError",
    "DispatchConfig",
    "DispatchError",
    "GenerationOptions",
    "Message",
    "ProviderCallError",
    "ProviderUnavailableError",
    "Role",
    "Usage",
    "__version__",
]
