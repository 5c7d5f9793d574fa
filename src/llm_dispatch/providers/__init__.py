"""Provider adapters for the supported LLM vendors.

Re-exports the public interface so callers can write::

    from llm_dispatch.providers import Provider, OpenAIProvider
    from llm_dispatch.providers import ClaudeProvider, OllamaProvider
"""

from llm_dispatch.providers.anthropic import ClaudeProvider
from llm_dispatch.providers.base import Provider
from llm_dispatch.providers.ollama import OllamaProvider
from llm_dispatch.providers.openai import OpenAIProvider

__all__ = [
    "ClaudeProvider",
    "OllamaProvider",
    "OpenAIProvider",
    "Provider",
]
