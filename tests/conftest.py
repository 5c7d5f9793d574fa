"""Shared fixtures: scripted fake providers, a recording sleep, clean env."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from llm_dispatch.config import CONFIG_PATH_ENV, ENDPOINT_ENV_VARS, PROVIDER_KEY_ENV_VARS
from llm_dispatch.exceptions import ProviderCallError
from llm_dispatch.models import CompletionResult
from llm_dispatch.providers.base import Provider
from llm_dispatch.types import GenerationOptions, Message, Usage

_DISPATCH_ENV_VARS = (
    "LLM_DEFAULT_PROVIDER",
    "LLM_FALLBACK_PROVIDERS",
    "LLM_RETRY_ATTEMPTS",
    "LLM_RETRY_DELAY_MS",
    "LLM_REQUEST_TIMEOUT",
)


class FakeProvider(Provider):
    """Provider with scripted behaviour and call counters.

    Args:
        name: Registry name.
        failures: Number of leading ``generate_completion`` calls that fail.
        always_fail: Fail every call.
        available: Value returned by ``is_available``.
        probe_raises: Make ``is_available`` raise instead of returning.
        delay: Seconds to sleep inside ``generate_completion``.
        error: Exception raised on failure instead of ``ProviderCallError``.
    """

    def __init__(
        self,
        name: str,
        *,
        failures: int = 0,
        always_fail: bool = False,
        available: bool = True,
        probe_raises: bool = False,
        delay: float = 0.0,
        error: Exception | None = None,
    ) -> None:
        super().__init__(f"http://{name}.test")
        self.name = name
        self.failures = failures
        self.always_fail = always_fail
        self.available = available
        self.probe_raises = probe_raises
        self.delay = delay
        self.error = error
        self.probe_calls = 0
        self.generate_calls = 0
        self.seen_options: list[GenerationOptions | None] = []

    async def is_available(self) -> bool:
        self.probe_calls += 1
        if self.probe_raises:
            raise RuntimeError(f"{self.name} probe exploded")
        return self.available

    async def generate_completion(
        self,
        messages: list[Message],
        options: GenerationOptions | None = None,
    ) -> CompletionResult:
        self.generate_calls += 1
        self.seen_options.append(options)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.always_fail or self.generate_calls <= self.failures:
            if self.error is not None:
                raise self.error
            raise ProviderCallError(self.name, f"boom #{self.generate_calls}")
        return CompletionResult(
            content=f"{self.name} says hi",
            provider=self.name,
            usage=Usage(prompt_tokens=3, completion_tokens=4, total_tokens=7),
        )


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def messages() -> list[Message]:
    return [Message("system", "Be terse."), Message("user", "Hello")]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Isolate every test from the developer's keys and config file."""
    for var in (*PROVIDER_KEY_ENV_VARS.values(), *ENDPOINT_ENV_VARS.values(), *_DISPATCH_ENV_VARS):
        monkeypatch.delenv(var, raising=False)
    config_path = tmp_path / "config.toml"
    monkeypatch.setenv(CONFIG_PATH_ENV, str(config_path))
    return config_path
