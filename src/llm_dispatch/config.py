"""Configuration loading.

Settings are layered: built-in defaults, then ``~/.llm-dispatch/config.toml``
(or the file named by ``LLM_DISPATCH_CONFIG``), then environment variables.
Environment always wins.

Example ``config.toml``::

    [providers]
    openai = "sk-..."
    anthropic = "sk-ant-..."

    [endpoints]
    ollama = "http://gpu-box:11434"

    [dispatch]
    default_provider = "openai"
    fallback_order = ["ollama", "claude", "openai"]
    retry_attempts = 3
    retry_delay_ms = 1000
    request_timeout = 60

Typical usage::

    from llm_dispatch.config import load_config

    settings = load_config()
    dispatch_config = settings.dispatch_config()
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from llm_dispatch.exceptions import ConfigurationError
from llm_dispatch.types import DispatchConfig

CONFIG_DIR = Path.home() / ".llm-dispatch"
CONFIG_PATH = CONFIG_DIR / "config.toml"
CONFIG_PATH_ENV = "LLM_DISPATCH_CONFIG"

# Vendor key name → environment variable carrying its API key.
PROVIDER_KEY_ENV_VARS: dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}

# Endpoint name → environment variable carrying its base URL.
ENDPOINT_ENV_VARS: dict[str, str] = {
    "openai": "OPENAI_BASE_URL",
    "anthropic": "ANTHROPIC_BASE_URL",
    "ollama": "OLLAMA_BASE_URL",
}

DEFAULT_PROVIDER = "openai"
DEFAULT_FALLBACK_ORDER = ["ollama", "claude", "openai"]
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_DELAY_MS = 1000

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Startup configuration for the dispatch layer.

    Attributes:
        providers: Vendor name → API key.
        endpoints: Provider name → base URL override.
        default_provider: Provider used when a request names none.
        fallback_order: Providers tried once each after the primary fails.
        retry_attempts: Tries against the primary provider.
        retry_delay_ms: Linear backoff unit in milliseconds.
        request_timeout: Per-attempt timeout in seconds, or ``None``.
        config_path: File the settings were (or would be) read from.
    """

    providers: dict[str, str] = field(default_factory=dict)
    endpoints: dict[str, str] = field(default_factory=dict)
    default_provider: str | None = DEFAULT_PROVIDER
    fallback_order: list[str] = field(default_factory=lambda: list(DEFAULT_FALLBACK_ORDER))
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS
    request_timeout: float | None = None
    config_path: Path = CONFIG_PATH
    _key_sources: dict[str, str] = field(default_factory=dict, repr=False)

    def get_provider_key(self, vendor: str) -> str | None:
        """Return the API key for ``vendor``, or ``None`` if unset/empty."""
        return self.providers.get(vendor) or None

    def get_endpoint(self, name: str) -> str | None:
        return self.endpoints.get(name) or None

    def key_source(self, vendor: str) -> str | None:
        """Where ``vendor``'s key came from: ``"env"``, ``"file"`` or ``None``."""
        if not self.get_provider_key(vendor):
            return None
        return self._key_sources.get(vendor, "file")

    def dispatch_config(self) -> DispatchConfig:
        """Build the validated, immutable dispatch configuration.

        Raises:
            ConfigurationError: If retry or timeout settings are out of range.
        """
        return DispatchConfig(
            default_provider=self.default_provider or None,
            fallback_order=tuple(self.fallback_order),
            retry_attempts=self.retry_attempts,
            retry_base_delay=self.retry_delay_ms / 1000,
            request_timeout=self.request_timeout,
        )


def mask_key(key: str) -> str:
    """Mask an API key for display, keeping a short prefix and the last four."""
    if len(key) <= 10:
        return "****"
    return f"{key[:6]}...{key[-4:]}"


def resolve_config_path() -> Path:
    override = os.environ.get(CONFIG_PATH_ENV)
    return Path(override).expanduser() if override else CONFIG_PATH


def load_config(path: Path | None = None) -> Settings:
    """Load settings from the config file and environment.

    A missing file is not an error; defaults apply.

    Args:
        path: Config file to read.  Defaults to ``resolve_config_path()``.

    Returns:
        Fully layered ``Settings``.

    Raises:
        ConfigurationError: If the file is not valid TOML or a value has
            the wrong type.
    """
    config_path = path or resolve_config_path()
    settings = Settings(config_path=config_path)

    if config_path.is_file():
        try:
            with config_path.open("rb") as fh:
                data = tomllib.load(fh)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigurationError(f"Invalid TOML in {config_path}: {exc}") from exc
        _apply_file(settings, data)
        logger.debug("Loaded config from %s", config_path)

    _apply_env(settings)
    return settings


def _apply_file(settings: Settings, data: dict[str, Any]) -> None:
    for vendor, key in _table(data, "providers").items():
        if key:
            settings.providers[vendor] = str(key)
            settings._key_sources[vendor] = "file"

    for name, url in _table(data, "endpoints").items():
        if url:
            settings.endpoints[name] = str(url)

    dispatch = _table(data, "dispatch")
    if "default_provider" in dispatch:
        settings.default_provider = str(dispatch["default_provider"]) or None
    if "fallback_order" in dispatch:
        order = dispatch["fallback_order"]
        if not isinstance(order, list):
            raise ConfigurationError("dispatch.fallback_order must be a list of provider names")
        settings.fallback_order = [str(name) for name in order]
    if "retry_attempts" in dispatch:
        settings.retry_attempts = _as_int("dispatch.retry_attempts", dispatch["retry_attempts"])
    if "retry_delay_ms" in dispatch:
        settings.retry_delay_ms = _as_int("dispatch.retry_delay_ms", dispatch["retry_delay_ms"])
    if "request_timeout" in dispatch:
        settings.request_timeout = _as_float("dispatch.request_timeout", dispatch["request_timeout"])


def _table(data: dict[str, Any], name: str) -> dict[str, Any]:
    table = data.get(name, {})
    if not isinstance(table, dict):
        raise ConfigurationError(f"[{name}] must be a table, got {table!r}")
    return table


def _apply_env(settings: Settings) -> None:
    for vendor, var in PROVIDER_KEY_ENV_VARS.items():
        value = os.environ.get(var)
        if value:
            settings.providers[vendor] = value
            settings._key_sources[vendor] = "env"

    for name, var in ENDPOINT_ENV_VARS.items():
        value = os.environ.get(var)
        if value:
            settings.endpoints[name] = value

    if value := os.environ.get("LLM_DEFAULT_PROVIDER"):
        settings.default_provider = value
    if value := os.environ.get("LLM_FALLBACK_PROVIDERS"):
        settings.fallback_order = [name.strip() for name in value.split(",") if name.strip()]
    if value := os.environ.get("LLM_RETRY_ATTEMPTS"):
        settings.retry_attempts = _as_int("LLM_RETRY_ATTEMPTS", value)
    if value := os.environ.get("LLM_RETRY_DELAY_MS"):
        settings.retry_delay_ms = _as_int("LLM_RETRY_DELAY_MS", value)
    if value := os.environ.get("LLM_REQUEST_TIMEOUT"):
        settings.request_timeout = _as_float("LLM_REQUEST_TIMEOUT", value)


def _as_int(label: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{label} must be an integer, got {value!r}") from exc


def _as_float(label: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{label} must be a number, got {value!r}") from exc
