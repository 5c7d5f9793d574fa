"""Provider base class.

Every vendor adapter implements the same capability set: a ``name``, a
cheap ``is_available`` probe, and a single-shot ``generate_completion``.
The registry and the dispatch policy only ever see this interface.

Adapters hold no connection between calls.  Each probe and each
completion opens a fresh ``httpx.AsyncClient`` and closes it before
returning.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from llm_dispatch.exceptions import ProviderCallError
from llm_dispatch.models import CompletionResult
from llm_dispatch.types import GenerationOptions, Message

DEFAULT_TEMPERATURE = 0.7
DEFAULT_TIMEOUT = 120.0  # seconds — generous for slow responses
PROBE_TIMEOUT = 5.0

logger = logging.getLogger(__name__)


class Provider(ABC):
    """Abstract base for one LLM vendor integration.

    Args:
        base_url: Vendor API root, without a trailing slash.
        timeout: Completion request timeout in seconds.
        transport: Optional ``httpx`` transport, used to stub the network.
    """

    name: str = ""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, base_url={self._base_url!r})"

    @property
    def base_url(self) -> str:
        return self._base_url

    def _headers(self) -> dict[str, str]:
        """Vendor auth and content headers for every request."""
        return {"content-type": "application/json"}

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers=self._headers(),
            transport=self._transport,
        )

    async def _probe(self, url: str) -> bool:
        """GET ``url`` and report whether it answered with a 2xx status.

        Never raises: any transport error counts as unavailable.
        """
        try:
            async with self._client(PROBE_TIMEOUT) as client:
                resp = await client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug("Probe for %s failed: %s", self.name, exc)
            return False
        if not resp.is_success:
            logger.debug("Probe for %s returned HTTP %d", self.name, resp.status_code)
        return resp.is_success

    async def _post(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST ``payload`` and return the parsed JSON body.

        Raises:
            ProviderCallError: On timeout, transport failure, non-2xx
                status, or a body that is not a JSON object.
        """
        try:
            async with self._client(self._timeout) as client:
                resp = await client.post(url, json=payload)
        except httpx.TimeoutException as exc:
            raise ProviderCallError(
                self.name, f"Request timed out after {self._timeout}s"
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise ProviderCallError(self.name, f"Transport error: {exc}") from exc

        if not resp.is_success:
            raise ProviderCallError(
                self.name,
                f"HTTP {resp.status_code}: {self._extract_error(resp)}",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise ProviderCallError(self.name, "Response body is not valid JSON") from exc
        if not isinstance(data, dict):
            raise ProviderCallError(self.name, f"Unexpected response body: {data!r}")
        return data

    def _extract_error(self, resp: httpx.Response) -> str:
        """Pull a readable message out of an error response.

        Handles the common ``{"error": {"message": ...}}`` and
        ``{"error": "..."}`` shapes, falling back to the raw body.
        """
        try:
            body = resp.json()
        except ValueError:
            return resp.text[:500] or resp.reason_phrase
        if isinstance(body, dict):
            error = body.get("error", body)
            if isinstance(error, dict):
                return str(error.get("message", body))
            return str(error)
        return str(body)[:500]

    @abstractmethod
    async def is_available(self) -> bool:
        """Cheap, non-authoritative liveness probe.  Never raises."""

    @abstractmethod
    async def generate_completion(
        self,
        messages: list[Message],
        options: GenerationOptions | None = None,
    ) -> CompletionResult:
        """Perform exactly one completion call.

        Args:
            messages: Conversation in chronological order.
            options: Generation options; ``None`` fields use adapter defaults.

        Returns:
            ``CompletionResult`` with ``provider`` set to this adapter's name.

        Raises:
            ProviderCallError: On any transport or vendor failure.
        """
