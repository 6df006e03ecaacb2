"""Chat transports: where request bytes come from.

``ChatTransport`` is the seam between a session and the network. The HTTP
transport POSTs the request as JSON and yields the raw response body; tests
substitute ``streamcase.foundation.testing.MockTransport``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from typing import Protocol, runtime_checkable

import httpx

from streamcase.foundation.config import StreamcaseSettings, get_settings
from streamcase.foundation.errors import ErrorCode, StreamError, TransportError
from streamcase.io.streaming import encode
from streamcase.runtime.observability import get_logger

from .types import ChatRequest

log = get_logger("streamcase.transport")


@runtime_checkable
class ChatTransport(Protocol):
    """Streams the raw response body for one chat request."""

    def stream(self, request: ChatRequest) -> AsyncIterator[bytes]:
        """Yield body chunks; raise ``TransportError`` on connection or HTTP faults."""
        ...


class HttpChatTransport:
    """POSTs chat requests to an HTTP endpoint with httpx.

    Example:
        >>> async with HttpChatTransport("https://example.com/api/chat") as transport:
        ...     session = ChatSession(transport)
    """

    __slots__ = ("_api", "_headers", "_timeout", "_verify", "_follow_redirects", "_client", "_owns_client")

    def __init__(
        self,
        api: str | None = None,
        *,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
        settings: StreamcaseSettings | None = None,
    ) -> None:
        settings = settings or get_settings()
        http = settings.http
        self._api = _join_url(http.base_url, api or settings.chat.api)
        self._headers = {"User-Agent": http.user_agent, **http.headers, **(headers or {})}
        self._timeout = http.timeout if timeout is None else timeout
        self._verify = http.verify_ssl
        self._follow_redirects = http.follow_redirects
        self._client = client
        self._owns_client = client is None

    @property
    def api(self) -> str:
        return self._api

    # ─────────────────────────────────────────────────────────────────
    # HTTP Client
    # ─────────────────────────────────────────────────────────────────

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                follow_redirects=self._follow_redirects,
                verify=self._verify,
                timeout=self._timeout,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpChatTransport:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    # ─────────────────────────────────────────────────────────────────
    # Streaming
    # ─────────────────────────────────────────────────────────────────

    async def stream(self, request: ChatRequest) -> AsyncIterator[bytes]:
        headers = {**self._headers, "Content-Type": "application/json", **request.headers}
        client = self._get_client()
        log.debug("POST chat request", url=self._api, messages=len(request.messages))
        try:
            async with client.stream("POST", self._api, content=encode(request.payload()), headers=headers) as response:
                if response.status_code >= 400:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise TransportError.from_status(response.status_code, body)
                async for chunk in response.aiter_bytes():
                    yield chunk
        except httpx.TimeoutException as e:
            raise TransportError(StreamError.create(f"Request timed out: {e}", ErrorCode.TIMEOUT)) from e
        except httpx.HTTPError as e:
            raise TransportError(StreamError.create(
                f"{type(e).__name__}: {e}" if str(e) else type(e).__name__, ErrorCode.TRANSPORT_ERROR,
            )) from e


def _join_url(base: str | None, path: str) -> str:
    if not base or path.startswith(("http://", "https://")):
        return path
    return f"{base.rstrip('/')}/{path.lstrip('/')}"
