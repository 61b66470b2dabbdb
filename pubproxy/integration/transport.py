"""HTTP transport for the pubproxy API.

Sends one GET with the given query parameters and hands back the status code
and body text. Classifying the response is left to the caller. Errors raised
here are ``TransportError`` for requests that never got a response and
``ConfigurationError`` for a base URL that cannot be parsed.
No retries happen at this level.

SECURITY: Never logs the ``api`` query parameter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from pubproxy.errors import ConfigurationError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://pubproxy.com/api/proxy"


@dataclass(frozen=True)
class RawResponse:
    """Status code and body of one service response."""

    status: int
    text: str


class Transport(Protocol):
    def get(self, params: dict[str, str]) -> RawResponse: ...


class AsyncTransport(Protocol):
    async def get(self, params: dict[str, str]) -> RawResponse: ...


def _loggable(params: dict[str, str]) -> dict[str, str]:
    return {key: value for key, value in params.items() if key != "api"}


def _invalid_url(exc: httpx.InvalidURL, base_url: str) -> ConfigurationError:
    logger.error(
        "Base URL %r is not usable: %s",
        base_url,
        exc,
        extra={"error_kind": "ConfigurationError"},
    )
    return ConfigurationError(
        f"Base URL {base_url!r} is not usable: {exc}",
        fields=[{"field": "base_url", "message": str(exc), "type": "invalid_url"}],
    )


def _transport_error(exc: httpx.HTTPError, base_url: str) -> TransportError:
    logger.warning(
        "Request to %s failed: %s",
        base_url,
        exc.__class__.__name__,
        extra={"error_kind": "TransportError"},
    )
    return TransportError(
        f"Request to {base_url} failed: {exc.__class__.__name__}: {exc}",
        cause=exc.__class__.__name__,
    )


class HttpTransport:
    """Blocking transport backed by ``httpx.Client``.

    Parameters
    ----------
    base_url:
        Endpoint of the proxy listing API.
    timeout_seconds:
        Total timeout per request.
    user_agent:
        Value of the User-Agent header.
    client:
        Pre-configured client, mainly for tests (``httpx.MockTransport``).
        A client passed in is not closed by ``close()``.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 10.0,
        user_agent: str = "pubproxy-client/1.0",
        client: httpx.Client | None = None,
    ) -> None:
        self._base_url = base_url
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=httpx.Timeout(timeout_seconds),
            headers={"User-Agent": user_agent},
        )

    def get(self, params: dict[str, str]) -> RawResponse:
        logger.debug("GET %s params=%s", self._base_url, _loggable(params))
        try:
            response = self._client.get(self._base_url, params=params)
        except httpx.InvalidURL as exc:
            raise _invalid_url(exc, self._base_url) from exc
        except httpx.HTTPError as exc:
            raise _transport_error(exc, self._base_url) from exc
        return RawResponse(status=response.status_code, text=response.text)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> HttpTransport:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class AsyncHttpTransport:
    """Asyncio transport backed by ``httpx.AsyncClient``; see ``HttpTransport``."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 10.0,
        user_agent: str = "pubproxy-client/1.0",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds),
            headers={"User-Agent": user_agent},
        )

    async def get(self, params: dict[str, str]) -> RawResponse:
        logger.debug("GET %s params=%s", self._base_url, _loggable(params))
        try:
            response = await self._client.get(self._base_url, params=params)
        except httpx.InvalidURL as exc:
            raise _invalid_url(exc, self._base_url) from exc
        except httpx.HTTPError as exc:
            raise _transport_error(exc, self._base_url) from exc
        return RawResponse(status=response.status_code, text=response.text)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> AsyncHttpTransport:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
