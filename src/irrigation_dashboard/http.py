"""Async HTTP client abstraction tailored for irrigation controller interactions."""

from __future__ import annotations

import logging
from collections.abc import Mapping, MutableMapping
from typing import Any, Protocol

import httpx

from .config import HttpClientConfig
from .errors import FetchTimeoutError, TransportError

logger = logging.getLogger(__name__)


class AsyncHttpClientProtocol(Protocol):
    """Protocol describing the async HTTP operations required by the dashboard."""

    async def post_form(
        self,
        url: str,
        data: Mapping[str, str],
        *,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:  # pragma: no cover - protocol signature
        """Send a form-encoded POST request and return the HTTP response."""
        ...

    async def get(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> httpx.Response:  # pragma: no cover - protocol signature
        """Send a GET request and return the HTTP response."""
        ...

    async def close(self) -> None:  # pragma: no cover - protocol signature
        """Release HTTP resources and close underlying connections."""
        ...


class ControllerHttpClient(AsyncHttpClientProtocol):
    """httpx-based client bound to a single controller base URL."""

    def __init__(
        self,
        config: HttpClientConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialise the HTTP client with optional *config* and test *transport*."""
        self._config = config or HttpClientConfig()
        limits = httpx.Limits(max_connections=self._config.max_connections or None)
        self._client = httpx.AsyncClient(
            base_url=str(self._config.base_url),
            http2=self._config.enable_http2,
            limits=limits,
            headers=self._build_default_headers(),
            transport=transport,
            # Deadlines are enforced per request class by the fetcher.
            timeout=None,
        )

    @property
    def base_url(self) -> str:
        """Return the controller base URL."""
        return str(self._client.base_url)

    async def post_form(
        self,
        url: str,
        data: Mapping[str, str],
        *,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        """Send a form-encoded POST request to the controller."""
        logger.debug("POST %s with %d form field(s)", url, len(data))
        try:
            response = await self._client.post(
                url,
                data=data,
                follow_redirects=False,
                headers=self._merge_headers(headers),
            )
        except httpx.TimeoutException as exc:
            logger.warning("HTTP POST to %s timed out: %s", url, exc)
            raise FetchTimeoutError(f"POST {url} timed out") from exc
        except httpx.HTTPError as exc:
            logger.error("HTTP POST to %s failed: %s", url, exc)
            raise TransportError(str(exc)) from exc
        _raise_for_status("POST", url, response)
        logger.debug(
            "POST %s completed in %.2f ms",
            url,
            response.elapsed.total_seconds() * 1000.0,
        )
        return response

    async def get(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> httpx.Response:
        """Send a GET request to the controller."""
        logger.debug("GET %s with params=%s", url, None if params is None else list(params.keys()))
        try:
            response = await self._client.get(
                url,
                params=params,
                follow_redirects=False,
                headers=self._merge_headers(headers),
            )
        except httpx.TimeoutException as exc:
            logger.warning("HTTP GET %s timed out: %s", url, exc)
            raise FetchTimeoutError(f"GET {url} timed out") from exc
        except httpx.HTTPError as exc:
            logger.error("HTTP GET %s failed: %s", url, exc)
            raise TransportError(str(exc)) from exc
        _raise_for_status("GET", url, response)
        logger.debug(
            "GET %s completed in %.2f ms",
            url,
            response.elapsed.total_seconds() * 1000.0,
        )
        return response

    async def close(self) -> None:
        """Close the underlying httpx.AsyncClient instance."""
        await self._client.aclose()
        logger.debug("httpx.AsyncClient closed for base URL %s", self._client.base_url)

    def _merge_headers(self, headers: Mapping[str, str] | None) -> MutableMapping[str, str]:
        """Merge default headers with user-provided *headers*."""
        merged: MutableMapping[str, str] = dict(self._client.headers)
        if headers:
            merged.update(headers)
        return merged

    def _build_default_headers(self) -> MutableMapping[str, str]:
        """Return the default header set applied to every request."""
        return {
            "User-Agent": self._config.user_agent,
            "Accept": "application/json, text/plain;q=0.9, */*;q=0.5",
            "Connection": "keep-alive",
        }


def _raise_for_status(method: str, url: str, response: httpx.Response) -> None:
    """Translate a non-success *response* into :class:`TransportError`."""
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        status = exc.response.status_code
        logger.error("HTTP %s %s returned status %s", method, url, status)
        raise TransportError(f"{method} {url} returned HTTP {status}", status_code=status) from exc
