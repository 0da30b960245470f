"""
Upstream Client
===============

aiohttp client for the Rugplay market-data API. Builds the target URL from a path
template and a query mapping, issues exactly one GET, and returns the parsed JSON
body. Non-2xx answers are raised as ``UpstreamHTTPError`` carrying the status and
the raw body so the proxy layer can mirror them.
"""

import asyncio
import json
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote, urlencode

import aiohttp

from rugplay_gateway.config.logging import get_logger
from rugplay_gateway.config.settings import Settings

logger = get_logger(__name__)


class UpstreamError(Exception):
    """Base exception for failed upstream calls."""

    def __init__(self, message: str, url: str):
        super().__init__(message)
        self.url = url


class UpstreamHTTPError(UpstreamError):
    """Upstream answered with a non-2xx status."""

    def __init__(self, status: int, body: str, url: str):
        super().__init__(f"Upstream returned HTTP {status}", url)
        self.status = status
        self.body = body


class UpstreamTransportError(UpstreamError):
    """The request never produced a response (connection, DNS, timeout)."""


class UpstreamPayloadError(UpstreamError):
    """Upstream answered 2xx with a body that is not JSON."""


def build_url(
    base_url: str,
    path: str,
    path_params: Optional[Mapping[str, str]] = None,
    query_params: Optional[Mapping[str, Any]] = None,
) -> str:
    """
    Build an upstream URL.

    Args:
        base_url: Upstream base URL without trailing slash
        path: Path template such as ``/v1/coin/{symbol}``
        path_params: Identifiers substituted into the template, one path segment each
        query_params: Query parameters; ``None`` values are left out

    Returns:
        Absolute URL with a form-encoded query string
    """
    segments = {name: quote(str(value), safe="") for name, value in (path_params or {}).items()}
    url = base_url + path.format(**segments)

    query = {name: value for name, value in (query_params or {}).items() if value is not None}
    if query:
        url = f"{url}?{urlencode(query)}"
    return url


class UpstreamClient:
    """Client for the market-data API with a bounded number of in-flight calls."""

    def __init__(self, settings: Settings):
        self.base_url = settings.upstream_base_url
        self.timeout = settings.upstream_timeout
        self.max_concurrency = settings.max_concurrent_upstream_calls
        self.logger: Any = logger.bind(component="upstream_client")
        self._semaphore = asyncio.Semaphore(self.max_concurrency)
        self._in_flight = 0
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def available_slots(self) -> int:
        return self.max_concurrency - self._in_flight

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            if self.timeout is not None:
                self._session = aiohttp.ClientSession(
                    timeout=aiohttp.ClientTimeout(total=self.timeout)
                )
            else:
                self._session = aiohttp.ClientSession()
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def fetch(
        self,
        path: str,
        headers: Mapping[str, str],
        path_params: Optional[Mapping[str, str]] = None,
        query_params: Optional[Mapping[str, Any]] = None,
        base_url: Optional[str] = None,
    ) -> Any:
        """
        Issue one GET against the upstream API.

        Args:
            path: Path template relative to the base URL
            headers: Outbound headers, credentials included
            path_params: Identifiers substituted into the path
            query_params: Query parameters
            base_url: Override for the configured base URL

        Returns:
            Parsed JSON body

        Raises:
            UpstreamHTTPError: Upstream answered with a non-2xx status
            UpstreamTransportError: No response was received
            UpstreamPayloadError: A 2xx body could not be parsed as JSON
        """
        url = build_url(base_url or self.base_url, path, path_params, query_params)
        self.logger.info("Fetching from upstream", url=url)

        async with self._semaphore:
            self._in_flight += 1
            try:
                session = await self._get_session()
                async with session.get(url, headers=dict(headers)) as response:
                    self.logger.info("Upstream response received", url=url, status=response.status)
                    # Undecodable bytes are replaced so error bodies are still relayed
                    body = await response.text(errors="replace")
                    status = response.status
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                self.logger.error("Upstream request failed", url=url, error=str(e))
                raise UpstreamTransportError(f"Upstream request failed: {e}", url) from e
            finally:
                self._in_flight -= 1

        if not 200 <= status < 300:
            self.logger.error("Upstream error response", url=url, status=status, body=body)
            raise UpstreamHTTPError(status, body, url)

        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            self.logger.error("Upstream returned invalid JSON", url=url, error=str(e))
            raise UpstreamPayloadError(f"Invalid JSON from upstream: {e}", url) from e

        self.logger.debug("Upstream data parsed", url=url)
        return data
