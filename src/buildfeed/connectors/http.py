"""
Shared aiohttp plumbing for upstream connectors.

Every connector owns one lazily created ClientSession. Non-success statuses
are turned into UpstreamError tagged with the request path. There is no
retry: a failed call fails the caller.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlsplit

import aiohttp
import orjson

from buildfeed.errors import UpstreamError

logger = logging.getLogger(__name__)


class HttpConnector:
    """Base class holding the session and the GET helpers."""

    def __init__(
        self,
        timeout_s: float = 30.0,
        headers: dict[str, str] | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """
        Initialize the connector.

        Args:
            timeout_s: Total timeout per request in seconds.
            headers: Default headers sent with every request.
            session: Optional externally owned session (not closed by close()).
        """
        self._timeout_s = timeout_s
        self._headers = dict(headers or {})
        self._session = session
        self._owns_session = session is None
        self.requests_made = 0

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._timeout_s)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this connector created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _get_bytes(self, url: str, params: dict[str, str] | None = None) -> bytes:
        """
        GET a URL and return the raw body.

        Raises:
            UpstreamError: On a non-2xx status.
            aiohttp.ClientError: On network errors.
        """
        path = urlsplit(url).path
        session = await self._get_session()
        self.requests_made += 1
        logger.debug("GET", extra={"url": url})
        async with session.get(url, params=params, headers=self._headers) as response:
            if response.status >= 400:
                text = await response.text()
                logger.error(
                    "HTTP error",
                    extra={"status": response.status, "path": path, "body": text[:500]},
                )
                raise UpstreamError(path, response.status, text[:200])
            return await response.read()

    async def _get_json(self, url: str, params: dict[str, str] | None = None) -> Any:
        """GET a URL and decode the body as JSON."""
        return orjson.loads(await self._get_bytes(url, params=params))
