"""Reader for the published CLI feed document."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from buildfeed.connectors.http import HttpConnector
from buildfeed.contracts.feed import FeedDocument

if TYPE_CHECKING:
    import aiohttp

logger = logging.getLogger(__name__)

DEFAULT_FEED_URL = (
    "https://raw.githubusercontent.com/Azure/azure-functions-tooling-feed/master/cli-feed-v3.json"
)


class FeedClient(HttpConnector):
    """Fetches the current feed. Never cached: each run sees the latest publish."""

    def __init__(
        self,
        feed_url: str = DEFAULT_FEED_URL,
        *,
        timeout_s: float = 30.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        super().__init__(timeout_s=timeout_s, session=session)
        self.feed_url = feed_url

    async def get_feed(self) -> FeedDocument:
        """
        Download and parse the feed.

        Raises:
            FeedError: If the body is not a feed with releases.
            UpstreamError: On a non-2xx status.
        """
        document = FeedDocument.from_json(await self._get_bytes(self.feed_url))
        logger.info("Fetched feed", extra={"releases": len(document.releases)})
        return document
