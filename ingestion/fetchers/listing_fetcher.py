"""
Competitor listing fetcher.

The scraping worker publishes each competitor's current deals as a JSON
feed. This fetcher reads the feed, caps it and hands out slices. For sites
whose listing lacks sales counts, items can carry a ``detailUrl`` that is
fetched and merged per item.
"""

from typing import List, Dict, Any, Optional
import httpx
from ingestion.fetchers.base import HTTPSourceFetcher, FetchedPage
from models.base import Source
from core.config import settings
from core.exceptions import FetchError
import logging

logger = logging.getLogger(__name__)


class ListingFetcher(HTTPSourceFetcher):
    """Slice a competitor's listing feed"""

    def __init__(
        self,
        source: Source,
        feed_url: str,
        max_items: Optional[int] = None,
        fetch_details: bool = False,
        client: Optional[httpx.AsyncClient] = None,
        **kwargs
    ):
        super().__init__(client=client, **kwargs)
        self.source = Source(source)
        self.feed_url = feed_url
        self.max_items = max_items if max_items is not None else settings.MAX_ITEMS_PER_SOURCE
        self.fetch_details = fetch_details

    async def list_page(self, cursor: int, size: int) -> FetchedPage:
        listing = await self._fetch_listing()
        items = listing[cursor:cursor + size]

        if self.fetch_details:
            items = [await self._with_details(item) for item in items]

        logger.info(
            f"{self.source.value}: fetched items {cursor}-{cursor + len(items)} of {len(listing)}"
        )
        return FetchedPage(items=items, total_available=len(listing))

    async def _fetch_listing(self) -> List[Any]:
        data = await self._get_json(self.feed_url)

        if isinstance(data, list):
            listing = data
        elif isinstance(data, dict):
            listing = data.get("deals", data.get("data", []))
        else:
            listing = None

        if not isinstance(listing, list):
            raise FetchError(
                "Listing feed is not a list of deals",
                context={"source": self.source.value, "url": self.feed_url}
            )

        return listing[:self.max_items]

    async def _with_details(self, item: Any) -> Any:
        """Merge the detail document into the item; keep the item if that fails"""
        if not isinstance(item, dict) or not item.get("detailUrl"):
            return item
        try:
            detail = await self._get_json(item["detailUrl"])
        except FetchError as e:
            logger.warning(f"{self.source.value}: detail fetch failed for {item['detailUrl']}: {e.message}")
            return item
        if isinstance(detail, dict):
            return {**item, **detail}
        return item
