"""
Partner platform deal-metrics fetcher (natively paginated)
"""

from datetime import timedelta
from typing import Optional
import httpx
from ingestion.fetchers.base import HTTPSourceFetcher, FetchedPage
from models.base import Source, utcnow
from core.config import settings
from core.exceptions import FetchError
import logging

logger = logging.getLogger(__name__)

# Partner API refuses larger pages
MAX_PAGE_SIZE = 1000


class PartnerMetricsFetcher(HTTPSourceFetcher):
    """
    Page through ``GET {api_url}?since=&limit=&offset=``.

    Response: ``{"total": int, "returned": int, "deals": [DealMetric, ...]}``.
    ``since`` has day granularity so every chunk of one sweep asks for the
    same window.
    """

    source = Source.PARTNER_METRICS

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_token: Optional[str] = None,
        since_days: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None,
        **kwargs
    ):
        super().__init__(client=client, **kwargs)
        self.api_url = api_url or settings.PARTNER_API_URL
        self.api_token = api_token if api_token is not None else settings.PARTNER_API_TOKEN
        self.since_days = since_days if since_days is not None else settings.PARTNER_SINCE_DAYS

    def _since(self) -> str:
        return (utcnow() - timedelta(days=self.since_days)).date().isoformat()

    async def list_page(self, cursor: int, size: int) -> FetchedPage:
        if size > MAX_PAGE_SIZE:
            # The chunk cursor advances by the full size
            raise FetchError(
                f"Partner API pages hold at most {MAX_PAGE_SIZE} deals, {size} requested",
                context={"source": self.source.value, "offset": cursor, "size": size}
            )

        params = {
            "since": self._since(),
            "limit": size,
            "offset": cursor,
        }
        headers = {"Accept": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"

        data = await self._get_json(self.api_url, params=params, headers=headers)

        if not isinstance(data, dict) or not isinstance(data.get("deals"), list):
            raise FetchError(
                "Unexpected partner API response shape",
                context={"source": self.source.value, "url": self.api_url, "offset": cursor}
            )

        try:
            total = int(data.get("total", 0))
        except (TypeError, ValueError) as e:
            raise FetchError(
                "Partner API returned a non-numeric total",
                context={"source": self.source.value, "url": self.api_url},
                original_exception=e
            )

        logger.info(f"{self.source.value}: fetched {len(data['deals'])} metrics at offset {cursor} of {total}")
        return FetchedPage(items=data["deals"], total_available=total)
