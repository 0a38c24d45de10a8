"""
Source -> fetcher lookup
"""

from typing import Dict, Optional
import httpx
from ingestion.fetchers.base import SourceFetcher
from ingestion.fetchers.listing_fetcher import ListingFetcher
from ingestion.fetchers.partner_fetcher import PartnerMetricsFetcher
from models.base import Source
from core.config import settings


class FetcherRegistry:
    """Maps each ``Source`` to the fetcher that serves it"""

    def __init__(self, fetchers: Dict[Source, SourceFetcher]):
        self._fetchers = {Source(k): v for k, v in fetchers.items()}

    def get(self, source: Source) -> SourceFetcher:
        try:
            return self._fetchers[Source(source)]
        except KeyError:
            raise KeyError(f"No fetcher registered for source {source}")

    def __contains__(self, source) -> bool:
        return Source(source) in self._fetchers

    @classmethod
    def from_settings(cls, client: Optional[httpx.AsyncClient] = None) -> "FetcherRegistry":
        return cls({
            Source.OFERTA24: ListingFetcher(
                Source.OFERTA24,
                feed_url=settings.OFERTA24_FEED_URL,
                client=client,
            ),
            Source.PARTNER_METRICS: PartnerMetricsFetcher(client=client),
            Source.RANTANOFERTAS: ListingFetcher(
                Source.RANTANOFERTAS,
                feed_url=settings.RANTANOFERTAS_FEED_URL,
                fetch_details=True,
                client=client,
            ),
        })
