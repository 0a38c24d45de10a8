"""
Source fetcher interface and the shared HTTP retry logic.

A fetcher answers one question: for ``[cursor, cursor + size)``, which
items exist and how many items does the source hold in total. How it gets
them is its own business.
"""

import httpx
import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional
from models.base import Source
from core.config import settings
from core.exceptions import (
    FetchError,
    NetworkError,
    RateLimitError,
    SourceAuthenticationError,
    ResourceNotFoundError,
)
import logging

logger = logging.getLogger(__name__)


@dataclass
class FetchedPage:
    items: List[Any] = field(default_factory=list)
    total_available: int = 0


class SourceFetcher(ABC):
    """Abstract page fetcher for one source"""

    source: Source

    @abstractmethod
    async def list_page(self, cursor: int, size: int) -> FetchedPage:
        """
        Fetch the slice ``[cursor, cursor + size)``.

        Raises:
            FetchError: the page could not be fetched; the chunk must fail
        """
        pass


class HTTPSourceFetcher(SourceFetcher):
    """
    Base for fetchers backed by an HTTP endpoint.

    Features:
    - Retry with exponential backoff on timeouts, network errors, 429 and 5xx
    - Honors ``Retry-After`` on 429
    - 401/403 and 404 fail immediately
    - Optional shared ``httpx.AsyncClient`` (tests pass one with a MockTransport)
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        max_retries: Optional[int] = None,
        retry_delay: float = 1.0,
        timeout: Optional[float] = None
    ):
        self.client = client
        self.max_retries = max_retries if max_retries is not None else settings.MAX_RETRIES
        self.retry_delay = retry_delay
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS

    async def _get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> Any:
        if self.client is not None:
            response = await self._request_with_retry(self.client, url, params or {}, headers or {})
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await self._request_with_retry(client, url, params or {}, headers or {})

        try:
            return response.json()
        except ValueError as e:
            raise FetchError(
                "Failed to parse JSON response",
                context={
                    "source": self.source.value,
                    "url": url,
                    "response_body": response.text[:500]
                },
                original_exception=e
            )

    async def _request_with_retry(
        self,
        client: httpx.AsyncClient,
        url: str,
        params: Dict[str, Any],
        headers: Dict[str, str]
    ) -> httpx.Response:
        """
        GET with retry logic and exponential backoff.

        Raises:
            SourceAuthenticationError, ResourceNotFoundError: immediately
            RateLimitError, NetworkError: after the last attempt
        """
        context = {"source": self.source.value, "url": url}

        for attempt in range(self.max_retries):
            delay = self.retry_delay * (2 ** attempt)
            last_attempt = attempt >= self.max_retries - 1

            try:
                logger.debug(f"Request attempt {attempt + 1}/{self.max_retries} to {url}")
                response = await client.get(url, params=params, headers=headers, timeout=self.timeout)
            except httpx.TimeoutException as e:
                if last_attempt:
                    raise NetworkError(
                        f"Request timeout after {self.max_retries} attempts",
                        context={**context, "timeout": self.timeout, "retry_count": attempt + 1},
                        original_exception=e
                    )
                logger.warning(f"Request timeout. Retrying in {delay} seconds")
                await asyncio.sleep(delay)
                continue
            except httpx.TransportError as e:
                if last_attempt:
                    raise NetworkError(
                        f"Network error after {self.max_retries} attempts",
                        context={**context, "retry_count": attempt + 1},
                        original_exception=e
                    )
                logger.warning(f"Network error. Retrying in {delay} seconds")
                await asyncio.sleep(delay)
                continue

            if response.status_code in (401, 403):
                raise SourceAuthenticationError(
                    f"Authentication failed for {url}",
                    context={**context, "status_code": response.status_code}
                )

            if response.status_code == 404:
                raise ResourceNotFoundError(
                    f"Resource not found: {url}",
                    context={**context, "status_code": 404}
                )

            if response.status_code == 429:
                retry_after = self._retry_after(response, delay)
                if last_attempt:
                    raise RateLimitError(
                        f"Rate limit exceeded for {url}",
                        context={**context, "status_code": 429, "retry_count": attempt + 1},
                        retry_after=retry_after
                    )
                logger.warning(f"Rate limited. Retrying after {retry_after} seconds")
                await asyncio.sleep(retry_after)
                continue

            if response.status_code >= 500:
                if last_attempt:
                    raise NetworkError(
                        f"Server error after {self.max_retries} attempts",
                        context={
                            **context,
                            "status_code": response.status_code,
                            "retry_count": attempt + 1,
                            "response_body": response.text[:500]
                        }
                    )
                logger.warning(
                    f"Server error {response.status_code}. "
                    f"Retrying in {delay} seconds (attempt {attempt + 1}/{self.max_retries})"
                )
                await asyncio.sleep(delay)
                continue

            if response.status_code >= 400:
                raise FetchError(
                    f"Unexpected status {response.status_code} from {url}",
                    context={**context, "status_code": response.status_code}
                )

            return response

        raise FetchError("Max retries exceeded", context=context)

    @staticmethod
    def _retry_after(response: httpx.Response, default: float) -> float:
        try:
            return float(response.headers.get("Retry-After", default))
        except ValueError:
            return default
