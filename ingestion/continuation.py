"""
Continuation: how a finished chunk asks for the next one.

The orchestrator only knows ``schedule(source, cursor)``. In production
that is a fire-and-forget ``GET /scan`` against this same service; in
tests and the local CLI it is an in-memory recorder.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import List, Optional, Set, Tuple
import httpx
import logging

from models.base import Source
from core.config import settings
from core.exceptions import ContinuationError

logger = logging.getLogger(__name__)


class Continuation(ABC):
    """Capability to request that ``(source, cursor)`` be processed next"""

    @abstractmethod
    def schedule(self, source: Source, cursor: int) -> None:
        """Request the next chunk. Must not block and must not raise."""
        pass


class RecordingContinuation(Continuation):
    """Keeps scheduled steps in memory instead of sending them anywhere"""

    def __init__(self):
        self.scheduled: List[Tuple[Source, int]] = []

    def schedule(self, source: Source, cursor: int) -> None:
        self.scheduled.append((Source(source), cursor))


class HttpContinuation(Continuation):
    """
    Self-invocation over HTTP.

    Sends ``GET {base_url}/scan?source=..&cursor=..&internal=true`` with the
    cron secret as a bearer header, or the admin key as ``X-API-Key`` when no
    secret is configured (never in the URL). Delivery is not awaited by the
    caller, not retried, and failures are only logged: the next scheduled
    sweep is the recovery path.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        secret: Optional[str] = None,
        admin_key: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.base_url = (base_url or settings.APP_BASE_URL).rstrip("/")
        self.secret = secret if secret is not None else settings.CRON_SECRET
        self.admin_key = admin_key if admin_key is not None else settings.ADMIN_API_KEY
        self.timeout = timeout if timeout is not None else settings.CONTINUATION_TIMEOUT_SECONDS
        self.client = client
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def schedule(self, source: Source, cursor: int) -> None:
        source = Source(source)
        logger.info(f"Scheduling continuation: {source.value} cursor={cursor}")
        task = asyncio.create_task(self._deliver(source, cursor))
        # The loop only keeps weak references to tasks
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for in-flight deliveries, e.g. on shutdown"""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def _deliver(self, source: Source, cursor: int) -> None:
        try:
            await self._send(source, cursor)
        except ContinuationError as e:
            logger.error(f"Continuation lost, sweep truncated: {e}")
        except Exception:
            logger.exception(f"Continuation lost, sweep truncated: {source.value} cursor={cursor}")

    def _headers(self) -> dict:
        if self.secret:
            return {"Authorization": f"Bearer {self.secret}"}
        # Without a cron secret GET /scan accepts the admin key
        if self.admin_key:
            return {"X-API-Key": self.admin_key}
        return {}

    async def _send(self, source: Source, cursor: int) -> None:
        url = f"{self.base_url}/scan"
        params = {"source": source.value, "cursor": cursor, "internal": "true"}
        headers = self._headers()
        context = {"source": source.value, "cursor": cursor, "url": url}

        try:
            if self.client is not None:
                status = await self._request(self.client, url, params, headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    status = await self._request(client, url, params, headers)
        except httpx.ReadTimeout:
            # Request reached the server; the chunk runs on without us
            logger.info(f"Continuation sent: {source.value} cursor={cursor} (response not awaited)")
            return
        except httpx.HTTPError as e:
            raise ContinuationError("Continuation delivery failed", context=context, original_exception=e)

        if status >= 400:
            raise ContinuationError(
                f"Continuation rejected with status {status}",
                context={**context, "status_code": status}
            )
        logger.info(f"Continuation sent: {source.value} cursor={cursor} status={status}")

    async def _request(self, client: httpx.AsyncClient, url: str, params: dict, headers: dict) -> int:
        # Only the status line is awaited, never the body
        async with client.stream("GET", url, params=params, headers=headers, timeout=self.timeout) as response:
            return response.status_code
