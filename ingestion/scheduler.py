import logging
from typing import Optional
import httpx
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from core.config import settings

logger = logging.getLogger(__name__)


class ScanScheduler:
    """
    In-process stand-in for the platform cron.

    Fires ``GET /scan`` (no source: start of sweep) on ``SCAN_CRON``. From
    there the sweep chains itself through continuations.
    """

    def __init__(
        self,
        cron: Optional[str] = None,
        base_url: Optional[str] = None,
        secret: Optional[str] = None,
        admin_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.scheduler = AsyncIOScheduler()
        self.cron = cron or settings.SCAN_CRON
        self.base_url = (base_url or settings.APP_BASE_URL).rstrip("/")
        self.secret = secret if secret is not None else settings.CRON_SECRET
        self.admin_key = admin_key if admin_key is not None else settings.ADMIN_API_KEY
        self.client = client

    def _headers(self) -> dict:
        if self.secret:
            return {"Authorization": f"Bearer {self.secret}"}
        if self.admin_key:
            return {"X-API-Key": self.admin_key}
        return {}

    async def trigger_sweep(self) -> Optional[int]:
        """Job: start a sweep. Returns the HTTP status, or None if unreachable."""
        logger.info("Scheduler: starting scan sweep")
        url = f"{self.base_url}/scan"
        try:
            if self.client is not None:
                response = await self.client.get(url, headers=self._headers())
            else:
                async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
                    response = await client.get(url, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error(f"Scheduler: sweep trigger failed - {type(e).__name__}: {e}")
            return None

        if response.status_code >= 400:
            logger.error(f"Scheduler: sweep trigger rejected with status {response.status_code}")
        else:
            logger.info(f"Scheduler: sweep started (status {response.status_code})")
        return response.status_code

    def start(self):
        """Start the scheduler"""
        self.scheduler.add_job(
            self.trigger_sweep,
            trigger=CronTrigger.from_crontab(self.cron),
            id="scan_sweep",
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        self.scheduler.start()
        logger.info(f"Scan scheduler started ({self.cron})")

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Scan scheduler stopped")
