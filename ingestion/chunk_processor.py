"""
Chunk Processor - one bounded slice of one source per call.

Fetch ``[cursor, cursor + chunk_size)``, normalize and upsert each item,
then compute where the next chunk starts. A chunk either completes (and
the cursor may advance) or raises (and it may not).
"""

import time
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from ingestion.fetchers.registry import FetcherRegistry
from ingestion.transformers.normalizer import RecordNormalizer
from ingestion.loaders.record_upserter import ChangeTrackedUpserter
from models.base import Source
from schemas.records import UpsertOutcome
from schemas.scan import ScanChunkResult
from core.config import settings
from core.exceptions import FetchError, NormalizationError

logger = logging.getLogger(__name__)


class ChunkProcessor:
    """
    Process one chunk of a source.

    Error scopes:
    - NormalizationError: item skipped, recorded in ``errors``
    - FetchError: raised, nothing upserted, cursor does not advance
    - UpsertError: raised, records upserted so far stay committed
    """

    def __init__(
        self,
        db_session: AsyncSession,
        fetchers: FetcherRegistry,
        chunk_size: Optional[int] = None
    ):
        self.db = db_session
        self.fetchers = fetchers
        self.chunk_size = settings.SCAN_CHUNK_SIZE if chunk_size is None else chunk_size
        self.upserter = ChangeTrackedUpserter(db_session)

        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")

    async def process_chunk(self, source: Source, cursor: int = 0) -> ScanChunkResult:
        """
        Process ``[cursor, cursor + chunk_size)`` of ``source``.

        Returns:
            ScanChunkResult with ``next_cursor`` set unless the source is complete

        Raises:
            FetchError: The fetcher failed
            UpsertError: The store rejected a record
        """
        source = Source(source)
        if cursor < 0:
            raise ValueError("cursor must be >= 0")

        started = time.perf_counter()
        result = ScanChunkResult(source=source, cursor=cursor)

        # --------------------------------------------------
        # FETCH
        # --------------------------------------------------
        fetcher = self.fetchers.get(source)
        try:
            page = await fetcher.list_page(cursor, self.chunk_size)
        except FetchError:
            raise
        except Exception as e:
            raise FetchError(
                "Unexpected error during fetch",
                context={"source": source.value, "cursor": cursor},
                original_exception=e
            )

        items = page.items[:self.chunk_size]
        result.total_available = page.total_available

        # --------------------------------------------------
        # NORMALIZE + UPSERT
        # --------------------------------------------------
        normalizer = RecordNormalizer(source)

        for index, item in enumerate(items, start=cursor):
            try:
                record = normalizer.normalize(item)
            except NormalizationError as e:
                result.errors.append(f"item {index}: {e.message}")
                logger.warning(f"{source.value}: skipped item {index}: {e.message}")
                continue
            except Exception as e:
                result.errors.append(f"item {index}: {type(e).__name__}: {e}")
                logger.exception(f"{source.value}: unexpected normalization failure at item {index}")
                continue

            upserted = await self.upserter.upsert(record)

            result.items_processed += 1
            if record.has_sales:
                result.items_with_sales_count += 1
            if upserted.outcome == UpsertOutcome.CREATED:
                result.new_records += 1
            elif upserted.outcome == UpsertOutcome.UPDATED:
                result.updated_records += 1
            else:
                result.unchanged_records += 1

        # --------------------------------------------------
        # NEXT CURSOR
        # --------------------------------------------------
        next_cursor = cursor + self.chunk_size
        if next_cursor < page.total_available:
            result.next_cursor = next_cursor
            result.is_source_complete = False
        else:
            result.next_cursor = None
            result.is_source_complete = True

        result.duration_ms = int((time.perf_counter() - started) * 1000)

        logger.info(
            f"{source.value} chunk @{cursor}: processed={result.items_processed} "
            f"new={result.new_records} updated={result.updated_records} "
            f"errors={len(result.errors)} next={result.next_cursor} ({result.duration_ms}ms)"
        )
        return result
