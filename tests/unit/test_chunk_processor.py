"""
Unit tests for the chunk processor
"""

import math
import pytest
from unittest.mock import MagicMock, patch
from sqlalchemy import select, func
from ingestion.chunk_processor import ChunkProcessor
from ingestion.fetchers.registry import FetcherRegistry
from models.base import Source
from models.ingested_record import IngestedRecord
from models.snapshot import RecordSnapshot
from core.exceptions import FetchError, NetworkError, UpsertError
from tests.fakes import StaticFetcher, make_deals


def registry_for(source, items=None, fail_with=None):
    fetcher = StaticFetcher(source, items, fail_with)
    return FetcherRegistry({source: fetcher}), fetcher


async def stored_ids(db_session):
    result = await db_session.execute(select(IngestedRecord.external_id))
    return sorted(result.scalars().all())


class TestCursorProgression:
    """Cursor arithmetic and completion"""

    @pytest.mark.asyncio
    async def test_seven_items_in_chunks_of_three(self, db_session):
        """Test cursors 0, 3, 6 yield next cursors 3, 6, None"""
        fetchers, _ = registry_for(Source.OFERTA24, make_deals(7))
        processor = ChunkProcessor(db_session, fetchers, chunk_size=3)

        results = [await processor.process_chunk(Source.OFERTA24, cursor) for cursor in (0, 3, 6)]

        assert [r.next_cursor for r in results] == [3, 6, None]
        assert [r.is_source_complete for r in results] == [False, False, True]
        assert [r.items_processed for r in results] == [3, 3, 1]
        assert all(r.total_available == 7 for r in results)

    @pytest.mark.parametrize("total,size", [(1, 1), (10, 3), (9, 3), (25, 25), (26, 25), (5, 100)])
    @pytest.mark.asyncio
    async def test_following_next_cursor_visits_every_item_once(self, db_session, total, size):
        """Test ceil(N/K) chunks cover each item exactly once"""
        fetchers, fetcher = registry_for(Source.OFERTA24, make_deals(total))
        processor = ChunkProcessor(db_session, fetchers, chunk_size=size)

        cursor, calls, created = 0, 0, 0
        while True:
            result = await processor.process_chunk(Source.OFERTA24, cursor)
            calls += 1
            created += result.new_records
            if result.is_source_complete:
                break
            assert result.next_cursor > cursor
            cursor = result.next_cursor

        assert calls == math.ceil(total / size)
        assert created == total
        assert await stored_ids(db_session) == sorted(f"deal-{n}" for n in range(total))
        assert [c for c, _ in fetcher.calls] == list(range(0, total, size))

    @pytest.mark.asyncio
    async def test_empty_source_completes_immediately(self, db_session):
        fetchers, _ = registry_for(Source.OFERTA24, [])
        processor = ChunkProcessor(db_session, fetchers, chunk_size=25)

        result = await processor.process_chunk(Source.OFERTA24, 0)

        assert result.is_source_complete is True
        assert result.next_cursor is None
        assert result.items_processed == 0

    @pytest.mark.asyncio
    async def test_rejects_negative_cursor(self, db_session):
        fetchers, _ = registry_for(Source.OFERTA24, make_deals(3))
        processor = ChunkProcessor(db_session, fetchers, chunk_size=3)

        with pytest.raises(ValueError):
            await processor.process_chunk(Source.OFERTA24, -1)

    @pytest.mark.parametrize("size", [0, -5])
    def test_rejects_non_positive_chunk_size(self, size):
        fetchers, _ = registry_for(Source.OFERTA24, make_deals(3))

        with pytest.raises(ValueError):
            ChunkProcessor(MagicMock(), fetchers, chunk_size=size)

    def test_default_chunk_size_from_settings(self):
        fetchers, _ = registry_for(Source.OFERTA24, make_deals(3))

        with patch("ingestion.chunk_processor.settings") as mock_settings:
            mock_settings.SCAN_CHUNK_SIZE = 40
            assert ChunkProcessor(MagicMock(), fetchers).chunk_size == 40


class TestChunkTallies:
    """Counters in the chunk result"""

    @pytest.mark.asyncio
    async def test_counts_new_updated_and_sales(self, db_session):
        """Test outcome and sales counters"""
        deals = make_deals(4)
        deals[0]["totalSold"] = 0
        fetchers, fetcher = registry_for(Source.OFERTA24, deals)
        processor = ChunkProcessor(db_session, fetchers, chunk_size=10)

        first = await processor.process_chunk(Source.OFERTA24, 0)
        assert first.new_records == 4
        assert first.items_with_sales_count == 3

        fetcher.items[1] = {**fetcher.items[1], "totalSold": 999}
        second = await processor.process_chunk(Source.OFERTA24, 0)

        assert second.new_records == 0
        assert second.updated_records == 1
        assert second.unchanged_records == 3
        assert second.duration_ms >= 0

    @pytest.mark.asyncio
    async def test_malformed_item_is_skipped_and_reported(self, db_session):
        """Test one bad item among K valid ones costs only that item"""
        items = make_deals(3)
        items.insert(1, {"dealTitle": "no identity here"})
        fetchers, _ = registry_for(Source.OFERTA24, items)
        processor = ChunkProcessor(db_session, fetchers, chunk_size=10)

        result = await processor.process_chunk(Source.OFERTA24, 0)

        assert result.items_processed == 3
        assert result.new_records == 3
        assert len(result.errors) == 1
        assert "item 1" in result.errors[0]
        assert await stored_ids(db_session) == ["deal-0", "deal-1", "deal-2"]

    @pytest.mark.asyncio
    async def test_duplicate_chunk_is_harmless(self, db_session):
        """Test re-running the same (source, cursor) reports everything unchanged"""
        fetchers, _ = registry_for(Source.OFERTA24, make_deals(5))
        processor = ChunkProcessor(db_session, fetchers, chunk_size=5)

        await processor.process_chunk(Source.OFERTA24, 0)
        replay = await processor.process_chunk(Source.OFERTA24, 0)

        assert replay.new_records == 0
        assert replay.updated_records == 0
        assert replay.unchanged_records == 5
        records = (await db_session.execute(select(func.count()).select_from(IngestedRecord))).scalar()
        snapshots = (await db_session.execute(select(func.count()).select_from(RecordSnapshot))).scalar()
        assert records == 5
        assert snapshots == 0


class TestChunkFailures:
    """Chunk-level errors"""

    @pytest.mark.asyncio
    async def test_fetch_error_propagates_without_writes(self, db_session):
        """Test a failing fetcher aborts the chunk"""
        fetchers, _ = registry_for(
            Source.PARTNER_METRICS,
            fail_with=NetworkError("partner API down", context={"source": "partner_metrics"})
        )
        processor = ChunkProcessor(db_session, fetchers, chunk_size=5)

        with pytest.raises(NetworkError):
            await processor.process_chunk(Source.PARTNER_METRICS, 0)

        assert await stored_ids(db_session) == []

    @pytest.mark.asyncio
    async def test_unexpected_fetcher_exception_is_wrapped(self, db_session):
        fetchers, _ = registry_for(Source.OFERTA24, fail_with=RuntimeError("boom"))
        processor = ChunkProcessor(db_session, fetchers, chunk_size=5)

        with pytest.raises(FetchError) as exc_info:
            await processor.process_chunk(Source.OFERTA24, 10)

        assert exc_info.value.context["cursor"] == 10

    @pytest.mark.asyncio
    async def test_upsert_error_aborts_chunk(self, db_session):
        """Test a store failure is not reported as a completed chunk"""
        fetchers, _ = registry_for(Source.OFERTA24, make_deals(3))
        processor = ChunkProcessor(db_session, fetchers, chunk_size=3)

        with patch.object(processor.upserter, "upsert", side_effect=UpsertError("disk full")):
            with pytest.raises(UpsertError):
                await processor.process_chunk(Source.OFERTA24, 0)
