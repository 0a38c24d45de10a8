"""
Ingestion statistics endpoint
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, case
from api.dependencies import get_db
from api.period_sales import PERIODS, load_histories, period_boundaries, period_sales
from schemas.api import StatsResponse, SourceStatistics
from models.base import SOURCE_SEQUENCE, Source
from models.ingested_record import IngestedRecord
from models.snapshot import RecordSnapshot
import uuid
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Statistics"])


@router.get("/stats", response_model=StatsResponse)
async def get_stats(db: AsyncSession = Depends(get_db)):
    """
    Get ingestion statistics.

    Returns:
    - Totals across all sources
    - Per-source record, sales and snapshot counts
    - Quantity sold today, in the last 7 days and in the last 30 days
    """
    request_id = f"req_{uuid.uuid4().hex[:12]}"
    logger.info(f"[{request_id}] GET /stats")

    # ========== Per-Source Records ==========

    records_result = await db.execute(
        select(
            IngestedRecord.source,
            func.count(IngestedRecord.id),
            func.sum(case((IngestedRecord.quantity_sold > 0, 1), else_=0)),
            func.sum(IngestedRecord.quantity_sold),
            func.max(IngestedRecord.last_seen_at),
        ).group_by(IngestedRecord.source)
    )
    by_source = {
        Source(row[0]): {
            "total_records": row[1] or 0,
            "records_with_sales": int(row[2] or 0),
            "total_quantity_sold": float(row[3] or 0),
            "last_seen_at": row[4],
        }
        for row in records_result.all()
    }

    # ========== Per-Source Snapshots ==========

    snapshots_result = await db.execute(
        select(IngestedRecord.source, func.count(RecordSnapshot.id))
        .join(RecordSnapshot, RecordSnapshot.record_id == IngestedRecord.id)
        .group_by(IngestedRecord.source)
    )
    snapshots_by_source = {Source(row[0]): row[1] or 0 for row in snapshots_result.all()}

    # ========== Period Sales ==========

    # Only records changed since the earliest boundary can have sold anything
    boundaries = period_boundaries()
    histories = await load_histories(db, min(boundaries.values()))
    sales_by_source = {source: dict.fromkeys(PERIODS, 0.0) for source in SOURCE_SEQUENCE}
    if histories:
        changed = await db.execute(
            select(IngestedRecord.id, IngestedRecord.source, IngestedRecord.quantity_sold)
            .where(IngestedRecord.id.in_(list(histories)))
        )
        for record_id, source, quantity in changed.all():
            for name, value in period_sales(quantity, histories[record_id], boundaries).items():
                sales_by_source[Source(source)][name] += value

    sources = [
        SourceStatistics(
            source=source,
            total_snapshots=snapshots_by_source.get(source, 0),
            **sales_by_source[source],
            **by_source.get(source, {})
        )
        for source in SOURCE_SEQUENCE
    ]

    total_records = sum(s.total_records for s in sources)
    total_snapshots = sum(s.total_snapshots for s in sources)

    logger.info(f"[{request_id}] Stats: {total_records} records, {total_snapshots} snapshots")

    return StatsResponse(
        total_records=total_records,
        total_snapshots=total_snapshots,
        records_with_sales=sum(s.records_with_sales for s in sources),
        sales_today=sum(s.sales_today for s in sources),
        sales_this_week=sum(s.sales_this_week for s in sources),
        sales_last_30_days=sum(s.sales_last_30_days for s in sources),
        source_statistics=sources,
        request_id=request_id
    )
