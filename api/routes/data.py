"""
Data retrieval endpoints with pagination, filtering and snapshot history
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_
from sqlalchemy.orm import selectinload
from api.dependencies import get_db
from api.period_sales import period_boundaries, period_sales, sales_for_records
from schemas.api import DataResponse, PaginationMetadata
from schemas.records import IngestedRecordResponse, RecordHistoryResponse
from models.base import Source
from models.ingested_record import IngestedRecord
from typing import Optional
from datetime import datetime
import time
import uuid
import math
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Data"])

SORT_FIELDS = {
    "last_seen_at": IngestedRecord.last_seen_at,
    "quantity_sold": IngestedRecord.quantity_sold,
    "net_revenue": IngestedRecord.net_revenue,
    "name": IngestedRecord.name,
}


@router.get("/data", response_model=DataResponse)
async def get_data(
    request: Request,
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=1000, description="Items per page"),
    source: Optional[Source] = Query(None, description="Filter by source"),
    search: Optional[str] = Query(None, description="Search in record name"),
    with_sales: Optional[bool] = Query(None, description="Only records with quantity sold > 0"),
    seen_after: Optional[datetime] = Query(None, description="Last seen after this time"),
    sort_by: str = Query("last_seen_at", description="last_seen_at, quantity_sold, net_revenue or name"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    db: AsyncSession = Depends(get_db)
):
    """
    Retrieve paginated and filtered ingested records.
    """
    start_time = time.time()
    request_id = getattr(request.state, "request_id", f"req_{uuid.uuid4().hex[:12]}")

    if sort_by not in SORT_FIELDS:
        raise HTTPException(status_code=422, detail=f"sort_by must be one of: {', '.join(SORT_FIELDS)}")

    logger.info(
        f"[{request_id}] GET /data - page={page}, page_size={page_size}, "
        f"filters: source={source}, search={search}, with_sales={with_sales}"
    )

    filters = []
    if source:
        filters.append(IngestedRecord.source == source)
    if search:
        filters.append(IngestedRecord.name.ilike(f"%{search}%"))
    if with_sales is True:
        filters.append(IngestedRecord.quantity_sold > 0)
    elif with_sales is False:
        filters.append(IngestedRecord.quantity_sold == 0)
    if seen_after:
        filters.append(IngestedRecord.last_seen_at >= seen_after)

    count_query = select(func.count()).select_from(IngestedRecord)
    query = select(IngestedRecord)
    if filters:
        count_query = count_query.where(and_(*filters))
        query = query.where(and_(*filters))

    total_items = (await db.execute(count_query)).scalar() or 0
    total_pages = math.ceil(total_items / page_size) if total_items > 0 else 0

    column = SORT_FIELDS[sort_by]
    query = query.order_by(column.asc() if sort_order == "asc" else column.desc(), IngestedRecord.id)
    query = query.offset((page - 1) * page_size).limit(page_size)

    items = (await db.execute(query)).scalars().all()
    sales = await sales_for_records(db, items)

    api_latency_ms = (time.time() - start_time) * 1000
    logger.info(f"[{request_id}] Returned {len(items)} records ({api_latency_ms:.2f}ms)")

    return DataResponse(
        items=[
            IngestedRecordResponse.model_validate(item).model_copy(update=sales[item.id])
            for item in items
        ],
        pagination=PaginationMetadata(
            current_page=page,
            page_size=page_size,
            total_items=total_items,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_previous=page > 1
        ),
        filters_applied={k: v for k, v in {
            "source": source.value if source else None,
            "search": search,
            "with_sales": with_sales,
            "seen_after": seen_after,
        }.items() if v is not None}
    )


@router.get("/data/{source}/{external_id}", response_model=RecordHistoryResponse)
async def get_record_history(
    source: Source,
    external_id: str,
    db: AsyncSession = Depends(get_db)
):
    """
    One record with its snapshots, oldest first, and its period sales.

    Each snapshot holds the values the record had before the change that
    created it; the record itself holds the current values.
    """
    result = await db.execute(
        select(IngestedRecord)
        .options(selectinload(IngestedRecord.snapshots))
        .where(IngestedRecord.source == source, IngestedRecord.external_id == external_id)
    )
    record = result.scalar_one_or_none()
    if record is None:
        raise HTTPException(status_code=404, detail=f"No record {source.value}/{external_id}")

    history = [(s.captured_at, s.quantity_sold) for s in record.snapshots]
    sales = period_sales(record.quantity_sold, history, period_boundaries())
    return RecordHistoryResponse.model_validate(record).model_copy(update=sales)
