"""
Health check endpoint with database and source freshness
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, text
from sqlalchemy.exc import SQLAlchemyError
from api.dependencies import get_db
from schemas.api import HealthCheckResponse, SourceFreshness
from models.base import SOURCE_SEQUENCE, Source
from models.ingested_record import IngestedRecord
from core.config import settings
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - Record count and last sighting per source
    """
    db_connected = False
    sources = []

    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
    except SQLAlchemyError as e:
        logger.error(f"Database connection failed: {str(e)}")

    if db_connected:
        try:
            result = await db.execute(
                select(IngestedRecord.source, func.count(IngestedRecord.id), func.max(IngestedRecord.last_seen_at))
                .group_by(IngestedRecord.source)
            )
            seen = {Source(row[0]): (row[1], row[2]) for row in result.all()}
            for source in SOURCE_SEQUENCE:
                records, last_seen_at = seen.get(source, (0, None))
                sources.append(SourceFreshness(source=source, records=records, last_seen_at=last_seen_at))
        except SQLAlchemyError as e:
            logger.error(f"Failed to read source freshness: {str(e)}")

    if not db_connected:
        status = "unhealthy"
    elif not settings.CRON_SECRET and not settings.ADMIN_API_KEY:
        # Nothing can authorize a scan
        status = "degraded"
    else:
        status = "healthy"

    return HealthCheckResponse(
        status=status,
        database_connected=db_connected,
        scheduler_enabled=settings.SCHEDULER_ENABLED,
        continuation_configured=bool(settings.CRON_SECRET or settings.ADMIN_API_KEY),
        sources=sources
    )
