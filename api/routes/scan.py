"""
Scan endpoints.

POST /scan  - admin-triggered interactive run (SSE or one JSON aggregate)
GET  /scan  - one chunk per call, chained through continuations
"""

from typing import Optional
from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse, StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from api.dependencies import (
    get_continuation,
    get_db,
    get_fetchers,
    get_request_context,
    get_session_factory,
)
from core.security import RequestContext, authorize_cron_request, configured_secrets, require_admin
from ingestion.chunk_processor import ChunkProcessor
from ingestion.continuation import Continuation
from ingestion.fetchers.registry import FetcherRegistry
from ingestion.orchestrator import ScanOrchestrator
from ingestion.progress import (
    SSE_HEADERS,
    chunk_response,
    failure_response,
    sse_stream,
    summary_response,
)
from models.base import Source
from schemas.scan import ScanRequest, ScanSummary
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Scan"])


@router.post("/scan")
async def trigger_scan(
    body: Optional[ScanRequest] = Body(None),
    ctx: RequestContext = Depends(get_request_context),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    fetchers: FetcherRegistry = Depends(get_fetchers),
):
    """
    Run a manual scan inside this request.

    Send ``Accept: text/event-stream`` for per-chunk progress events.
    Omit ``source`` to scan every source in sweep order.
    """
    require_admin(ctx)
    source = body.source if body else None
    label = source.value if source else "all sources"

    if ctx.wants_event_stream:
        logger.info(f"Starting streamed scan for {label}")

        async def frames():
            # The request-scoped session is closed before a streamed body runs
            async with session_factory() as session:
                orchestrator = ScanOrchestrator(ChunkProcessor(session, fetchers))
                summary = ScanSummary()
                async for frame in sse_stream(orchestrator.iter_chunks(source, summary), summary, configured_secrets()):
                    yield frame

        return StreamingResponse(frames(), media_type="text/event-stream", headers=SSE_HEADERS)

    logger.info(f"Starting scan for {label}")
    try:
        async with session_factory() as session:
            orchestrator = ScanOrchestrator(ChunkProcessor(session, fetchers))
            summary = await orchestrator.run_interactive(source)
    except Exception as e:
        logger.exception(f"Manual scan failed for {label}")
        return JSONResponse(status_code=500, content=failure_response(e, "Failed to run scan", configured_secrets()))

    return summary_response(summary, configured_secrets())


@router.get("/scan")
async def run_scan_chunk(
    source: Optional[Source] = Query(None, description="Omit to start a full sweep"),
    cursor: int = Query(0, ge=0, description="Offset into the source's items"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
    fetchers: FetcherRegistry = Depends(get_fetchers),
    continuation: Continuation = Depends(get_continuation),
):
    """
    Process one chunk and schedule the next one.

    Called by the scheduler (no parameters) and by this service itself
    with ``source``, ``cursor`` and ``internal=true``.
    """
    authorize_cron_request(ctx)

    origin = "continuation" if ctx.is_internal else "trigger"
    logger.info(f"GET /scan ({origin}): source={source.value if source else None} cursor={cursor}")

    orchestrator = ScanOrchestrator(ChunkProcessor(db, fetchers), continuation)
    try:
        chunk = await orchestrator.run_chunk(source, cursor)
    except Exception as e:
        logger.exception(f"Scan chunk failed: source={source.value if source else None} cursor={cursor}")
        return JSONResponse(
            status_code=500,
            content=failure_response(e, "Failed to run scheduled scan", configured_secrets())
        )

    return chunk_response(chunk, sweep_started=source is None, secrets=configured_secrets())
