"""
FastAPI application initialization
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from api.routes import health, data, stats, scan
from api.dependencies import get_continuation
from api.middleware import RequestContextMiddleware
from core.config import settings
from core.exceptions import ScanAuthError
from core.logging import setup_logging
from ingestion.continuation import HttpContinuation
from ingestion.scheduler import ScanScheduler
import logging

setup_logging()
logger = logging.getLogger(__name__)

scheduler = ScanScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown"""
    logger.info("Starting deal scan service")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")
    if not settings.CRON_SECRET:
        logger.warning("CRON_SECRET is not set; GET /scan requires the admin key and continuations will be rejected")

    if settings.SCHEDULER_ENABLED:
        scheduler.start()

    yield

    logger.info("Shutting down deal scan service")
    if settings.SCHEDULER_ENABLED:
        scheduler.stop()
    continuation = get_continuation()
    if isinstance(continuation, HttpContinuation) and continuation.pending:
        logger.info(f"Waiting for {continuation.pending} continuation deliveries")
        await continuation.drain()


app = FastAPI(
    title="Deal Scan Service",
    description="Resumable, chunked ingestion of competitor and partner deal metrics",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(RequestContextMiddleware)

app.include_router(health.router)
app.include_router(data.router)
app.include_router(stats.router)
app.include_router(scan.router)


@app.exception_handler(ScanAuthError)
async def scan_auth_error_handler(request: Request, exc: ScanAuthError):
    logger.warning(f"Rejected {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Deal Scan Service",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "scan": "/scan",
            "data": "/data",
            "stats": "/stats"
        }
    }
