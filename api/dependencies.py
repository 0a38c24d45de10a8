"""
FastAPI dependencies: sessions, collaborators and the request context
"""

from functools import lru_cache
from typing import AsyncIterator, Optional
from fastapi import Header, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from core.database import async_session_maker
from core.security import RequestContext
from ingestion.continuation import Continuation, HttpContinuation
from ingestion.fetchers.registry import FetcherRegistry


async def get_db() -> AsyncIterator[AsyncSession]:
    """Request-scoped session"""
    async with async_session_maker() as session:
        yield session


def get_session_factory() -> async_sessionmaker:
    """For work that outlives the request scope, e.g. a streaming body"""
    return async_session_maker


@lru_cache()
def get_fetchers() -> FetcherRegistry:
    return FetcherRegistry.from_settings()


@lru_cache()
def get_continuation() -> Continuation:
    # One instance per process so pending deliveries can be drained on shutdown
    return HttpContinuation()


def get_request_context(
    internal: bool = Query(False, description="Set on self-issued continuation calls"),
    authorization: Optional[str] = Header(None),
    x_api_key: Optional[str] = Header(None),
    accept: Optional[str] = Header(None),
) -> RequestContext:
    return RequestContext(
        authorization=authorization,
        api_key=x_api_key,
        accept=accept,
        is_internal=internal,
    )
