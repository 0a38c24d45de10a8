"""
Pytest configuration and fixtures
"""

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from typing import AsyncGenerator

from api.main import app
from api.dependencies import get_continuation, get_db, get_fetchers, get_session_factory
from core.config import settings
from models import Base, Source
from ingestion.continuation import RecordingContinuation
from ingestion.fetchers.registry import FetcherRegistry
from tests.fakes import StaticFetcher, make_deals

# One in-memory database per test, shared by every session of that test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def competitor_deals():
    return make_deals(7)


@pytest.fixture
def partner_metrics():
    """Partner API DealMetric items"""
    return [
        {
            "vendor_id": "v-1",
            "deal_id": 42,
            "deal_name": "Spa day for two",
            "quantity_sold": 10,
            "net_revenue": 450.5,
            "margin": 0.32,
            "run_at": "2024-01-10T00:00:00Z",
            "end_at": "2024-02-10T00:00:00Z",
            "url": "https://partner.example/deals/42",
            "updated_at": "2024-01-15T10:00:00Z",
        },
        {
            "vendor_id": "v-2",
            "deal_id": 43,
            "deal_name": "Sushi dinner",
            "quantity_sold": 0,
            "net_revenue": 0,
            "margin": 0.25,
            "run_at": "2024-01-12T00:00:00Z",
            "end_at": None,
            "url": None,
            "updated_at": "2024-01-15T10:00:00Z",
        },
    ]


@pytest.fixture
def fetchers(competitor_deals, partner_metrics):
    """Registry with an in-memory fetcher per source"""
    return FetcherRegistry({
        Source.OFERTA24: StaticFetcher(Source.OFERTA24, competitor_deals),
        Source.PARTNER_METRICS: StaticFetcher(Source.PARTNER_METRICS, partner_metrics),
        Source.RANTANOFERTAS: StaticFetcher(Source.RANTANOFERTAS, make_deals(4, start=100)),
    })


# ============================================================================
# API fixtures
# ============================================================================

CRON_SECRET = "test-cron-secret"
ADMIN_API_KEY = "test-admin-key"
USER_API_KEY = "test-user-key"


@pytest.fixture
def scan_credentials(monkeypatch):
    """Configure the scan credentials for the duration of a test"""
    monkeypatch.setattr(settings, "CRON_SECRET", CRON_SECRET)
    monkeypatch.setattr(settings, "ADMIN_API_KEY", ADMIN_API_KEY)
    monkeypatch.setattr(settings, "API_KEY", USER_API_KEY)
    monkeypatch.setattr(settings, "PARTNER_API_TOKEN", None)


@pytest.fixture
def continuation():
    return RecordingContinuation()


@pytest_asyncio.fixture
async def api_client(session_factory, fetchers, continuation):
    """Async client against the app with test collaborators injected"""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_fetchers] = lambda: fetchers
    app.dependency_overrides[get_continuation] = lambda: continuation

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
