import asyncio
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine
from core.config import settings
from core.exceptions import DatabaseError
from core.logging import setup_logging
# Registers every table on Base.metadata
from models import Base

logger = logging.getLogger(__name__)


async def init_database():
    logger.info("Connecting to database...")
    engine = create_async_engine(settings.DATABASE_URL, echo=False)

    try:
        async with engine.begin() as conn:
            logger.info("Creating tables...")
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Tables created successfully.")
    except SQLAlchemyError as e:
        raise DatabaseError(
            "Failed to create tables",
            context={"operation": "create_all", "tables": sorted(Base.metadata.tables)},
            original_exception=e
        )
    finally:
        await engine.dispose()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(init_database())
