"""
Database configuration - SQLAlchemy 2.0 Async
Project: JobQuote (Quote & Invoice Backend)

One engine per process, one session per request. Sessions run with the
server timezone pinned to UTC: quota windows are computed in Python in the
business timezone and compared against timestamptz columns.
"""

import asyncio
import logging
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings

logger = logging.getLogger(__name__)

# ------------------------------------------------------------
# Engine
# ------------------------------------------------------------
engine: AsyncEngine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    connect_args={
        "server_settings": {
            "application_name": settings.app_name,
            "timezone": "UTC",
        },
    },
)

# ------------------------------------------------------------
# Sessions
# ------------------------------------------------------------
# expire_on_commit=False: routers serialise ORM objects after committing
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session for FastAPI.

    Routers commit once the operation succeeded. Any exception, including
    the cancellation of a request whose client went away, rolls the
    session back: a quote is never left half-updated and a quota unit is
    never consumed for an invoice that was not written.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except (Exception, asyncio.CancelledError):
            await session.rollback()
            raise


async def init_db() -> None:
    """Fail startup early when the database cannot be reached."""
    url = engine.url.render_as_string(hide_password=True)
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("Cannot reach database %s: %s", url, e)
        raise
    logger.info("Connected to database %s", url)


async def close_db() -> None:
    """Dispose of the connection pool at shutdown."""
    await engine.dispose()
    logger.info("Database pool disposed")
