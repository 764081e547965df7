"""
PostgreSQL connection management using async SQLAlchemy.

One engine per process. Request handlers get a session through
``get_async_session``; the background sync and maintenance scripts use
``get_db_context``. Both commit on success and roll back on error.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

from sqlalchemy import text
from sqlalchemy.exc import InterfaceError, OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings
from app.core.exceptions import DatabaseError

logger = logging.getLogger(__name__)

# Tables the transcript manager cannot run without
REQUIRED_TABLES = ("meetings", "meeting_participants", "sync_status")

async_engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    pool_size=settings.DATABASE_POOL_SIZE,
    max_overflow=settings.DATABASE_MAX_OVERFLOW,
    pool_timeout=settings.DATABASE_POOL_TIMEOUT,
    pool_pre_ping=True,
)

AsyncSessionLocal = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


@asynccontextmanager
async def _managed_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except (OperationalError, InterfaceError, PoolTimeoutError) as e:
            await session.rollback()
            logger.error(f"Database unavailable: {e}")
            raise DatabaseError() from e
        except Exception:
            await session.rollback()
            raise


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request."""
    async with _managed_session() as session:
        yield session


get_db = get_async_session


def get_db_context():
    """
    Session for code running outside a request.

    Usage:
        async with get_db_context() as db:
            await DurationMaintenanceService(db).fix_durations()
    """
    return _managed_session()


async def missing_tables() -> list:
    """Required tables that do not exist in the connected database."""
    async with async_engine.connect() as conn:
        missing = []
        for table in REQUIRED_TABLES:
            result = await conn.execute(text("SELECT to_regclass(:name)"), {"name": table})
            if result.scalar() is None:
                missing.append(table)
        return missing


async def init_db() -> None:
    """
    Verify connectivity on startup. Raises if PostgreSQL is unreachable.
    """
    logger.info(f"Connecting to PostgreSQL at {settings.DB_HOST}:{settings.DB_PORT}/{settings.DB_DATABASE}...")
    try:
        async with async_engine.connect() as conn:
            version = (await conn.execute(text("SHOW server_version"))).scalar()
        logger.info(f"✅ Connected to PostgreSQL {version}")
    except Exception as e:
        logger.error(f"❌ Failed to connect to database: {e}")
        raise


async def close_db() -> None:
    """Dispose of pooled connections on shutdown."""
    await async_engine.dispose()
    logger.info("✅ Database connections closed")


async def create_tables() -> None:
    """
    Create any missing meeting tables. Existing tables are left alone;
    schema changes go through Alembic.
    """
    from app.database.models import Base

    missing = await missing_tables()
    if not missing:
        logger.info("Meeting tables present")
        return

    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"✅ Created tables: {', '.join(missing)}")


async def check_health() -> Dict[str, Any]:
    """Connectivity and schema check for the health endpoint."""
    try:
        missing = await missing_tables()
    except Exception as e:
        return {
            "status": "unhealthy",
            "database": settings.DB_DATABASE,
            "error": str(e),
        }
    return {
        "status": "healthy" if not missing else "unhealthy",
        "database": settings.DB_DATABASE,
        "missing_tables": missing,
        "error": f"Missing tables: {', '.join(missing)}" if missing else None,
    }
