"""
FastAPI dependencies for database access and services.

Provides dependency injection for routes.
"""

from __future__ import annotations

from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.connection import get_async_session
from app.services.background_sync import BackgroundSyncService, background_sync
from app.services.duration_maintenance import DurationMaintenanceService
from app.services.transcript_service import TranscriptService


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for database session.

    Usage:
        @app.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async for session in get_async_session():
        yield session


async def get_transcript_service(
    db: AsyncSession = Depends(get_db),
) -> AsyncGenerator[TranscriptService, None]:
    """TranscriptService whose Fathom client is closed after the request."""
    service = TranscriptService(db)
    try:
        yield service
    finally:
        await service.close()


def get_maintenance_service(db: AsyncSession = Depends(get_db)) -> DurationMaintenanceService:
    return DurationMaintenanceService(db)


def get_background_sync() -> BackgroundSyncService:
    return background_sync
