"""
Fathom sync and maintenance routes.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Body, Depends

from app.api.deps import get_background_sync, get_maintenance_service, get_transcript_service
from app.schemas.meeting import ApiResponse
from app.schemas.sync import (
    BackgroundSyncStatusResponse,
    FathomConnectionResponse,
    FixDurationsRequest,
    FixDurationsResponse,
    SyncRequest,
    SyncResult,
    SyncStatsResponse,
    TriggerResponse,
)
from app.services.background_sync import BackgroundSyncService
from app.services.duration_maintenance import DurationMaintenanceService
from app.services.transcript_service import TranscriptService

router = APIRouter(prefix="/sync", tags=["Sync"])
logger = logging.getLogger(__name__)


@router.post("/meetings", response_model=ApiResponse[SyncResult])
async def sync_meetings(
    request: Optional[SyncRequest] = Body(None),
    service: TranscriptService = Depends(get_transcript_service),
):
    """Incremental sync: only meetings created since the last completed sync."""
    logger.info("Starting incremental meeting sync...")
    result = await service.sync_meetings(
        incremental=True,
        filters=request.filters if request else None,
    )
    return ApiResponse(data=SyncResult(**result), message="Meetings synced successfully")


@router.post("/meetings/full", response_model=ApiResponse[SyncResult])
async def full_sync_meetings(
    request: Optional[SyncRequest] = Body(None),
    service: TranscriptService = Depends(get_transcript_service),
):
    logger.info("Starting full meeting sync...")
    result = await service.sync_meetings(
        incremental=False,
        filters=request.filters if request else None,
    )
    return ApiResponse(data=SyncResult(**result), message="Full sync completed successfully")


@router.get("/status", response_model=ApiResponse[SyncStatsResponse])
async def sync_status(service: TranscriptService = Depends(get_transcript_service)):
    return ApiResponse(data=SyncStatsResponse(**await service.get_sync_stats()))


@router.get("/test-fathom", response_model=ApiResponse[FathomConnectionResponse])
async def test_fathom(service: TranscriptService = Depends(get_transcript_service)):
    """Fetch a single page from Fathom to verify the API key and connectivity."""
    logger.info("🧪 Testing Fathom API connectivity...")
    result = await service.test_fathom_connection()
    return ApiResponse(
        data=FathomConnectionResponse(**result, timestamp=datetime.now(timezone.utc)),
        message="Fathom API connectivity test successful",
    )


@router.post("/fix-durations", response_model=ApiResponse[FixDurationsResponse])
async def fix_durations(
    request: Optional[FixDurationsRequest] = Body(None),
    service: DurationMaintenanceService = Depends(get_maintenance_service),
):
    """Re-resolve missing and slot-length durations from measured sources."""
    request = request or FixDurationsRequest()
    result = await service.fix_durations(limit=request.limit, dry_run=request.dry_run)
    return ApiResponse(
        data=FixDurationsResponse(**result),
        message=f"Updated {result['updated']} meetings",
    )


@router.get("/background/status", response_model=ApiResponse[BackgroundSyncStatusResponse])
async def background_status(sync: BackgroundSyncService = Depends(get_background_sync)):
    return ApiResponse(data=BackgroundSyncStatusResponse(**sync.get_status()))


@router.post("/background/trigger", response_model=ApiResponse[TriggerResponse])
async def trigger_background_sync(sync: BackgroundSyncService = Depends(get_background_sync)):
    triggered = sync.trigger()
    message = "Sync started" if triggered else "A sync is already in progress"
    return ApiResponse(data=TriggerResponse(triggered=triggered), message=message)
