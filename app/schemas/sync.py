"""
Sync and maintenance schemas.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# ============== Request Schemas ==============

class SyncRequest(BaseModel):
    """Optional Fathom query parameters passed through to ``GET /meetings``."""
    filters: Optional[Dict[str, Any]] = Field(
        None,
        description="Extra Fathom list filters, e.g. {\"calendar_invitees_domains[]\": \"acme.com\"}",
    )


class FixDurationsRequest(BaseModel):
    limit: Optional[int] = Field(None, ge=1, description="Maximum meetings to examine")
    dry_run: bool = Field(False, description="Report changes without writing them")


# ============== Response Schemas ==============

class SyncResult(BaseModel):
    synced: int
    fetched: int
    incremental: bool
    created_after: Optional[str]

    class Config:
        json_schema_extra = {
            "example": {
                "synced": 12,
                "fetched": 12,
                "incremental": True,
                "created_after": "2025-03-04T15:00:00Z",
            }
        }


class SyncStatsResponse(BaseModel):
    meetings: int
    participants: int
    unique_domains: int
    last_sync_time: Optional[datetime]
    sync_status: str
    sync_running: bool


class FathomConnectionResponse(BaseModel):
    api_working: bool
    meetings_found: int
    has_more: bool
    timestamp: datetime


class DurationChangeResponse(BaseModel):
    meeting_id: int
    title: Optional[str]
    old_duration: Optional[int]
    new_duration: int
    method: str


class FixDurationsResponse(BaseModel):
    examined: int
    updated: int
    skipped: int
    dry_run: bool
    changes: List[DurationChangeResponse]


class BackgroundSyncStatusResponse(BaseModel):
    running: bool
    sync_in_progress: bool
    interval_hours: float
    last_run_at: Optional[datetime]
    last_result: Optional[Dict[str, Any]]
    last_error: Optional[str]
    runs: int
    skipped: int


class TriggerResponse(BaseModel):
    triggered: bool
