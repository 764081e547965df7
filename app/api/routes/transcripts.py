"""
Transcript search, retrieval and export routes.

Provides endpoints for:
- Search by participant email, domain or company
- Domain listing and dashboard metrics
- Transcript retrieval as normalized utterances
- Plain-text download and concatenation
"""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from app.api.deps import get_maintenance_service, get_transcript_service
from app.schemas.meeting import (
    ApiResponse,
    CompanySearchDebugResponse,
    ConcatenateResponse,
    DashboardMetricsResponse,
    DomainResponse,
    DurationReportEntry,
    MeetingResponse,
    TranscriptIdsRequest,
    TranscriptResponse,
    UtteranceResponse,
)
from app.services.duration_maintenance import DurationMaintenanceService
from app.services.transcript_service import TranscriptService

router = APIRouter(prefix="/transcripts", tags=["Transcripts"])
logger = logging.getLogger(__name__)


def _text_download(filename: str, content: str) -> PlainTextResponse:
    return PlainTextResponse(
        content=content,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _meeting_list(meetings) -> ApiResponse[List[MeetingResponse]]:
    data = [MeetingResponse.from_meeting(m) for m in meetings]
    return ApiResponse(data=data, count=len(data))


# =============================================================================
# Search
# =============================================================================

@router.get("/search/email", response_model=ApiResponse[List[MeetingResponse]])
async def search_by_email(
    q: str = Query(..., min_length=1, description="Participant email address"),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    service: TranscriptService = Depends(get_transcript_service),
):
    """Meetings with a participant whose email matches exactly (case-insensitive)."""
    return _meeting_list(await service.search_by_email(q, limit=limit))


@router.get("/search/domain", response_model=ApiResponse[List[MeetingResponse]])
async def search_by_domain(
    q: str = Query(..., min_length=1, description="Participant email domain"),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    service: TranscriptService = Depends(get_transcript_service),
):
    return _meeting_list(await service.search_by_domain(q, limit=limit))


@router.get("/search/company", response_model=ApiResponse[List[MeetingResponse]])
async def search_by_company(
    q: str = Query(..., min_length=1, description="Company name fragment"),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    service: TranscriptService = Depends(get_transcript_service),
):
    """Substring match on meeting title and participant name, email or domain."""
    return _meeting_list(await service.search_by_company(q, limit=limit))


@router.get("/domains", response_model=ApiResponse[List[DomainResponse]])
async def list_domains(service: TranscriptService = Depends(get_transcript_service)):
    domains = [DomainResponse(**d) for d in await service.get_domains()]
    return ApiResponse(data=domains, count=len(domains))


@router.get("/metrics", response_model=ApiResponse[DashboardMetricsResponse])
async def dashboard_metrics(service: TranscriptService = Depends(get_transcript_service)):
    metrics = await service.get_dashboard_metrics()
    return ApiResponse(data=DashboardMetricsResponse(**metrics))


# =============================================================================
# Debug
# =============================================================================

@router.get("/debug/company", response_model=ApiResponse[CompanySearchDebugResponse])
async def debug_company_search(
    q: str = Query(..., min_length=1),
    service: TranscriptService = Depends(get_transcript_service),
):
    debug = await service.debug_company_search(q)
    return ApiResponse(data=CompanySearchDebugResponse.from_debug(debug))


@router.get("/debug/duration", response_model=ApiResponse[List[DurationReportEntry]])
async def debug_duration(
    limit: int = Query(20, ge=1, le=500),
    service: DurationMaintenanceService = Depends(get_maintenance_service),
):
    """Stored vs recomputed durations for the most recent meetings."""
    report = [DurationReportEntry(**entry) for entry in await service.duration_report(limit)]
    return ApiResponse(data=report, count=len(report))


# =============================================================================
# Export
# =============================================================================

@router.post("/concatenate", response_model=ApiResponse[ConcatenateResponse])
async def concatenate_transcripts(
    request: TranscriptIdsRequest,
    service: TranscriptService = Depends(get_transcript_service),
):
    text = await service.concatenate_transcripts(request.transcript_ids)
    return ApiResponse(data=ConcatenateResponse(text=text, count=len(request.transcript_ids)))


@router.post("/download", response_class=PlainTextResponse)
async def download_multiple_transcripts(
    request: TranscriptIdsRequest,
    service: TranscriptService = Depends(get_transcript_service),
):
    """Several meetings oldest first as one chronological text file."""
    filename, content = await service.download_multiple_transcripts(request.transcript_ids)
    logger.info(f"Multi-download of {len(request.transcript_ids)} transcripts as {filename}")
    return _text_download(filename, content)


# =============================================================================
# Single transcript
# =============================================================================

@router.get("/{meeting_id}", response_model=ApiResponse[TranscriptResponse])
async def get_transcript(
    meeting_id: int,
    service: TranscriptService = Depends(get_transcript_service),
):
    meeting = await service.get_transcript(meeting_id)
    utterances = await service.get_utterances(meeting_id)
    return ApiResponse(data=TranscriptResponse.from_meeting_with_utterances(meeting, utterances))


@router.get("/{meeting_id}/utterances", response_model=ApiResponse[List[UtteranceResponse]])
async def get_utterances(
    meeting_id: int,
    service: TranscriptService = Depends(get_transcript_service),
):
    utterances = [UtteranceResponse.from_utterance(u) for u in await service.get_utterances(meeting_id)]
    return ApiResponse(data=utterances, count=len(utterances))


@router.get("/{meeting_id}/download", response_class=PlainTextResponse)
async def download_transcript(
    meeting_id: int,
    service: TranscriptService = Depends(get_transcript_service),
):
    filename, content = await service.download_transcript(meeting_id)
    return _text_download(filename, content)
