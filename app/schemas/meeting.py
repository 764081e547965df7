"""
Meeting and transcript schemas for the transcripts API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import AliasChoices, BaseModel, Field

from app.ingestion.formatter import format_duration
from app.ingestion.normalizer import Utterance

T = TypeVar("T")


# ============== Envelope ==============

class ApiResponse(BaseModel, Generic[T]):
    """``{success, data, count}`` envelope used by every JSON endpoint."""
    success: bool = True
    data: T
    count: Optional[int] = None
    message: Optional[str] = None


# ============== Request Schemas ==============

class TranscriptIdsRequest(BaseModel):
    """Meeting ids for concatenation or multi-download."""
    transcript_ids: List[int] = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("transcript_ids", "transcriptIds"),
        description="Meeting ids to export",
    )

    class Config:
        json_schema_extra = {
            "example": {"transcript_ids": [12, 15, 31]}
        }


# ============== Response Schemas ==============

class UtteranceResponse(BaseModel):
    speaker: str
    text: str
    timestamp: str

    @classmethod
    def from_utterance(cls, utterance: Utterance) -> "UtteranceResponse":
        return cls(**utterance.to_dict())


class ParticipantResponse(BaseModel):
    name: Optional[str]
    email: Optional[str]
    domain: Optional[str]
    is_host: bool = False

    class Config:
        from_attributes = True


class MeetingResponse(BaseModel):
    """Meeting row without the transcript body."""
    id: int
    fathom_meeting_id: str
    title: Optional[str]
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    duration: Optional[int]
    duration_source: Optional[str]
    duration_display: str
    recording_url: Optional[str]
    summary: Optional[str]
    participants: List[ParticipantResponse]
    domains: List[str]

    class Config:
        json_schema_extra = {
            "example": {
                "id": 42,
                "fathom_meeting_id": "123456",
                "title": "Acme weekly sync",
                "start_time": "2025-03-04T15:00:00",
                "end_time": "2025-03-04T15:30:00",
                "duration": 1935,
                "duration_source": "recording",
                "duration_display": "32m",
                "recording_url": "https://fathom.video/calls/123456",
                "summary": "## Summary ...",
                "participants": [
                    {"name": "Ada", "email": "ada@acme.com", "domain": "acme.com", "is_host": False}
                ],
                "domains": ["acme.com"],
            }
        }

    @classmethod
    def from_meeting(cls, meeting: Any) -> "MeetingResponse":
        return cls(
            id=meeting.id,
            fathom_meeting_id=meeting.fathom_meeting_id,
            title=meeting.title,
            start_time=meeting.start_time,
            end_time=meeting.end_time,
            duration=meeting.duration,
            duration_source=meeting.duration_source,
            duration_display=format_duration(meeting.duration),
            recording_url=meeting.recording_url,
            summary=meeting.summary,
            participants=[ParticipantResponse.model_validate(p) for p in meeting.participants],
            domains=meeting.domains,
        )


class TranscriptResponse(MeetingResponse):
    """Meeting with its normalized transcript."""
    recording_start_time: Optional[datetime] = None
    recording_end_time: Optional[datetime] = None
    transcript_available: bool
    utterances: List[UtteranceResponse]

    @classmethod
    def from_meeting_with_utterances(
        cls, meeting: Any, utterances: List[Utterance]
    ) -> "TranscriptResponse":
        base = MeetingResponse.from_meeting(meeting)
        return cls(
            **base.model_dump(),
            recording_start_time=meeting.recording_start_time,
            recording_end_time=meeting.recording_end_time,
            transcript_available=bool(meeting.transcript),
            utterances=[UtteranceResponse.from_utterance(u) for u in utterances],
        )


class DomainResponse(BaseModel):
    domain: str
    meeting_count: int


class ConcatenateResponse(BaseModel):
    text: str
    count: int


class DashboardMetricsResponse(BaseModel):
    total_transcripts: int
    total_companies: int
    last_sync_time: Optional[datetime]
    sync_status: str


class CompanySearchDebugResponse(BaseModel):
    search_term: str
    total_meetings_sampled: int
    potential_matches: int
    exact_matches: int
    sample: List[MeetingResponse]
    potential_matches_details: List[MeetingResponse]
    exact_matches_details: List[MeetingResponse]

    @classmethod
    def from_debug(cls, debug: Dict[str, Any]) -> "CompanySearchDebugResponse":
        return cls(
            search_term=debug["search_term"],
            total_meetings_sampled=debug["total_meetings_sampled"],
            potential_matches=debug["potential_matches"],
            exact_matches=debug["exact_matches"],
            sample=[MeetingResponse.from_meeting(m) for m in debug["sample"]],
            potential_matches_details=[
                MeetingResponse.from_meeting(m) for m in debug["potential_matches_details"]
            ],
            exact_matches_details=[
                MeetingResponse.from_meeting(m) for m in debug["exact_matches_details"]
            ],
        )


class DurationReportEntry(BaseModel):
    id: int
    title: Optional[str]
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    recording_start_time: Optional[datetime]
    recording_end_time: Optional[datetime]
    stored_duration: Optional[int]
    stored_source: Optional[str]
    stored_display: str
    suspicious: bool
    recomputed_duration: Optional[int]
    recomputed_method: str
    recomputed_display: str
