from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.ingestion.duration import DurationMethod, DurationSources, explain_duration, parse_iso_datetime

logger = logging.getLogger(__name__)


@dataclass
class ProcessedParticipant:
    name: Optional[str]
    email: Optional[str]
    domain: Optional[str]
    is_host: bool = False


@dataclass
class ProcessedMeeting:
    """A Fathom meeting reduced to the fields the meetings table stores."""
    fathom_id: str
    title: Optional[str]
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    recording_start_time: Optional[datetime]
    recording_end_time: Optional[datetime]
    duration: Optional[int]
    duration_source: DurationMethod
    recording_url: Optional[str]
    transcript: str
    summary: str
    participants: List[ProcessedParticipant] = field(default_factory=list)
    domains: List[str] = field(default_factory=list)


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an API timestamp into a naive UTC datetime for storage."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            logger.debug(f"Epoch value out of range: {value!r}")
            return None
    elif isinstance(value, str):
        parsed = parse_iso_datetime(value)
        if parsed is None:
            logger.debug(f"Unparseable timestamp: {value!r}")
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def serialize_transcript(transcript: Any) -> str:
    """Store strings untouched; structured payloads as JSON text."""
    if transcript is None:
        return ""
    if isinstance(transcript, str):
        return transcript
    return json.dumps(transcript, ensure_ascii=False)


def _email_domain(email: Optional[str]) -> Optional[str]:
    if not email or "@" not in email:
        return None
    return email.rsplit("@", 1)[1].lower() or None


def log_extraction(strategy: str, message: str) -> None:
    """Observer that forwards normalizer diagnostics to this module's logger."""
    logger.debug(f"[transcript:{strategy}] {message}")


class IngestionPipeline:
    def process_participants(self, meeting: Dict[str, Any]) -> List[ProcessedParticipant]:
        participants = []
        for invitee in meeting.get("calendar_invitees") or []:
            email = (invitee.get("email") or "").strip().lower() or None
            participants.append(
                ProcessedParticipant(
                    name=invitee.get("name"),
                    email=email,
                    domain=_email_domain(email),
                    is_host=invitee.get("is_external") is False,
                )
            )
        return participants

    def process_fathom_meeting(self, meeting: Dict[str, Any]) -> ProcessedMeeting:
        """
        Reduce a raw Fathom meeting to its stored representation.

        The duration is resolved here so every stored meeting carries the
        best available value and the source that produced it.
        """
        fathom_id = meeting.get("id") or meeting.get("recording_id") or meeting.get("url")
        title = meeting.get("title") or meeting.get("meeting_title")

        resolution = explain_duration(DurationSources.from_fathom_meeting(meeting))
        logger.debug(f"Meeting {fathom_id}: duration {resolution.seconds} via {resolution.method.value}")

        participants = self.process_participants(meeting)
        domains = sorted({p.domain for p in participants if p.domain})
        if domains:
            logger.debug(f"Meeting {title or 'Untitled'!r}: domains found: {domains}")

        summary = meeting.get("default_summary")
        if isinstance(summary, dict):
            summary = summary.get("markdown_formatted")

        return ProcessedMeeting(
            fathom_id=str(fathom_id) if fathom_id is not None else "",
            title=title,
            start_time=parse_datetime(meeting.get("scheduled_start_time") or meeting.get("recording_start_time")),
            end_time=parse_datetime(meeting.get("scheduled_end_time") or meeting.get("recording_end_time")),
            recording_start_time=parse_datetime(meeting.get("recording_start_time")),
            recording_end_time=parse_datetime(meeting.get("recording_end_time")),
            duration=resolution.seconds,
            duration_source=resolution.method,
            recording_url=meeting.get("url") or meeting.get("share_url"),
            transcript=serialize_transcript(meeting.get("transcript")),
            summary=summary or "",
            participants=participants,
            domains=domains,
        )
