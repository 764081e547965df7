"""
Plain-text rendering of normalized transcripts for export and download.

The ``<speaker> [<timestamp>]: <text>`` line format and the blank-line
separator are consumed by downstream text exports and must not change.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Sequence, Tuple

from app.ingestion.normalizer import Utterance

ENTRY_SEPARATOR = "\n\n"
NO_TRANSCRIPT_TEXT = "No transcript available"
NO_SUMMARY_TEXT = "No summary available"
UNTITLED_MEETING = "Untitled Meeting"


@dataclass
class ExportMeeting:
    """The meeting fields an export needs, independent of the ORM."""
    id: int
    title: Optional[str]
    start_time: Optional[datetime]
    duration: Optional[int]
    utterances: List[Utterance]
    participants: List[str] = field(default_factory=list)
    domains: List[str] = field(default_factory=list)
    recording_url: Optional[str] = None
    summary: Optional[str] = None
    has_transcript: bool = True


def format_utterance(utterance: Utterance) -> str:
    return f"{utterance.speaker} [{utterance.timestamp}]: {utterance.text}"


def format_utterances(utterances: Sequence[Utterance]) -> str:
    """Render utterances one per entry, separated by a blank line."""
    return ENTRY_SEPARATOR.join(format_utterance(u) for u in utterances)


def format_duration(seconds: Optional[int]) -> str:
    """Human readable duration, e.g. ``1h 5m`` or ``32m``."""
    if seconds is None or seconds <= 0:
        return "Unknown"
    minutes = seconds // 60
    hours, mins = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{minutes}m"


def _format_datetime(value: Optional[datetime]) -> str:
    if value is None:
        return "Unknown"
    return value.strftime("%Y-%m-%d %H:%M:%S")


def _transcript_body(meeting: ExportMeeting) -> str:
    if not meeting.has_transcript:
        return NO_TRANSCRIPT_TEXT
    return format_utterances(meeting.utterances)


def transcript_filename(title: Optional[str], fallback_id: int, today: Optional[date] = None) -> str:
    """Download filename with every non-alphanumeric character replaced."""
    today = today or date.today()
    stem = re.sub(r"[^a-z0-9]", "_", title, flags=re.IGNORECASE) if title else str(fallback_id)
    return f"transcript-{stem}-{today.isoformat()}.txt"


def build_transcript_document(meeting: ExportMeeting) -> str:
    """Single-meeting plain-text download."""
    duration = f"{round(meeting.duration / 60)} minutes" if meeting.duration else "Unknown"
    participants = ", ".join(meeting.participants) if meeting.participants else "None"

    lines = [
        "FATHOM TRANSCRIPT",
        "================",
        "",
        f"Title: {meeting.title or UNTITLED_MEETING}",
        f"Date: {_format_datetime(meeting.start_time)}",
        f"Duration: {duration}",
        f"Participants: {participants}",
        "",
    ]
    if meeting.recording_url:
        lines.append(f"Recording URL: {meeting.recording_url}")
        lines.append("")
    lines.extend([
        "SUMMARY",
        "-------",
        meeting.summary or NO_SUMMARY_TEXT,
        "",
        "TRANSCRIPT",
        "----------",
        _transcript_body(meeting),
    ])
    return "\n".join(lines).strip()


def _sort_key(meeting: ExportMeeting) -> datetime:
    return meeting.start_time or datetime.min


def build_transcript_journey(meetings: Sequence[ExportMeeting]) -> Tuple[str, str]:
    """
    Render several meetings oldest first as one chronological document.

    Returns ``(filename, content)``.
    """
    ordered = sorted(meetings, key=_sort_key)
    oldest = ordered[0].start_time
    newest = ordered[-1].start_time
    oldest_date = oldest.date().isoformat() if oldest else "unknown"
    newest_date = newest.date().isoformat() if newest else "unknown"
    filename = f"transcript-journey-{oldest_date}-to-{newest_date}.txt"

    parts = [
        "=== CHRONOLOGICAL TRANSCRIPT JOURNEY ===\n",
        f"Start: {oldest_date} | End: {newest_date} | Total: {len(ordered)} transcripts\n\n",
    ]
    for position, meeting in enumerate(ordered, start=1):
        parts.append(
            f"=== TRANSCRIPT {position}: {meeting.title or UNTITLED_MEETING} "
            f"({_format_datetime(meeting.start_time)}) ===\n"
        )
        parts.append(_transcript_body(meeting) + "\n\n")

    return filename, "".join(parts)


def build_concatenated_text(meetings: Sequence[ExportMeeting]) -> str:
    """Concatenate meetings in the given order under per-meeting headers."""
    parts = []
    for meeting in meetings:
        primary_domain = meeting.domains[0] if meeting.domains else "Unknown Domain"
        meeting_date = meeting.start_time.date().isoformat() if meeting.start_time else "Unknown"
        parts.append(f"--- {meeting.title or UNTITLED_MEETING} ---\n")
        parts.append(f"Date: {meeting_date}\n")
        parts.append(f"Domain: {primary_domain}\n\n")
        body = _transcript_body(meeting) if meeting.has_transcript else "[No transcript available]"
        parts.append(body + "\n\n")
    return "".join(parts)
