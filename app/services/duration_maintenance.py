"""
Duration maintenance for meetings stored before duration resolution
preferred measured sources.

A stored duration of NULL, or one that exactly equals a common scheduled
slot length (15/30/45/60 minutes), is re-resolved from the stored
recording times, scheduled times and transcript. The stored value itself is
never offered back as an explicit source.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import Meeting
from app.ingestion.duration import (
    MEASURED_METHODS,
    SUSPICIOUS_DURATIONS,
    DurationResolution,
    DurationSources,
    explain_duration,
    is_suspicious_duration,
)
from app.ingestion.formatter import format_duration
from app.repositories.meeting_repository import MeetingRepository

logger = logging.getLogger(__name__)


@dataclass
class DurationChange:
    meeting_id: int
    title: Optional[str]
    old_duration: Optional[int]
    new_duration: int
    method: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def recompute_duration(meeting: Meeting) -> DurationResolution:
    """Resolve a stored meeting's duration from measured sources only."""
    return explain_duration(
        DurationSources(
            scheduled_start=meeting.start_time,
            scheduled_end=meeting.end_time,
            recording_start=meeting.recording_start_time,
            recording_end=meeting.recording_end_time,
            transcript=meeting.transcript,
        )
    )


class DurationMaintenanceService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.meetings = MeetingRepository(session)

    async def fix_durations(self, limit: Optional[int] = None, dry_run: bool = False) -> Dict[str, Any]:
        """
        Re-resolve NULL and slot-length durations.

        Returns counts and the list of changes; nothing is written when
        ``dry_run`` is set.
        """
        candidates = await self.meetings.list_needing_duration_fix(SUSPICIOUS_DURATIONS, limit=limit)
        logger.info(f"Found {len(candidates)} meetings with missing or slot-length durations")

        changes: List[DurationChange] = []
        skipped = 0
        for meeting in candidates:
            resolution = recompute_duration(meeting)
            if resolution.method not in MEASURED_METHODS or resolution.seconds == meeting.duration:
                skipped += 1
                continue

            change = DurationChange(
                meeting_id=meeting.id,
                title=meeting.title,
                old_duration=meeting.duration,
                new_duration=resolution.seconds,
                method=resolution.method.value,
            )
            changes.append(change)
            logger.info(
                f"{'[dry run] ' if dry_run else ''}{meeting.title!r}: "
                f"{format_duration(meeting.duration)} -> {format_duration(resolution.seconds)} "
                f"({resolution.method.value})"
            )
            if not dry_run:
                await self.meetings.update_duration(meeting.id, resolution.seconds, resolution.method.value)

        if changes and not dry_run:
            await self.session.commit()

        return {
            "examined": len(candidates),
            "updated": 0 if dry_run else len(changes),
            "skipped": skipped,
            "dry_run": dry_run,
            "changes": [c.to_dict() for c in changes],
        }

    async def duration_report(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Stored vs recomputed durations for the most recent meetings."""
        report = []
        for meeting in await self.meetings.list_recent(limit):
            resolution = recompute_duration(meeting)
            report.append({
                "id": meeting.id,
                "title": meeting.title,
                "start_time": meeting.start_time,
                "end_time": meeting.end_time,
                "recording_start_time": meeting.recording_start_time,
                "recording_end_time": meeting.recording_end_time,
                "stored_duration": meeting.duration,
                "stored_source": meeting.duration_source,
                "stored_display": format_duration(meeting.duration),
                "suspicious": is_suspicious_duration(meeting.duration),
                "recomputed_duration": resolution.seconds,
                "recomputed_method": resolution.method.value,
                "recomputed_display": format_duration(resolution.seconds),
            })
        return report
