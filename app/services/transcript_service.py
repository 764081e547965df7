"""
Transcript service.

Syncs meetings from Fathom into PostgreSQL and serves search, transcript
and export operations over the stored meetings.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    NotFoundError,
    SyncError,
    SyncInProgressError,
    TooManyTranscriptsError,
    TranscriptManagerException,
    ValidationError,
)
from app.database.models import Meeting, SyncState
from app.ingestion.formatter import (
    ExportMeeting,
    build_concatenated_text,
    build_transcript_document,
    build_transcript_journey,
    transcript_filename,
)
from app.ingestion.loaders.fathom_loader import FathomLoader
from app.ingestion.normalizer import Utterance, normalize_transcript
from app.ingestion.pipeline import IngestionPipeline, log_extraction
from app.repositories.meeting_repository import MeetingRepository
from app.repositories.sync_status_repository import SyncStatusRepository

logger = logging.getLogger(__name__)

# One sync at a time per process, shared by API-triggered and background syncs
sync_lock = asyncio.Lock()


def _created_after(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def to_export_meeting(meeting: Meeting) -> ExportMeeting:
    """Normalize a stored meeting's transcript into its export form."""
    has_transcript = bool(meeting.transcript)
    utterances = (
        normalize_transcript(meeting.transcript, observer=log_extraction)
        if has_transcript
        else []
    )
    return ExportMeeting(
        id=meeting.id,
        title=meeting.title,
        start_time=meeting.start_time,
        duration=meeting.duration,
        utterances=utterances,
        participants=meeting.participant_labels,
        domains=meeting.domains,
        recording_url=meeting.recording_url,
        summary=meeting.summary,
        has_transcript=has_transcript,
    )


class TranscriptService:
    """
    Business logic for syncing and reading meeting transcripts.
    """

    def __init__(
        self,
        session: AsyncSession,
        loader: Optional[FathomLoader] = None,
        pipeline: Optional[IngestionPipeline] = None,
    ):
        self.session = session
        self.meetings = MeetingRepository(session)
        self.sync_status = SyncStatusRepository(session)
        self._loader = loader
        self.pipeline = pipeline or IngestionPipeline()

    @property
    def loader(self) -> FathomLoader:
        if self._loader is None:
            self._loader = FathomLoader()
        return self._loader

    async def close(self) -> None:
        """Close the Fathom client if this service created or was given one."""
        if self._loader is not None:
            await self._loader.close()

    # =========================================================================
    # Sync
    # =========================================================================

    async def sync_meetings(
        self,
        incremental: bool = True,
        filters: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Pull meetings from Fathom and upsert them.

        Incremental syncs only ask for meetings created after the start of
        the last completed sync. Every attempt is recorded in sync_status.

        Raises:
            SyncInProgressError: Another sync is running in this process
            FathomAPIError: Fathom could not be read
            SyncError: Any other failure while storing meetings
        """
        if sync_lock.locked():
            raise SyncInProgressError()

        async with sync_lock:
            started_at = datetime.now(timezone.utc)
            created_after = None
            if incremental:
                created_after = _created_after(await self.sync_status.last_completed_sync_time())

            mode = "incremental" if incremental else "full"
            logger.info(f"Starting {mode} meeting sync (created_after={created_after})")

            await self.sync_status.record(SyncState.IN_PROGRESS, 0, sync_time=started_at)
            await self.session.commit()

            synced = 0
            fetched = 0
            try:
                meetings = await self.loader.fetch_all_meetings(
                    created_after=created_after,
                    filters=filters,
                )
                fetched = len(meetings)

                for raw in meetings:
                    processed = self.pipeline.process_fathom_meeting(raw)
                    if not processed.fathom_id:
                        logger.warning(f"Skipping meeting without an id: {processed.title!r}")
                        continue
                    await self.meetings.upsert_meeting(processed)
                    synced += 1

                await self.sync_status.record(SyncState.COMPLETED, synced, sync_time=started_at)
                await self.session.commit()
            except Exception as e:
                logger.error(f"Meeting sync failed after {synced} meetings: {e}", exc_info=True)
                await self.session.rollback()
                await self.sync_status.record(SyncState.FAILED, 0, sync_time=started_at)
                await self.session.commit()
                if isinstance(e, TranscriptManagerException):
                    raise
                raise SyncError(f"Meeting sync failed: {e}", synced=synced) from e

        logger.info(f"✅ {mode.capitalize()} sync completed: {synced}/{fetched} meetings stored")
        return {
            "synced": synced,
            "fetched": fetched,
            "incremental": incremental,
            "created_after": created_after,
        }

    async def test_fathom_connection(self) -> Dict[str, Any]:
        return await self.loader.test_connection()

    # =========================================================================
    # Search
    # =========================================================================

    async def search_by_email(self, email: str, limit: Optional[int] = None) -> List[Meeting]:
        return await self.meetings.search_by_email(email, limit=limit)

    async def search_by_domain(self, domain: str, limit: Optional[int] = None) -> List[Meeting]:
        return await self.meetings.search_by_domain(domain, limit=limit)

    async def search_by_company(self, company: str, limit: Optional[int] = None) -> List[Meeting]:
        return await self.meetings.search_by_company(company, limit=limit)

    async def get_domains(self) -> List[Dict[str, Any]]:
        return await self.meetings.get_domains()

    async def debug_company_search(self, company: str) -> Dict[str, Any]:
        """
        Compare a loose substring scan over recent meetings with the
        repository's company search, for diagnosing missed matches.
        """
        sample = await self.meetings.list_recent(settings.DEBUG_SEARCH_SAMPLE_SIZE)
        term = company.strip().lower()

        def matches(meeting: Meeting) -> bool:
            if meeting.title and term in meeting.title.lower():
                return True
            return any(term in label.lower() for label in meeting.participant_labels)

        potential = [m for m in sample if matches(m)]
        exact = await self.meetings.search_by_company(company, limit=100)

        return {
            "search_term": company,
            "total_meetings_sampled": len(sample),
            "potential_matches": len(potential),
            "exact_matches": len(exact),
            "sample": sample[:10],
            "potential_matches_details": potential,
            "exact_matches_details": exact,
        }

    # =========================================================================
    # Transcripts
    # =========================================================================

    async def get_transcript(self, meeting_id: int) -> Meeting:
        meeting = await self.meetings.get_with_participants(meeting_id)
        if meeting is None:
            raise NotFoundError("Transcript", meeting_id)
        return meeting

    async def get_utterances(self, meeting_id: int) -> List[Utterance]:
        meeting = await self.get_transcript(meeting_id)
        return to_export_meeting(meeting).utterances

    async def download_transcript(self, meeting_id: int) -> Tuple[str, str]:
        """Returns ``(filename, content)`` for a single meeting."""
        meeting = await self.get_transcript(meeting_id)
        content = build_transcript_document(to_export_meeting(meeting))
        return transcript_filename(meeting.title, meeting.id), content

    async def _load_for_export(self, meeting_ids: Sequence[int]) -> List[ExportMeeting]:
        if not meeting_ids:
            raise ValidationError("At least one transcript id is required", field="transcript_ids")
        if len(meeting_ids) > settings.MAX_EXPORT_TRANSCRIPTS:
            raise TooManyTranscriptsError(len(meeting_ids), settings.MAX_EXPORT_TRANSCRIPTS)

        meetings = await self.meetings.get_many(meeting_ids)
        if not meetings:
            raise NotFoundError("Transcripts")
        if len(meetings) < len(set(meeting_ids)):
            found = {m.id for m in meetings}
            missing = [i for i in meeting_ids if i not in found]
            logger.warning(f"Skipping unknown transcript ids: {missing}")
        return [to_export_meeting(m) for m in meetings]

    async def download_multiple_transcripts(self, meeting_ids: Sequence[int]) -> Tuple[str, str]:
        """Chronological journey document over several meetings."""
        exports = await self._load_for_export(meeting_ids)
        return build_transcript_journey(exports)

    async def concatenate_transcripts(self, meeting_ids: Sequence[int]) -> str:
        exports = await self._load_for_export(meeting_ids)
        return build_concatenated_text(exports)

    # =========================================================================
    # Stats
    # =========================================================================

    async def get_dashboard_metrics(self) -> Dict[str, Any]:
        latest = await self.sync_status.latest()
        return {
            "total_transcripts": await self.meetings.count(),
            "total_companies": await self.meetings.count_domains(),
            "last_sync_time": latest.last_sync_time if latest else None,
            "sync_status": latest.sync_status if latest else SyncState.NEVER_SYNCED.value,
        }

    async def get_sync_stats(self) -> Dict[str, Any]:
        latest = await self.sync_status.latest()
        return {
            "meetings": await self.meetings.count(),
            "participants": await self.meetings.count_participants(),
            "unique_domains": await self.meetings.count_domains(),
            "last_sync_time": latest.last_sync_time if latest else None,
            "sync_status": latest.sync_status if latest else SyncState.NEVER_SYNCED.value,
            "sync_running": sync_lock.locked(),
        }
