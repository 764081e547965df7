"""
Meeting repository for search, export and duration maintenance queries.
"""

from __future__ import annotations

import logging
from typing import Any, Collection, Dict, List, Optional

from sqlalchemy import select, update, delete, func, or_, desc
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import Meeting, MeetingParticipant
from app.ingestion.pipeline import ProcessedMeeting
from app.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class MeetingRepository(BaseRepository[Meeting]):
    """Repository for Meeting and MeetingParticipant rows."""

    def __init__(self, session: AsyncSession):
        super().__init__(Meeting, session)

    def _newest_first(self, query, limit: Optional[int] = None):
        query = query.order_by(Meeting.start_time.desc().nulls_last(), Meeting.id.desc())
        if limit:
            query = query.limit(limit)
        return query

    # -----------------------------
    # Writes
    # -----------------------------

    async def upsert_meeting(self, processed: ProcessedMeeting) -> int:
        """
        Insert or update a meeting by its Fathom id, then replace its
        participants. Returns the meeting's primary key.
        """
        values = {
            "fathom_meeting_id": processed.fathom_id,
            "title": processed.title,
            "start_time": processed.start_time,
            "end_time": processed.end_time,
            "recording_start_time": processed.recording_start_time,
            "recording_end_time": processed.recording_end_time,
            "duration": processed.duration,
            "duration_source": processed.duration_source.value,
            "recording_url": processed.recording_url,
            "transcript": processed.transcript,
            "summary": processed.summary,
        }
        stmt = pg_insert(Meeting).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Meeting.fathom_meeting_id],
            set_={
                **{key: stmt.excluded[key] for key in values if key != "fathom_meeting_id"},
                "updated_at": func.now(),
            },
        ).returning(Meeting.id)

        result = await self.session.execute(stmt)
        meeting_id = result.scalar_one()

        # The invitee list is authoritative; NULL emails never hit ON CONFLICT
        await self.session.execute(
            delete(MeetingParticipant).where(MeetingParticipant.meeting_id == meeting_id)
        )
        rows = self._participant_rows(meeting_id, processed.participants)
        if rows:
            await self.session.execute(pg_insert(MeetingParticipant).values(rows))

        return meeting_id

    @staticmethod
    def _participant_rows(meeting_id: int, participants) -> List[Dict[str, Any]]:
        """One row per email, or per name for invitees without one."""
        rows: Dict[Any, Dict[str, Any]] = {}
        for participant in participants:
            key = participant.email or ("name", participant.name)
            if key in rows:
                continue
            rows[key] = {
                "meeting_id": meeting_id,
                "name": participant.name,
                "email": participant.email,
                "domain": participant.domain,
                "is_host": participant.is_host,
            }
        return list(rows.values())

    async def update_duration(self, meeting_id: int, seconds: Optional[int], source: str) -> None:
        await self.session.execute(
            update(Meeting)
            .where(Meeting.id == meeting_id)
            .values(duration=seconds, duration_source=source, updated_at=func.now())
        )

    # -----------------------------
    # Reads
    # -----------------------------

    async def get_with_participants(self, meeting_id: int) -> Optional[Meeting]:
        # participants use selectin loading
        return await self.get_by_id(meeting_id)

    async def get_many(self, meeting_ids: Collection[int]) -> List[Meeting]:
        """Meetings with the given ids, oldest first."""
        if not meeting_ids:
            return []
        query = (
            select(Meeting)
            .where(Meeting.id.in_(list(meeting_ids)))
            .order_by(Meeting.start_time.asc().nulls_first(), Meeting.id.asc())
        )
        return await self._all(query)

    async def list_recent(self, limit: int = 50) -> List[Meeting]:
        return await self._all(self._newest_first(select(Meeting), limit))

    async def search_by_email(self, email: str, limit: Optional[int] = None) -> List[Meeting]:
        participant_meetings = select(MeetingParticipant.meeting_id).where(
            func.lower(MeetingParticipant.email) == email.strip().lower()
        )
        query = select(Meeting).where(Meeting.id.in_(participant_meetings))
        return await self._all(self._newest_first(query, limit))

    async def search_by_domain(self, domain: str, limit: Optional[int] = None) -> List[Meeting]:
        participant_meetings = select(MeetingParticipant.meeting_id).where(
            func.lower(MeetingParticipant.domain) == domain.strip().lower()
        )
        query = select(Meeting).where(Meeting.id.in_(participant_meetings))
        return await self._all(self._newest_first(query, limit))

    async def search_by_company(self, company: str, limit: Optional[int] = None) -> List[Meeting]:
        """Case-insensitive match on title, participant name, email or domain."""
        pattern = f"%{company.strip()}%"
        participant_meetings = select(MeetingParticipant.meeting_id).where(
            or_(
                MeetingParticipant.name.ilike(pattern),
                MeetingParticipant.email.ilike(pattern),
                MeetingParticipant.domain.ilike(pattern),
            )
        )
        query = select(Meeting).where(
            or_(
                Meeting.title.ilike(pattern),
                Meeting.id.in_(participant_meetings),
            )
        )
        return await self._all(self._newest_first(query, limit))

    async def get_domains(self) -> List[Dict[str, Any]]:
        """Distinct participant domains with the number of meetings each appears in."""
        meeting_count = func.count(func.distinct(MeetingParticipant.meeting_id)).label("meeting_count")
        query = (
            select(MeetingParticipant.domain, meeting_count)
            .where(MeetingParticipant.domain.is_not(None), MeetingParticipant.domain != "")
            .group_by(MeetingParticipant.domain)
            .order_by(desc(meeting_count), MeetingParticipant.domain)
        )
        result = await self.session.execute(query)
        return [{"domain": row.domain, "meeting_count": row.meeting_count} for row in result.all()]

    async def count_participants(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(MeetingParticipant))
        return result.scalar() or 0

    async def count_domains(self) -> int:
        query = select(func.count(func.distinct(MeetingParticipant.domain))).where(
            MeetingParticipant.domain.is_not(None), MeetingParticipant.domain != ""
        )
        result = await self.session.execute(query)
        return result.scalar() or 0

    async def list_needing_duration_fix(
        self,
        suspicious: Collection[int],
        limit: Optional[int] = None,
    ) -> List[Meeting]:
        """Meetings with no stored duration or one equal to a scheduled-slot length."""
        query = select(Meeting).where(
            or_(
                Meeting.duration.is_(None),
                Meeting.duration.in_(list(suspicious)),
            )
        )
        return await self._all(self._newest_first(query, limit))
