"""
Sync status repository.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import SyncStatus, SyncState
from app.repositories.base import BaseRepository


class SyncStatusRepository(BaseRepository[SyncStatus]):
    def __init__(self, session: AsyncSession):
        super().__init__(SyncStatus, session)

    async def latest(self) -> Optional[SyncStatus]:
        query = (
            select(SyncStatus)
            .order_by(SyncStatus.created_at.desc(), SyncStatus.id.desc())
            .limit(1)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def record(
        self,
        state: SyncState,
        meetings_synced: int = 0,
        sync_time: Optional[datetime] = None,
    ) -> SyncStatus:
        """Append a status row. ``sync_time`` defaults to now."""
        entry = SyncStatus(
            sync_status=state.value,
            total_meetings_synced=meetings_synced,
        )
        if sync_time is not None:
            entry.last_sync_time = sync_time
        return await self.add(entry)

    async def last_completed_sync_time(self) -> Optional[datetime]:
        """Start time of the most recent successful sync."""
        query = select(func.max(SyncStatus.last_sync_time)).where(
            SyncStatus.sync_status == SyncState.COMPLETED.value
        )
        result = await self.session.execute(query)
        return result.scalar()
