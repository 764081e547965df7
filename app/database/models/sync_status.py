"""
Sync status history. Each sync attempt appends a row; the newest row is
the current status.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import String, Integer, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database.models.base import Base


class SyncState(str, Enum):
    NEVER_SYNCED = "never_synced"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class SyncStatus(Base):
    __tablename__ = "sync_status"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    last_sync_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    total_meetings_synced: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    sync_status: Mapped[str] = mapped_column(
        String(20),
        default=SyncState.NEVER_SYNCED.value,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<SyncStatus(status={self.sync_status}, synced={self.total_meetings_synced})>"
