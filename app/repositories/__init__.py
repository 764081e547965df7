"""
Repository layer for database operations.
"""

from app.repositories.base import BaseRepository
from app.repositories.meeting_repository import MeetingRepository
from app.repositories.sync_status_repository import SyncStatusRepository

__all__ = [
    "BaseRepository",
    "MeetingRepository",
    "SyncStatusRepository",
]
