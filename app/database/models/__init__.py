"""
SQLAlchemy ORM models for the Fathom Transcript Manager.

All models are exported from this module for convenient imports.
"""

from app.database.models.base import Base
from app.database.models.meeting import Meeting, MeetingParticipant
from app.database.models.sync_status import SyncStatus, SyncState

__all__ = [
    "Base",
    "Meeting",
    "MeetingParticipant",
    "SyncStatus",
    "SyncState",
]
