"""
PostgreSQL persistence for synced Fathom meetings.
"""

from app.database.connection import (
    AsyncSessionLocal,
    REQUIRED_TABLES,
    async_engine,
    check_health,
    close_db,
    create_tables,
    get_async_session,
    get_db,
    get_db_context,
    init_db,
    missing_tables,
)
from app.database.models import Base, Meeting, MeetingParticipant, SyncState, SyncStatus

__all__ = [
    "AsyncSessionLocal",
    "REQUIRED_TABLES",
    "async_engine",
    "check_health",
    "close_db",
    "create_tables",
    "get_async_session",
    "get_db",
    "get_db_context",
    "init_db",
    "missing_tables",
    "Base",
    "Meeting",
    "MeetingParticipant",
    "SyncState",
    "SyncStatus",
]
