"""
Background incremental sync that runs while the server is up.

Features:
- Runs once on startup, then every AUTO_SYNC_INTERVAL_HOURS
- Skips a cycle when another sync is already running
- Non-blocking (runs as an asyncio task)
- Manual trigger for an immediate out-of-schedule sync
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import AbstractAsyncContextManager
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import SyncInProgressError
from app.database.connection import get_db_context
from app.ingestion.loaders.fathom_loader import FathomLoader
from app.services.transcript_service import TranscriptService, sync_lock

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class BackgroundSyncService:
    """
    Background service for automatic incremental Fathom syncs.
    """

    def __init__(
        self,
        session_factory: SessionFactory = get_db_context,
        loader_factory: Callable[[], FathomLoader] = FathomLoader,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.session_factory = session_factory
        self.loader_factory = loader_factory
        self.interval_seconds = settings.AUTO_SYNC_INTERVAL_HOURS * 3600
        self._sleep = sleep or asyncio.sleep
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._manual_task: Optional[asyncio.Task] = None

        self.last_run_at: Optional[datetime] = None
        self.last_result: Optional[Dict[str, Any]] = None
        self.last_error: Optional[str] = None
        self.runs = 0
        self.skipped = 0

    async def start(self):
        """Start the periodic sync loop."""
        if self._running:
            logger.info("Background sync already running")
            return

        if not settings.AUTO_SYNC_ENABLED:
            logger.info("Auto sync disabled - background sync not started")
            return

        if settings.FATHOM_API_KEY == "__MISSING__":
            logger.warning("Fathom API key not configured - background sync disabled")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_sync_loop())
        logger.info(f"Background sync started (every {settings.AUTO_SYNC_INTERVAL_HOURS}h)")

    async def stop(self):
        """Stop the loop and any manual sync still running."""
        self._running = False
        for task in (self._task, self._manual_task):
            if task and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._task = None
        self._manual_task = None
        logger.info("Background sync stopped")

    async def _run_sync_loop(self):
        while self._running:
            await self.run_once()
            if self._running:
                logger.info(f"Next auto sync in {settings.AUTO_SYNC_INTERVAL_HOURS} hours")
                await self._sleep(self.interval_seconds)

    async def run_once(self) -> Optional[Dict[str, Any]]:
        """
        Run one incremental sync. Returns the sync result, or None when the
        cycle was skipped or failed.
        """
        if sync_lock.locked():
            logger.info("Sync already in progress, skipping auto sync cycle")
            self.skipped += 1
            return None

        self.last_run_at = datetime.now(timezone.utc)
        loader = self.loader_factory()
        try:
            async with self.session_factory() as session:
                service = TranscriptService(session, loader=loader)
                result = await service.sync_meetings(incremental=True)
        except SyncInProgressError:
            logger.info("Sync already in progress, skipping auto sync cycle")
            self.skipped += 1
            return None
        except Exception as e:
            logger.error(f"Auto sync failed: {e}")
            self.last_error = str(e)
            return None
        finally:
            await loader.close()

        self.runs += 1
        self.last_result = result
        self.last_error = None
        logger.info(f"Auto sync completed: {result['synced']} meetings")
        return result

    def trigger(self) -> bool:
        """
        Start an immediate sync in the background.

        Returns False when a sync is already running.
        """
        if sync_lock.locked() or (self._manual_task and not self._manual_task.done()):
            return False
        self._manual_task = asyncio.create_task(self.run_once())
        return True

    def get_status(self) -> Dict[str, Any]:
        return {
            "running": self._running,
            "sync_in_progress": sync_lock.locked(),
            "interval_hours": settings.AUTO_SYNC_INTERVAL_HOURS,
            "last_run_at": self.last_run_at,
            "last_result": self.last_result,
            "last_error": self.last_error,
            "runs": self.runs,
            "skipped": self.skipped,
        }


# Global instance
background_sync = BackgroundSyncService()
