#!/usr/bin/env python3
"""
Re-resolve stored meeting durations.

Meetings whose duration is NULL or exactly 15/30/45/60 minutes (the length
of the scheduled slot rather than the call) are re-resolved from their
recording times, scheduled times and transcript.

Usage:
    python scripts/fix_durations.py [--dry-run] [--limit N]

Options:
    --dry-run   Show what would change without writing
    --limit N   Examine at most N meetings (newest first)
"""

import asyncio
import argparse
import sys
import logging
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.logging import setup_logging
from app.database.connection import get_db_context, close_db
from app.ingestion.formatter import format_duration
from app.services.duration_maintenance import DurationMaintenanceService

logger = logging.getLogger(__name__)


async def main(limit, dry_run):
    print("🔧 Starting duration fix for existing meetings...")
    if dry_run:
        print("   (dry run - nothing will be written)")

    try:
        async with get_db_context() as session:
            service = DurationMaintenanceService(session)
            result = await service.fix_durations(limit=limit, dry_run=dry_run)
    finally:
        await close_db()

    print()
    print(f"📊 Examined: {result['examined']}")
    for change in result["changes"]:
        print(
            f"   ✅ {change['title'] or 'Untitled'}: "
            f"{format_duration(change['old_duration'])} -> {format_duration(change['new_duration'])} "
            f"({change['method']})"
        )
    print(f"   Skipped (no measured source or unchanged): {result['skipped']}")
    verb = "Would update" if dry_run else "Updated"
    print(f"🎉 {verb} {len(result['changes'])} meetings")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Re-resolve missing and slot-length meeting durations")
    parser.add_argument("--dry-run", action="store_true", help="Report changes without writing them")
    parser.add_argument("--limit", type=int, default=None, help="Maximum meetings to examine")
    args = parser.parse_args()

    setup_logging("INFO")
    asyncio.run(main(args.limit, args.dry_run))
