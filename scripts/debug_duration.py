#!/usr/bin/env python3
"""
Print stored vs recomputed durations from a running server.

Usage:
    python scripts/debug_duration.py [--base-url URL] [--limit N]
"""

import asyncio
import argparse
import sys
from pathlib import Path

import httpx

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.ingestion.formatter import format_duration


async def debug_duration(base_url, limit):
    print("🔍 Checking duration data in database...")

    async with httpx.AsyncClient(base_url=base_url, timeout=30.0) as client:
        response = await client.get("/api/transcripts/debug/duration", params={"limit": limit})

    result = response.json()
    if not result.get("success"):
        print(f"❌ Debug failed: {result.get('error')}")
        return 1

    meetings = result["data"]
    print()
    print("📊 Duration Debug Results:")
    print("========================")
    for index, meeting in enumerate(meetings, 1):
        flag = " ⚠️ slot length" if meeting["suspicious"] else ""
        print(f"{index}. {meeting['title'] or 'Untitled'}")
        print(f"   Start: {meeting['start_time']}  End: {meeting['end_time']}")
        print(
            f"   Stored: {meeting['stored_duration']} ({meeting['stored_source'] or 'n/a'}){flag}, "
            f"Recomputed: {meeting['recomputed_duration']} via {meeting['recomputed_method']}"
        )
        print(f"   Formatted: {format_duration(meeting['recomputed_duration'])}")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Show stored vs recomputed meeting durations")
    parser.add_argument("--base-url", default="http://localhost:8000", help="Server base URL")
    parser.add_argument("--limit", type=int, default=20, help="Number of recent meetings")
    args = parser.parse_args()

    sys.exit(asyncio.run(debug_duration(args.base_url, args.limit)))
