"""
Tests for re-resolving stored meeting durations.
"""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.ingestion.duration import DurationMethod, SUSPICIOUS_DURATIONS
from app.services.duration_maintenance import (
    DurationMaintenanceService,
    recompute_duration,
)


@pytest.fixture
def maintenance(mock_session):
    service = DurationMaintenanceService(mock_session)
    service.meetings = MagicMock()
    service.meetings.list_needing_duration_fix = AsyncMock(return_value=[])
    service.meetings.list_recent = AsyncMock(return_value=[])
    service.meetings.update_duration = AsyncMock()
    return service


@pytest.fixture
def slot_length_meeting(meeting_factory):
    # Stored as the 30 minute slot, recorded for 32m15s
    return meeting_factory(id=1, duration=1800, duration_source="explicit")


@pytest.fixture
def scheduled_only_meeting(meeting_factory):
    return meeting_factory(
        id=2,
        duration=1800,
        recording_start_time=None,
        recording_end_time=None,
        transcript=None,
    )


@pytest.fixture
def unresolvable_meeting(meeting_factory):
    return meeting_factory(
        id=3,
        duration=None,
        start_time=None,
        end_time=None,
        recording_start_time=None,
        recording_end_time=None,
        transcript=None,
    )


class TestRecomputeDuration:

    def test_prefers_recording(self, slot_length_meeting):
        resolution = recompute_duration(slot_length_meeting)
        assert resolution.seconds == 1935
        assert resolution.method == DurationMethod.RECORDING

    def test_stored_value_not_reused(self, unresolvable_meeting):
        unresolvable_meeting.duration = 1800
        resolution = recompute_duration(unresolvable_meeting)
        assert resolution.seconds is None
        assert resolution.method == DurationMethod.UNKNOWN

    def test_transcript_when_no_times(self, meeting_factory):
        meeting = meeting_factory(
            start_time=None,
            end_time=None,
            recording_start_time=None,
            recording_end_time=None,
            transcript='[{"text": "a", "timestamp": "00:20:00"}]',
        )
        assert recompute_duration(meeting).seconds == 1200


class TestFixDurations:

    @pytest.mark.asyncio
    async def test_updates_measured_changes(
        self, maintenance, mock_session, slot_length_meeting, scheduled_only_meeting, unresolvable_meeting
    ):
        maintenance.meetings.list_needing_duration_fix.return_value = [
            slot_length_meeting,
            scheduled_only_meeting,
            unresolvable_meeting,
        ]

        result = await maintenance.fix_durations(limit=10)

        maintenance.meetings.list_needing_duration_fix.assert_awaited_once_with(SUSPICIOUS_DURATIONS, limit=10)
        assert result["examined"] == 3
        assert result["updated"] == 1
        assert result["skipped"] == 2
        assert result["dry_run"] is False
        assert result["changes"] == [{
            "meeting_id": 1,
            "title": "Acme weekly sync",
            "old_duration": 1800,
            "new_duration": 1935,
            "method": "recording",
        }]
        maintenance.meetings.update_duration.assert_awaited_once_with(1, 1935, "recording")
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_dry_run_writes_nothing(self, maintenance, mock_session, slot_length_meeting):
        maintenance.meetings.list_needing_duration_fix.return_value = [slot_length_meeting]

        result = await maintenance.fix_durations(dry_run=True)

        assert result["updated"] == 0
        assert len(result["changes"]) == 1
        maintenance.meetings.update_duration.assert_not_awaited()
        mock_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_nothing_to_fix(self, maintenance, mock_session):
        result = await maintenance.fix_durations()

        assert result == {"examined": 0, "updated": 0, "skipped": 0, "dry_run": False, "changes": []}
        mock_session.commit.assert_not_awaited()


class TestDurationReport:

    @pytest.mark.asyncio
    async def test_report_entries(self, maintenance, slot_length_meeting):
        maintenance.meetings.list_recent.return_value = [slot_length_meeting]

        report = await maintenance.duration_report(limit=5)

        maintenance.meetings.list_recent.assert_awaited_once_with(5)
        entry = report[0]
        assert entry["id"] == 1
        assert entry["stored_duration"] == 1800
        assert entry["stored_source"] == "explicit"
        assert entry["stored_display"] == "30m"
        assert entry["suspicious"] is True
        assert entry["recomputed_duration"] == 1935
        assert entry["recomputed_method"] == "recording"
        assert entry["recomputed_display"] == "32m"
        assert entry["recording_end_time"] == datetime(2025, 3, 4, 10, 32, 15)
