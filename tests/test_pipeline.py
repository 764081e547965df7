"""
Tests for reducing raw Fathom meetings to their stored shape.
"""

import json
from datetime import datetime

import pytest

from app.ingestion.duration import DurationMethod
from app.ingestion.pipeline import (
    IngestionPipeline,
    parse_datetime,
    serialize_transcript,
)


@pytest.fixture
def pipeline():
    return IngestionPipeline()


@pytest.fixture
def fathom_meeting():
    return {
        "title": "Acme weekly sync",
        "meeting_title": "Weekly",
        "url": "https://fathom.video/calls/123",
        "share_url": "https://fathom.video/share/abc",
        "recording_id": 123,
        "scheduled_start_time": "2025-03-04T10:00:00Z",
        "scheduled_end_time": "2025-03-04T10:30:00Z",
        "recording_start_time": "2025-03-04T10:00:00Z",
        "recording_end_time": "2025-03-04T10:32:15Z",
        "duration": 1800,
        "transcript": [
            {"speaker": {"display_name": "Ada"}, "text": "Hello", "timestamp": "00:00:01"},
        ],
        "default_summary": {"template_name": "general", "markdown_formatted": "## Summary"},
        "calendar_invitees": [
            {"name": "Ada Lovelace", "email": "Ada@Acme.com", "is_external": False},
            {"name": "Grace Hopper", "email": "grace@globex.com", "is_external": True},
            {"name": "No Email", "email": None, "is_external": True},
        ],
    }


class TestParseDatetime:

    def test_zulu_to_naive_utc(self):
        assert parse_datetime("2025-03-04T10:00:00Z") == datetime(2025, 3, 4, 10, 0, 0)

    def test_offset_converted(self):
        assert parse_datetime("2025-03-04T12:00:00+02:00") == datetime(2025, 3, 4, 10, 0, 0)

    def test_epoch_ms(self):
        assert parse_datetime(0) == datetime(1970, 1, 1)

    def test_short_fraction(self):
        assert parse_datetime("2025-03-04T10:00:00.5Z") == datetime(2025, 3, 4, 10, 0, 0, 500000)

    @pytest.mark.parametrize("value", [10 ** 400, 1e300])
    def test_epoch_out_of_range(self, value):
        assert parse_datetime(value) is None

    @pytest.mark.parametrize("value", [None, "", "soon", {}])
    def test_unparseable(self, value):
        assert parse_datetime(value) is None


class TestSerializeTranscript:

    def test_string_untouched(self):
        assert serialize_transcript('{"broken"') == '{"broken"'

    def test_structured_as_json(self):
        data = [{"text": "héllo"}]
        assert json.loads(serialize_transcript(data)) == data
        assert "héllo" in serialize_transcript(data)

    def test_none_is_empty(self):
        assert serialize_transcript(None) == ""


class TestProcessFathomMeeting:

    def test_core_fields(self, pipeline, fathom_meeting):
        processed = pipeline.process_fathom_meeting(fathom_meeting)

        assert processed.fathom_id == "123"
        assert processed.title == "Acme weekly sync"
        assert processed.start_time == datetime(2025, 3, 4, 10, 0, 0)
        assert processed.end_time == datetime(2025, 3, 4, 10, 30, 0)
        assert processed.recording_end_time == datetime(2025, 3, 4, 10, 32, 15)
        assert processed.recording_url == "https://fathom.video/calls/123"
        assert processed.summary == "## Summary"

    def test_duration_from_recording(self, pipeline, fathom_meeting):
        processed = pipeline.process_fathom_meeting(fathom_meeting)
        assert processed.duration == 1935
        assert processed.duration_source == DurationMethod.RECORDING

    def test_unknown_duration(self, pipeline):
        processed = pipeline.process_fathom_meeting({"id": "x"})
        assert processed.duration is None
        assert processed.duration_source == DurationMethod.UNKNOWN

    def test_transcript_serialized(self, pipeline, fathom_meeting):
        processed = pipeline.process_fathom_meeting(fathom_meeting)
        assert json.loads(processed.transcript) == fathom_meeting["transcript"]

    def test_participants_and_domains(self, pipeline, fathom_meeting):
        processed = pipeline.process_fathom_meeting(fathom_meeting)

        ada, grace, no_email = processed.participants
        assert ada.email == "ada@acme.com"
        assert ada.domain == "acme.com"
        assert ada.is_host is True
        assert grace.is_host is False
        assert no_email.email is None
        assert no_email.domain is None
        assert processed.domains == ["acme.com", "globex.com"]

    def test_fallbacks(self, pipeline):
        processed = pipeline.process_fathom_meeting({
            "url": "https://fathom.video/calls/9",
            "meeting_title": "Fallback title",
            "recording_start_time": "2025-03-04T09:00:00Z",
            "recording_end_time": "2025-03-04T09:20:00Z",
            "default_summary": None,
        })
        assert processed.fathom_id == "https://fathom.video/calls/9"
        assert processed.title == "Fallback title"
        assert processed.start_time == datetime(2025, 3, 4, 9, 0, 0)
        assert processed.end_time == datetime(2025, 3, 4, 9, 20, 0)
        assert processed.summary == ""
        assert processed.transcript == ""

    def test_missing_id(self, pipeline):
        assert pipeline.process_fathom_meeting({}).fathom_id == ""
