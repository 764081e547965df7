"""
Root pytest configuration for the transcript manager tests.

This file registers custom command line options and markers that can be used
across all test directories, plus fixtures shared by the service and route
tests.
"""

from datetime import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="Run integration tests (requires PostgreSQL and a Fathom API key)",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (require external services)"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless the flag is provided."""
    if config.getoption("--integration"):
        return

    skip_integration = pytest.mark.skip(
        reason="Need --integration option to run integration tests"
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


# ============== Shared Fixtures ==============

@pytest.fixture
def mock_session():
    """Create a mock async session."""
    session = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.execute = AsyncMock()
    session.add = MagicMock()
    return session


def make_participant(name="Ada Lovelace", email="ada@acme.com", domain="acme.com", is_host=False):
    return SimpleNamespace(name=name, email=email, domain=domain, is_host=is_host)


def make_meeting(**overrides):
    """Stand-in for a Meeting row with the attributes services and schemas read."""
    participants = overrides.pop("participants", [make_participant()])
    values = dict(
        id=1,
        fathom_meeting_id="fm-1",
        title="Acme weekly sync",
        start_time=datetime(2025, 3, 4, 10, 0, 0),
        end_time=datetime(2025, 3, 4, 10, 30, 0),
        recording_start_time=datetime(2025, 3, 4, 10, 0, 0),
        recording_end_time=datetime(2025, 3, 4, 10, 32, 15),
        duration=1935,
        duration_source="recording",
        recording_url="https://fathom.video/calls/1",
        transcript='[{"speaker": {"display_name": "Ada"}, "text": "Hello", "timestamp": "00:00:01"}]',
        summary="Discussed roadmap",
        participants=participants,
    )
    values.update(overrides)
    meeting = SimpleNamespace(**values)
    meeting.participant_labels = [f"{p.name or ''} ({p.email or ''})" for p in meeting.participants]
    meeting.domains = []
    for p in meeting.participants:
        if p.domain and p.domain not in meeting.domains:
            meeting.domains.append(p.domain)
    return meeting


@pytest.fixture
def meeting_factory():
    return make_meeting


@pytest.fixture
def participant_factory():
    return make_participant
