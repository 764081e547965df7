"""
Meeting duration resolution.

A Fathom meeting record can carry up to four conflicting duration signals.
They are consulted in a fixed priority order and the first one that yields
a strictly positive number of whole seconds wins:

1. recording start/end delta
2. scheduled start/end delta
3. latest timestamp found inside the transcript body
4. explicit ``duration`` field

When none of them yields a value the duration is unknown (``None``), never 0.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

from app.ingestion.normalizer import extract_utterances

Timestamp = Union[datetime, str, int, float]

# Bare numbers below this are seconds, above it milliseconds (8 hours)
SECONDS_CEILING = 28800
MILLISECONDS_FLOOR = 1000

# Scheduled-slot lengths that the explicit field tends to carry instead of
# the real meeting length
SUSPICIOUS_DURATIONS = frozenset({900, 1800, 2700, 3600})

HMS_PATTERN = re.compile(r"^\[?\s*(\d{1,9}):(\d{1,2}):(\d{1,2})\s*\]?$")
MS_PATTERN = re.compile(r"^\[?\s*(\d{1,9}):(\d{1,2})\s*\]?$")
NUMERIC_PATTERN = re.compile(r"^\d+(?:\.\d+)?$")
FRACTION_PATTERN = re.compile(r"(\d{2}:\d{2}:\d{2})\.(\d+)")


class DurationMethod(str, Enum):
    """Which source produced a resolved duration."""
    RECORDING = "recording"
    SCHEDULED = "scheduled"
    TRANSCRIPT = "transcript"
    EXPLICIT = "explicit"
    UNKNOWN = "unknown"


# Methods derived from actual timing data rather than the explicit field
MEASURED_METHODS = frozenset({
    DurationMethod.RECORDING,
    DurationMethod.SCHEDULED,
    DurationMethod.TRANSCRIPT,
})


@dataclass
class DurationSources:
    """Candidate duration sources for a single meeting."""
    explicit_duration_seconds: Optional[Union[int, float, str]] = None
    scheduled_start: Optional[Timestamp] = None
    scheduled_end: Optional[Timestamp] = None
    recording_start: Optional[Timestamp] = None
    recording_end: Optional[Timestamp] = None
    transcript: Any = None

    @classmethod
    def from_fathom_meeting(cls, meeting: Dict[str, Any]) -> "DurationSources":
        """Build sources from a raw Fathom ``/meetings`` item."""
        return cls(
            explicit_duration_seconds=meeting.get("duration"),
            scheduled_start=meeting.get("scheduled_start_time"),
            scheduled_end=meeting.get("scheduled_end_time"),
            recording_start=meeting.get("recording_start_time"),
            recording_end=meeting.get("recording_end_time"),
            transcript=meeting.get("transcript"),
        )


@dataclass(frozen=True)
class DurationResolution:
    seconds: Optional[int]
    method: DurationMethod

    @property
    def known(self) -> bool:
        return self.seconds is not None


UNKNOWN = DurationResolution(seconds=None, method=DurationMethod.UNKNOWN)


# -----------------------------
# Timestamp parsing
# -----------------------------

def _parse_number(text: str) -> Optional[Union[int, float]]:
    """Exact int for digit runs, float for decimals, ``None`` when unusable."""
    try:
        if "." not in text:
            return int(text)
        number = float(text)
    except ValueError:
        # int() refuses digit strings beyond the interpreter's conversion limit
        return None
    return number if math.isfinite(number) else None


def parse_timestamp(value: Any) -> int:
    """
    Parse a transcript timestamp into whole seconds.

    Recognizes ``HH:MM:SS`` and ``MM:SS`` (optionally bracketed) and bare
    numbers, which are seconds below 8 hours and milliseconds above that.
    Anything else parses to 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    try:
        text = str(value).strip()
    except ValueError:
        # int too large to render as decimal text
        return 0
    if not text:
        return 0

    match = HMS_PATTERN.match(text)
    if match:
        hours, minutes, seconds = (int(part) for part in match.groups())
        return hours * 3600 + minutes * 60 + seconds

    match = MS_PATTERN.match(text)
    if match:
        minutes, seconds = (int(part) for part in match.groups())
        return minutes * 60 + seconds

    if NUMERIC_PATTERN.match(text):
        number = _parse_number(text)
        if number is None:
            return 0
        if number < SECONDS_CEILING:
            return int(math.floor(number))
        if number > MILLISECONDS_FLOOR:
            return int(number // 1000)

    return 0


def latest_transcript_timestamp(transcript: Any) -> int:
    """Largest parsed timestamp across every recoverable utterance, or 0."""
    if transcript is None:
        return 0
    return max(
        (parse_timestamp(utterance.timestamp) for utterance in extract_utterances(transcript)),
        default=0,
    )


def parse_iso_datetime(text: str) -> Optional[datetime]:
    """
    Parse an ISO-8601 string into an aware datetime; naive values are UTC.

    Accepts a trailing ``Z`` and fractional seconds of any precision.
    """
    text = text.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = FRACTION_PATTERN.sub(lambda m: f"{m.group(1)}.{(m.group(2) + '000000')[:6]}", text)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_epoch_ms(value: Optional[Timestamp]) -> Optional[float]:
    """Convert a datetime, ISO-8601 string or epoch-ms number to epoch ms."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if NUMERIC_PATTERN.match(text):
            number = _parse_number(text)
            return to_epoch_ms(number) if number is not None else None
        value = parse_iso_datetime(text)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp() * 1000
    return None


def _delta_seconds(start: Optional[Timestamp], end: Optional[Timestamp]) -> Optional[int]:
    start_ms = to_epoch_ms(start)
    end_ms = to_epoch_ms(end)
    if start_ms is None or end_ms is None:
        return None
    delta = (end_ms - start_ms) / 1000
    if not math.isfinite(delta):
        return None
    seconds = math.floor(delta)
    return seconds if seconds > 0 else None


def _explicit_seconds(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(number):
        return None
    seconds = math.floor(number)
    return seconds if seconds > 0 else None


# -----------------------------
# Resolution
# -----------------------------

def explain_duration(sources: DurationSources) -> DurationResolution:
    """Resolve a duration and report which source produced it."""
    seconds = _delta_seconds(sources.recording_start, sources.recording_end)
    if seconds:
        return DurationResolution(seconds, DurationMethod.RECORDING)

    seconds = _delta_seconds(sources.scheduled_start, sources.scheduled_end)
    if seconds:
        return DurationResolution(seconds, DurationMethod.SCHEDULED)

    seconds = latest_transcript_timestamp(sources.transcript)
    if seconds > 0:
        return DurationResolution(seconds, DurationMethod.TRANSCRIPT)

    seconds = _explicit_seconds(sources.explicit_duration_seconds)
    if seconds:
        return DurationResolution(seconds, DurationMethod.EXPLICIT)

    return UNKNOWN


def resolve_duration(sources: DurationSources) -> Optional[int]:
    """Resolved duration in whole seconds, or ``None`` when unknown."""
    return explain_duration(sources).seconds


def is_suspicious_duration(seconds: Optional[int]) -> bool:
    """Whether a stored duration looks like a scheduled slot length."""
    return seconds in SUSPICIOUS_DURATIONS
