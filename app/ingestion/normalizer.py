"""
Normalize Fathom transcript payloads into an ordered list of utterances.

The transcript field arrives in several physical encodings for the same
logical data: a JSON array, a JSON object keyed by stringified indices whose
values are JSON-encoded entries, double-encoded strings, and JSON that was
truncated or corrupted in storage. Extraction strategies are tried in order
of decreasing confidence and the first one that yields entries wins.

Nothing in this module raises on malformed input and nothing writes to a
global logger; pass an ``observer`` to receive diagnostics.
"""

from __future__ import annotations

import json
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

UNKNOWN_SPEAKER = "Unknown Speaker"
EXTRACTION_FAILED_TEXT = "Error: Unable to extract transcript entries from corrupted data."

# Maximum number of nested JSON string layers unwrapped by a strict decode
MAX_DECODE_DEPTH = 3

ENTRY_DELIMITER = '","'

# Applied in this order; backslash must be restored after quotes
UNESCAPE_SEQUENCE: Tuple[Tuple[str, str], ...] = (
    ('\\"', '"'),
    ("\\\\", "\\"),
    ("\\n", "\n"),
    ("\\r", "\r"),
    ("\\t", "\t"),
)

TEXT_PATTERN = re.compile(r'"text":"([^"]*?)"')
DISPLAY_NAME_PATTERN = re.compile(r'"display_name":"([^"]*?)"')
TIMESTAMP_PATTERN = re.compile(r'"timestamp":"([^"]*?)"')

INTEGER_KEY_PATTERN = re.compile(r"\d+", re.ASCII)

UTTERANCE_KEYS = frozenset({"speaker", "speaker_name", "text", "content", "timestamp", "time"})

ExtractionObserver = Callable[[str, str], None]


@dataclass(frozen=True)
class Utterance:
    """One speaker turn: speaker label, text and an opaque timestamp."""
    speaker: str = UNKNOWN_SPEAKER
    text: str = ""
    timestamp: str = ""

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_entry(cls, entry: Dict[str, Any]) -> "Utterance":
        """Coerce an utterance-like mapping, defaulting absent fields."""
        return cls(
            speaker=_coerce_speaker(entry),
            text=_coerce_text(entry.get("text") or entry.get("content")),
            timestamp=_coerce_text(entry.get("timestamp") or entry.get("time")),
        )


SENTINEL = Utterance(speaker="", text=EXTRACTION_FAILED_TEXT, timestamp="")


@dataclass
class ExtractionResult:
    """Outcome of one extraction strategy: entries, or a request to move on."""
    strategy: str
    entries: List[Utterance] = field(default_factory=list)
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return bool(self.entries)

    @classmethod
    def success(cls, strategy: str, entries: List[Utterance]) -> "ExtractionResult":
        return cls(strategy=strategy, entries=entries)

    @classmethod
    def next_strategy(cls, strategy: str, reason: str) -> "ExtractionResult":
        return cls(strategy=strategy, reason=reason)


class _Undecodable:
    """Marker for a string that failed strict JSON decoding."""

    def __repr__(self) -> str:
        return "<undecodable>"


UNDECODABLE = _Undecodable()


@dataclass
class _Payload:
    raw: Any
    decoded: Any

    @property
    def malformed(self) -> bool:
        return self.decoded is UNDECODABLE


# -----------------------------
# Field coercion
# -----------------------------

def _coerce_text(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        try:
            return str(value)
        except ValueError:
            return ""
    return ""


def _coerce_speaker(entry: Dict[str, Any]) -> str:
    speaker = entry.get("speaker")
    if isinstance(speaker, dict):
        name = speaker.get("display_name") or speaker.get("name")
        if isinstance(name, str) and name:
            return name
    elif isinstance(speaker, str) and speaker:
        return speaker

    speaker_name = entry.get("speaker_name")
    if isinstance(speaker_name, str) and speaker_name:
        return speaker_name
    return UNKNOWN_SPEAKER


def _looks_like_utterance(value: Dict[str, Any]) -> bool:
    return any(key in value for key in UTTERANCE_KEYS)


def _integer_key(key: Any) -> Optional[int]:
    if isinstance(key, bool):
        return None
    if isinstance(key, int):
        return key if key >= 0 else None
    if isinstance(key, str) and INTEGER_KEY_PATTERN.fullmatch(key.strip()):
        try:
            return int(key.strip())
        except ValueError:
            return None
    return None


# -----------------------------
# Strict decoding
# -----------------------------

def _loads(value: Any) -> Any:
    """``json.loads`` that reports any failure as ``UNDECODABLE``."""
    try:
        return json.loads(value)
    except (TypeError, ValueError, RecursionError):
        # RecursionError: nesting deeper than the decoder's stack allows
        return UNDECODABLE


def strict_decode(value: str) -> Any:
    """
    Strictly decode a JSON string, unwrapping double-encoded layers.

    Returns ``UNDECODABLE`` when the outermost layer is not valid JSON.
    """
    decoded = _loads(value)

    depth = 1
    while isinstance(decoded, str) and depth < MAX_DECODE_DEPTH:
        inner = _loads(decoded)
        if inner is UNDECODABLE:
            break
        decoded = inner
        depth += 1
    return decoded


def _decode_payload(raw: Any) -> _Payload:
    if isinstance(raw, str):
        return _Payload(raw=raw, decoded=strict_decode(raw))
    if isinstance(raw, (bytes, bytearray)):
        text = bytes(raw).decode("utf-8", errors="replace")
        return _Payload(raw=text, decoded=strict_decode(text))
    return _Payload(raw=raw, decoded=raw)


def _recover_fields(value: str) -> Optional[Utterance]:
    """Pull text, display name and timestamp out of a broken entry string."""
    text_match = TEXT_PATTERN.search(value)
    speaker_match = DISPLAY_NAME_PATTERN.search(value)
    timestamp_match = TIMESTAMP_PATTERN.search(value)

    if not (text_match or speaker_match or timestamp_match):
        return None

    return Utterance(
        speaker=speaker_match.group(1) if speaker_match and speaker_match.group(1) else UNKNOWN_SPEAKER,
        text=text_match.group(1) if text_match else "",
        timestamp=timestamp_match.group(1) if timestamp_match else "",
    )


def unescape_fragment(fragment: str) -> str:
    """Strip one pair of enclosing quotes and reverse the escape sequences."""
    if fragment.startswith('"'):
        fragment = fragment[1:]
    if fragment.endswith('"'):
        fragment = fragment[:-1]
    for escaped, literal in UNESCAPE_SEQUENCE:
        fragment = fragment.replace(escaped, literal)
    return fragment


# -----------------------------
# Strategies
# -----------------------------

def _extract_mapping(payload: _Payload, notify: ExtractionObserver) -> ExtractionResult:
    name = "mapping"
    data = payload.decoded
    if not isinstance(data, dict):
        return ExtractionResult.next_strategy(name, "payload is not a mapping")

    indexed = []
    for key, value in data.items():
        index = _integer_key(key)
        if index is not None:
            indexed.append((index, key, value))

    if not indexed:
        if _looks_like_utterance(data):
            return ExtractionResult.success(name, [Utterance.from_entry(data)])
        return ExtractionResult.next_strategy(name, "mapping has no integer keys")

    indexed.sort(key=lambda item: item[0])

    entries: List[Utterance] = []
    for index, key, value in indexed:
        if isinstance(value, str):
            decoded = strict_decode(value)
            if isinstance(decoded, dict):
                entries.append(Utterance.from_entry(decoded))
                continue
            recovered = _recover_fields(value)
            if recovered is None:
                notify(name, f"skipping malformed entry at key {key!r}")
                continue
            notify(name, f"recovered fields from malformed entry at key {key!r}")
            entries.append(recovered)
        elif isinstance(value, dict):
            entries.append(Utterance.from_entry(value))
        else:
            notify(name, f"skipping {type(value).__name__} value at key {key!r}")

    if not entries:
        return ExtractionResult.next_strategy(name, "no entries recovered from mapping")
    return ExtractionResult.success(name, entries)


def _extract_array(payload: _Payload, notify: ExtractionObserver) -> ExtractionResult:
    name = "array"
    data = payload.decoded
    if not isinstance(data, (list, tuple)):
        return ExtractionResult.next_strategy(name, "payload is not a sequence")

    entries: List[Utterance] = []
    for position, element in enumerate(data):
        if isinstance(element, dict):
            entries.append(Utterance.from_entry(element))
        elif isinstance(element, str):
            decoded = strict_decode(element)
            if isinstance(decoded, dict):
                entries.append(Utterance.from_entry(decoded))
            elif element.strip():
                entries.append(Utterance(text=element))
        else:
            notify(name, f"skipping {type(element).__name__} element at position {position}")

    if not entries:
        return ExtractionResult.next_strategy(name, "sequence yielded no entries")
    return ExtractionResult.success(name, entries)


def _recover_malformed_string(payload: _Payload, notify: ExtractionObserver) -> ExtractionResult:
    name = "malformed_string"
    if not payload.malformed:
        return ExtractionResult.next_strategy(name, "payload decoded strictly")

    clean = payload.raw.strip()
    if clean.startswith("{") and clean.endswith("}"):
        clean = clean[1:-1]

    fragments = clean.split(ENTRY_DELIMITER)
    notify(name, f"found {len(fragments)} candidate fragments")

    entries: List[Utterance] = []
    for position, fragment in enumerate(fragments):
        entry = _loads(unescape_fragment(fragment))
        if entry is UNDECODABLE:
            notify(name, f"dropping unparseable fragment {position}")
            continue
        if isinstance(entry, dict):
            entries.append(Utterance.from_entry(entry))
        else:
            notify(name, f"dropping non-object fragment {position}")

    if not entries:
        return ExtractionResult.next_strategy(name, "no fragments could be parsed")
    return ExtractionResult.success(name, entries)


STRATEGIES: Sequence[Callable[[_Payload, ExtractionObserver], ExtractionResult]] = (
    _recover_malformed_string,
    _extract_mapping,
    _extract_array,
)


def _silent(strategy: str, message: str) -> None:
    return None


# -----------------------------
# Public API
# -----------------------------

def extract_utterances(
    raw: Any,
    observer: Optional[ExtractionObserver] = None,
) -> List[Utterance]:
    """
    Run every extraction strategy against ``raw`` and return the first
    non-empty result, or an empty list when nothing can be recovered.
    """
    notify = observer or _silent

    if raw is None:
        notify("decode", "payload is empty")
        return []

    payload = _decode_payload(raw)
    if payload.malformed:
        notify("decode", "strict decode failed, falling back to recovery")

    for strategy in STRATEGIES:
        result = strategy(payload, notify)
        if result.ok:
            notify(result.strategy, f"extracted {len(result.entries)} entries")
            return result.entries
        if result.reason:
            notify(result.strategy, result.reason)

    return []


def normalize_transcript(
    raw: Any,
    observer: Optional[ExtractionObserver] = None,
) -> List[Utterance]:
    """
    Convert a raw transcript payload into ordered utterances.

    Always returns at least one utterance: when nothing can be extracted the
    result is the single ``SENTINEL`` utterance describing the failure.
    """
    entries = extract_utterances(raw, observer)
    if entries:
        return entries
    (observer or _silent)("fallback", "no entries extracted, returning sentinel")
    return [SENTINEL]


def is_sentinel(utterances: Sequence[Utterance]) -> bool:
    """Whether ``utterances`` is the no-data placeholder."""
    return len(utterances) == 1 and utterances[0] == SENTINEL
