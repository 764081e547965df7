"""
Tests for transcript normalization.

Covers every payload encoding Fathom has produced: JSON arrays, objects keyed
by stringified indices, double-encoded strings and corrupted JSON.
"""

import json

import pytest

from app.ingestion.normalizer import (
    EXTRACTION_FAILED_TEXT,
    SENTINEL,
    UNKNOWN_SPEAKER,
    Utterance,
    extract_utterances,
    is_sentinel,
    normalize_transcript,
    strict_decode,
    unescape_fragment,
    UNDECODABLE,
)


# ============== Fixtures ==============

@pytest.fixture
def entries():
    return [
        {"speaker": {"display_name": "Ada"}, "text": "Morning all", "timestamp": "00:00:03"},
        {"speaker": {"display_name": "Grace"}, "text": "Hi Ada", "timestamp": "00:00:07"},
        {"speaker": {"display_name": "Ada"}, "text": "Let's start", "timestamp": "00:01:12"},
    ]


@pytest.fixture
def observed():
    calls = []

    def observer(strategy, message):
        calls.append((strategy, message))

    observer.calls = calls
    return observer


# ============== Tests ==============

class TestUtterance:
    """Tests for Utterance coercion from raw entries."""

    def test_defaults(self):
        u = Utterance()
        assert u.speaker == UNKNOWN_SPEAKER
        assert u.text == ""
        assert u.timestamp == ""

    def test_from_entry_display_name(self):
        u = Utterance.from_entry({"speaker": {"display_name": "Ada"}, "text": "Hi", "timestamp": "00:00:01"})
        assert u == Utterance("Ada", "Hi", "00:00:01")

    def test_from_entry_plain_speaker_string(self):
        assert Utterance.from_entry({"speaker": "Grace", "text": "Hi"}).speaker == "Grace"

    def test_from_entry_speaker_name_field(self):
        assert Utterance.from_entry({"speaker_name": "Linus", "text": "Hi"}).speaker == "Linus"

    def test_from_entry_content_and_time_fallbacks(self):
        u = Utterance.from_entry({"content": "Body", "time": "00:02:00"})
        assert u.text == "Body"
        assert u.timestamp == "00:02:00"
        assert u.speaker == UNKNOWN_SPEAKER

    def test_from_entry_numeric_timestamp_coerced_to_string(self):
        assert Utterance.from_entry({"text": "x", "timestamp": 42}).timestamp == "42"

    def test_from_entry_missing_fields(self):
        assert Utterance.from_entry({}) == Utterance(UNKNOWN_SPEAKER, "", "")

    def test_to_dict(self):
        assert Utterance("Ada", "Hi", "1").to_dict() == {"speaker": "Ada", "text": "Hi", "timestamp": "1"}


class TestStrictDecode:

    def test_valid_json(self):
        assert strict_decode('[1, 2]') == [1, 2]

    def test_invalid_json_is_undecodable(self):
        assert strict_decode("{not json") is UNDECODABLE

    def test_unwraps_double_encoding(self):
        payload = json.dumps(json.dumps({"text": "hi"}))
        assert strict_decode(payload) == {"text": "hi"}

    def test_plain_json_string_stays_string(self):
        assert strict_decode('"hello"') == "hello"


class TestUnescapeFragment:

    def test_strips_one_pair_of_quotes(self):
        assert unescape_fragment('"abc"') == "abc"

    def test_reverses_escapes_in_order(self):
        assert unescape_fragment(r'{\"a\":\"x\\y\"}') == '{"a":"x\\y"}'

    def test_control_sequences(self):
        assert unescape_fragment(r"a\nb\tc\rd") == "a\nb\tc\rd"


class TestArrayPayloads:
    """JSON arrays of utterance objects."""

    def test_python_list_preserves_order(self, entries):
        result = normalize_transcript(entries)
        assert [u.text for u in result] == ["Morning all", "Hi Ada", "Let's start"]
        assert [u.speaker for u in result] == ["Ada", "Grace", "Ada"]
        assert [u.timestamp for u in result] == ["00:00:03", "00:00:07", "00:01:12"]

    def test_json_string_array(self, entries):
        assert normalize_transcript(json.dumps(entries)) == normalize_transcript(entries)

    def test_absent_fields_defaulted(self):
        result = normalize_transcript([{"text": "only text"}, {"speaker": {"display_name": "Ada"}}])
        assert result == [
            Utterance(UNKNOWN_SPEAKER, "only text", ""),
            Utterance("Ada", "", ""),
        ]

    def test_string_elements_decoded_or_kept_as_text(self):
        raw = [json.dumps({"speaker": "Ada", "text": "encoded"}), "plain words"]
        result = normalize_transcript(raw)
        assert result == [
            Utterance("Ada", "encoded", ""),
            Utterance(UNKNOWN_SPEAKER, "plain words", ""),
        ]

    def test_non_object_elements_skipped(self, observed):
        result = normalize_transcript([{"text": "kept"}, 5, None], observer=observed)
        assert result == [Utterance(UNKNOWN_SPEAKER, "kept", "")]
        assert any("position 1" in message for _, message in observed.calls)

    def test_bytes_payload(self, entries):
        assert len(normalize_transcript(json.dumps(entries).encode("utf-8"))) == 3


class TestMappingPayloads:
    """Objects keyed by stringified integer indices."""

    def test_keys_sorted_numerically(self):
        raw = {
            "10": {"text": "eleventh"},
            "2": {"text": "third"},
            "0": {"text": "first"},
            "1": {"text": "second"},
        }
        assert [u.text for u in normalize_transcript(raw)] == ["first", "second", "third", "eleventh"]

    def test_string_values_decoded(self):
        raw = json.dumps({
            "1": json.dumps({"speaker": {"display_name": "Grace"}, "text": "b", "timestamp": "00:00:02"}),
            "0": json.dumps({"speaker": {"display_name": "Ada"}, "text": "a", "timestamp": "00:00:01"}),
        })
        assert normalize_transcript(raw) == [
            Utterance("Ada", "a", "00:00:01"),
            Utterance("Grace", "b", "00:00:02"),
        ]

    def test_regex_recovery_of_broken_values(self, observed):
        raw = {
            "0": '{"speaker":{"display_name":"Ada"},"text":"cut off","timestamp":"00:00:05"',
            "1": "complete garbage",
            "2": {"text": "fine"},
        }
        result = normalize_transcript(raw, observer=observed)
        assert result == [
            Utterance("Ada", "cut off", "00:00:05"),
            Utterance(UNKNOWN_SPEAKER, "fine", ""),
        ]
        messages = [message for _, message in observed.calls]
        assert any("recovered fields" in m for m in messages)
        assert any("skipping malformed entry" in m for m in messages)

    def test_regex_recovery_without_display_name(self):
        raw = {"0": '{"text":"no speaker","timestamp":"00:00:09",'}
        assert normalize_transcript(raw) == [Utterance(UNKNOWN_SPEAKER, "no speaker", "00:00:09")]

    def test_non_integer_keys_ignored(self):
        raw = {"meta": {"text": "ignored"}, "0": {"text": "kept"}}
        assert normalize_transcript(raw) == [Utterance(UNKNOWN_SPEAKER, "kept", "")]

    def test_single_utterance_mapping(self):
        raw = {"speaker": {"display_name": "Ada"}, "text": "alone", "timestamp": "00:00:01"}
        assert normalize_transcript(raw) == [Utterance("Ada", "alone", "00:00:01")]

    def test_double_encoded_single_object(self):
        raw = json.dumps(json.dumps({"speaker": {"display_name": "Ada"}, "text": "twice", "timestamp": "00:03:00"}))
        assert normalize_transcript(raw) == [Utterance("Ada", "twice", "00:03:00")]


class TestMalformedStrings:
    """Corrupted payloads in the ``{"entry","entry"}`` array-literal shape."""

    MALFORMED = (
        r'{"{\"speaker\":{\"display_name\":\"Ada\"},\"text\":\"Hi\",\"timestamp\":\"00:00:01\"}",'
        r'"not an object at all",'
        r'"{\"speaker\":{\"display_name\":\"Grace\"},\"text\":\"Bye\",\"timestamp\":\"00:00:04\"}"}'
    )

    def test_recovers_parseable_fragments(self, observed):
        result = normalize_transcript(self.MALFORMED, observer=observed)
        assert result == [
            Utterance("Ada", "Hi", "00:00:01"),
            Utterance("Grace", "Bye", "00:00:04"),
        ]
        strategies = {strategy for strategy, _ in observed.calls}
        assert "malformed_string" in strategies

    def test_unrecoverable_string_gives_sentinel(self):
        assert normalize_transcript("{{{ definitely not json") == [SENTINEL]


class TestSentinel:
    """Inputs with nothing to extract yield the single sentinel utterance."""

    @pytest.mark.parametrize("raw", [None, "", "   ", {}, [], "{}", "[]", 42, "null"])
    def test_empty_inputs(self, raw):
        result = normalize_transcript(raw)
        assert result == [SENTINEL]
        assert is_sentinel(result)

    def test_sentinel_shape(self):
        assert SENTINEL.speaker == ""
        assert SENTINEL.timestamp == ""
        assert SENTINEL.text == EXTRACTION_FAILED_TEXT

    def test_extract_utterances_returns_empty_list(self):
        assert extract_utterances(None) == []
        assert extract_utterances("garbage") == []

    def test_real_result_is_not_sentinel(self, entries):
        assert not is_sentinel(normalize_transcript(entries))

    def test_observer_told_about_fallback(self, observed):
        normalize_transcript(None, observer=observed)
        assert ("fallback", "no entries extracted, returning sentinel") in observed.calls


class TestHostileInput:
    """Pathological payloads fall through to later strategies instead of raising."""

    def test_deeply_nested_json_string(self):
        assert normalize_transcript("[" * 100000) == [SENTINEL]

    def test_deeply_nested_but_closed_json(self):
        assert normalize_transcript("[" * 100000 + "]" * 100000) == [SENTINEL]

    def test_deeply_nested_fragment(self):
        raw = '{"' + "[" * 100000 + '","{\\"text\\":\\"kept\\"}"}'
        assert normalize_transcript(raw) == [Utterance(UNKNOWN_SPEAKER, "kept", "")]

    def test_strict_decode_reports_recursion_as_undecodable(self):
        assert strict_decode("{\"a\":" * 100000) is UNDECODABLE

    @pytest.mark.parametrize("key", ["²", "١", "٣"])
    def test_non_ascii_digit_keys_ignored(self, key):
        raw = {key: json.dumps({"text": "x"}), "0": json.dumps({"text": "kept"})}
        assert normalize_transcript(raw) == [Utterance(UNKNOWN_SPEAKER, "kept", "")]

    def test_only_non_ascii_digit_key(self):
        assert normalize_transcript({"²": json.dumps({"text": "x"})}) == [SENTINEL]

    def test_huge_integer_timestamp(self):
        result = normalize_transcript([{"text": "a", "timestamp": 10 ** 5000}])
        assert len(result) == 1
        assert result[0].text == "a"
