"""Tests for the message normalizer."""

from __future__ import annotations

from datetime import UTC, datetime

from mindsage.modules.chat.normalizer import (
    normalize_message,
    normalize_messages,
    parse_timestamp,
)


class TestNormalizeMessage:
    def test_canonical_message_passes_through(self):
        raw = {
            "role": "assistant",
            "content": "Hello",
            "timestamp": "2026-01-02T03:04:05+00:00",
            "metadata": {"technique": "grounding"},
        }
        msg = normalize_message(raw)
        assert msg == raw

    def test_content_falls_back_to_text_then_message(self):
        assert normalize_message({"text": "from text"})["content"] == "from text"
        assert normalize_message({"message": "from message"})["content"] == "from message"
        assert normalize_message({"content": "c", "text": "t"})["content"] == "c"
        assert normalize_message({})["content"] == ""

    def test_empty_content_falls_through_to_next_field(self):
        assert normalize_message({"content": "", "text": "hi"})["content"] == "hi"
        assert normalize_message({"content": "", "text": "", "message": "m"})["content"] == "m"

    def test_role_inferred_from_sender(self):
        assert normalize_message({"sender": "user"})["role"] == "user"
        assert normalize_message({"sender": "bot"}, index=0)["role"] == "assistant"

    def test_role_falls_back_to_position(self):
        assert normalize_message({"content": "a"}, index=0)["role"] == "user"
        assert normalize_message({"content": "b"}, index=1)["role"] == "assistant"

    def test_unknown_role_value_is_ignored(self):
        assert normalize_message({"role": "system"}, index=1)["role"] == "assistant"

    def test_missing_timestamp_defaults_to_now(self):
        before = datetime.now(UTC)
        msg = normalize_message({"content": "hi"})
        assert datetime.fromisoformat(msg["timestamp"]) >= before

    def test_unparseable_timestamp_defaults_to_now(self):
        msg = normalize_message({"content": "hi", "timestamp": "yesterday-ish"})
        assert datetime.fromisoformat(msg["timestamp"]).year >= 2026

    def test_created_at_is_used_when_timestamp_missing(self):
        msg = normalize_message({"content": "hi", "createdAt": "2025-05-01T10:00:00Z"})
        assert msg["timestamp"] == "2025-05-01T10:00:00+00:00"

    def test_analysis_is_wrapped_into_metadata(self):
        msg = normalize_message({"content": "x", "analysis": {"emotionalState": "calm"}})
        assert msg["metadata"] == {"analysis": {"emotionalState": "calm"}}

    def test_metadata_omitted_when_absent(self):
        assert "metadata" not in normalize_message({"content": "x"})

    def test_non_dict_input_never_raises(self):
        assert normalize_message("plain text")["content"] == "plain text"
        assert normalize_message(None)["content"] == ""
        assert normalize_message(42, index=3)["role"] == "assistant"


class TestNormalizeMessages:
    def test_list_keeps_order(self):
        msgs = normalize_messages([{"text": "first"}, {"text": "second"}])
        assert [m["content"] for m in msgs] == ["first", "second"]
        assert [m["role"] for m in msgs] == ["user", "assistant"]

    def test_wrapped_messages_key(self):
        msgs = normalize_messages({"messages": [{"content": "a"}], "other": [1, 2]})
        assert len(msgs) == 1

    def test_first_list_field_is_used(self):
        msgs = normalize_messages({"status": "ok", "items": [{"content": "a"}, {"content": "b"}]})
        assert len(msgs) == 2

    def test_unusable_payload_is_empty(self):
        assert normalize_messages(None) == []
        assert normalize_messages({"status": "ok"}) == []


class TestParseTimestamp:
    def test_epoch_seconds_and_millis(self):
        assert parse_timestamp(0) == datetime(1970, 1, 1, tzinfo=UTC)
        assert parse_timestamp(1_700_000_000_000) == parse_timestamp(1_700_000_000)

    def test_naive_datetime_becomes_utc(self):
        parsed = parse_timestamp(datetime(2026, 1, 1, 12, 0))
        assert parsed.tzinfo is UTC

    def test_bool_is_rejected(self):
        assert parse_timestamp(True) is None
