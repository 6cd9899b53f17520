"""Tests for parsing mmcli diagnostic output into MessageRecords."""

import pytest

from smsforward.errors import ParseError
from smsforward.modem.parser import parse_message_text, parse_pending_handles
from smsforward.models import EMPTY_BODY, UNKNOWN_SENDER, UNKNOWN_TIMESTAMP


class TestParseMessageText:
    def test_parses_full_message(self, sample_sms_text, sample_record):
        record = parse_message_text("5", sample_sms_text)
        assert record == sample_record

    def test_handle_comes_from_caller(self, sample_sms_text):
        record = parse_message_text("42", sample_sms_text)
        assert record.handle == "42"

    def test_continuation_lines_concatenated_without_separator(self):
        text = (
            "  Content    |    number: +1000\n"
            "             |      text: one\n"
            "             |            two\n"
            "             |            three\n"
            "             |            four\n"
        )
        record = parse_message_text("1", text)
        assert record.body == "onetwothreefour"

    def test_blank_line_ends_body(self):
        text = (
            "             |      text: first\n"
            "             |            second\n"
            "\n"
            "             |            not body\n"
        )
        assert parse_message_text("1", text).body == "firstsecond"

    def test_whitespace_only_line_ends_body(self):
        text = (
            "             |      text: first\n"
            "      \n"
            "             |            not body\n"
        )
        assert parse_message_text("1", text).body == "first"

    def test_separator_line_ends_body(self):
        text = (
            "             |      text: first\n"
            "  -----------------------\n"
            "  Properties |  timestamp: 2024-05-01T10:00:00+08:00\n"
        )
        record = parse_message_text("1", text)
        assert record.body == "first"
        assert record.received_at == "2024-05-01T10:00:00+08:00"

    def test_decoration_only_line_contributes_nothing(self):
        text = (
            "             |      text: first\n"
            "             |\n"
            "             |            second\n"
        )
        assert parse_message_text("1", text).body == "firstsecond"

    def test_empty_text_marker_uses_continuation_lines(self):
        text = (
            "             |      text:\n"
            "             |            only continuation\n"
        )
        assert parse_message_text("1", text).body == "only continuation"

    def test_first_marker_wins(self):
        text = (
            "  Content    |    number: +1000\n"
            "             |    number: +2000\n"
            "             |      text: hello\n"
        )
        assert parse_message_text("1", text).sender == "+1000"

    def test_crlf_line_endings(self):
        text = "  Content    |    number: +1000\r\n             |      text: hi\r\n             |            there\r\n"
        record = parse_message_text("1", text)
        assert record.sender == "+1000"
        assert record.body == "hithere"

    @pytest.mark.parametrize("body", [
        "Code 1234\r\rDo not share",
        "Hello\x1c\x1cWorld",
        "line one\u2028\u2028line two",
        "form\x0c\x0cfeed",
    ])
    def test_control_characters_inside_body_are_kept(self, body):
        text = (
            "  Content    |    number: +1000\n"
            f"             |      text: {body}\n"
            "  -----------------------\n"
            "  Properties |  timestamp: 2024-05-01T10:00:00+08:00\n"
        )
        record = parse_message_text("5", text)
        assert record.body == body
        assert record.received_at == "2024-05-01T10:00:00+08:00"

    @pytest.mark.parametrize("missing, field, sentinel", [
        ("number:", "sender", UNKNOWN_SENDER),
        ("timestamp:", "received_at", UNKNOWN_TIMESTAMP),
        ("text:", "body", EMPTY_BODY),
    ])
    def test_missing_marker_uses_sentinel(self, sample_sms_text, missing, field, sentinel):
        text = "\n".join(
            line for line in sample_sms_text.splitlines() if missing not in line
        )
        record = parse_message_text("5", text)
        assert getattr(record, field) == sentinel

    def test_marker_with_empty_value_uses_sentinel(self):
        text = (
            "  Content    |    number:\n"
            "             |      text:\n"
            "  -----------------------\n"
            "  Properties |  timestamp:   \n"
        )
        record = parse_message_text("1", text)
        assert record.sender == UNKNOWN_SENDER
        assert record.received_at == UNKNOWN_TIMESTAMP
        assert record.body == EMPTY_BODY

    def test_no_field_is_ever_empty(self):
        record = parse_message_text("1", "garbage without markers\n")
        assert record.sender and record.received_at and record.body

    @pytest.mark.parametrize("text", ["", "   \n\n"])
    def test_empty_input_raises(self, text):
        with pytest.raises(ParseError) as exc:
            parse_message_text("9", text)
        assert exc.value.handle == "9"

    def test_parsing_is_repeatable(self, sample_sms_text):
        first = parse_message_text("5", sample_sms_text)
        second = parse_message_text("5", sample_sms_text)
        assert first == second
        assert first.model_dump() == second.model_dump()

    def test_unicode_body(self):
        text = "             |      text: 您的验证码是 123456\n             |            请勿泄露\n"
        assert parse_message_text("1", text).body == "您的验证码是 123456请勿泄露"


class TestParsePendingHandles:
    def test_only_received_in_listing_order(self, sample_listing):
        assert parse_pending_handles(sample_listing) == ["5", "7"]

    def test_no_messages(self):
        assert parse_pending_handles("No sms messages were found\n") == []

    def test_does_not_resort(self):
        listing = (
            "    /org/freedesktop/ModemManager1/SMS/12 (received)\n"
            "    /org/freedesktop/ModemManager1/SMS/3 (received)\n"
        )
        assert parse_pending_handles(listing) == ["12", "3"]
