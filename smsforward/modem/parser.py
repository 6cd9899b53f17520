"""Parsers for mmcli's human-readable output.

mmcli prints a boxed, two-column layout. For `mmcli -s <id>` it looks like:

      -----------------------
      General    |      path: /org/freedesktop/ModemManager1/SMS/5
      -----------------------
      Content    |    number: +1000
                 |      text: first line of the message
                 |            second line
      -----------------------
      Properties |      state: received
                 |  timestamp: 2024-05-01T10:00:00+08:00

Fields are located by their markers rather than by column position, so
width changes between mmcli versions do not matter.
"""

from __future__ import annotations

import re
from typing import Optional

from smsforward.errors import ParseError
from smsforward.models import (
    EMPTY_BODY,
    UNKNOWN_SENDER,
    UNKNOWN_TIMESTAMP,
    MessageRecord,
)

SENDER_MARKER = "number:"
TIMESTAMP_MARKER = "timestamp:"
TEXT_MARKER = "text:"

# Separator rows of the box ("  ----") end the Content section
SECTION_SEPARATOR = "  -"
DECORATION_CHARS = " |"

# Split on \n only: \r, \x1c or \u2028 may appear inside a message body
_LINE_BREAK_RE = re.compile(r"\r?\n")

_PENDING_RE = re.compile(r"/org/freedesktop/ModemManager1/SMS/(\d+)\s+\(received\)")


def _value_after(line: str, marker: str) -> str:
    return line.split(marker, 1)[1].strip()


def _first_value(lines: list[str], marker: str) -> str:
    for line in lines:
        if marker in line:
            return _value_after(line, marker)
    return ""


def _extract_body(lines: list[str]) -> str:
    """Join the text fragment and its continuation lines into one string.

    Line breaks inside the received message are dropped: continuation
    lines are concatenated with no separator.
    """
    start: Optional[int] = None
    for i, line in enumerate(lines):
        if TEXT_MARKER in line:
            start = i
            break
    if start is None:
        return ""

    fragments = [_value_after(lines[start], TEXT_MARKER)]
    for line in lines[start + 1:]:
        if not line.strip() or line.startswith(SECTION_SEPARATOR):
            break
        cleaned = line.lstrip(DECORATION_CHARS)
        if cleaned:
            fragments.append(cleaned)
    return "".join(fragments)


def parse_message_text(handle: str, text: str) -> MessageRecord:
    """Build a MessageRecord from the output of `mmcli -s <handle>`.

    Raises:
        ParseError: the text is empty, meaning the message no longer exists.
    """
    if not text or not text.strip():
        raise ParseError(handle, "empty diagnostic output")

    lines = _LINE_BREAK_RE.split(text)
    return MessageRecord(
        handle=handle,
        sender=_first_value(lines, SENDER_MARKER) or UNKNOWN_SENDER,
        received_at=_first_value(lines, TIMESTAMP_MARKER) or UNKNOWN_TIMESTAMP,
        body=_extract_body(lines) or EMPTY_BODY,
    )


def parse_pending_handles(listing: str) -> list[str]:
    """Return handles of messages in the `received` state, in listing order."""
    return _PENDING_RE.findall(listing)
