"""Shared test fixtures for the SMS forwarder test suite."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from smsforward.config import AppConfig
from smsforward.models import ChannelKind, DeliveryAck, MessageRecord


SAMPLE_SMS_TEXT = """\
  -----------------------
  General    |      path: /org/freedesktop/ModemManager1/SMS/5
  -----------------------
  Content    |    number: +1000
             |      text: Your verification code is 123456.
             |            Do not share it with anyone.
  -----------------------
  Properties |   pdu type: deliver
             |      state: received
             |    storage: me
             |       smsc: +8613800100500
             |  timestamp: 2024-05-01T10:00:00+08:00
"""

SAMPLE_LISTING = """\
    /org/freedesktop/ModemManager1/SMS/5 (received)
    /org/freedesktop/ModemManager1/SMS/6 (sent)
    /org/freedesktop/ModemManager1/SMS/7 (received)
    /org/freedesktop/ModemManager1/SMS/8 (unknown)
"""


@pytest.fixture
def sample_sms_text() -> str:
    """mmcli -s output for a two-line message."""
    return SAMPLE_SMS_TEXT


@pytest.fixture
def sample_listing() -> str:
    """mmcli --messaging-list-sms output with mixed states."""
    return SAMPLE_LISTING


@pytest.fixture
def sample_record() -> MessageRecord:
    """A parsed inbound SMS."""
    return MessageRecord(
        handle="5",
        sender="+1000",
        received_at="2024-05-01T10:00:00+08:00",
        body="Your verification code is 123456.Do not share it with anyone.",
    )


def make_record(handle: str, sender: str = "+1000") -> MessageRecord:
    return MessageRecord(
        handle=handle,
        sender=sender,
        received_at="2024-05-01T10:00:00+08:00",
        body=f"message {handle}",
    )


def make_channel(kind: ChannelKind) -> MagicMock:
    """A mocked NotificationChannel that accepts everything."""
    channel = MagicMock()
    channel.kind = kind
    channel.name = kind.value
    channel.deliver.return_value = DeliveryAck(channel=kind, code=200)
    return channel


@pytest.fixture
def mock_gateway():
    """A mocked DeviceGateway whose fetch returns a record for any handle."""
    gateway = MagicMock()
    gateway.check_available.return_value = None
    gateway.list_pending.return_value = []
    gateway.fetch.side_effect = lambda handle: make_record(handle)
    gateway.delete.return_value = None
    return gateway


@pytest.fixture
def bark_channel() -> MagicMock:
    return make_channel(ChannelKind.BARK)


@pytest.fixture
def hismsg_channel() -> MagicMock:
    return make_channel(ChannelKind.HISMSG)


@pytest.fixture
def app_config() -> AppConfig:
    """Both channels enabled."""
    return AppConfig(
        modem_id="0",
        bark_key="bark-test-key",
        enable_bark=True,
        hismsg_key="hismsg-test-key",
        hismsg_device_id="sim-gateway",
        enable_hismsg=True,
        sleep_duration=3,
    )


@pytest.fixture
def tmp_db(tmp_path):
    """A temporary SQLite database path."""
    return tmp_path / "test_sms_forward.db"
