"""Hismsg notification channel.

POSTs to `{api_url}/api/message/push/send`. The envelope carries the user
key, a source tag identifying this forwarder and a fixed `SMS` tag.
"""

from __future__ import annotations

from typing import Any

from smsforward.models import ChannelKind, MessageRecord
from smsforward.notify.base import NotificationChannel, compose_body, compose_title

PUSH_PATH = "/api/message/push/send"
SMS_TAG = "SMS"


class HismsgChannel(NotificationChannel):
    kind = ChannelKind.HISMSG

    def __init__(self, key: str, api_url: str, device_id: str = "", **kwargs):
        super().__init__(key, api_url, **kwargs)
        self.device_id = device_id

    def endpoint(self) -> str:
        return f"{self.api_url}{PUSH_PATH}"

    def build_payload(self, record: MessageRecord) -> dict[str, Any]:
        return {
            "title": compose_title(record),
            "content": compose_body(record),
            "source": self.device_id,
            "userKey": self.key,
            "tags": [SMS_TAG],
        }
