"""Bark (iOS push) notification channel.

POSTs `{"title", "body"}` to `{api_url}/{key}`.
"""

from __future__ import annotations

from typing import Any

from smsforward.models import ChannelKind, MessageRecord
from smsforward.notify.base import NotificationChannel, compose_body, compose_title


class BarkChannel(NotificationChannel):
    kind = ChannelKind.BARK

    def endpoint(self) -> str:
        return f"{self.api_url}/{self.key}"

    def build_payload(self, record: MessageRecord) -> dict[str, Any]:
        return {
            "title": compose_title(record),
            "body": compose_body(record),
        }
