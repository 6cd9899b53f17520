"""Base class for push-notification channels.

A channel turns a MessageRecord into one JSON POST and decides success
from the `code` field of the JSON reply. Subclasses only describe the
endpoint and the envelope; transport, retries and response checking
live here.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import requests
import structlog
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from smsforward.errors import DeliveryError
from smsforward.models import ChannelKind, DeliveryAck, MessageRecord

SUCCESS_CODE = 200
TITLE_PREFIX = "SMS from"
HEADERS = {"Content-Type": "application/json; charset=utf-8"}


def compose_title(record: MessageRecord) -> str:
    return f"{TITLE_PREFIX} {record.sender}"


def compose_body(record: MessageRecord) -> str:
    return f"{record.body}\n\nFrom: {record.sender}\nTime: {record.received_at}"


class NotificationChannel(ABC):
    """Delivers message records to one push service."""

    kind: ChannelKind

    def __init__(
        self,
        key: str,
        api_url: str,
        timeout: float = 10.0,
        max_attempts: int = 3,
        logger=None,
    ):
        self.key = key
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.log = logger or structlog.get_logger()

    @property
    def name(self) -> str:
        return self.kind.value

    @abstractmethod
    def endpoint(self) -> str:
        """Full URL the envelope is POSTed to."""
        ...

    @abstractmethod
    def build_payload(self, record: MessageRecord) -> dict[str, Any]:
        """JSON envelope for one record."""
        ...

    def _post(self, url: str, payload: dict[str, Any]) -> requests.Response:
        # Only transport failures are retried; a reply with a bad code is final.
        retryer = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, min=2, max=30),
            retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
            reraise=True,
        )
        return retryer(
            requests.post,
            url,
            json=payload,
            headers=HEADERS,
            timeout=self.timeout,
        )

    def deliver(self, record: MessageRecord) -> DeliveryAck:
        """Send one record.

        Returns:
            DeliveryAck when the service answered with code 200.

        Raises:
            DeliveryError: transport failure, non-JSON or malformed reply,
                or any code other than 200.
        """
        log = self.log.bind(channel=self.name, handle=record.handle, sender=record.sender)
        url = self.endpoint()
        log.info(f"{self.name}.sending")

        try:
            resp = self._post(url, self.build_payload(record))
        except requests.RequestException as e:
            log.error(f"{self.name}.transport_failed", error=str(e))
            raise DeliveryError(record.handle, self.name, f"transport error: {e}") from e

        try:
            data = resp.json()
        except ValueError as e:
            log.error(f"{self.name}.bad_response", status=resp.status_code, body=resp.text[:200])
            raise DeliveryError(
                record.handle, self.name, f"non-JSON response (HTTP {resp.status_code}): {resp.text[:200]}"
            ) from e

        code = data.get("code") if isinstance(data, dict) else None
        if not isinstance(code, int) or isinstance(code, bool):
            log.error(f"{self.name}.bad_response", status=resp.status_code, body=data)
            raise DeliveryError(record.handle, self.name, f"response has no numeric code: {data!r}")

        log.info(f"{self.name}.response", code=code)
        if code != SUCCESS_CODE:
            log.error(f"{self.name}.rejected", code=code, body=data)
            raise DeliveryError(record.handle, self.name, f"code {code}: {data!r}")

        log.info(f"{self.name}.delivered")
        detail = data.get("message") or data.get("msg") or ""
        return DeliveryAck(channel=self.kind, code=code, detail=str(detail))
