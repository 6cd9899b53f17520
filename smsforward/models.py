"""Pydantic models for the SMS forwarder."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# Placeholders for fields missing from the modem's diagnostic text
UNKNOWN_SENDER = "unknown"
UNKNOWN_TIMESTAMP = "unknown"
EMPTY_BODY = "no content"


# --- Enums ---

class ChannelKind(str, Enum):
    BARK = "bark"
    HISMSG = "hismsg"


class PipelineState(str, Enum):
    LISTED = "listed"
    EXTRACTED = "extracted"
    NOTIFIED = "notified"
    DELETED = "deleted"
    FAILED = "failed"


# --- Inbound SMS ---

class MessageRecord(BaseModel):
    """One received SMS as extracted from the modem.

    Every field is non-empty: missing values are replaced by the
    module-level placeholders at parse time.
    """
    model_config = ConfigDict(frozen=True)

    handle: str = Field(min_length=1)
    sender: str = Field(default=UNKNOWN_SENDER, min_length=1)
    received_at: str = Field(default=UNKNOWN_TIMESTAMP, min_length=1)
    body: str = Field(default=EMPTY_BODY, min_length=1)


# --- Delivery / pipeline outcomes ---

class DeliveryAck(BaseModel):
    """Successful response from a notification channel."""
    channel: ChannelKind
    code: int
    detail: str = ""


class PipelineResult(BaseModel):
    """Terminal outcome of one handle's pipeline run."""
    handle: str
    state: PipelineState
    failed_at: Optional[PipelineState] = None  # state being left when it failed
    error: str = ""
    delivered: list[ChannelKind] = Field(default_factory=list)
    duplicate_suppressed: bool = False

    @property
    def ok(self) -> bool:
        return self.state == PipelineState.DELETED


class CycleStats(BaseModel):
    """Summary of one poll cycle."""
    total: int = 0
    deleted: int = 0
    failed: int = 0
