"""Builds the enabled notification channels from configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from smsforward.models import ChannelKind
from smsforward.notify.bark import BarkChannel
from smsforward.notify.base import NotificationChannel
from smsforward.notify.hismsg import HismsgChannel

if TYPE_CHECKING:
    from smsforward.config import AppConfig, ChannelConfig


def build_channel(channel: ChannelConfig, timeout: float, max_attempts: int, logger=None) -> NotificationChannel:
    """Instantiate the channel class for one config entry."""
    if channel.kind == ChannelKind.BARK:
        return BarkChannel(
            key=channel.key,
            api_url=channel.api_url,
            timeout=timeout,
            max_attempts=max_attempts,
            logger=logger,
        )
    elif channel.kind == ChannelKind.HISMSG:
        return HismsgChannel(
            key=channel.key,
            api_url=channel.api_url,
            device_id=channel.device_id,
            timeout=timeout,
            max_attempts=max_attempts,
            logger=logger,
        )
    else:
        raise ValueError(f"Unknown channel: {channel.kind}")


def build_channels(config: AppConfig, logger=None) -> list[NotificationChannel]:
    """Enabled channels only, in configuration order.

    Disabled channels are never constructed, so they can never be invoked.
    """
    log = logger or structlog.get_logger()
    channels = []
    for channel in config.channels():
        if not channel.enabled:
            continue
        channels.append(build_channel(
            channel,
            timeout=config.http.timeout,
            max_attempts=config.http.max_attempts,
            logger=logger,
        ))
    log.info("channels.built", enabled=[c.name for c in channels])
    return channels
