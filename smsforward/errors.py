"""Exception taxonomy for the SMS forwarder.

Two families matter to the poll loop:
- FatalDeviceError subclasses stop the process (the modem or its tooling
  is unusable, which no amount of per-message skipping will fix).
- MessageError subclasses are caught at the pipeline boundary; the
  affected handle is abandoned for the cycle and the loop moves on.
"""

from __future__ import annotations


class SmsForwardError(Exception):
    """Base class for all forwarder errors."""


class ConfigError(SmsForwardError):
    """The configuration file is missing, unreadable or invalid."""


# --- Process-fatal ---

class FatalDeviceError(SmsForwardError):
    """The modem cannot be queried at all."""


class QueryToolMissingError(FatalDeviceError):
    """The device query tool (mmcli) is not installed."""


class DeviceNotFoundError(FatalDeviceError):
    """The configured modem handle does not resolve to a modem."""

    def __init__(self, modem_id: str, detail: str = ""):
        self.modem_id = modem_id
        self.detail = detail
        msg = f"Modem {modem_id} not found"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class DeviceQueryError(FatalDeviceError):
    """Listing messages on the modem failed."""


class DeviceCommandError(FatalDeviceError):
    """The operating system could not run the device query tool."""


# --- Per-message ---

class MessageError(SmsForwardError):
    """A failure confined to one message handle."""

    def __init__(self, handle: str, detail: str = ""):
        self.handle = handle
        self.detail = detail
        super().__init__(f"{self.__class__.__name__} for SMS {handle}: {detail}")


class MessageGoneError(MessageError):
    """The message disappeared between listing and fetching."""


class ParseError(MessageError):
    """The diagnostic text could not be turned into a record."""


class DeliveryError(MessageError):
    """A notification channel rejected or failed to deliver a message."""

    def __init__(self, handle: str, channel: str, detail: str = ""):
        self.channel = channel
        super().__init__(handle, f"[{channel}] {detail}")


class DeleteError(MessageError):
    """The modem refused to delete a message."""
