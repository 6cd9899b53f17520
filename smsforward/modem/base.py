"""Abstract base class for modem gateways."""

from abc import ABC, abstractmethod

from smsforward.models import MessageRecord


class DeviceGateway(ABC):
    """Narrow interface to the modem that all backends (mmcli, etc.) must implement."""

    @abstractmethod
    def check_available(self) -> None:
        """Verify the query tool is present and the modem resolves.

        Raises:
            QueryToolMissingError: the query tool is not installed.
            DeviceNotFoundError: the configured modem is not present.
        """
        ...

    @abstractmethod
    def list_pending(self) -> list[str]:
        """Return handles of messages in the `received` state, in device order.

        Raises:
            DeviceQueryError: the modem could not be queried.
        """
        ...

    @abstractmethod
    def fetch(self, handle: str) -> MessageRecord:
        """Fetch and parse one message.

        Raises:
            MessageGoneError: the message no longer exists on the device.
            ParseError: the device output could not be parsed.
        """
        ...

    @abstractmethod
    def delete(self, handle: str) -> None:
        """Delete one message. Not idempotent: call at most once per handle.

        Raises:
            DeleteError: the device refused the delete.
        """
        ...
