"""ModemManager gateway: drives the modem through the `mmcli` command line tool.

Each operation shells out once and interprets mmcli's text output via
smsforward.modem.parser.
"""

from __future__ import annotations

import shutil
import subprocess

import structlog

from smsforward.errors import (
    DeleteError,
    DeviceCommandError,
    DeviceNotFoundError,
    DeviceQueryError,
    MessageGoneError,
    QueryToolMissingError,
)
from smsforward.modem.base import DeviceGateway
from smsforward.modem.parser import parse_message_text, parse_pending_handles
from smsforward.models import MessageRecord


class MmcliGateway(DeviceGateway):
    """Lists, fetches and deletes SMS on one modem via mmcli."""

    def __init__(
        self,
        modem_id: str,
        mmcli_path: str = "mmcli",
        timeout: float = 10.0,
        logger=None,
    ):
        self.modem_id = modem_id
        self.mmcli_path = mmcli_path
        self.timeout = timeout
        self.log = logger or structlog.get_logger()

    def _run(self, *args: str) -> subprocess.CompletedProcess:
        """Run mmcli with the given arguments and capture its text output.

        Raises:
            QueryToolMissingError: the binary vanished since the last check.
            DeviceCommandError: any other OS-level failure to start mmcli.
            subprocess.TimeoutExpired: mmcli did not answer in time.
        """
        cmd = [self.mmcli_path, *args]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise QueryToolMissingError(f"{self.mmcli_path} not found: {e}") from e
        except OSError as e:
            # e.g. EACCES, or EAGAIN/ENOMEM while forking
            self.log.error("mmcli.exec_failed", args=list(args), error=str(e))
            raise DeviceCommandError(f"could not run {self.mmcli_path}: {e}") from e
        self.log.debug("mmcli.ran", args=list(args), returncode=result.returncode)
        return result

    @staticmethod
    def _detail(result: subprocess.CompletedProcess) -> str:
        return (result.stderr or result.stdout or "").strip() or f"exit code {result.returncode}"

    def check_available(self) -> None:
        if shutil.which(self.mmcli_path) is None:
            self.log.error("mmcli.not_installed", path=self.mmcli_path)
            raise QueryToolMissingError(
                f"{self.mmcli_path} not found, make sure ModemManager is installed"
            )

        try:
            result = self._run(f"--modem={self.modem_id}")
        except subprocess.TimeoutExpired as e:
            raise DeviceNotFoundError(self.modem_id, f"timed out after {e.timeout}s") from e
        if result.returncode != 0:
            detail = self._detail(result)
            self.log.error("mmcli.modem_not_found", modem_id=self.modem_id, error=detail)
            raise DeviceNotFoundError(self.modem_id, detail)

    def list_pending(self) -> list[str]:
        try:
            result = self._run("-m", self.modem_id, "--messaging-list-sms")
        except subprocess.TimeoutExpired as e:
            raise DeviceQueryError(f"listing SMS timed out after {e.timeout}s") from e
        if result.returncode != 0:
            detail = self._detail(result)
            self.log.error("mmcli.list_failed", modem_id=self.modem_id, error=detail)
            raise DeviceQueryError(f"listing SMS on modem {self.modem_id} failed: {detail}")

        handles = parse_pending_handles(result.stdout)
        self.log.info("mmcli.listed", modem_id=self.modem_id, pending=len(handles))
        return handles

    def fetch(self, handle: str) -> MessageRecord:
        self.log.info("mmcli.fetching", handle=handle)
        try:
            result = self._run("-s", handle)
        except subprocess.TimeoutExpired as e:
            raise MessageGoneError(handle, f"fetch timed out after {e.timeout}s") from e
        if result.returncode != 0:
            raise MessageGoneError(handle, self._detail(result))
        if not result.stdout.strip():
            raise MessageGoneError(handle, "device returned no output")

        record = parse_message_text(handle, result.stdout)
        self.log.info(
            "mmcli.fetched",
            handle=handle,
            sender=record.sender,
            received_at=record.received_at,
        )
        return record

    def delete(self, handle: str) -> None:
        self.log.info("mmcli.deleting", handle=handle)
        try:
            result = self._run("-m", self.modem_id, f"--messaging-delete-sms={handle}")
        except subprocess.TimeoutExpired as e:
            raise DeleteError(handle, f"delete timed out after {e.timeout}s") from e
        if result.returncode != 0:
            raise DeleteError(handle, self._detail(result))
        self.log.info("mmcli.deleted", handle=handle)
