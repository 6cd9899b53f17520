"""Poll loop: check the modem, list pending SMS, run the pipeline, sleep, repeat.

Runs until a FatalDeviceError (missing mmcli, unknown modem, failed
listing) propagates out of `run()`, or until `stop()` is called from a
signal handler. Per-message failures never end a cycle.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import structlog

from smsforward.errors import FatalDeviceError
from smsforward.models import CycleStats

if TYPE_CHECKING:
    from smsforward.modem.base import DeviceGateway
    from smsforward.pipeline import MessagePipeline


class PollLoop:
    """Drives the message pipeline against one modem, forever."""

    def __init__(
        self,
        gateway: DeviceGateway,
        pipeline: MessagePipeline,
        interval_seconds: float,
        logger=None,
    ):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self.gateway = gateway
        self.pipeline = pipeline
        self.interval_seconds = interval_seconds
        self.log = logger or structlog.get_logger()
        self._stop = threading.Event()

    @property
    def running(self) -> bool:
        return not self._stop.is_set()

    def stop(self) -> None:
        """Ask the loop to exit after the handle currently being processed."""
        self._stop.set()

    def run_cycle(self) -> CycleStats:
        """Run one poll cycle.

        Raises:
            FatalDeviceError: the modem or mmcli is unusable.
        """
        # Not cached: the modem may have been unplugged since the last cycle.
        self.gateway.check_available()
        handles = self.gateway.list_pending()

        if not handles:
            self.log.info("poller.nothing_pending")
            return CycleStats()

        self.log.info("poller.pending", count=len(handles), handles=handles)
        stats = self.pipeline.process_batch(handles, should_continue=lambda: self.running)
        self.log.info("poller.cycle_complete", **stats.model_dump())
        return stats

    def run(self) -> None:
        """Poll until stopped. FatalDeviceError propagates to the caller."""
        self.log.info("poller.started", interval_seconds=self.interval_seconds)
        while self.running:
            try:
                self.run_cycle()
            except FatalDeviceError as e:
                self.log.critical("poller.fatal", error_type=type(e).__name__, error=str(e))
                raise
            # Event.wait returns early when stop() is called mid-sleep
            self._stop.wait(self.interval_seconds)
        self.log.info("poller.stopped")
