"""Per-message pipeline: fetch → notify every enabled channel → delete.

Processes one SMS handle through the states
listed → extracted → notified → deleted, ending in `deleted` or `failed`:
1. Fetch and parse the message (gone/unparseable → failed)
2. Skip delivery for an already-delivered message (duplicate suppression on)
3. Deliver to each enabled channel in order (first failure → failed, no delete)
4. Remember the delivery (duplicate suppression on)
5. Delete from the modem (refused → failed, the message may reappear)

A message is only ever deleted after every channel accepted it, so a
failed notification leaves it on the modem for the next cycle.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Optional

import structlog

from smsforward.errors import DeleteError, DeliveryError, FatalDeviceError, MessageError
from smsforward.models import ChannelKind, CycleStats, PipelineResult, PipelineState

if TYPE_CHECKING:
    from smsforward.dedup import MessageDeduplicator
    from smsforward.modem.base import DeviceGateway
    from smsforward.models import MessageRecord
    from smsforward.notify.base import NotificationChannel


class MessagePipeline:
    """Processes SMS handles through the extract → notify → delete pipeline."""

    def __init__(
        self,
        gateway: DeviceGateway,
        channels: list[NotificationChannel],
        dedup: Optional[MessageDeduplicator] = None,
        logger=None,
    ):
        self.gateway = gateway
        self.channels = list(channels)
        self.dedup = dedup
        self.log = logger or structlog.get_logger()

    def process(self, handle: str) -> PipelineResult:
        """Run one handle through the pipeline.

        Per-message failures are logged and returned as a `failed` result;
        only FatalDeviceError propagates.
        """
        log = self.log.bind(handle=handle)
        pipeline_start = time.monotonic()
        state = PipelineState.LISTED
        delivered: list[ChannelKind] = []
        duplicate = False

        log.info("pipeline.start")

        try:
            # 1. Extract
            record = self.gateway.fetch(handle)
            state = PipelineState.EXTRACTED
            log = log.bind(sender=record.sender, received_at=record.received_at)
            log.info("pipeline.extracted", body=record.body)

            # 2-4. Fan out
            duplicate = self.dedup is not None and self.dedup.is_duplicate(record)
            if duplicate:
                log.warning("pipeline.duplicate_suppressed")
            else:
                self._notify(record, delivered, log)
                if self.dedup is not None:
                    self.dedup.remember(record)
            state = PipelineState.NOTIFIED
            log.info("pipeline.notified", channels=[c.value for c in delivered])

            # 5. Delete
            self.gateway.delete(handle)
            state = PipelineState.DELETED

        except FatalDeviceError:
            raise
        except MessageError as e:
            log.error(
                "pipeline.failed",
                stage=state.value,
                error_type=type(e).__name__,
                error=e.detail,
                duration_ms=int((time.monotonic() - pipeline_start) * 1000),
            )
            if isinstance(e, DeleteError):
                log.warning("pipeline.may_reappear", delivered=[c.value for c in delivered])
            return self._failed(handle, state, str(e), delivered)
        except Exception as e:
            log.error("pipeline.failed", stage=state.value, error=str(e), exc_info=True)
            return self._failed(handle, state, str(e), delivered)

        log.info("pipeline.deleted", duration_ms=int((time.monotonic() - pipeline_start) * 1000))
        return PipelineResult(
            handle=handle,
            state=PipelineState.DELETED,
            delivered=delivered,
            duplicate_suppressed=duplicate,
        )

    @staticmethod
    def _failed(
        handle: str, state: PipelineState, error: str, delivered: list[ChannelKind]
    ) -> PipelineResult:
        return PipelineResult(
            handle=handle,
            state=PipelineState.FAILED,
            failed_at=state,
            error=error,
            delivered=delivered,
        )

    def _notify(self, record: MessageRecord, delivered: list[ChannelKind], log) -> None:
        """Deliver to every channel in order; the first DeliveryError aborts the rest."""
        for channel in self.channels:
            try:
                ack = channel.deliver(record)
            except DeliveryError as e:
                log.error(
                    "pipeline.delivery_failed",
                    channel=channel.name,
                    already_delivered=[c.value for c in delivered],
                    error=e.detail,
                )
                raise
            delivered.append(ack.channel)
            log.info("pipeline.delivered", channel=channel.name, code=ack.code)

    def process_batch(self, handles: list[str], should_continue=None) -> CycleStats:
        """Process handles sequentially in the given order. Returns summary stats.

        `should_continue` is checked before each handle; returning False
        leaves the remaining handles untouched on the modem.
        """
        stats = CycleStats(total=len(handles))

        for handle in handles:
            if should_continue is not None and not should_continue():
                self.log.info("pipeline.batch_interrupted", remaining=stats.total - stats.deleted - stats.failed)
                break
            result = self.process(handle)
            if result.ok:
                stats.deleted += 1
            else:
                stats.failed += 1

        self.log.info("pipeline.batch_complete", **stats.model_dump())
        return stats
