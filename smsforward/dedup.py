"""Duplicate suppression for messages that survive a failed delete.

Matches a freshly fetched record against fingerprints of records that
were already delivered. A fingerprint covers sender, device timestamp and
body; the handle is excluded because the modem may reuse it.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from smsforward import db

if TYPE_CHECKING:
    from smsforward.models import MessageRecord


def fingerprint(record: MessageRecord) -> str:
    """Stable SHA-256 over sender, timestamp and body."""
    h = hashlib.sha256()
    for part in (record.sender, record.received_at, record.body):
        h.update(part.encode("utf-8"))
        h.update(b"\x00")
    return h.hexdigest()


class MessageDeduplicator:
    """Remembers delivered messages in SQLite."""

    def __init__(self, db_path: Path, logger=None):
        self.db_path = Path(db_path)
        self.log = logger or structlog.get_logger()
        db.init_db(self.db_path)

    def is_duplicate(self, record: MessageRecord) -> bool:
        seen = db.is_fingerprint_seen(fingerprint(record), self.db_path)
        if seen:
            self.log.info(
                "dedup.match",
                handle=record.handle,
                sender=record.sender,
                received_at=record.received_at,
            )
        return seen

    def remember(self, record: MessageRecord) -> None:
        db.remember_fingerprint(
            fingerprint(record),
            handle=record.handle,
            sender=record.sender,
            received_at=record.received_at,
            db_path=self.db_path,
        )

    def prune(self, max_age_days: int) -> int:
        removed = db.prune_fingerprints(max_age_days, self.db_path)
        if removed:
            self.log.info("dedup.pruned", removed=removed, max_age_days=max_age_days)
        return removed
