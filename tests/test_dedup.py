"""Tests for duplicate suppression and its SQLite store."""

from smsforward import db
from smsforward.dedup import MessageDeduplicator, fingerprint
from smsforward.models import MessageRecord


def record(handle="5", sender="+1000", received_at="2024-05-01T10:00:00+08:00", body="hi"):
    return MessageRecord(handle=handle, sender=sender, received_at=received_at, body=body)


class TestFingerprint:
    def test_ignores_handle(self):
        assert fingerprint(record(handle="5")) == fingerprint(record(handle="42"))

    def test_changes_with_content(self):
        base = fingerprint(record())
        assert fingerprint(record(sender="+2000")) != base
        assert fingerprint(record(received_at="2024-05-01T10:00:01+08:00")) != base
        assert fingerprint(record(body="hi!")) != base

    def test_fields_do_not_run_together(self):
        a = record(sender="+10", body="00 hi")
        b = record(sender="+1000", body=" hi")
        assert fingerprint(a) != fingerprint(b)


class TestMessageDeduplicator:
    def test_remember_then_match(self, tmp_db):
        dedup = MessageDeduplicator(tmp_db)

        assert not dedup.is_duplicate(record())
        dedup.remember(record())
        assert dedup.is_duplicate(record(handle="9"))

    def test_remember_is_idempotent(self, tmp_db):
        dedup = MessageDeduplicator(tmp_db)
        dedup.remember(record())
        dedup.remember(record())

        with db.get_db(tmp_db) as conn:
            count = conn.execute("SELECT COUNT(*) FROM processed_messages").fetchone()[0]
        assert count == 1

    def test_prune_removes_old_rows_only(self, tmp_db):
        dedup = MessageDeduplicator(tmp_db)
        dedup.remember(record(body="old"))
        dedup.remember(record(body="new"))
        with db.get_db(tmp_db) as conn:
            conn.execute(
                "UPDATE processed_messages SET created_at = datetime('now', '-40 days') "
                "WHERE fingerprint = ?",
                (fingerprint(record(body="old")),),
            )

        removed = dedup.prune(max_age_days=30)

        assert removed == 1
        assert not dedup.is_duplicate(record(body="old"))
        assert dedup.is_duplicate(record(body="new"))

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "dedup.db"
        MessageDeduplicator(path)
        assert path.exists()
