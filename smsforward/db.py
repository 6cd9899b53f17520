"""SQLite database for the optional duplicate-suppression store.

Remembers fingerprints of messages that were delivered to every enabled
channel, so a message whose delete failed is not notified again when it
reappears in a later listing. All operations are idempotent and safe to
retry.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

DEFAULT_DB_PATH = Path("data/sms-forward.db")


def _ensure_dir(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


@contextmanager
def get_db(db_path: Path = DEFAULT_DB_PATH):
    """Context manager for SQLite connections."""
    _ensure_dir(db_path)
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db(db_path: Path = DEFAULT_DB_PATH) -> None:
    """Create tables if they don't exist."""
    with get_db(db_path) as conn:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS processed_messages (
                fingerprint TEXT PRIMARY KEY,
                handle TEXT,
                sender TEXT,
                received_at TEXT,
                created_at TEXT NOT NULL DEFAULT (datetime('now'))
            );
        """)


def is_fingerprint_seen(fingerprint: str, db_path: Path = DEFAULT_DB_PATH) -> bool:
    """Check if a message with this fingerprint was already delivered."""
    with get_db(db_path) as conn:
        row = conn.execute(
            "SELECT 1 FROM processed_messages WHERE fingerprint = ?",
            (fingerprint,),
        ).fetchone()
        return row is not None


def remember_fingerprint(
    fingerprint: str,
    handle: Optional[str] = None,
    sender: Optional[str] = None,
    received_at: Optional[str] = None,
    db_path: Path = DEFAULT_DB_PATH,
) -> None:
    """Record a delivered message (upsert)."""
    with get_db(db_path) as conn:
        conn.execute(
            """INSERT INTO processed_messages (fingerprint, handle, sender, received_at)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(fingerprint) DO UPDATE SET
                 handle = excluded.handle,
                 created_at = datetime('now')""",
            (fingerprint, handle, sender, received_at),
        )


def prune_fingerprints(max_age_days: int, db_path: Path = DEFAULT_DB_PATH) -> int:
    """Delete fingerprints older than max_age_days. Returns rows removed."""
    with get_db(db_path) as conn:
        cursor = conn.execute(
            "DELETE FROM processed_messages WHERE created_at < datetime('now', ?)",
            (f"-{max_age_days} days",),
        )
        return cursor.rowcount
