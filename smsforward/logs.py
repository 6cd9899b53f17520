"""Structured logging with daily log files and a retention sweep.

Every event is rendered by structlog and written through DailyLogStream,
which tees it to the console and to `<dir>/<prefix>-YYYY-MM-DD.log`. The
file switches lazily on the first write after midnight (in the configured
UTC offset). LogHousekeeper deletes files older than the retention window
on its own thread, independent of the poll loop.
"""

from __future__ import annotations

import logging
import re
import sys
import threading
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional

import schedule
import structlog

if TYPE_CHECKING:
    from smsforward.config import LoggingConfig


class DailyLogStream:
    """File-like sink that writes to the console and to today's log file."""

    def __init__(
        self,
        log_dir: Path,
        prefix: str = "sms-forward",
        utc_offset_hours: int = 8,
        console=None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.log_dir = Path(log_dir)
        self.prefix = prefix
        self.tz = timezone(timedelta(hours=utc_offset_hours))
        self.console = console if console is not None else sys.stdout
        self._clock = clock or (lambda: datetime.now(self.tz))
        self._lock = threading.Lock()
        self._file = None
        self._date: Optional[date] = None
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def today(self) -> date:
        return self._clock().astimezone(self.tz).date()

    def path_for(self, day: date) -> Path:
        return self.log_dir / f"{self.prefix}-{day.isoformat()}.log"

    @property
    def current_path(self) -> Optional[Path]:
        return self.path_for(self._date) if self._date else None

    def _rotate_if_needed(self) -> None:
        today = self.today()
        if self._file is not None and self._date == today:
            return
        if self._file is not None:
            self._file.close()
            self._file = None
        try:
            self._file = open(self.path_for(today), "a", encoding="utf-8")
            self._date = today
        except OSError as e:
            # Keep logging to the console; retry the file on the next write.
            self.console.write(f"log file rotation failed: {e}\n")

    def write(self, s: str) -> int:
        with self._lock:
            self._rotate_if_needed()
            self.console.write(s)
            if self._file is not None:
                self._file.write(s)
        return len(s)

    def flush(self) -> None:
        with self._lock:
            self.console.flush()
            if self._file is not None:
                self._file.flush()

    def close(self) -> None:
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None


def list_log_files(log_dir: Path, prefix: str = "sms-forward") -> list[tuple[date, Path]]:
    """Daily log files in log_dir, oldest first."""
    pattern = re.compile(rf"^{re.escape(prefix)}-(\d{{4}}-\d{{2}}-\d{{2}})\.log$")
    files = []
    for path in Path(log_dir).iterdir():
        if not path.is_file():
            continue
        m = pattern.match(path.name)
        if not m:
            continue
        try:
            day = date.fromisoformat(m.group(1))
        except ValueError:
            continue
        files.append((day, path))
    return sorted(files)


def sweep_old_logs(log_dir: Path, prefix: str, retention_days: int, today: date) -> list[Path]:
    """Delete daily log files dated before `today - retention_days`.

    Returns the paths that were removed. Files that cannot be removed are
    skipped and left for the next sweep.
    """
    logger = structlog.get_logger()
    cutoff = today - timedelta(days=retention_days)
    removed = []
    for day, path in list_log_files(log_dir, prefix):
        if day >= cutoff:
            continue
        try:
            path.unlink()
        except OSError as e:
            logger.error("logs.delete_failed", path=str(path), error=str(e))
            continue
        logger.info("logs.deleted", path=str(path))
        removed.append(path)
    if removed:
        logger.info("logs.sweep_complete", removed=len(removed))
    return removed


class LogHousekeeper:
    """Runs the retention sweep on a background thread."""

    def __init__(
        self,
        stream: DailyLogStream,
        retention_days: int = 3,
        interval_hours: int = 1,
        tick_seconds: float = 1.0,
    ):
        self.stream = stream
        self.retention_days = retention_days
        self.tick_seconds = tick_seconds
        self.scheduler = schedule.Scheduler()
        self.scheduler.every(interval_hours).hours.do(self.sweep)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def sweep(self) -> list[Path]:
        try:
            return sweep_old_logs(
                self.stream.log_dir,
                self.stream.prefix,
                self.retention_days,
                self.stream.today(),
            )
        except OSError as e:
            structlog.get_logger().error("logs.sweep_failed", error=str(e))
            return []

    def _run(self) -> None:
        while not self._stop.wait(self.tick_seconds):
            self.scheduler.run_pending()

    def start(self) -> None:
        self.sweep()
        self._thread = threading.Thread(target=self._run, name="log-housekeeper", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None


def configure_logging(config: LoggingConfig, console=None) -> DailyLogStream:
    """Configure structured JSON logging to console + daily files."""
    stream = DailyLogStream(
        log_dir=Path(config.dir),
        prefix=config.file_prefix,
        utc_offset_hours=config.utc_offset_hours,
        console=console,
    )
    level = getattr(logging, config.level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
    )
    return stream
