import logging
import sqlite3
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Optional

logger = logging.getLogger("fpr.usage")


def month_of(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m")


class UsageCounter:
    """Outbound call counter per provider label, reset each calendar month.

    Crossing the soft limit logs a warning once per month; calls are never
    refused. Without a path the counts live in memory only. The sqlite
    connection may be used from any thread; a lock serializes access.
    """

    def __init__(
        self,
        path: Optional[str] = None,
        soft_limit: int = 5000,
        clock: Callable[[], float] = time.time,
    ):
        self.path = path
        self.soft_limit = soft_limit
        self._clock = clock
        self._memory: Dict[str, Dict[str, int]] = {}
        self._warned_month: Optional[str] = None
        self.conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()
        if path:
            try:
                Path(path).parent.mkdir(parents=True, exist_ok=True)
                self.conn = sqlite3.connect(path, check_same_thread=False)
                self.conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS usage_counts (
                        month TEXT NOT NULL,
                        label TEXT NOT NULL,
                        count INTEGER NOT NULL DEFAULT 0,
                        PRIMARY KEY (month, label)
                    )
                    """
                )
                self.conn.commit()
            except (OSError, sqlite3.Error) as exc:
                logger.warning("usage store unavailable (%s), counting in memory: %s", path, exc)
                self.conn = None

    def _counts(self, month: str) -> Dict[str, int]:
        if self.conn is not None:
            try:
                with self._lock:
                    rows = self.conn.execute(
                        "SELECT label, count FROM usage_counts WHERE month = ?", (month,)
                    ).fetchall()
                return {label: count for label, count in rows}
            except sqlite3.Error as exc:
                logger.warning("usage read failed: %s", exc)
        return dict(self._memory.get(month, {}))

    def record(self, label: str) -> None:
        month = month_of(self._clock())
        stored = False
        if self.conn is not None:
            try:
                with self._lock:
                    self.conn.execute(
                        "INSERT INTO usage_counts (month, label, count) VALUES (?, ?, 1) "
                        "ON CONFLICT(month, label) DO UPDATE SET count = count + 1",
                        (month, label),
                    )
                    self.conn.commit()
                stored = True
            except sqlite3.Error as exc:
                logger.warning("usage write failed: %s", exc)
        if not stored:
            with self._lock:
                if month not in self._memory:
                    self._memory = {month: {}}
                bucket = self._memory[month]
                bucket[label] = bucket.get(label, 0) + 1
        total = sum(self._counts(month).values())
        if total > self.soft_limit and self._warned_month != month:
            self._warned_month = month
            logger.warning(
                "monthly outbound call count %d exceeded soft limit %d",
                total,
                self.soft_limit,
            )

    def snapshot(self) -> Dict[str, object]:
        month = month_of(self._clock())
        by_label = self._counts(month)
        total = sum(by_label.values())
        return {
            "month": month,
            "total": total,
            "byLabel": by_label,
            "softLimit": self.soft_limit,
            "overLimit": total > self.soft_limit,
        }

    def close(self) -> None:
        with self._lock:
            if self.conn is not None:
                self.conn.close()
                self.conn = None
