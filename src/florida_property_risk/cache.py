import asyncio
import json
import logging
import sqlite3
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from .config import Settings
from .coords import Coordinate

logger = logging.getLogger("fpr.cache")

Clock = Callable[[], float]


def cache_key(kind: str, coord: Coordinate, **filters: Any) -> str:
    """``kind:lat,lng|k=v&...`` with the coordinate rounded for key stability."""
    key = f"{kind}:{coord.key()}"
    parts = [f"{k}={filters[k]}" for k in sorted(filters) if filters[k] is not None]
    if parts:
        key = f"{key}|{'&'.join(parts)}"
    return key


class TTLCache:
    """In-memory TTL map; evicts oldest-inserted entries past ``max_entries``.

    Eviction is by insertion time, not by access. get and set never await, so
    a set-then-evict sequence cannot interleave with another task.
    """

    def __init__(self, ttl_s: float = 1800, max_entries: int = 512, clock: Clock = time.time):
        self.ttl_s = ttl_s
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, tuple] = {}
        self._stats = {"hits": 0, "misses": 0, "evictions": 0}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            self._stats["misses"] += 1
            return None
        inserted_at, value = entry
        if self._clock() - inserted_at >= self.ttl_s:
            self._entries.pop(key, None)
            self._stats["misses"] += 1
            return None
        self._stats["hits"] += 1
        return value

    def set(self, key: str, value: Any) -> None:
        # Re-setting a key makes it the newest entry.
        self._entries.pop(key, None)
        self._entries[key] = (self._clock(), value)
        while len(self._entries) > self.max_entries:
            oldest = next(iter(self._entries))
            self._entries.pop(oldest, None)
            self._stats["evictions"] += 1

    def clear(self) -> None:
        self._entries.clear()
        for k in self._stats:
            self._stats[k] = 0

    def stats(self) -> Dict[str, int]:
        return dict(self._stats, size=len(self._entries))

    def __len__(self) -> int:
        return len(self._entries)


class DiskTTLCache:
    """SQLite-backed TTL cache.

    Every operation is best-effort: an I/O error is logged and the call
    behaves as a miss (get) or a no-op (set). One connection is shared across
    threads and serialized by a lock.
    """

    def __init__(
        self,
        path: str,
        ttl_s: float = 7 * 24 * 60 * 60,
        max_entries: int = 5000,
        clock: Clock = time.time,
    ):
        self.path = path
        self.ttl_s = ttl_s
        self.max_entries = max_entries
        self._clock = clock
        self.conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(path, check_same_thread=False)
            self._init_schema()
            self.purge_expired()
        except (OSError, sqlite3.Error) as exc:
            logger.warning("disk cache disabled (%s): %s", path, exc)
            self.conn = None

    def _init_schema(self) -> None:
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS cache_entries (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                inserted_at REAL NOT NULL
            )
            """
        )
        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_cache_inserted ON cache_entries(inserted_at)"
        )
        self.conn.commit()

    def purge_expired(self) -> int:
        if self.conn is None:
            return 0
        cutoff = self._clock() - self.ttl_s
        try:
            with self._lock:
                cur = self.conn.execute(
                    "DELETE FROM cache_entries WHERE inserted_at <= ?", (cutoff,)
                )
                self.conn.commit()
        except sqlite3.Error as exc:
            logger.warning("disk cache purge failed: %s", exc)
            return 0
        if cur.rowcount:
            logger.info("disk cache purged %d expired entries", cur.rowcount)
        return cur.rowcount

    def get(self, key: str) -> Optional[Any]:
        if self.conn is None:
            return None
        try:
            with self._lock:
                row = self.conn.execute(
                    "SELECT value, inserted_at FROM cache_entries WHERE key = ?", (key,)
                ).fetchone()
                if row is None:
                    return None
                value, inserted_at = row
                if self._clock() - inserted_at >= self.ttl_s:
                    self.conn.execute("DELETE FROM cache_entries WHERE key = ?", (key,))
                    self.conn.commit()
                    return None
            return json.loads(value)
        except (sqlite3.Error, ValueError) as exc:
            logger.warning("disk cache read failed for %s: %s", key, exc)
            return None

    def set(self, key: str, value: Any) -> None:
        if self.conn is None:
            return
        try:
            encoded = json.dumps(value)
            with self._lock:
                self.conn.execute(
                    "INSERT OR REPLACE INTO cache_entries (key, value, inserted_at) "
                    "VALUES (?, ?, ?)",
                    (key, encoded, self._clock()),
                )
                self.conn.execute(
                    """
                    DELETE FROM cache_entries WHERE key IN (
                        SELECT key FROM cache_entries
                        ORDER BY inserted_at DESC
                        LIMIT -1 OFFSET ?
                    )
                    """,
                    (self.max_entries,),
                )
                self.conn.commit()
        except (sqlite3.Error, TypeError, ValueError) as exc:
            logger.warning("disk cache write failed for %s: %s", key, exc)

    def count(self) -> int:
        if self.conn is None:
            return 0
        try:
            with self._lock:
                return self.conn.execute("SELECT COUNT(*) FROM cache_entries").fetchone()[0]
        except sqlite3.Error:
            return 0

    def close(self) -> None:
        with self._lock:
            if self.conn is not None:
                self.conn.close()
                self.conn = None


class ResultCache:
    """Memory cache in front of an optional disk cache."""

    def __init__(
        self,
        memory: Optional[TTLCache] = None,
        disk: Optional[DiskTTLCache] = None,
    ):
        self.memory = memory
        self.disk = disk

    @property
    def enabled(self) -> bool:
        return self.memory is not None or self.disk is not None

    def get(self, key: str) -> Optional[Any]:
        if self.memory is not None:
            value = self.memory.get(key)
            if value is not None:
                return value
        if self.disk is not None:
            value = self.disk.get(key)
            if value is not None:
                if self.memory is not None:
                    self.memory.set(key, value)
                return value
        return None

    def set(self, key: str, value: Any) -> None:
        if self.memory is not None:
            self.memory.set(key, value)
        if self.disk is not None:
            self.disk.set(key, value)

    async def get_async(self, key: str) -> Optional[Any]:
        """Like get, but disk reads run in a worker thread."""
        if self.memory is not None:
            value = self.memory.get(key)
            if value is not None:
                return value
        if self.disk is None:
            return None
        value = await asyncio.to_thread(self.disk.get, key)
        if value is not None and self.memory is not None:
            self.memory.set(key, value)
        return value

    async def set_async(self, key: str, value: Any) -> None:
        if self.memory is not None:
            self.memory.set(key, value)
        if self.disk is not None:
            await asyncio.to_thread(self.disk.set, key, value)

    def stats(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"enabled": self.enabled}
        if self.memory is not None:
            out["memory"] = self.memory.stats()
        if self.disk is not None:
            out["disk"] = {"size": self.disk.count()}
        return out

    def close(self) -> None:
        if self.disk is not None:
            self.disk.close()


def build_cache(settings: Settings, clock: Clock = time.time) -> ResultCache:
    if not settings.cache_enabled:
        return ResultCache()
    memory = TTLCache(settings.cache_ttl_s, settings.cache_max_entries, clock=clock)
    disk = None
    if settings.cache_path:
        disk = DiskTTLCache(
            settings.cache_path,
            ttl_s=settings.disk_cache_ttl_s,
            max_entries=settings.cache_max_entries * 10,
            clock=clock,
        )
    return ResultCache(memory, disk)
