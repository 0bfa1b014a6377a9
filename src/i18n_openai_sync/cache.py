"""TTL cache for translation provider lookups, mirrored to durable storage."""

from __future__ import annotations

import json
import sqlite3
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Awaitable, Callable

from .logger import get_logger

logger = get_logger(__name__)

DEFAULT_CACHE_TTL = 24 * 60 * 60


@dataclass
class CacheEntry:
    value: Any
    timestamp: float
    ttl: float

    def is_fresh(self, now: float) -> bool:
        return now - self.timestamp < self.ttl


class SqliteKeyValueStore:
    """Durable key-value storage for cache entries backed by SQLite."""

    def __init__(self, db_file: Path | str):
        self.db_file = Path(db_file)
        if str(db_file) != ":memory:":
            self.db_file.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(db_file))
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS cache_entries (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                timestamp REAL NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        self._conn.commit()

    def get(self, key: str) -> dict | None:
        """Get a stored entry as {'value', 'timestamp'}, or None if absent."""
        cursor = self._conn.execute(
            "SELECT value, timestamp FROM cache_entries WHERE key = ?", (key,)
        )
        row = cursor.fetchone()
        if row is None:
            return None
        try:
            value = json.loads(row[0])
        except json.JSONDecodeError:
            logger.warning(f"Discarding corrupted cache entry '{key}'")
            self.delete(key)
            return None
        return {"value": value, "timestamp": row[1]}

    def set(self, key: str, value: Any, timestamp: float) -> None:
        self._conn.execute(
            """
            INSERT OR REPLACE INTO cache_entries (key, value, timestamp, updated_at)
            VALUES (?, ?, ?, ?)
            """,
            (key, json.dumps(value, ensure_ascii=False), timestamp, datetime.now()),
        )
        self._conn.commit()

    def delete(self, key: str) -> None:
        self._conn.execute("DELETE FROM cache_entries WHERE key = ?", (key,))
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()


class TranslationResultCache:
    """
    In-memory TTL cache over a durable key-value store.

    Lookups hit the in-memory mirror first and fall back to the durable store,
    so results survive restarts. An entry is valid while
    ``now - timestamp < ttl``; stale entries are treated as misses.
    """

    def __init__(
        self,
        store: SqliteKeyValueStore | None = None,
        default_ttl: float = DEFAULT_CACHE_TTL,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str, ttl: float | None = None, default=None):
        """
        Return the cached value for ``key``, or ``default`` on a miss.

        Args:
            key: Cache key
            ttl: Validity window for entries loaded from durable storage;
                defaults to the cache's default TTL
            default: Value returned on a miss
        """
        now = self._clock()
        entry = self._entries.get(key)
        if entry is not None:
            if entry.is_fresh(now):
                return entry.value
            del self._entries[key]

        if self._store is None:
            return default

        stored = self._store.get(key)
        if stored is None:
            return default
        entry = CacheEntry(
            stored["value"],
            stored["timestamp"],
            self._default_ttl if ttl is None else ttl,
        )
        if not entry.is_fresh(now):
            return default
        self._entries[key] = entry
        return entry.value

    def set(self, key: str, value, ttl: float | None = None) -> None:
        entry = CacheEntry(value, self._clock(), self._default_ttl if ttl is None else ttl)
        self._entries[key] = entry
        if self._store is not None:
            self._store.set(key, value, entry.timestamp)

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)
        if self._store is not None:
            self._store.delete(key)

    async def get_or_fetch(
        self,
        key: str,
        fetch: Callable[[], Awaitable[Any]],
        ttl: float | None = None,
    ):
        """
        Return the cached value, or await ``fetch`` and cache its result.

        Concurrent callers missing the same key may each fetch once; the last
        result written wins.
        """
        value = self.get(key, ttl=ttl)
        if value is not None:
            return value
        logger.debug(f"Cache miss for '{key}', fetching")
        value = await fetch()
        self.set(key, value, ttl=ttl)
        return value

    def close(self) -> None:
        self._entries.clear()
        if self._store is not None:
            self._store.close()
