"""Content-addressed cache for finished analyses."""

from __future__ import annotations

import asyncio
import copy
import hashlib
import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Protocol

from psycopg2 import pool

from .models import CATEGORIES, AnalysisOptions, ComputedProfile

logger = logging.getLogger(__name__)

DEFAULT_TTL = 24 * 60 * 60


def profile_digest(computed: ComputedProfile | None) -> str | None:
    """Stable digest of the parts of a profile that change the analysis."""
    if computed is None:
        return None
    data = computed.to_dict()
    data.pop("computed_at", None)
    return hashlib.sha256(json.dumps(data, sort_keys=True).encode("utf-8")).hexdigest()


def fingerprint(
    text: str,
    options: AnalysisOptions | None = None,
    computed: ComputedProfile | None = None,
    context: Mapping[str, Any] | None = None,
) -> str:
    """SHA-256 over the text and every input that changes the prompt.

    ``context`` carries the questionnaire details the prompt quotes beyond
    the computed profile (demographics, special circumstances).
    """
    options = options or AnalysisOptions()
    key = {
        "text": text,
        "language": options.language or "en",
        "detail_level": options.detail_level or "standard",
        "categories": sorted(options.categories or CATEGORIES),
        "multi_pass": options.multi_pass,
        "profile": profile_digest(computed),
        "context": dict(context) if context else None,
    }
    return hashlib.sha256(json.dumps(key, sort_keys=True, default=str).encode("utf-8")).hexdigest()


class AnalysisCache(Protocol):
    async def get(self, key: str) -> dict | None: ...

    async def set(self, key: str, value: dict, ttl: float | None = None) -> None: ...

    async def delete(self, key: str) -> bool: ...

    async def clear(self) -> None: ...

    def stats(self) -> dict[str, Any]: ...


@dataclass(frozen=True)
class _Entry:
    value: Mapping[str, Any]
    expires_at: float


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return round(self.hits / total * 100, 2) if total else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "deletes": self.deletes,
            "hit_rate": self.hit_rate,
        }


class MemoryAnalysisCache:
    """In-process TTL cache.

    Values are deep-copied into read-only snapshots on ``set`` and copied
    again on ``get``, and each key is replaced with a single assignment under
    the lock, so a reader sees either the old or the new value.

    Args:
        default_ttl: Seconds an entry lives when ``set`` gets no TTL.
        clock: Monotonic time source; injectable for tests.
    """

    def __init__(self, default_ttl: float = DEFAULT_TTL, clock: Callable[[], float] = time.monotonic) -> None:
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = asyncio.Lock()
        self._stats = CacheStats()

    async def get(self, key: str) -> dict | None:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.expires_at <= self._clock():
                del self._entries[key]
                entry = None
            if entry is None:
                self._stats.misses += 1
                logger.debug("Cache miss for %s", key[:12])
                return None
            self._stats.hits += 1
            logger.debug("Cache hit for %s", key[:12])
            return copy.deepcopy(dict(entry.value))

    async def set(self, key: str, value: dict, ttl: float | None = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        snapshot = _Entry(MappingProxyType(copy.deepcopy(value)), self._clock() + ttl)
        async with self._lock:
            self._entries[key] = snapshot
            self._stats.sets += 1

    async def delete(self, key: str) -> bool:
        async with self._lock:
            removed = self._entries.pop(key, None) is not None
            if removed:
                self._stats.deletes += 1
            return removed

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    async def cleanup(self) -> int:
        """Drop expired entries; returns how many were removed."""
        async with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.info("Cache cleanup removed %d expired entries", len(expired))
        return len(expired)

    def stats(self) -> dict[str, Any]:
        data = self._stats.to_dict()
        data["keys"] = len(self._entries)
        return data

    def __len__(self) -> int:
        return len(self._entries)


# ---------------------------------------------------------------------------
# PostgreSQL
# ---------------------------------------------------------------------------


class PostgresAnalysisCache:
    """Shared cache in a PostgreSQL table, for several analyzer processes.

    Entries expire on the database clock; expired rows are invisible to
    ``get`` and removed by ``cleanup``. psycopg2 is blocking, so every call
    runs in a worker thread.

    Args:
        connection_string: libpq DSN, e.g. ``DATABASE_URL``.
        default_ttl: Seconds an entry lives when ``set`` gets no TTL.
        max_connections: Pool ceiling.
    """

    TABLE = "analysis_cache"

    def __init__(self, connection_string: str, default_ttl: float = DEFAULT_TTL, max_connections: int = 5) -> None:
        self.connection_string = connection_string
        self.default_ttl = default_ttl
        self._max = max_connections
        self._pool: pool.ThreadedConnectionPool | None = None
        self._stats = CacheStats()

    def _get_connection(self):
        if not self._pool:
            self._pool = pool.ThreadedConnectionPool(1, self._max, self.connection_string)
        return self._pool.getconn()

    def _release_connection(self, conn) -> None:
        if self._pool:
            self._pool.putconn(conn)

    def close(self) -> None:
        if self._pool:
            self._pool.closeall()
            self._pool = None

    def init_schema(self) -> None:
        """Create the cache table if it doesn't exist."""
        self._execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self.TABLE} (
                key TEXT PRIMARY KEY,
                value JSONB NOT NULL,
                expires_at TIMESTAMPTZ NOT NULL
            );
            """
        )

    def _execute(self, sql: str, params: tuple = (), fetch: bool = False):
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                row = cur.fetchone() if fetch else None
                conn.commit()
                return row if fetch else cur.rowcount
        except Exception:
            conn.rollback()
            raise
        finally:
            self._release_connection(conn)

    async def get(self, key: str) -> dict | None:
        row = await asyncio.to_thread(
            self._execute,
            f"SELECT value FROM {self.TABLE} WHERE key = %s AND expires_at > NOW()",
            (key,),
            True,
        )
        if row is None:
            self._stats.misses += 1
            logger.debug("Cache miss for %s", key[:12])
            return None
        self._stats.hits += 1
        logger.debug("Cache hit for %s", key[:12])
        value = row[0]
        return json.loads(value) if isinstance(value, str) else value

    async def set(self, key: str, value: dict, ttl: float | None = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        await asyncio.to_thread(
            self._execute,
            f"""
            INSERT INTO {self.TABLE} (key, value, expires_at)
            VALUES (%s, %s::jsonb, NOW() + %s * INTERVAL '1 second')
            ON CONFLICT (key) DO UPDATE SET
                value = EXCLUDED.value,
                expires_at = EXCLUDED.expires_at
            """,
            (key, json.dumps(value), ttl),
        )
        self._stats.sets += 1

    async def delete(self, key: str) -> bool:
        removed = await asyncio.to_thread(self._execute, f"DELETE FROM {self.TABLE} WHERE key = %s", (key,))
        if removed:
            self._stats.deletes += 1
        return removed > 0

    async def clear(self) -> None:
        await asyncio.to_thread(self._execute, f"DELETE FROM {self.TABLE}")

    async def cleanup(self) -> int:
        """Drop expired rows; returns how many were removed."""
        removed = await asyncio.to_thread(self._execute, f"DELETE FROM {self.TABLE} WHERE expires_at <= NOW()")
        if removed:
            logger.info("Cache cleanup removed %d expired entries", removed)
        return removed

    def stats(self) -> dict[str, Any]:
        return self._stats.to_dict()
