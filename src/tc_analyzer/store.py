"""Profile persistence.

``ProfileStore`` is the async interface the personalization service talks
to. ``InMemoryProfileStore`` backs tests and the CLI; ``PostgresProfileStore``
keeps one JSONB row per user in PostgreSQL (Supabase works the same way).
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

from psycopg2 import pool

from .errors import ProfileNotFoundError
from .models import ComputedProfile

logger = logging.getLogger(__name__)


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class StoredProfile:
    """A questionnaire document plus its computed parameters."""

    user_id: str
    profile: dict[str, Any]
    computed_profile: ComputedProfile | None = None
    last_updated: str = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        data = copy.deepcopy(self.profile)
        data["computedProfile"] = self.computed_profile.to_dict() if self.computed_profile else None
        data["lastUpdated"] = self.last_updated
        return data


class ProfileStore(Protocol):
    async def save(self, stored: StoredProfile) -> StoredProfile: ...

    async def get(self, user_id: str) -> StoredProfile | None: ...

    async def update_section(
        self,
        user_id: str,
        section: str,
        data: dict[str, Any],
        computed_profile: ComputedProfile | None = None,
    ) -> StoredProfile: ...

    async def delete(self, user_id: str) -> bool: ...


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------


class InMemoryProfileStore:
    """Dict-backed store. Callers never share objects with the store."""

    def __init__(self) -> None:
        self._profiles: dict[str, StoredProfile] = {}
        self._lock = asyncio.Lock()

    async def save(self, stored: StoredProfile) -> StoredProfile:
        async with self._lock:
            self._profiles[stored.user_id] = copy.deepcopy(stored)
        return copy.deepcopy(stored)

    async def get(self, user_id: str) -> StoredProfile | None:
        async with self._lock:
            stored = self._profiles.get(user_id)
            return copy.deepcopy(stored) if stored is not None else None

    async def update_section(
        self,
        user_id: str,
        section: str,
        data: dict[str, Any],
        computed_profile: ComputedProfile | None = None,
    ) -> StoredProfile:
        async with self._lock:
            existing = self._profiles.get(user_id)
            if existing is None:
                raise ProfileNotFoundError(f"User profile not found: {user_id}")
            updated = copy.deepcopy(existing)
            updated.profile[section] = {**updated.profile.get(section, {}), **copy.deepcopy(data)}
            if computed_profile is not None:
                updated.computed_profile = copy.deepcopy(computed_profile)
            updated.last_updated = _utcnow()
            self._profiles[user_id] = updated
            return copy.deepcopy(updated)

    async def delete(self, user_id: str) -> bool:
        async with self._lock:
            return self._profiles.pop(user_id, None) is not None

    def __len__(self) -> int:
        return len(self._profiles)


# ---------------------------------------------------------------------------
# PostgreSQL
# ---------------------------------------------------------------------------


class PostgresProfileStore:
    """PostgreSQL store with a small connection pool.

    psycopg2 is blocking, so every call runs in a worker thread. Writes are
    upserts keyed by ``user_id``; the last writer wins.

    Args:
        connection_string: libpq DSN, e.g. ``DATABASE_URL``.
        min_connections: Pool floor.
        max_connections: Pool ceiling.
    """

    TABLE = "user_preferences"

    def __init__(self, connection_string: str, min_connections: int = 1, max_connections: int = 10) -> None:
        self.connection_string = connection_string
        self._min = min_connections
        self._max = max_connections
        self._pool: pool.ThreadedConnectionPool | None = None

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------

    def _get_connection(self):
        if not self._pool:
            self._pool = pool.ThreadedConnectionPool(self._min, self._max, self.connection_string)
        return self._pool.getconn()

    def _release_connection(self, conn) -> None:
        if self._pool:
            self._pool.putconn(conn)

    def close(self) -> None:
        """Close all pooled connections."""
        if self._pool:
            self._pool.closeall()
            self._pool = None

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def init_schema(self) -> None:
        """Create the preferences table if it doesn't exist."""
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {self.TABLE} (
                        user_id TEXT PRIMARY KEY,
                        profile JSONB NOT NULL,
                        computed_profile JSONB,
                        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    );
                    """
                )
                conn.commit()
        finally:
            self._release_connection(conn)

    # ------------------------------------------------------------------
    # Blocking operations
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_stored(row) -> StoredProfile:
        user_id, profile, computed, updated_at = row
        return StoredProfile(
            user_id=user_id,
            profile=profile,
            computed_profile=ComputedProfile.from_dict(computed) if computed else None,
            last_updated=updated_at.isoformat() if hasattr(updated_at, "isoformat") else str(updated_at),
        )

    def _save_sync(self, stored: StoredProfile) -> StoredProfile:
        computed = json.dumps(stored.computed_profile.to_dict()) if stored.computed_profile else None
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    INSERT INTO {self.TABLE} (user_id, profile, computed_profile, updated_at)
                    VALUES (%s, %s::jsonb, %s::jsonb, NOW())
                    ON CONFLICT (user_id) DO UPDATE SET
                        profile = EXCLUDED.profile,
                        computed_profile = EXCLUDED.computed_profile,
                        updated_at = EXCLUDED.updated_at
                    RETURNING user_id, profile, computed_profile, updated_at
                    """,
                    (stored.user_id, json.dumps(stored.profile), computed),
                )
                row = cur.fetchone()
                conn.commit()
                return self._row_to_stored(row)
        except Exception:
            conn.rollback()
            raise
        finally:
            self._release_connection(conn)

    def _get_sync(self, user_id: str) -> StoredProfile | None:
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    SELECT user_id, profile, computed_profile, updated_at
                    FROM {self.TABLE}
                    WHERE user_id = %s
                    """,
                    (user_id,),
                )
                row = cur.fetchone()
                return self._row_to_stored(row) if row else None
        finally:
            self._release_connection(conn)

    def _update_section_sync(
        self,
        user_id: str,
        section: str,
        data: dict[str, Any],
        computed_profile: ComputedProfile | None,
    ) -> StoredProfile:
        computed = json.dumps(computed_profile.to_dict()) if computed_profile else None
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    UPDATE {self.TABLE} SET
                        profile = jsonb_set(
                            profile, %s,
                            COALESCE(profile -> %s, '{{}}'::jsonb) || %s::jsonb
                        ),
                        computed_profile = COALESCE(%s::jsonb, computed_profile),
                        updated_at = NOW()
                    WHERE user_id = %s
                    RETURNING user_id, profile, computed_profile, updated_at
                    """,
                    ([section], section, json.dumps(data), computed, user_id),
                )
                row = cur.fetchone()
                if not row:
                    conn.rollback()
                    raise ProfileNotFoundError(f"User profile not found: {user_id}")
                conn.commit()
                return self._row_to_stored(row)
        except ProfileNotFoundError:
            raise
        except Exception:
            conn.rollback()
            raise
        finally:
            self._release_connection(conn)

    def _delete_sync(self, user_id: str) -> bool:
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(f"DELETE FROM {self.TABLE} WHERE user_id = %s", (user_id,))
                conn.commit()
                return cur.rowcount > 0
        finally:
            self._release_connection(conn)

    # ------------------------------------------------------------------
    # Async interface
    # ------------------------------------------------------------------

    async def save(self, stored: StoredProfile) -> StoredProfile:
        return await asyncio.to_thread(self._save_sync, stored)

    async def get(self, user_id: str) -> StoredProfile | None:
        return await asyncio.to_thread(self._get_sync, user_id)

    async def update_section(
        self,
        user_id: str,
        section: str,
        data: dict[str, Any],
        computed_profile: ComputedProfile | None = None,
    ) -> StoredProfile:
        return await asyncio.to_thread(self._update_section_sync, user_id, section, data, computed_profile)

    async def delete(self, user_id: str) -> bool:
        return await asyncio.to_thread(self._delete_sync, user_id)
