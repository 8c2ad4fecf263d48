from __future__ import annotations

import logging
import sqlite3
import threading
import time
from contextlib import contextmanager
from queue import Empty, Full, Queue
from typing import TYPE_CHECKING, Any, TypeVar

from velocity_cache.cache import serialization
from velocity_cache.cache.errors import CacheError, CorruptEntryError, StorageUnavailableError
from velocity_cache.cache.keys import pattern_to_like, sanitize_namespace
from velocity_cache.cache.remember import remember, remember_forever
from velocity_cache.cache.stats import CacheStats, NamespaceStats

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SCHEMA = (
    "CREATE TABLE IF NOT EXISTS cache_entries ("
    "  id INTEGER PRIMARY KEY AUTOINCREMENT,"
    "  key TEXT UNIQUE NOT NULL,"
    "  value TEXT NOT NULL,"
    "  expires_at INTEGER NOT NULL,"
    "  created_at INTEGER NOT NULL,"
    "  updated_at INTEGER NOT NULL"
    ")",
    "CREATE INDEX IF NOT EXISTS idx_cache_key ON cache_entries(key)",
    "CREATE INDEX IF NOT EXISTS idx_expires_at ON cache_entries(expires_at)",
)

_NAMESPACE_EXPR = "substr(key, 1, instr(key, ':') - 1)"


class SqliteConnectionPool:
    """Thread-safe connection pool for SQLite."""

    def __init__(self, db_path: Path, max_connections: int = 5) -> None:
        self._db_path = db_path
        self._pool: Queue[sqlite3.Connection] = Queue(maxsize=max_connections)
        self._schema_lock = threading.Lock()
        self._schema_initialized = False

    def _ensure_initialized(self, conn: sqlite3.Connection) -> None:
        if self._schema_initialized:
            return
        with self._schema_lock:
            if self._schema_initialized:
                return
            conn.execute("PRAGMA journal_mode=WAL")
            for statement in _SCHEMA:
                conn.execute(statement)
            conn.commit()
            self._schema_initialized = True

    def _create_connection(self) -> sqlite3.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        try:
            conn.execute("PRAGMA busy_timeout=5000")
            conn.execute("PRAGMA case_sensitive_like=ON")
            self._ensure_initialized(conn)
        except sqlite3.Error:
            conn.close()
            raise
        return conn

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Acquire a connection from the pool, returning it when done."""
        try:
            conn = self._pool.get_nowait()
        except Empty:
            conn = self._create_connection()

        try:
            yield conn
        finally:
            try:
                conn.rollback()
                self._pool.put_nowait(conn)
            except (Full, sqlite3.Error):
                conn.close()

    def close_all(self) -> None:
        while True:
            try:
                conn = self._pool.get_nowait()
            except Empty:
                break
            conn.close()


class SqliteCacheStore:
    """CacheStore over a single ``cache_entries`` table.

    Namespaces are folded into the stored key as ``"{namespace}:{key}"``.
    Each write is a single ``INSERT OR REPLACE`` statement, so readers in
    other processes see either the previous row or the new one.

    Raises:
        StorageUnavailableError: If the database file cannot be opened or its
            schema created.
    """

    backend = "sqlite"

    def __init__(
        self,
        db_path: Path,
        *,
        default_ttl: int = 3600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._db_path = db_path
        self._default_ttl = default_ttl
        self._clock = clock
        self._pool = SqliteConnectionPool(db_path)
        try:
            with self._pool.connection():
                pass
        except (sqlite3.Error, OSError) as e:
            raise StorageUnavailableError(str(db_path), str(e)) from e

    @property
    def db_path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        self._pool.close_all()

    def _now(self) -> int:
        return int(self._clock())

    @staticmethod
    def _stored_key(namespace: str, key: str) -> str:
        return f"{sanitize_namespace(namespace)}:{key}"

    def get(self, namespace: str, key: str) -> Any | None:
        stored_key = self._stored_key(namespace, key)
        try:
            with self._pool.connection() as conn:
                row = conn.execute(
                    "SELECT value, expires_at FROM cache_entries WHERE key = ? LIMIT 1",
                    (stored_key,),
                ).fetchone()
                if row is None:
                    return None
                value, expires_at = row
                now = self._now()
                if expires_at <= now:
                    conn.execute(
                        "DELETE FROM cache_entries WHERE key = ? AND expires_at <= ?",
                        (stored_key, now),
                    )
                    conn.commit()
                    logger.debug("Cache entry expired: %s/%s", namespace, key)
                    return None
                try:
                    return serialization.decode(value)
                except CorruptEntryError as e:
                    logger.warning("Discarding corrupt cache entry %s/%s: %s", namespace, key, e)
                    conn.execute("DELETE FROM cache_entries WHERE key = ?", (stored_key,))
                    conn.commit()
                    return None
        except (sqlite3.Error, OSError) as e:
            logger.warning("Cache read failed for %s/%s: %s", namespace, key, e)
            return None

    def set(self, namespace: str, key: str, value: Any, ttl_seconds: int | None = None) -> bool:
        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds
        try:
            encoded = serialization.encode(value)
        except CacheError as e:
            logger.warning("Cannot serialize value for %s/%s: %s", namespace, key, e)
            return False

        now = self._now()
        try:
            with self._pool.connection() as conn:
                conn.execute(
                    "INSERT OR REPLACE INTO cache_entries (key, value, expires_at, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (self._stored_key(namespace, key), encoded, now + int(ttl), now, now),
                )
                conn.commit()
        except (sqlite3.Error, OSError) as e:
            logger.warning("Cache write failed for %s/%s: %s", namespace, key, e)
            return False
        logger.debug("Cached %s/%s (ttl=%ds)", namespace, key, ttl)
        return True

    def _execute_delete(self, sql: str, params: tuple[object, ...], what: str) -> int | None:
        try:
            with self._pool.connection() as conn:
                cursor = conn.execute(sql, params)
                conn.commit()
                return cursor.rowcount
        except (sqlite3.Error, OSError) as e:
            logger.warning("Cache delete failed for %s: %s", what, e)
            return None

    def delete(self, namespace: str, key: str) -> bool:
        removed = self._execute_delete(
            "DELETE FROM cache_entries WHERE key = ?",
            (self._stored_key(namespace, key),),
            f"{namespace}/{key}",
        )
        return removed is not None

    def has(self, namespace: str, key: str) -> bool:
        return self.get(namespace, key) is not None

    def remember(
        self, namespace: str, key: str, ttl_seconds: int | None, producer: Callable[[], T | None]
    ) -> T | None:
        return remember(self, namespace, key, ttl_seconds, producer)

    def remember_forever(self, namespace: str, key: str, producer: Callable[[], T | None]) -> T | None:
        return remember_forever(self, namespace, key, producer)

    def invalidate_pattern(self, namespace: str, pattern: str) -> int:
        like = f"{pattern_to_like(sanitize_namespace(namespace))}:{pattern_to_like(pattern)}"
        removed = self._execute_delete(
            "DELETE FROM cache_entries WHERE key LIKE ? ESCAPE '\\'",
            (like,),
            f"{namespace}/{pattern}",
        )
        return removed or 0

    def clear_namespace(self, namespace: str) -> int:
        return self.invalidate_pattern(namespace, "*")

    def clear_all(self) -> int:
        return self._execute_delete("DELETE FROM cache_entries", (), "all entries") or 0

    def sweep_expired(self) -> int:
        count = self._execute_delete(
            "DELETE FROM cache_entries WHERE expires_at <= ?", (self._now(),), "expired entries"
        ) or 0
        logger.info("Swept %d expired cache entries", count)
        return count

    def stats(self) -> CacheStats:
        try:
            with self._pool.connection() as conn:
                rows = conn.execute(
                    f"SELECT {_NAMESPACE_EXPR} AS namespace,"
                    "  COUNT(*),"
                    "  COALESCE(SUM(LENGTH(CAST(value AS BLOB))), 0),"
                    "  SUM(CASE WHEN expires_at > ? THEN 1 ELSE 0 END)"
                    " FROM cache_entries GROUP BY namespace ORDER BY namespace",
                    (self._now(),),
                ).fetchall()
        except (sqlite3.Error, OSError) as e:
            logger.warning("Cannot collect cache stats: %s", e)
            return CacheStats(enabled=False, backend=self.backend, location=str(self._db_path))

        namespaces = {
            namespace: NamespaceStats(
                entry_count=count, total_bytes=size, active_count=active, expired_count=count - active
            )
            for namespace, count, size, active in rows
        }
        return CacheStats(enabled=True, backend=self.backend, location=str(self._db_path), namespaces=namespaces)
