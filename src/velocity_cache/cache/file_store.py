"""File-backed cache store: one JSON document per entry.

Layout::

    <root>/<namespace>/<sanitized-key>.json
    <root>/.locks/<namespace>/<sanitized-key>.lock

Writes go to a dot-prefixed temporary file in the namespace directory and are
moved into place with ``os.replace`` while holding the entry's lock, so a
reader sees either the old document or the new one. Reads take no lock.
"""

from __future__ import annotations

import logging
import os
import tempfile
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

from filelock import FileLock, Timeout

from velocity_cache.cache import serialization
from velocity_cache.cache.entry import CacheEntry
from velocity_cache.cache.errors import CacheError, CorruptEntryError, StorageUnavailableError
from velocity_cache.cache.keys import pattern_to_regex, sanitize_key, sanitize_namespace
from velocity_cache.cache.remember import remember, remember_forever
from velocity_cache.cache.stats import CacheStats, NamespaceStats

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_NAMESPACES = ("users", "ip", "data", "pages", "api")
ENTRY_SUFFIX = ".json"
LOCK_DIR = ".locks"
LOCK_TIMEOUT_SECONDS = 5.0


class FileCacheStore:
    """CacheStore over a directory tree of JSON documents.

    Args:
        root: Cache root directory; created if missing.
        default_ttl: TTL used when ``set`` is called without one.
        namespaces: Namespace directories created up front.
        clock: Time source in Unix seconds (injectable for tests).

    Raises:
        StorageUnavailableError: If the root cannot be created or written.
    """

    backend = "file"

    def __init__(
        self,
        root: Path,
        *,
        default_ttl: int = 3600,
        namespaces: Iterable[str] = DEFAULT_NAMESPACES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._root = root
        self._default_ttl = default_ttl
        self._clock = clock
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            for namespace in namespaces:
                self._namespace_dir(namespace).mkdir(exist_ok=True)
        except OSError as e:
            raise StorageUnavailableError(str(root), e.strerror or str(e)) from e
        if not os.access(self._root, os.W_OK | os.X_OK):
            raise StorageUnavailableError(str(root), "directory is not writable")

    @property
    def root(self) -> Path:
        return self._root

    # -- path mapping -----------------------------------------------------

    def _namespace_dir(self, namespace: str) -> Path:
        return self._root / sanitize_namespace(namespace)

    def _entry_path(self, namespace: str, key: str) -> Path:
        directory = self._namespace_dir(namespace)
        path = directory / f"{sanitize_key(key)}{ENTRY_SUFFIX}"
        if path.parent != directory:
            raise ValueError(f"Key {key!r} escapes namespace directory")
        return path

    def _lock_for(self, path: Path) -> FileLock:
        """Return the write lock of the entry stored at ``path``."""
        lock_dir = self._root / LOCK_DIR / path.parent.name
        lock_dir.mkdir(parents=True, exist_ok=True)
        return FileLock(str(lock_dir / f"{path.stem}.lock"), timeout=LOCK_TIMEOUT_SECONDS)

    def _namespaces(self) -> list[str]:
        try:
            return sorted(p.name for p in self._root.iterdir() if p.is_dir() and not p.name.startswith("."))
        except OSError as e:
            logger.warning("Cannot list cache root %s: %s", self._root, e)
            return []

    def _entry_files(self, namespace: str) -> Iterator[Path]:
        directory = self._namespace_dir(namespace)
        if not directory.is_dir():
            return
        for path in directory.iterdir():
            if path.suffix == ENTRY_SUFFIX and not path.name.startswith(".") and path.is_file():
                yield path

    # -- single entries ---------------------------------------------------

    def _read_entry(self, path: Path) -> CacheEntry:
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise CorruptEntryError(str(e)) from e
        return CacheEntry.from_document(serialization.decode(text))

    def get(self, namespace: str, key: str) -> Any | None:
        path = self._entry_path(namespace, key)
        try:
            entry = self._read_entry(path)
        except FileNotFoundError:
            return None
        except CorruptEntryError as e:
            logger.warning("Discarding corrupt cache entry %s/%s: %s", namespace, key, e)
            self._remove_if_stale(path, self._clock())
            return None
        except OSError as e:
            logger.warning("Cache read failed for %s/%s: %s", namespace, key, e)
            return None

        now = self._clock()
        if entry.is_expired(now):
            logger.debug("Cache entry expired: %s/%s", namespace, key)
            self._remove_if_stale(path, now)
            return None
        return entry.value

    def set(self, namespace: str, key: str, value: Any, ttl_seconds: int | None = None) -> bool:
        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds
        entry = CacheEntry.create(value, self._clock(), ttl)
        try:
            content = serialization.encode(entry.to_document(), pretty=True)
        except CacheError as e:
            logger.warning("Cannot serialize value for %s/%s: %s", namespace, key, e)
            return False

        path = self._entry_path(namespace, key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with self._lock_for(path):
                self._write_atomic(path, content)
        except (OSError, Timeout) as e:
            logger.warning("Cache write failed for %s/%s: %s", namespace, key, e)
            return False
        logger.debug("Cached %s/%s (ttl=%ds)", namespace, key, ttl)
        return True

    def _write_atomic(self, path: Path, content: str) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _unlink(self, path: Path) -> bool:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Cannot remove cache file %s: %s", path, e)
            return False
        return True

    def delete(self, namespace: str, key: str) -> bool:
        return self._unlink(self._entry_path(namespace, key))

    def has(self, namespace: str, key: str) -> bool:
        return self.get(namespace, key) is not None

    def remember(
        self, namespace: str, key: str, ttl_seconds: int | None, producer: Callable[[], T | None]
    ) -> T | None:
        return remember(self, namespace, key, ttl_seconds, producer)

    def remember_forever(self, namespace: str, key: str, producer: Callable[[], T | None]) -> T | None:
        return remember_forever(self, namespace, key, producer)

    # -- bulk operations --------------------------------------------------

    def invalidate_pattern(self, namespace: str, pattern: str) -> int:
        matcher = pattern_to_regex(pattern)
        count = 0
        try:
            for path in list(self._entry_files(namespace)):
                if matcher.fullmatch(path.stem) and self._unlink(path):
                    count += 1
        except OSError as e:
            logger.warning("Pattern invalidation failed for %s/%s: %s", namespace, pattern, e)
        if count:
            logger.debug("Invalidated %d entries matching %s/%s", count, namespace, pattern)
        return count

    def clear_namespace(self, namespace: str) -> int:
        return self.invalidate_pattern(namespace, "*")

    def clear_all(self) -> int:
        return sum(self.clear_namespace(namespace) for namespace in self._namespaces())

    def _classify(self, path: Path, now: float) -> bool:
        """Return True if the file holds a live entry, False if expired or corrupt."""
        try:
            return not self._read_entry(path).is_expired(now)
        except CorruptEntryError:
            return False

    def _remove_if_stale(self, path: Path, now: float) -> bool:
        """Unlink an expired or corrupt entry unless a writer has replaced it since it was read.

        The file is re-read under the entry's lock, so a live document written
        by another process between the unlocked read and this call survives.
        """
        try:
            with self._lock_for(path):
                try:
                    live = self._classify(path, now)
                except FileNotFoundError:
                    return False
                if live:
                    logger.debug("Cache entry %s was rewritten, keeping it", path.name)
                    return False
                return self._unlink(path)
        except (OSError, Timeout) as e:
            logger.warning("Cannot remove stale cache file %s: %s", path, e)
            return False

    def sweep_expired(self) -> int:
        now = self._clock()
        count = 0
        for namespace in self._namespaces():
            try:
                for path in list(self._entry_files(namespace)):
                    try:
                        live = self._classify(path, now)
                    except FileNotFoundError:
                        continue
                    if not live and self._remove_if_stale(path, now):
                        count += 1
            except OSError as e:
                logger.warning("Sweep failed in namespace %s: %s", namespace, e)
        logger.info("Swept %d expired cache entries", count)
        return count

    def stats(self) -> CacheStats:
        now = self._clock()
        namespaces: dict[str, NamespaceStats] = {}
        for namespace in self._namespaces():
            entries = size = active = 0
            try:
                for path in self._entry_files(namespace):
                    try:
                        file_size = path.stat().st_size
                        live = self._classify(path, now)
                    except FileNotFoundError:
                        continue
                    entries += 1
                    size += file_size
                    active += int(live)
            except OSError as e:
                logger.warning("Cannot collect stats for namespace %s: %s", namespace, e)
            namespaces[namespace] = NamespaceStats(
                entry_count=entries, total_bytes=size, active_count=active, expired_count=entries - active
            )
        return CacheStats(enabled=True, backend=self.backend, location=str(self._root), namespaces=namespaces)
