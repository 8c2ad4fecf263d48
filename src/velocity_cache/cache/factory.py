from __future__ import annotations

import hashlib
import logging
import tempfile
import time
from pathlib import Path
from typing import TYPE_CHECKING

from velocity_cache.cache.disabled_store import DisabledCacheStore
from velocity_cache.cache.errors import StorageUnavailableError
from velocity_cache.cache.file_store import FileCacheStore
from velocity_cache.cache.sqlite_store import SqliteCacheStore

if TYPE_CHECKING:
    from collections.abc import Callable

    from velocity_cache.cache.protocol import CacheStore
    from velocity_cache.config import CacheSettings

logger = logging.getLogger(__name__)

BACKENDS = ("file", "sqlite")
FALLBACK_DIR_NAME = "velocity_cache"


def fallback_location(location: Path) -> Path:
    """Return the temp-directory location used when ``location`` is unusable."""
    digest = hashlib.md5(str(location).encode("utf-8")).hexdigest()
    base = Path(tempfile.gettempdir()) / FALLBACK_DIR_NAME
    if location.suffix:
        return base / f"{location.stem}_{digest}{location.suffix}"
    return base / f"{location.name}_{digest}"


def _build(settings: CacheSettings, location: Path, clock: Callable[[], float]) -> CacheStore:
    if settings.backend == "sqlite":
        return SqliteCacheStore(location, default_ttl=settings.default_ttl, clock=clock)
    return FileCacheStore(location, default_ttl=settings.default_ttl, namespaces=settings.namespaces, clock=clock)


def create_cache_store(settings: CacheSettings | None = None, clock: Callable[[], float] = time.time) -> CacheStore:
    """Build the configured store, degrading to a disabled one when storage is unusable.

    The failure is logged once here; the returned store never raises for
    storage faults afterwards.

    Raises:
        ValueError: If ``settings.backend`` is not a known backend.
    """
    if settings is None:
        from velocity_cache.config import load_cache_settings

        settings = load_cache_settings()

    if settings.backend not in BACKENDS:
        raise ValueError(f"Unknown cache backend: {settings.backend!r} (expected one of {', '.join(BACKENDS)})")

    if not settings.enabled:
        logger.info("Caching disabled by configuration")
        return DisabledCacheStore("disabled by configuration")

    location = settings.db_path if settings.backend == "sqlite" else settings.path
    try:
        return _build(settings, location, clock)
    except StorageUnavailableError as e:
        if not settings.fallback_to_tmp:
            logger.error("Cache disabled: %s", e)
            return DisabledCacheStore(str(e))
        first_error = e

    fallback = fallback_location(location)
    logger.warning("%s; falling back to %s", first_error, fallback)
    try:
        return _build(settings, fallback, clock)
    except StorageUnavailableError as e:
        logger.error("Cache disabled: %s", e)
        return DisabledCacheStore(str(e))
