from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

from velocity_cache.cache.stats import CacheStats

if TYPE_CHECKING:
    from collections.abc import Callable

T = TypeVar("T")


class DisabledCacheStore:
    """CacheStore used when caching is turned off or storage is unavailable.

    Every read misses and every write reports failure, so callers always fall
    through to computing fresh data.
    """

    backend = "disabled"

    def __init__(self, reason: str = "") -> None:
        self.reason = reason

    def get(self, namespace: str, key: str) -> Any | None:
        return None

    def set(self, namespace: str, key: str, value: Any, ttl_seconds: int | None = None) -> bool:
        return False

    def delete(self, namespace: str, key: str) -> bool:
        return False

    def has(self, namespace: str, key: str) -> bool:
        return False

    def remember(
        self, namespace: str, key: str, ttl_seconds: int | None, producer: Callable[[], T | None]
    ) -> T | None:
        return producer()

    def remember_forever(self, namespace: str, key: str, producer: Callable[[], T | None]) -> T | None:
        return producer()

    def invalidate_pattern(self, namespace: str, pattern: str) -> int:
        return 0

    def clear_namespace(self, namespace: str) -> int:
        return 0

    def clear_all(self) -> int:
        return 0

    def sweep_expired(self) -> int:
        return 0

    def stats(self) -> CacheStats:
        return CacheStats(enabled=False, backend=self.backend, location=self.reason)
