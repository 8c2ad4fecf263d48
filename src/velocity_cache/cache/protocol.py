from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable

    from velocity_cache.cache.stats import CacheStats

T = TypeVar("T")


class CacheStore(Protocol):
    def get(self, namespace: str, key: str) -> Any | None: ...

    def set(self, namespace: str, key: str, value: Any, ttl_seconds: int | None = None) -> bool: ...

    def delete(self, namespace: str, key: str) -> bool: ...

    def has(self, namespace: str, key: str) -> bool: ...

    def remember(
        self, namespace: str, key: str, ttl_seconds: int | None, producer: Callable[[], T | None]
    ) -> T | None: ...

    def remember_forever(self, namespace: str, key: str, producer: Callable[[], T | None]) -> T | None: ...

    def invalidate_pattern(self, namespace: str, pattern: str) -> int: ...

    def clear_namespace(self, namespace: str) -> int: ...

    def clear_all(self) -> int: ...

    def sweep_expired(self) -> int: ...

    def stats(self) -> CacheStats: ...
