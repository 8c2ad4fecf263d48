"""Read-through caching on top of any CacheStore.

Usage:
    users = remember(store, "api", "users_list_p1", 300, lambda: repo.list_users(page=1))

    @cached(store, namespace="data", ttl_seconds=600)
    def load_user_posts(user_id: int) -> list[dict]:
        return repo.posts_for(user_id)

Concurrent misses on the same key each call the producer; there is no
single-flight coordination between request handlers.
"""

from __future__ import annotations

import functools
import inspect
import logging
from typing import TYPE_CHECKING, Any, ParamSpec, TypeVar

from velocity_cache.cache.keys import compose_key

if TYPE_CHECKING:
    from collections.abc import Callable

    from velocity_cache.cache.protocol import CacheStore

logger = logging.getLogger(__name__)

T = TypeVar("T")
P = ParamSpec("P")

FOREVER_TTL = 86400 * 365


def should_cache(value: object) -> bool:
    """Only ``None`` and ``False`` are treated as negative results."""
    return value is not None and value is not False


def remember(
    store: CacheStore,
    namespace: str,
    key: str,
    ttl_seconds: int | None,
    producer: Callable[[], T | None],
) -> T | None:
    """Return the cached value for ``key`` or compute, store and return it.

    Args:
        store: Store to read from and write to.
        namespace: Namespace of the entry.
        key: Caller-chosen key.
        ttl_seconds: Lifetime of a newly stored value (None = store default).
        producer: Zero-argument callable invoked only on a miss.

    Returns:
        The cached or freshly produced value. A ``None``/``False`` result is
        returned to the caller but never stored, so the next call runs the
        producer again.
    """
    cached_value = store.get(namespace, key)
    if cached_value is not None:
        logger.debug("Cache hit for %s/%s", namespace, key)
        return cached_value

    value = producer()
    if should_cache(value):
        store.set(namespace, key, value, ttl_seconds)
    else:
        logger.debug("Not caching negative result for %s/%s", namespace, key)
    return value


def remember_forever(store: CacheStore, namespace: str, key: str, producer: Callable[[], T | None]) -> T | None:
    return remember(store, namespace, key, FOREVER_TTL, producer)


def cached(
    store: CacheStore,
    namespace: str,
    ttl_seconds: int | None = None,
    key_fn: Callable[..., str] | None = None,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Decorate a function so its results are cached through ``remember``.

    The key defaults to the function name plus a digest of all its bound
    arguments, ``_``-prefixed ones included; pass ``key_fn`` (called with the same arguments) to choose it.
    """

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        signature = inspect.signature(func)

        def build_key(*args: Any, **kwargs: Any) -> str:
            if key_fn is not None:
                return key_fn(*args, **kwargs)
            bound = signature.bind(*args, **kwargs)
            bound.apply_defaults()
            params = {name: value for name, value in bound.arguments.items() if name not in ("self", "cls")}
            return compose_key(func.__name__, params, drop_private=False)

        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            cache_key = build_key(*args, **kwargs)
            return remember(store, namespace, cache_key, ttl_seconds, lambda: func(*args, **kwargs))  # type: ignore[return-value]

        wrapper.cache_key = build_key  # type: ignore[attr-defined]
        return wrapper

    return decorator
