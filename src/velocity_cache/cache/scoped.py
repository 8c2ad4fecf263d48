"""Per-user and per-client-IP convenience wrappers over a CacheStore.

Usage:
    scoped = ScopedCache(store, default_ttl=600)
    profile = scoped.get_user_with_fallback(42, repo.find_user)

    # after the user row changes
    scoped.invalidate_user(42)

    ip = client_ip(request.headers)
    attempts = scoped.get_by_ip(ip)
"""

from __future__ import annotations

import hashlib
import ipaddress
import logging
from typing import TYPE_CHECKING, Any

from velocity_cache.cache.remember import should_cache

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from velocity_cache.cache.protocol import CacheStore

logger = logging.getLogger(__name__)

USERS_NAMESPACE = "users"
IP_NAMESPACE = "ip"
DATA_NAMESPACE = "data"

UNKNOWN_IP = "0.0.0.0"

# Checked in order; the first valid address wins.
_CLIENT_IP_HEADERS = ("cf-connecting-ip", "x-forwarded-for", "x-real-ip", "client-ip", "remote-addr")


def client_ip(headers: Mapping[str, str]) -> str:
    """Resolve the client address from proxy and connection headers.

    Header lookup is case-insensitive. For comma-separated values only the
    first hop is considered.
    """
    lowered = {name.lower(): value for name, value in headers.items()}
    for header in _CLIENT_IP_HEADERS:
        raw = lowered.get(header)
        if not raw:
            continue
        candidate = raw.split(",")[0].strip()
        try:
            ipaddress.ip_address(candidate)
        except ValueError:
            continue
        return candidate
    return UNKNOWN_IP


def user_key(user_id: int) -> str:
    return f"user_{user_id}"


def ip_key(ip: str) -> str:
    return hashlib.md5(ip.encode("utf-8")).hexdigest()


class ScopedCache:
    def __init__(self, store: CacheStore, default_ttl: int | None = None) -> None:
        self._store = store
        self._default_ttl = default_ttl

    def _ttl(self, ttl: int | None) -> int | None:
        return self._default_ttl if ttl is None else ttl

    def _with_fallback(
        self, namespace: str, key: str, fetch: Callable[[], Any], ttl: int | None
    ) -> Any | None:
        cached_value = self._store.get(namespace, key)
        if cached_value is not None:
            return cached_value
        data = fetch()
        if not should_cache(data):
            return None
        self._store.set(namespace, key, data, self._ttl(ttl))
        return data

    # -- users ------------------------------------------------------------

    def get_user(self, user_id: int) -> Any | None:
        return self._store.get(USERS_NAMESPACE, user_key(user_id))

    def set_user(self, user_id: int, data: Any, ttl: int | None = None) -> bool:
        return self._store.set(USERS_NAMESPACE, user_key(user_id), data, self._ttl(ttl))

    def delete_user(self, user_id: int) -> bool:
        return self._store.delete(USERS_NAMESPACE, user_key(user_id))

    def get_user_with_fallback(
        self, user_id: int, fetch: Callable[[int], Any], ttl: int | None = None
    ) -> Any | None:
        """Return the cached user or load it with ``fetch(user_id)``.

        A ``None``/``False`` fetch result is reported as ``None`` and not cached.
        """
        return self._with_fallback(USERS_NAMESPACE, user_key(user_id), lambda: fetch(user_id), ttl)

    def invalidate_user(self, user_id: int) -> int:
        """Drop the user's entry and every ``data`` entry keyed ``user_{id}_*``."""
        existed = self._store.has(USERS_NAMESPACE, user_key(user_id))
        self.delete_user(user_id)
        removed = self._store.invalidate_pattern(DATA_NAMESPACE, f"{user_key(user_id)}_*")
        logger.debug("Invalidated user %s (%d related entries)", user_id, removed)
        return removed + int(existed)

    # -- client addresses ------------------------------------------------

    def get_by_ip(self, ip: str) -> Any | None:
        return self._store.get(IP_NAMESPACE, ip_key(ip))

    def set_by_ip(self, ip: str, data: Any, ttl: int | None = None) -> bool:
        return self._store.set(IP_NAMESPACE, ip_key(ip), data, self._ttl(ttl))

    def delete_by_ip(self, ip: str) -> bool:
        return self._store.delete(IP_NAMESPACE, ip_key(ip))

    def get_by_ip_with_fallback(
        self, ip: str, fetch: Callable[[str], Any], ttl: int | None = None
    ) -> Any | None:
        return self._with_fallback(IP_NAMESPACE, ip_key(ip), lambda: fetch(ip), ttl)
