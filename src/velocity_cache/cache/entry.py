from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from velocity_cache.cache.errors import CorruptEntryError

_REQUIRED_FIELDS = ("value", "created_at", "expires_at")


@dataclass(frozen=True)
class CacheEntry:
    """A stored value with its write and expiry timestamps (Unix seconds).

    Attributes:
        value: JSON-compatible payload.
        created_at: Time of the last write.
        expires_at: ``created_at + ttl``; the entry is absent from then on.
    """

    value: Any
    created_at: int
    expires_at: int

    @classmethod
    def create(cls, value: Any, now: float, ttl_seconds: int) -> CacheEntry:
        created_at = int(now)
        return cls(value=value, created_at=created_at, expires_at=created_at + int(ttl_seconds))

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now

    def to_document(self) -> dict[str, Any]:
        return {"value": self.value, "created_at": self.created_at, "expires_at": self.expires_at}

    @classmethod
    def from_document(cls, document: object) -> CacheEntry:
        """Rebuild an entry from its stored document.

        Raises:
            CorruptEntryError: If the document is not a mapping with integer timestamps.
        """
        if not isinstance(document, dict):
            raise CorruptEntryError(f"expected an object, got {type(document).__name__}")
        missing = [name for name in _REQUIRED_FIELDS if name not in document]
        if missing:
            raise CorruptEntryError(f"missing fields: {', '.join(missing)}")
        created_at = document["created_at"]
        expires_at = document["expires_at"]
        for name, stamp in (("created_at", created_at), ("expires_at", expires_at)):
            if isinstance(stamp, bool) or not isinstance(stamp, int):
                raise CorruptEntryError(f"{name} is not an integer timestamp")
        return cls(value=document["value"], created_at=created_at, expires_at=expires_at)
