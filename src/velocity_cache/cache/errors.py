"""Exceptions raised inside the cache layer.

None of these escape a store operation. Constructors raise
``StorageUnavailableError`` so the factory can fall back to a disabled store;
the others are caught at the store boundary and turned into a miss or a
``False`` result.
"""


class CacheError(Exception):
    """Base class for cache layer failures."""


class StorageUnavailableError(CacheError):
    """Raised when the cache directory or database cannot be opened for writing."""

    def __init__(self, location: str, reason: str) -> None:
        super().__init__(f"Cache storage unavailable at {location}: {reason}")
        self.location = location
        self.reason = reason


class SerializationError(CacheError):
    """Raised when a value cannot be encoded as JSON."""


class CorruptEntryError(CacheError):
    """Raised when a stored entry cannot be decoded."""
