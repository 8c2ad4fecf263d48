from __future__ import annotations

from dataclasses import dataclass, field

_UNITS = ("B", "KB", "MB", "GB")


@dataclass(frozen=True)
class NamespaceStats:
    entry_count: int = 0
    total_bytes: int = 0
    active_count: int = 0
    expired_count: int = 0


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of what a store currently holds.

    ``expired`` counts entries past their expiry that have not been read or
    swept yet; they still occupy storage but are never returned.
    """

    enabled: bool
    backend: str
    location: str = ""
    namespaces: dict[str, NamespaceStats] = field(default_factory=dict)

    @property
    def total_entries(self) -> int:
        return sum(ns.entry_count for ns in self.namespaces.values())

    @property
    def total_bytes(self) -> int:
        return sum(ns.total_bytes for ns in self.namespaces.values())

    @property
    def active_entries(self) -> int:
        return sum(ns.active_count for ns in self.namespaces.values())

    @property
    def expired_entries(self) -> int:
        return sum(ns.expired_count for ns in self.namespaces.values())


def format_bytes(size: int) -> str:
    """Render a byte count as e.g. ``"1.5 KB"``."""
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{round(value, 2):g} {_UNITS[unit]}"
