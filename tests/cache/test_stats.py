from __future__ import annotations

import pytest

from velocity_cache.cache.stats import CacheStats, NamespaceStats, format_bytes


@pytest.mark.parametrize(
    ("size", "expected"),
    [(0, "0 B"), (512, "512 B"), (1024, "1 KB"), (1536, "1.5 KB"), (5 * 1024 * 1024, "5 MB"), (3 * 1024**4, "3072 GB")],
)
def test_format_bytes(size: int, expected: str) -> None:
    assert format_bytes(size) == expected


def test_totals_sum_namespaces() -> None:
    stats = CacheStats(
        enabled=True,
        backend="file",
        namespaces={
            "users": NamespaceStats(entry_count=3, total_bytes=300, active_count=2, expired_count=1),
            "api": NamespaceStats(entry_count=1, total_bytes=50, active_count=1, expired_count=0),
        },
    )

    assert stats.total_entries == 4
    assert stats.total_bytes == 350
    assert stats.active_entries == 3
    assert stats.expired_entries == 1
