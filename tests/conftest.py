"""Shared pytest fixtures for test modules."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from velocity_cache.cache.file_store import FileCacheStore
from velocity_cache.cache.sqlite_store import SqliteCacheStore

if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path


class FakeClock:
    """Manually advanced time source, in Unix seconds."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def file_store(tmp_path: Path, clock: FakeClock) -> FileCacheStore:
    """A file-backed store rooted in the test's temporary directory."""
    return FileCacheStore(tmp_path / "velocache", clock=clock)


@pytest.fixture
def sqlite_store(tmp_path: Path, clock: FakeClock) -> Generator[SqliteCacheStore]:
    """A SQLite-backed store in the test's temporary directory, closed afterwards."""
    store = SqliteCacheStore(tmp_path / "velocity.db", clock=clock)
    yield store
    store.close()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove VELOCITY__ env vars so tests are isolated from the shell environment."""
    for key in list(os.environ):
        if key.startswith("VELOCITY__"):
            monkeypatch.delenv(key)
