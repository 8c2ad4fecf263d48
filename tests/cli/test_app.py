import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from velocity_cache.cache.file_store import FileCacheStore
from velocity_cache.cache.sqlite_store import SqliteCacheStore
from velocity_cache.cli.app import app

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    config = tmp_path / "velocity.yaml"
    config.write_text("cache:\n" f"  path: {tmp_path / 'velocache'}\n" f"  db_path: {tmp_path / 'velocity.db'}\n")
    return config


@pytest.fixture
def seeded(tmp_path: Path) -> FileCacheStore:
    store = FileCacheStore(tmp_path / "velocache")
    store.set("users", "user_1", {"name": "Ada"}, ttl_seconds=3600)
    store.set("api", "users_list_p1", [1, 2], ttl_seconds=3600)
    store.set("api", "users_list_p2", [3], ttl_seconds=3600)
    store.set("api", "user_9", {"id": 9}, ttl_seconds=3600)
    return store


class TestHelp:
    def test_lists_commands(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("stats", "sweep", "clear", "invalidate", "get", "delete"):
            assert command in result.output


class TestStatsCommand:
    def test_shows_namespaces(self, config_file: Path, seeded: FileCacheStore) -> None:
        result = runner.invoke(app, ["stats", "--config", str(config_file)])
        assert result.exit_code == 0, result.output
        assert "users" in result.output
        assert "api" in result.output

    def test_empty_cache(self, config_file: Path) -> None:
        result = runner.invoke(app, ["stats", "--config", str(config_file)])
        assert result.exit_code == 0, result.output
        assert "No cached entries." in result.output

    def test_sqlite_backend(self, config_file: Path, tmp_path: Path) -> None:
        store = SqliteCacheStore(tmp_path / "velocity.db")
        store.set("pages", "home", "<html>", ttl_seconds=60)
        store.close()

        result = runner.invoke(app, ["stats", "--config", str(config_file), "--backend", "sqlite"])
        assert result.exit_code == 0, result.output
        assert "sqlite" in result.output
        assert "pages" in result.output

    def test_unknown_backend_exits_with_error(self, config_file: Path) -> None:
        result = runner.invoke(app, ["stats", "--config", str(config_file), "--backend", "redis"])
        assert result.exit_code == 1
        assert "unknown cache backend" in result.output

    def test_missing_config_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["stats", "--config", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 1
        assert "config file not found" in result.output


class TestMaintenanceCommands:
    def test_sweep(self, config_file: Path, seeded: FileCacheStore, tmp_path: Path) -> None:
        (tmp_path / "velocache" / "data" / "broken.json").write_text("garbage")

        result = runner.invoke(app, ["sweep", "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        assert "Removed 1 expired entries" in result.output
        assert seeded.get("users", "user_1") == {"name": "Ada"}

    def test_clear_namespace(self, config_file: Path, seeded: FileCacheStore) -> None:
        result = runner.invoke(app, ["clear", "--namespace", "api", "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        assert "Removed 3 entries from 'api'" in result.output
        assert seeded.get("users", "user_1") == {"name": "Ada"}

    def test_clear_all(self, config_file: Path, seeded: FileCacheStore) -> None:
        result = runner.invoke(app, ["clear", "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        assert "Removed 4 entries" in result.output
        assert seeded.stats().total_entries == 0

    def test_invalidate_pattern(self, config_file: Path, seeded: FileCacheStore) -> None:
        result = runner.invoke(app, ["invalidate", "api", "users_list_*", "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        assert "Removed 2 entries matching 'users_list_*'" in result.output
        assert seeded.get("api", "user_9") == {"id": 9}


class TestEntryCommands:
    def test_get_prints_json(self, config_file: Path, seeded: FileCacheStore) -> None:
        result = runner.invoke(app, ["get", "users", "user_1", "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == {"name": "Ada"}

    def test_get_missing_exits_with_error(self, config_file: Path) -> None:
        result = runner.invoke(app, ["get", "users", "user_404", "--config", str(config_file)])

        assert result.exit_code == 1
        assert "no live entry for users/user_404" in result.output

    def test_delete(self, config_file: Path, seeded: FileCacheStore) -> None:
        result = runner.invoke(app, ["delete", "users", "user_1", "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        assert "Deleted users/user_1" in result.output
        assert seeded.get("users", "user_1") is None
