from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, cast

from config import ConfigurationSet, config_from_dict, config_from_env, config_from_yaml

if TYPE_CHECKING:
    from collections.abc import Iterable


class AppConfig(Protocol):
    def __getitem__(self, key: str) -> object: ...


_DEFAULTS: dict[str, object] = {
    "cache": {
        "enabled": True,
        "backend": "file",
        "path": "~/.cache/velocity/velocache",
        "db_path": "~/.cache/velocity/velocity.db",
        "default_ttl": 3600,
        "fallback_to_tmp": True,
        "namespaces": ["users", "ip", "data", "pages", "api"],
    },
}

_FALSE_STRINGS = frozenset({"false", "0", "no", "off", ""})


@dataclass(frozen=True)
class CacheSettings:
    """Resolved cache configuration.

    Attributes:
        enabled: When False the factory always builds a disabled store.
        backend: ``"file"`` or ``"sqlite"``.
        path: Root directory of the file-backed store.
        db_path: Database file of the SQLite-backed store.
        default_ttl: TTL in seconds used when ``set`` gets none.
        fallback_to_tmp: Retry under the system temp directory when the
            configured location is unusable.
        namespaces: Namespaces the file store creates up front.
    """

    enabled: bool = True
    backend: str = "file"
    path: Path = Path("~/.cache/velocity/velocache").expanduser()
    db_path: Path = Path("~/.cache/velocity/velocity.db").expanduser()
    default_ttl: int = 3600
    fallback_to_tmp: bool = True
    namespaces: tuple[str, ...] = ("users", "ip", "data", "pages", "api")


def create_config(
    yaml_path: str = "velocity.yaml",
    env_prefix: str = "VELOCITY",
    defaults: dict[str, object] | None = None,
    *,
    backend: str | None = None,
) -> ConfigurationSet:
    """Create a layered configuration.

    Priority (highest to lowest): explicit overrides > env vars > YAML file > defaults dict.

    Args:
        yaml_path: Path to the YAML config file.
        env_prefix: Prefix for environment variables (``VELOCITY__CACHE__BACKEND``).
        defaults: Default configuration values.
        backend: Override the cache backend.
    """
    if defaults is None:
        defaults = _DEFAULTS

    layers = [
        config_from_env(env_prefix, separator="__", lowercase_keys=True),
        config_from_yaml(yaml_path, read_from_file=True, ignore_missing_paths=True),
        config_from_dict(defaults),
    ]
    if backend is not None:
        layers.insert(0, config_from_dict({"cache": {"backend": backend}}))

    return ConfigurationSet(*layers)


def _as_bool(raw: object) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() not in _FALSE_STRINGS
    return bool(raw)


def _as_names(raw: object) -> tuple[str, ...]:
    if isinstance(raw, str):
        return tuple(name.strip() for name in raw.split(",") if name.strip())
    return tuple(str(name) for name in cast("Iterable[object]", raw))


def load_cache_settings(cfg: AppConfig | None = None) -> CacheSettings:
    if cfg is None:
        cfg = create_config()
    return CacheSettings(
        enabled=_as_bool(cfg["cache.enabled"]),
        backend=str(cfg["cache.backend"]).strip().lower(),
        path=Path(str(cfg["cache.path"])).expanduser(),
        db_path=Path(str(cfg["cache.db_path"])).expanduser(),
        default_ttl=int(str(cfg["cache.default_ttl"])),
        fallback_to_tmp=_as_bool(cfg["cache.fallback_to_tmp"]),
        namespaces=_as_names(cfg["cache.namespaces"]),
    )
