from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TypeAlias

from velocity_cache.cache.factory import BACKENDS, create_cache_store
from velocity_cache.cache.protocol import CacheStore
from velocity_cache.config import CacheSettings, create_config, load_cache_settings
from velocity_cache.domain.errors import ConfigError

DEFAULT_CONFIG_PATH = Path("velocity.yaml")


@dataclass(frozen=True, slots=True)
class SettingsLoaded:
    settings: CacheSettings
    source: str


@dataclass(frozen=True, slots=True)
class SettingsRejected:
    error: ConfigError


SettingsResult: TypeAlias = SettingsLoaded | SettingsRejected


def load_settings(config_path: Path | None, backend: str | None) -> SettingsResult:
    """Resolve cache settings from the YAML file, environment and CLI overrides.

    ``source`` names the YAML file that contributed, or ``"defaults"`` when
    only the environment and built-in defaults apply.
    """
    if config_path is not None and not config_path.is_file():
        return SettingsRejected(
            ConfigError(message=f"config file not found: {config_path}", key="config", value=str(config_path))
        )
    yaml_path = config_path if config_path is not None else DEFAULT_CONFIG_PATH
    try:
        settings = load_cache_settings(create_config(yaml_path=str(yaml_path), backend=backend))
    except (KeyError, ValueError) as e:
        return SettingsRejected(ConfigError(message=f"invalid cache configuration: {e}"))
    if settings.backend not in BACKENDS:
        return SettingsRejected(
            ConfigError(
                message=f"unknown cache backend '{settings.backend}' (expected one of: {', '.join(BACKENDS)})",
                key="cache.backend",
                value=settings.backend,
            )
        )
    source = str(yaml_path) if yaml_path.is_file() else "defaults"
    return SettingsLoaded(settings, source)


@contextmanager
def build_store(settings: CacheSettings) -> Iterator[CacheStore]:
    """Composition-root context manager: builds the configured store and closes it afterwards."""
    store = create_cache_store(settings)
    try:
        yield store
    finally:
        close = getattr(store, "close", None)
        if close is not None:
            close()
