import logging
from pathlib import Path
from typing import Annotated

import typer

from velocity_cache.cli._logging import configure_logging
from velocity_cache.cli._output import console, print_error, print_removed, print_stats, print_value
from velocity_cache.cli.factory import SettingsLoaded, SettingsRejected, build_store, load_settings
from velocity_cache.config import CacheSettings

logger = logging.getLogger(__name__)

app = typer.Typer(name="velocache", help="Velocity cache maintenance CLI")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable DEBUG logging")] = False,
) -> None:
    """Velocity cache maintenance CLI."""
    configure_logging(verbose=verbose)
    if ctx.invoked_subcommand is None:
        raise typer.Exit()


_ConfigOpt = Annotated[Path | None, typer.Option("--config", help="Path to a velocity.yaml config file")]
_BackendOpt = Annotated[str | None, typer.Option("--backend", help="Cache backend: file or sqlite")]
_NamespaceArg = Annotated[str, typer.Argument(help="Cache namespace, e.g. users, api, pages")]
_KeyArg = Annotated[str, typer.Argument(help="Cache key within the namespace")]


def _settings(config: Path | None, backend: str | None) -> CacheSettings:
    match load_settings(config, backend):
        case SettingsLoaded(settings, source):
            logger.debug("Using %s cache settings from %s", settings.backend, source)
            return settings
        case SettingsRejected(e):
            print_error(e.message)
            raise typer.Exit(code=1)


@app.command()
def stats(config: _ConfigOpt = None, backend: _BackendOpt = None) -> None:
    """Show entry counts and sizes per namespace."""
    with build_store(_settings(config, backend)) as store:
        print_stats(store.stats())


@app.command()
def sweep(config: _ConfigOpt = None, backend: _BackendOpt = None) -> None:
    """Remove entries whose TTL has elapsed."""
    with build_store(_settings(config, backend)) as store:
        print_removed(store.sweep_expired(), "expired entries")


@app.command()
def clear(
    namespace: Annotated[str | None, typer.Option("--namespace", "-n", help="Only clear this namespace")] = None,
    config: _ConfigOpt = None,
    backend: _BackendOpt = None,
) -> None:
    """Remove every entry, or every entry of one namespace."""
    with build_store(_settings(config, backend)) as store:
        if namespace is None:
            print_removed(store.clear_all(), "entries")
        else:
            print_removed(store.clear_namespace(namespace), f"entries from '{namespace}'")


@app.command()
def invalidate(
    namespace: _NamespaceArg,
    pattern: Annotated[str, typer.Argument(help="Key pattern, '*' matches any characters")],
    config: _ConfigOpt = None,
    backend: _BackendOpt = None,
) -> None:
    """Remove entries whose key matches a glob pattern."""
    with build_store(_settings(config, backend)) as store:
        print_removed(store.invalidate_pattern(namespace, pattern), f"entries matching '{pattern}'")


@app.command()
def get(namespace: _NamespaceArg, key: _KeyArg, config: _ConfigOpt = None, backend: _BackendOpt = None) -> None:
    """Print a cached value as JSON."""
    with build_store(_settings(config, backend)) as store:
        value = store.get(namespace, key)
    if value is None:
        print_error(f"no live entry for {namespace}/{key}")
        raise typer.Exit(code=1)
    print_value(value)


@app.command()
def delete(namespace: _NamespaceArg, key: _KeyArg, config: _ConfigOpt = None, backend: _BackendOpt = None) -> None:
    """Delete a single cached entry."""
    with build_store(_settings(config, backend)) as store:
        if not store.delete(namespace, key):
            print_error(f"could not delete {namespace}/{key}")
            raise typer.Exit(code=1)
    console.print(f"[bold green]Deleted[/bold green] {namespace}/{key}")
