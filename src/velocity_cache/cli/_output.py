import json
from typing import Any

from rich.console import Console
from rich.table import Table

from velocity_cache.cache.stats import CacheStats, format_bytes

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)


def print_error(message: str) -> None:
    err_console.print(f"[red bold]Error:[/red bold] {message}")


def print_stats(stats: CacheStats) -> None:
    """Print per-namespace entry counts and sizes."""
    if not stats.enabled:
        console.print(f"[yellow]Cache disabled[/yellow] ({stats.location or stats.backend})")
        return
    console.print(f"[bold]{stats.backend}[/bold] cache at {stats.location}")
    if not stats.namespaces:
        console.print("No cached entries.")
        return
    table = Table(show_edge=False, pad_edge=False)
    table.add_column("Namespace")
    table.add_column("Entries", justify="right")
    table.add_column("Active", justify="right")
    table.add_column("Expired", justify="right")
    table.add_column("Size", justify="right")
    for name, ns in sorted(stats.namespaces.items()):
        table.add_row(
            name, str(ns.entry_count), str(ns.active_count), str(ns.expired_count), format_bytes(ns.total_bytes)
        )
    table.add_row(
        "[bold]total[/bold]",
        str(stats.total_entries),
        str(stats.active_entries),
        str(stats.expired_entries),
        format_bytes(stats.total_bytes),
    )
    console.print(table)


def print_removed(count: int, what: str) -> None:
    console.print(f"[bold green]Removed[/bold green] {count} {what}")


def print_value(value: Any) -> None:
    console.print_json(json.dumps(value, ensure_ascii=False))
