"""Console logging helpers using Rich."""

from __future__ import annotations

from datetime import datetime

from rich.console import Console
from rich.table import Table

console = Console(stderr=True)


def log(message: str, *, style: str = "bold") -> None:
    """Log a timestamped message."""
    ts = datetime.now().strftime("%H:%M:%S")
    console.print(f"[dim]\\[{ts}][/dim] {message}", style=style, highlight=False)


def log_step(step: str, message: str) -> None:
    """Log a message tagged with the component that produced it."""
    ts = datetime.now().strftime("%H:%M:%S")
    console.print(
        f"[dim]\\[{ts}][/dim] [bold cyan]{step}[/bold cyan] {message}",
        highlight=False,
    )


def log_success(message: str) -> None:
    log(f"[green]✓[/green] {message}", style="")


def log_warning(message: str) -> None:
    log(f"[yellow]⚠[/yellow] {message}", style="")


def log_error(message: str) -> None:
    log(f"[red]✗[/red] {message}", style="")


def key_value_table(title: str, rows: dict) -> Table:
    """Build a two-column table for status output."""
    table = Table(title=title, show_header=False, show_lines=True)
    table.add_column(style="bold")
    table.add_column()
    for key, value in rows.items():
        table.add_row(key, str(value))
    return table
