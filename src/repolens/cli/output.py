"""User-facing console output for CLI commands.

Usage::

    from repolens.cli.output import status

    status("Repository analyzed", style="success")  # ✓ Repository analyzed
    status("Analysis failed", style="error")         # ✗ Analysis failed
"""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from repolens.storage.models import RepositoryRecord

# stderr so --json output on stdout stays machine-readable
_console = Console(stderr=True)

_STYLES = {
    "success": "[green]✓[/green] ",
    "error": "[red]✗[/red] ",
    "warning": "[yellow]![/yellow] ",
    "info": "  ",
    "none": "",
}

_STATUS_COLORS = {
    "pending": "dim",
    "processing": "cyan",
    "completed": "green",
    "failed": "red",
}


def get_console() -> Console:
    """Get the shared Rich console instance."""
    return _console


def status(message: str, *, style: str = "info") -> None:
    """Print a styled status message to stderr."""
    _console.print(f"{_STYLES.get(style, '')}{message}", highlight=False)


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    if plural is None:
        plural = singular + "s"
    return f"{count} {singular if count == 1 else plural}"


def colored_status(value: str) -> str:
    color = _STATUS_COLORS.get(value, "white")
    return f"[{color}]{value}[/{color}]"


def repository_table(records: list[RepositoryRecord]) -> Table:
    table = Table(box=None, padding=(0, 2), pad_edge=False)
    table.add_column("id", style="cyan", no_wrap=True)
    table.add_column("name")
    table.add_column("source", style="dim")
    table.add_column("status")
    table.add_column("language")
    table.add_column("files", justify="right")
    for record in records:
        table.add_row(
            record.id,
            record.name,
            record.source_type,
            colored_status(record.status),
            record.primary_language or "-",
            str(record.total_files),
        )
    return table


def language_table(languages: dict[str, int]) -> Table:
    """Language breakdown with proportional bars, largest first."""
    ordered = sorted(languages.items(), key=lambda item: (-item[1], item[0]))
    table = Table(show_header=False, box=None, padding=(0, 1), pad_edge=False)
    table.add_column("language", style="cyan", width=12)
    table.add_column("count", justify="right", width=6)
    table.add_column("bar", width=20)
    if not ordered:
        return table
    top = ordered[0][1]
    for language, count in ordered:
        width = max(1, int(count / top * 20))
        bar = f"[green]{'━' * width}[/green][dim]{'━' * (20 - width)}[/dim]"
        table.add_row(language, str(count), bar)
    return table
