"""repolens list / show / delete commands."""

from __future__ import annotations

import json
from pathlib import Path

import click
import questionary
from rich.table import Table

from repolens.cli.output import (
    colored_status,
    get_console,
    language_table,
    pluralize,
    repository_table,
    status,
)
from repolens.cli.utils import open_runtime

_db_option = click.option(
    "--db", "db_path", type=click.Path(path_type=Path), help="Database file"
)


@click.command()
@_db_option
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_command(db_path: Path | None, as_json: bool) -> None:
    """List analyzed repositories, newest first."""
    runtime = open_runtime(db_path)
    records = runtime.store.list_repositories()
    if as_json:
        click.echo(json.dumps([r.model_dump() for r in records], default=str))
        return
    if not records:
        status("No repositories analyzed yet", style="warning")
        return
    get_console().print(repository_table(records))


@click.command()
@click.argument("repository_id")
@_db_option
@click.option("--limit", default=50, show_default=True, help="Maximum facts to show")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def show_command(repository_id: str, db_path: Path | None, limit: int, as_json: bool) -> None:
    """Show a repository's analysis results."""
    runtime = open_runtime(db_path)
    repo = runtime.store.get_repository(repository_id)
    if repo is None:
        raise click.ClickException(f"Repository not found: {repository_id}")

    files = runtime.store.list_files(repository_id)
    facts = runtime.store.list_facts(repository_id)
    edges = runtime.store.list_dependencies(repository_id)
    paths = {f.id: f.path for f in files}

    if as_json:
        click.echo(
            json.dumps(
                {
                    "repository": repo.model_dump(),
                    "files": [f.model_dump(exclude={"content"}) for f in files],
                    "facts": [f.model_dump() for f in facts],
                    "dependencies": [e.model_dump() for e in edges],
                },
                default=str,
            )
        )
        return

    console = get_console()
    title = f"[bold]{repo.name}[/bold] [dim]({repo.id})[/dim]"
    console.print(f"{title}  {colored_status(repo.status)}")
    if repo.error_message:
        status(repo.error_message, style="error")
    status(
        f"{pluralize(repo.total_files, 'file')}, {repo.total_size} bytes, "
        f"primary language: {repo.primary_language or '-'}"
    )
    console.print(language_table(repo.get_languages()))

    if facts:
        table = Table(
            box=None, padding=(0, 2), pad_edge=False, title=pluralize(len(facts), "fact")
        )
        table.add_column("file", style="dim")
        table.add_column("name", style="cyan")
        table.add_column("kind")
        table.add_column("lines", justify="right")
        table.add_column("exported")
        for fact in facts[:limit]:
            table.add_row(
                paths.get(fact.file_id, "?"),
                fact.name,
                fact.kind,
                f"{fact.start_line}-{fact.end_line}",
                "yes" if fact.is_exported else "",
            )
        console.print(table)

    external = sorted({e.target_external for e in edges if e.target_external})
    if external:
        status(f"External dependencies: {', '.join(external)}")


@click.command()
@click.argument("repository_id")
@_db_option
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
def delete_command(repository_id: str, db_path: Path | None, yes: bool) -> None:
    """Delete a repository, its records and its workspace."""
    runtime = open_runtime(db_path)
    repo = runtime.store.get_repository(repository_id)
    if repo is None:
        raise click.ClickException(f"Repository not found: {repository_id}")

    if not yes:
        answer = questionary.select(
            f"Delete {repo.name} ({repo.id}) and all its analysis results?",
            choices=[
                questionary.Choice("No, keep it", value=False),
                questionary.Choice("Yes, delete it", value=True),
            ],
        ).ask()
        if not answer:
            status("Cancelled", style="none")
            return

    runtime.store.delete_repository(repository_id)
    runtime.materializer.remove(repository_id)
    status(f"Deleted {repo.name} ({repo.id})", style="success")
