"""RepoLens CLI - repolens command."""

import click

from repolens import __version__
from repolens.cli.analyze import analyze_command
from repolens.cli.repos import delete_command, list_command, show_command
from repolens.core.logging import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="repolens")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """RepoLens - structural analysis of source repositories."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(analyze_command, name="analyze")
cli.add_command(list_command, name="list")
cli.add_command(show_command, name="show")
cli.add_command(delete_command, name="delete")


if __name__ == "__main__":
    cli()
