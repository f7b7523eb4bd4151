"""CLI entrypoint for zkgraph."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .errors import ZkGraphError


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(__version__, prog_name="zkgraph")
@click.option(
    "--notes",
    "-n",
    type=click.Path(exists=False, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Path to the notes directory (defaults to the current directory)",
)
@click.option("--verbose", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(ctx: click.Context, notes: Path | None, verbose: bool) -> None:
    """zkgraph - build and query the link graph of a Zettelkasten."""
    ctx.ensure_object(dict)
    _configure_logging(verbose)

    if notes is None:
        notes = Path.cwd()

    if not notes.exists() or not notes.is_dir():
        raise click.BadParameter(f"Directory '{notes}' does not exist.", param_hint="--notes / -n")

    ctx.obj["notes"] = notes.resolve()


@cli.command()
@click.option("--json", "output_json", is_flag=True, help="Print graph and errors as JSON")
@click.option(
    "--out",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write graph and errors as JSON to this file",
)
@click.pass_context
def build(ctx: click.Context, output_json: bool, out: Path | None) -> None:
    """Build the graph and report per-zettel errors.

    Exits with status 1 if any zettel has errors.
    """
    from .commands.build_cmd import run_build

    try:
        exit_code = run_build(ctx.obj["notes"], output_json=output_json, out=out)
    except ZkGraphError as e:
        raise click.ClickException(str(e)) from e
    sys.exit(exit_code)


@cli.command()
@click.argument("zettel_id")
@click.pass_context
def show(ctx: click.Context, zettel_id: str) -> None:
    """Show a zettel's links and backlinks."""
    from .commands.show_cmd import run_show

    try:
        exit_code = run_show(ctx.obj["notes"], zettel_id)
    except ZkGraphError as e:
        raise click.ClickException(str(e)) from e
    sys.exit(exit_code)


@cli.command()
@click.argument("zettel_id", required=False)
@click.pass_context
def tree(ctx: click.Context, zettel_id: str | None) -> None:
    """Show the folgezettel hierarchy, from the roots or from ZETTEL_ID."""
    from .commands.show_cmd import run_tree

    try:
        exit_code = run_tree(ctx.obj["notes"], zettel_id)
    except ZkGraphError as e:
        raise click.ClickException(str(e)) from e
    sys.exit(exit_code)


@cli.command()
@click.pass_context
def watch(ctx: click.Context) -> None:
    """Rebuild whenever a note or the config file changes."""
    from .commands.watch_cmd import run_watch

    try:
        run_watch(ctx.obj["notes"])
    except ZkGraphError as e:
        raise click.ClickException(str(e)) from e


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
