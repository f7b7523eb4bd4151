"""Build command implementation."""

import json
from pathlib import Path

from rich.console import Console

from ..config import Config, load_config
from ..models import BuildResult, NoteID
from ..vault.builder import load_zettelkasten
from ..vault.errors import iter_error_report, route_file


def load_build(notes_path: Path) -> tuple[Config, BuildResult]:
    """Load config and run one full build of the notes directory."""
    config = load_config(notes_path)
    return config, load_zettelkasten(notes_path, config)


def print_error_report(console: Console, config: Config, result: BuildResult) -> None:
    """Print one ``E <page>`` block per erroring note, in NoteID order."""

    def route(zid: NoteID) -> str:
        return route_file(config.output_dir, zid)

    for line in iter_error_report(result.errors, route):
        console.print(line, markup=False, highlight=False, emoji=False, soft_wrap=True)


def print_summary(console: Console, result: BuildResult) -> None:
    graph = result.graph
    console.print(
        f"Built {len(graph)} zettels with {len(graph.edges)} links",
        style="dim",
    )
    for cycle in graph.find_cycles():
        console.print(
            f"[yellow]Folgezettel cycle:[/] {' → '.join(str(z) for z in cycle)}",
            highlight=False,
        )
    if result.errors:
        console.print(f"{len(result.errors)} zettels have errors", style="bold red")
    else:
        console.print("✓ No errors", style="green")


def run_build(
    notes_path: Path,
    output_json: bool = False,
    out: Path | None = None,
) -> int:
    """Build the zettel graph and report errors.

    Args:
        notes_path: Path to the notes directory
        output_json: Print graph and errors as JSON instead of the report
        out: Write the JSON payload to this file

    Returns:
        Exit code (0 = no errors, 1 = at least one zettel has errors)
    """
    console = Console(stderr=True)
    stdout = Console()

    console.print(f"Loading zettels from {notes_path}...", style="dim")
    config, result = load_build(notes_path)

    if output_json or out is not None:
        payload = json.dumps(result.to_dict(), indent=2, ensure_ascii=False)
        if out is not None:
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_text(payload + "\n", encoding="utf-8")
            console.print(f"Wrote {out}", style="dim")
        else:
            stdout.print(payload, markup=False, highlight=False, emoji=False, soft_wrap=True)

    if not output_json:
        print_error_report(stdout, config, result)

    print_summary(console, result)
    return 1 if result.has_errors else 0
