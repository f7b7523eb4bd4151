"""Watch command - rebuild the whole graph whenever notes change."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from rich.console import Console

from ..config import load_config
from ..errors import ZkGraphError
from ..watcher import run_watch_loop
from .build_cmd import load_build, print_error_report, print_summary


def run_watch(notes_path: Path) -> None:
    """
    Build once, then rebuild after every settled change.

    This is a blocking command that runs until interrupted (Ctrl+C).
    """
    console = Console(stderr=True)
    stdout = Console()

    def rebuild() -> None:
        try:
            config, result = load_build(notes_path)
        except ZkGraphError as e:
            console.print(f"Build failed: {e}", style="bold red", markup=False)
            return
        print_error_report(stdout, config, result)
        print_summary(console, result)

    rebuild()

    config = load_config(notes_path)
    console.print(f"[bold]Watching[/bold] {notes_path}")
    console.print("[dim]Press Ctrl+C to stop watching[/dim]")

    def on_change(changed: list[str]) -> None:
        stamp = datetime.now().strftime("%H:%M:%S")
        console.print(f"[dim]{stamp}[/dim] {len(changed)} file(s) changed, rebuilding")
        rebuild()

    run_watch_loop(notes_path, config.formats, on_change)
