"""Inspect single zettels and the folgezettel hierarchy."""

from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from ..models import Edge, NoteID
from ..vault.graph import ZettelGraph
from .build_cmd import load_build


def _edge_table(title: str, graph: ZettelGraph, edges: list[Edge], *, inbound: bool) -> Table:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Kind", style="dim")
    for edge in edges:
        other = edge.source if inbound else edge.target
        note = graph.get(other)
        table.add_row(str(other), escape(note.title) if note else "", edge.kind.value)
    return table


def run_show(notes_path: Path, zid: str) -> int:
    """Print one zettel's metadata, outbound links and backlinks."""
    console = Console()
    _, result = load_build(notes_path)
    graph = result.graph

    note_id = NoteID(zid)
    note = graph.get(note_id)
    if note is None:
        console.print(f"Zettel not found: {zid}", style="bold red")
        err = result.errors.get(note_id)
        if err is not None:
            for message in err.messages():
                console.print(f"  - {message}", markup=False)
        return 1

    console.print(f"[bold]{escape(note.title)}[/bold] [dim]({note.zid}, {note.path})[/dim]")
    if note.tags:
        console.print("Tags: " + ", ".join(str(t) for t in note.tags), highlight=False)
    if note.date:
        console.print(f"Date: {note.date}", highlight=False)

    outbound = graph.outbound(note_id)
    backlinks = graph.backlinks(note_id)
    if outbound:
        console.print(_edge_table("Links", graph, outbound, inbound=False))
    if backlinks:
        console.print(_edge_table("Backlinks", graph, backlinks, inbound=True))

    err = result.errors.get(note_id)
    if err is not None:
        console.print("Unresolved queries:", style="yellow")
        for message in err.messages():
            console.print(f"  - {message}", markup=False)
    return 0


# Columns reserved for labels; each tree level costs four columns of guides
LABEL_WIDTH = 24


def _add_children(tree: Tree, graph: ZettelGraph, root_id: NoteID, max_depth: int) -> None:
    """Attach the folgezettel subtree below ``root_id``; a repeat on a path is marked as a cycle."""
    stack: list[tuple[Tree, NoteID, frozenset[NoteID]]] = [(tree, root_id, frozenset({root_id}))]
    while stack:
        branch, zid, path = stack.pop()
        children = graph.children(zid)
        if children and len(path) > max_depth:
            branch.add(f"[dim]… {len(graph.descendants(zid)) - 1} more below {zid}[/dim]")
            continue
        added = []
        for child in children:
            note = graph.get(child)
            label = f"{child}  [dim]{escape(note.title) if note else ''}[/dim]"
            if child in path:
                branch.add(label + " [yellow](cycle)[/yellow]")
                continue
            added.append((branch.add(label), child, path | {child}))
        stack.extend(reversed(added))


def run_tree(notes_path: Path, zid: str | None = None) -> int:
    """Print the folgezettel hierarchy from the roots or from one zettel."""
    console = Console()
    _, result = load_build(notes_path)
    graph = result.graph

    if zid is not None:
        start = NoteID(zid)
        if start not in graph:
            console.print(f"Zettel not found: {zid}", style="bold red")
            return 1
        starts = [start]
    else:
        starts = graph.roots()

    max_depth = max(1, (console.width - LABEL_WIDTH) // 4)
    for root_id in starts:
        note = graph.get(root_id)
        tree = Tree(f"[bold]{root_id}[/bold]  [dim]{escape(note.title) if note else ''}[/dim]")
        _add_children(tree, graph, root_id, max_depth)
        console.print(tree)

    for cycle in graph.find_cycles():
        console.print(f"[yellow]Folgezettel cycle:[/] {' → '.join(str(z) for z in cycle)}")
    return 0
