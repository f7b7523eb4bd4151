"""Zettel graph construction and traversal."""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable

from ..models import ConnectionKind, Edge, NoteID, StructuredNote


@dataclass
class ZettelGraph:
    """Directed graph of zettels with typed edges and backlink lookup."""

    nodes: dict[NoteID, StructuredNote] = field(default_factory=dict)
    edges: set[Edge] = field(default_factory=set)
    out_edges: dict[NoteID, set[Edge]] = field(
        default_factory=lambda: defaultdict(set)
    )  # source -> edges
    in_edges: dict[NoteID, set[Edge]] = field(
        default_factory=lambda: defaultdict(set)
    )  # target -> edges

    @classmethod
    def assemble(
        cls, notes: Iterable[StructuredNote], edges: Iterable[Edge]
    ) -> "ZettelGraph":
        """Union notes and resolved edges; identical edges collapse to one.

        Edges are only ever produced for resolved targets, so no dangling
        edge check is done here.
        """
        graph = cls()
        for note in sorted(notes, key=lambda n: n.zid):
            graph.nodes[note.zid] = note

        for edge in sorted(set(edges)):
            graph.edges.add(edge)
            graph.out_edges[edge.source].add(edge)
            graph.in_edges[edge.target].add(edge)

        return graph

    def __contains__(self, zid: object) -> bool:
        return zid in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def get(self, zid: NoteID) -> StructuredNote | None:
        return self.nodes.get(zid)

    def note_ids(self) -> list[NoteID]:
        return sorted(self.nodes)

    def outbound(self, zid: NoteID, kind: ConnectionKind | None = None) -> list[Edge]:
        """Edges leaving ``zid``, optionally restricted to one kind."""
        return sorted(e for e in self.out_edges.get(zid, ()) if kind is None or e.kind is kind)

    def backlinks(self, zid: NoteID, kind: ConnectionKind | None = None) -> list[Edge]:
        """Edges pointing at ``zid``."""
        return sorted(e for e in self.in_edges.get(zid, ()) if kind is None or e.kind is kind)

    def children(self, zid: NoteID) -> list[NoteID]:
        return [e.target for e in self.outbound(zid, ConnectionKind.HIERARCHICAL)]

    def parents(self, zid: NoteID) -> list[NoteID]:
        return [e.source for e in self.backlinks(zid, ConnectionKind.HIERARCHICAL)]

    def roots(self) -> list[NoteID]:
        """Notes without a hierarchical parent, in NoteID order."""
        return [
            zid for zid in self.note_ids()
            if not any(e.source != zid for e in self.backlinks(zid, ConnectionKind.HIERARCHICAL))
        ]

    def descendants(self, start: NoteID) -> set[NoteID]:
        """Every note reachable from ``start`` over hierarchical edges.

        Includes ``start`` itself.
        """
        visited = set()
        stack = [start]

        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)

            for child in self.children(current):
                if child not in visited:
                    stack.append(child)

        return visited

    def find_cycles(self) -> list[list[NoteID]]:
        """Find hierarchical cycles using Tarjan's strongly connected components.

        Iterative, so arbitrarily deep folgezettel chains are fine. Only
        returns SCCs with more than one node, each sorted, in order of their
        smallest member.
        """
        index: dict[NoteID, int] = {}
        lowlink: dict[NoteID, int] = {}
        on_stack: set[NoteID] = set()
        scc_stack: list[NoteID] = []
        sccs: list[list[NoteID]] = []

        for start in self.note_ids():
            if start in index:
                continue
            # Each frame is (node, iterator over its remaining children)
            work = [(start, iter(self.children(start)))]
            index[start] = lowlink[start] = len(index)
            scc_stack.append(start)
            on_stack.add(start)

            while work:
                node, pending = work[-1]
                child = next(pending, None)
                if child is not None:
                    if child not in index:
                        index[child] = lowlink[child] = len(index)
                        scc_stack.append(child)
                        on_stack.add(child)
                        work.append((child, iter(self.children(child))))
                    elif child in on_stack:
                        lowlink[node] = min(lowlink[node], index[child])
                    continue

                work.pop()
                if work:
                    parent = work[-1][0]
                    lowlink[parent] = min(lowlink[parent], lowlink[node])

                if lowlink[node] == index[node]:
                    scc = []
                    while True:
                        member = scc_stack.pop()
                        on_stack.discard(member)
                        scc.append(member)
                        if member == node:
                            break
                    if len(scc) > 1:
                        sccs.append(sorted(scc))

        return sorted(sccs)

    def to_dict(self) -> dict:
        """Deterministic JSON-ready view of the graph."""
        return {
            "nodes": [
                {
                    "id": str(note.zid),
                    "path": note.path,
                    "format": note.format.value,
                    "title": note.title,
                    "tags": [str(tag) for tag in note.tags],
                    "date": note.date,
                }
                for note in (self.nodes[zid] for zid in self.note_ids())
            ],
            "edges": [
                {"source": str(e.source), "target": str(e.target), "kind": e.kind.value}
                for e in sorted(self.edges)
            ],
        }
