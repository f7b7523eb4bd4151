"""Two-phase zettelkasten build: parse every note, then resolve queries."""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterable, Mapping, Sequence

from ..errors import NoteUnreadable
from ..models import (
    BuildResult,
    Edge,
    NoteID,
    ParseFailure,
    QueryFailures,
    StructuredNote,
)
from .adapter import READERS, ZettelReader, parse_raw_note, read_raw_note
from .errors import aggregate_errors
from .formats import DEFAULT_RULES, FormatRule, ZettelFormat, discover_files
from .graph import ZettelGraph
from .identity import group_by_identity
from .query import CorpusIndex, QueryResolver

if TYPE_CHECKING:
    from ..config import Config

logger = logging.getLogger(__name__)


def build_zettelkasten(
    paths: Iterable[str],
    read_text: Callable[[str], str],
    rules: Sequence[FormatRule] = DEFAULT_RULES,
    readers: Mapping[ZettelFormat, ZettelReader] = READERS,
    workers: int | None = None,
) -> BuildResult:
    """Build the zettel graph and error map from a set of note files.

    Args:
        paths: Note file paths, relative to the notes directory
        read_text: Returns the text of a path; I/O errors abort the build
        rules: Ordered (glob, format) rules; the first match wins
        readers: Reader for each format
        workers: Thread pool size (defaults to the CPU count)

    Returns:
        BuildResult with the graph and per-note errors
    """
    groups = group_by_identity(paths)
    if groups.duplicates:
        logger.info("Skipping %d duplicated IDs", len(groups.duplicates))

    def parse_one(path: str) -> StructuredNote | ParseFailure:
        raw = read_raw_note(path, rules, read_text)
        if isinstance(raw, ParseFailure):
            return raw
        return parse_raw_note(raw, readers)

    with ThreadPoolExecutor(max_workers=workers or os.cpu_count() or 1) as pool:
        # Parse phase
        unique = list(groups.unique.items())
        outcomes = list(pool.map(parse_one, [path for _, path in unique]))

        notes: list[StructuredNote] = []
        parse_failures: dict[NoteID, ParseFailure] = {}
        for (zid, _), outcome in zip(unique, outcomes):
            if isinstance(outcome, ParseFailure):
                parse_failures[zid] = outcome
            else:
                notes.append(outcome)
        logger.debug("Parsed %d notes, %d parse failures", len(notes), len(parse_failures))

        # Barrier: queries may reference any note, so the index is only
        # built once every parse has finished.
        resolver = QueryResolver(CorpusIndex.build(notes))
        resolutions = list(pool.map(resolver.resolve, notes))

    edges: set[Edge] = set()
    query_failures: dict[NoteID, QueryFailures] = {}
    for resolution in resolutions:
        edges |= resolution.edges
        if resolution.failures:
            query_failures[resolution.zid] = QueryFailures(resolution.failures)

    graph = ZettelGraph.assemble(notes, edges)
    errors = aggregate_errors(groups.duplicates, parse_failures, query_failures)
    logger.info("Built graph: %d notes, %d edges, %d errors", len(graph), len(graph.edges), len(errors))
    return BuildResult(graph=graph, errors=errors)


def read_note_text(root: Path) -> Callable[[str], str]:
    """Reader for paths relative to ``root``; undecodable bytes are replaced.

    A file that vanished or cannot be opened raises ``NoteUnreadable``.
    """

    def read(rel_path: str) -> str:
        try:
            data = (root / rel_path).read_bytes()
        except OSError as e:
            raise NoteUnreadable(f"Cannot read {rel_path}: {e.strerror or e}") from e
        return data.decode("utf-8", errors="replace")

    return read


def load_zettelkasten(root: Path, config: "Config") -> BuildResult:
    """Discover, read and build every note below ``root``."""
    files = discover_files(root, config.formats)
    return build_zettelkasten(
        files,
        read_note_text(root),
        rules=config.formats,
        workers=config.workers,
    )
