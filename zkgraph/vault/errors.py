"""Per-note error aggregation and terminal error reports."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Callable, Iterator, Mapping

from ..models import NoteError, NoteID, ParseFailure, QueryFailures


def aggregate_errors(
    duplicates: Mapping[NoteID, NoteError],
    parse_failures: Mapping[NoteID, ParseFailure],
    query_failures: Mapping[NoteID, QueryFailures],
) -> dict[NoteID, NoteError]:
    """Merge all error channels into one map ordered by NoteID.

    Duplicate errors win over parse failures, which win over query
    failures; a lower-precedence error for an already-claimed key is dropped.
    """
    merged: dict[NoteID, NoteError] = {}
    for channel in (duplicates, parse_failures, query_failures):
        for zid, err in channel.items():
            merged.setdefault(zid, err)
    return dict(sorted(merged.items()))


def route_file(output_dir: str, zid: NoteID) -> str:
    """Output path of the rendered page for ``zid``."""
    return str(PurePosixPath(output_dir) / f"{zid}.html")


def indent_all_but_first_line(text: str, n: int) -> str:
    lines = text.splitlines()
    if len(lines) <= 1:
        return text
    pad = " " * n
    return "\n".join([lines[0]] + [pad + line for line in lines[1:]])


def iter_error_report(
    errors: Mapping[NoteID, NoteError],
    route: Callable[[NoteID], str],
) -> Iterator[str]:
    """Yield report lines: ``E <route>`` then one bullet per message."""
    for zid in sorted(errors):
        yield f"E {route(zid)}"
        for message in errors[zid].messages():
            yield "  - " + indent_all_but_first_line(message, 4)


def format_error_report(
    errors: Mapping[NoteID, NoteError],
    route: Callable[[NoteID], str],
) -> str:
    return "".join(line + "\n" for line in iter_error_report(errors, route))
