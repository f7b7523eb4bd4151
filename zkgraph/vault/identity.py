"""Zettel identity: deriving NoteIDs from file names and finding duplicates."""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Iterable

from ..models import DuplicateIdentifier, NoteID

# Word characters plus - _ . and inner spaces, e.g. "2021-01-01", "My note"
NOTE_ID_PATTERN = re.compile(r"^[\w\-][\w\-. ]*(?<! )\Z")


class InvalidNoteID(ValueError):
    """Text is not a valid zettel identifier."""


def note_id_for_path(path: str) -> NoteID:
    """Base name of ``path`` without directory or final extension."""
    name = PurePosixPath(path.replace("\\", "/")).name
    stem, dot, _ = name.rpartition(".")
    return NoteID(stem if dot and stem else name)


def parse_note_id(text: str) -> NoteID:
    """Validate ``text`` as a zettel identifier."""
    if not NOTE_ID_PATTERN.match(text):
        raise InvalidNoteID(f"Invalid zettel ID: {text!r}")
    return NoteID(text)


@dataclass
class IdentityGroups:
    """Discovered files partitioned by derived NoteID."""

    unique: dict[NoteID, str] = field(default_factory=dict)  # zid -> path
    duplicates: dict[NoteID, DuplicateIdentifier] = field(default_factory=dict)


def group_by_identity(paths: Iterable[str]) -> IdentityGroups:
    """Group files by NoteID; any ID claimed by more than one file is a duplicate.

    The result does not depend on the order of ``paths``.
    """
    by_id: dict[NoteID, list[str]] = defaultdict(list)
    for path in sorted(set(paths)):
        by_id[note_id_for_path(path)].append(path)

    groups = IdentityGroups()
    for zid in sorted(by_id):
        files = by_id[zid]
        if len(files) == 1:
            groups.unique[zid] = files[0]
        else:
            groups.duplicates[zid] = DuplicateIdentifier(tuple(files))
    return groups
