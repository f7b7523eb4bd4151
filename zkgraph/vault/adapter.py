"""Route raw note text to the reader for its format.

Readers raise ``ZettelParseError``; this module normalizes every outcome to
``StructuredNote | ParseFailure`` so the rest of the build never handles
reader exceptions.
"""

from __future__ import annotations

from typing import Callable, Mapping, Protocol, Sequence

from ..models import NoteID, ParseFailure, RawNote, StructuredNote
from .formats import FormatRule, ZettelFormat, dispatch_format
from .identity import InvalidNoteID, note_id_for_path, parse_note_id
from .parser import MarkdownReader, OrgReader, ZettelParseError


class ZettelReader(Protocol):
    def parse(self, zid: NoteID, path: str, text: str) -> StructuredNote: ...


READERS: Mapping[ZettelFormat, ZettelReader] = {
    ZettelFormat.MARKDOWN: MarkdownReader(),
    ZettelFormat.ORG: OrgReader(),
}


def read_raw_note(
    path: str,
    rules: Sequence[FormatRule],
    read_text: Callable[[str], str],
) -> RawNote | ParseFailure:
    """Identify, dispatch and read one note file.

    I/O errors from ``read_text`` are not caught.
    """
    try:
        zid = parse_note_id(note_id_for_path(path).value)
    except InvalidNoteID as e:
        return ParseFailure(str(e))

    fmt = dispatch_format(rules, path)
    if fmt is None:
        return ParseFailure(f"Unsupported extension: {path}")

    return RawNote(zid=zid, path=path, text=read_text(path), format=fmt)


def parse_raw_note(
    raw: RawNote,
    readers: Mapping[ZettelFormat, ZettelReader] = READERS,
) -> StructuredNote | ParseFailure:
    reader = readers.get(raw.format)
    if reader is None:
        return ParseFailure(f"No reader for format: {raw.format.value}")
    try:
        return reader.parse(raw.zid, raw.path, raw.text)
    except ZettelParseError as e:
        return ParseFailure(str(e))
