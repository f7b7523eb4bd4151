"""Data models for zettels, queries, edges and build errors."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from .vault.formats import ZettelFormat
    from .vault.graph import ZettelGraph


@dataclass(frozen=True, order=True)
class NoteID:
    """Identifier of a zettel, derived from its file's base name."""

    value: str

    def __str__(self) -> str:
        return self.value


class InvalidTag(ValueError):
    """Tag text is not a well-formed slash-delimited path."""


_TAG_FORBIDDEN = re.compile(r"[\s*?\[\]]")


@dataclass(frozen=True, order=True)
class Tag:
    """Hierarchical tag such as ``project/x/y``."""

    path: str

    @classmethod
    def parse(cls, text: str) -> "Tag":
        path = text.strip().lstrip("#")
        if not path:
            raise InvalidTag("empty tag")
        if _TAG_FORBIDDEN.search(path):
            raise InvalidTag(f"tag {path!r} contains whitespace or glob characters")
        if any(part == "" for part in path.split("/")):
            raise InvalidTag(f"tag {path!r} has an empty component")
        return cls(path)

    @property
    def components(self) -> tuple[str, ...]:
        return tuple(self.path.split("/"))

    def is_under(self, prefix: "Tag") -> bool:
        """True if this tag equals ``prefix`` or is nested below it."""
        return self.path == prefix.path or self.path.startswith(prefix.path + "/")

    def __str__(self) -> str:
        return self.path


class ConnectionKind(str, Enum):
    """How a resolved link is interpreted downstream."""

    ORDINARY = "ordinary"
    HIERARCHICAL = "hierarchical"  # folgezettel: parent -> child


class TagCombinator(str, Enum):
    AND = "all"
    OR = "any"


@dataclass(frozen=True)
class ByID:
    """Link to one zettel by identifier."""

    target: NoteID
    connection: ConnectionKind = ConnectionKind.ORDINARY
    source: str = ""


@dataclass(frozen=True)
class ByTag:
    """All zettels whose tags satisfy ``combinator`` over ``patterns``.

    An empty pattern tuple selects every zettel.
    """

    patterns: tuple[str, ...]
    combinator: TagCombinator = TagCombinator.OR
    connection: ConnectionKind = ConnectionKind.ORDINARY
    source: str = ""


@dataclass(frozen=True)
class ByTagPrefix:
    """All zettels tagged with ``pattern`` or anything nested under it."""

    pattern: str
    connection: ConnectionKind = ConnectionKind.ORDINARY
    source: str = ""


QueryDescriptor = Union[ByID, ByTag, ByTagPrefix]


@dataclass(frozen=True, order=True)
class Edge:
    source: NoteID
    target: NoteID
    kind: ConnectionKind


@dataclass(frozen=True)
class RawNote:
    """A note file's text, before parsing."""

    zid: NoteID
    path: str
    text: str
    format: "ZettelFormat"


@dataclass(frozen=True)
class StructuredNote:
    """A successfully parsed zettel."""

    zid: NoteID
    path: str
    format: "ZettelFormat"
    title: str
    body: Any  # opaque document passed through to rendering
    tags: tuple[Tag, ...] = ()
    queries: tuple[QueryDescriptor, ...] = ()
    metadata: dict = field(default_factory=dict, compare=False, hash=False)
    date: str | None = None

    def has_tag_under(self, prefix: Tag) -> bool:
        return any(tag.is_under(prefix) for tag in self.tags)


@dataclass(frozen=True)
class ParseFailure:
    """The note's content could not be turned into a StructuredNote."""

    message: str

    def messages(self) -> list[str]:
        return [self.message]


@dataclass(frozen=True)
class QueryFailures:
    """One message per unresolved query, in document order."""

    failures: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.failures:
            raise ValueError("QueryFailures requires at least one failure")

    def messages(self) -> list[str]:
        return list(self.failures)


@dataclass(frozen=True)
class DuplicateIdentifier:
    """Several files derive the same NoteID; none of them is parsed."""

    paths: tuple[str, ...]

    def messages(self) -> list[str]:
        return ["Multiple zettels have the same ID: " + ", ".join(self.paths)]


NoteError = Union[ParseFailure, QueryFailures, DuplicateIdentifier]


@dataclass(frozen=True)
class BuildResult:
    """Output of one build: the graph and the per-note error map."""

    graph: "ZettelGraph"
    errors: dict[NoteID, NoteError] = field(default_factory=dict)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "graph": self.graph.to_dict(),
            "errors": {
                str(zid): {
                    "kind": _error_kind(err),
                    "messages": err.messages(),
                }
                for zid, err in sorted(self.errors.items())
            },
        }


def _error_kind(err: NoteError) -> str:
    if isinstance(err, DuplicateIdentifier):
        return "duplicate-identifier"
    if isinstance(err, ParseFailure):
        return "parse-failure"
    return "query-failures"
