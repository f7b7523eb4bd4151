"""Resolution of link and tag queries against the whole corpus."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Iterable, Mapping

from ..models import (
    ByID,
    ByTag,
    ByTagPrefix,
    Edge,
    InvalidTag,
    NoteID,
    QueryDescriptor,
    StructuredNote,
    Tag,
    TagCombinator,
)

logger = logging.getLogger(__name__)


class InvalidTagPattern(ValueError):
    """Tag pattern syntax is malformed."""


class QueryError(Exception):
    """A single query could not be resolved."""


@dataclass(frozen=True)
class TagPattern:
    """Glob over tag paths.

    ``*`` and ``?`` match within one component; a ``**`` component matches
    any number of components, including none (``a/**`` matches ``a``,
    ``a/b`` and ``a/b/c``).
    """

    text: str
    regex: re.Pattern[str] = field(compare=False)

    @classmethod
    def compile(cls, text: str) -> "TagPattern":
        return _compile_tag_pattern(text)

    def matches(self, tag: Tag) -> bool:
        return self.regex.match("/" + tag.path) is not None


@lru_cache(maxsize=512)
def _compile_tag_pattern(text: str) -> TagPattern:
    if not text:
        raise InvalidTagPattern("empty pattern")
    if re.search(r"\s", text):
        raise InvalidTagPattern("whitespace is not allowed")

    parts = []
    for component in text.split("/"):
        if component == "":
            raise InvalidTagPattern("empty path component")
        if component == "**":
            parts.append("(?:/[^/]+)*")
            continue
        if "**" in component:
            raise InvalidTagPattern("'**' must be a whole path component")
        piece = re.escape(component).replace(r"\*", "[^/]*").replace(r"\?", "[^/]")
        parts.append("/" + piece)
    return TagPattern(text, re.compile("".join(parts) + r"\Z"))


class CorpusIndex:
    """Read-only view of every successfully parsed note.

    Built once the parse phase has finished; never mutated afterwards, so
    resolvers on several threads can share it.
    """

    def __init__(self, notes: Mapping[NoteID, StructuredNote]):
        self.by_id: Mapping[NoteID, StructuredNote] = MappingProxyType(dict(sorted(notes.items())))
        self.notes: tuple[StructuredNote, ...] = tuple(self.by_id.values())

    @classmethod
    def build(cls, notes: Iterable[StructuredNote]) -> "CorpusIndex":
        return cls({note.zid: note for note in notes})

    def __contains__(self, zid: object) -> bool:
        return zid in self.by_id

    def __len__(self) -> int:
        return len(self.notes)


@dataclass(frozen=True)
class NoteResolution:
    """Outcome of resolving every query of one note."""

    zid: NoteID
    edges: frozenset[Edge] = frozenset()
    failures: tuple[str, ...] = ()


class QueryResolver:
    """Resolves query descriptors to target NoteIDs."""

    def __init__(self, index: CorpusIndex):
        self.index = index

    def resolve(self, note: StructuredNote) -> NoteResolution:
        """Resolve all of a note's queries independently of one another."""
        edges: set[Edge] = set()
        failures: list[str] = []
        for query in note.queries:
            try:
                targets = self.resolve_query(note.zid, query)
            except QueryError as e:
                failures.append(str(e))
                continue
            edges.update(Edge(note.zid, target, query.connection) for target in targets)

        if failures:
            logger.debug("%s: %d unresolved queries", note.zid, len(failures))
        return NoteResolution(note.zid, frozenset(edges), tuple(failures))

    def resolve_query(self, owner: NoteID, query: QueryDescriptor) -> list[NoteID]:
        if isinstance(query, ByID):
            if query.target not in self.index:
                raise QueryError(f"Zettel '{query.target}' does not exist (in link {query.source})")
            return [query.target]

        if isinstance(query, ByTag):
            try:
                patterns = [TagPattern.compile(p) for p in query.patterns]
            except InvalidTagPattern as e:
                raise QueryError(f"Invalid tag pattern in {query.source}: {e}") from e
            return [
                note.zid
                for note in self.index.notes
                if note.zid != owner and _tags_match(note, patterns, query.combinator)
            ]

        if isinstance(query, ByTagPrefix):
            try:
                prefix = Tag.parse(query.pattern)
            except InvalidTag as e:
                raise QueryError(f"Invalid tag prefix in {query.source}: {e}") from e
            return [
                note.zid
                for note in self.index.notes
                if note.zid != owner and note.has_tag_under(prefix)
            ]

        raise TypeError(f"Unknown query descriptor: {query!r}")


def _tags_match(note: StructuredNote, patterns: list[TagPattern], combinator: TagCombinator) -> bool:
    if not patterns:
        return True
    hits = (any(p.matches(tag) for tag in note.tags) for p in patterns)
    if combinator is TagCombinator.AND:
        return all(hits)
    return any(hits)
