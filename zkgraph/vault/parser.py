"""Markdown and Org readers, and extraction of query links from note text."""

from __future__ import annotations

import logging
import re
from typing import Iterable
from urllib.parse import parse_qsl, urlsplit

import frontmatter
import yaml

from ..models import (
    ByID,
    ByTag,
    ByTagPrefix,
    ConnectionKind,
    InvalidTag,
    NoteID,
    QueryDescriptor,
    StructuredNote,
    Tag,
    TagCombinator,
)
from .formats import ZettelFormat

logger = logging.getLogger(__name__)


class ZettelParseError(Exception):
    """A note's content cannot be converted to a StructuredNote."""


# [[[target]]] (folgezettel) or [[target]]; target may carry |display or #section
LINK_PATTERN = re.compile(r"\[\[\[([^\[\]\n]+)\]\]\]|\[\[([^\[\]\n]+)\]\]")
# Org described links: [[target][description]]
ORG_DESCRIBED_LINK_PATTERN = re.compile(r"\[\[([^\[\]\n]+)\]\[[^\[\]\n]*\]\]")

MARKDOWN_FENCE = re.compile(r"^(```|~~~).*?^\1[^\n]*$", re.MULTILINE | re.DOTALL)
ORG_SRC_BLOCK = re.compile(
    r"^\s*#\+begin_(\w+).*?^\s*#\+end_\1[^\n]*$",
    re.MULTILINE | re.DOTALL | re.IGNORECASE,
)
MARKDOWN_HEADING = re.compile(r"^#[ \t]+(.+?)\s*#*\s*$", re.MULTILINE)
ORG_HEADING = re.compile(r"^\*+[ \t]+(.+?)\s*$", re.MULTILINE)
ORG_KEYWORD = re.compile(r"^#\+(\w+):[ \t]*(.*?)[ \t]*$", re.MULTILINE)
# External link targets such as https://..., file:img.png, mailto:...
URI_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")


def parse_query_link(target: str, connection: ConnectionKind) -> QueryDescriptor | None:
    """Turn the text between link brackets into a query descriptor.

    Returns None for external links (any other URI scheme) and for ``z:``
    URIs that are not understood.
    """
    raw = target.strip()
    source = f"[[[{raw}]]]" if connection is ConnectionKind.HIERARCHICAL else f"[[{raw}]]"

    if not raw.startswith("z:"):
        if URI_SCHEME.match(raw):
            return None
        zid = raw.split("|", 1)[0].split("#", 1)[0].strip()
        if not zid:
            return None
        return ByID(NoteID(zid), connection=connection, source=source)

    uri = urlsplit(raw)
    path = uri.path.strip("/")
    if path.startswith("zettel/"):
        return ByID(NoteID(path[len("zettel/"):]), connection=connection, source=source)

    if path != "zettels":
        logger.warning("Ignoring unsupported query link %s", source)
        return None

    params = parse_qsl(uri.query, keep_blank_values=True)
    tags = tuple(value for key, value in params if key == "tag")
    prefixes = [value for key, value in params if key == "prefix"]
    match = dict(params).get("match", TagCombinator.OR.value)

    if prefixes:
        if tags or len(prefixes) > 1:
            logger.warning("Query %s mixes prefix with other filters; using prefix=%s", source, prefixes[0])
        return ByTagPrefix(prefixes[0], connection=connection, source=source)

    try:
        combinator = TagCombinator(match)
    except ValueError:
        logger.warning("Unknown match=%r in %s; matching any tag", match, source)
        combinator = TagCombinator.OR
    return ByTag(tags, combinator, connection=connection, source=source)


def extract_queries(text: str, *, org: bool = False) -> list[QueryDescriptor]:
    """Extract query descriptors from note text in document order."""
    matches: list[tuple[int, str, ConnectionKind]] = []
    for m in LINK_PATTERN.finditer(text):
        if m.group(1) is not None:
            matches.append((m.start(), m.group(1), ConnectionKind.HIERARCHICAL))
        else:
            matches.append((m.start(), m.group(2), ConnectionKind.ORDINARY))
    if org:
        for m in ORG_DESCRIBED_LINK_PATTERN.finditer(text):
            matches.append((m.start(), m.group(1), ConnectionKind.ORDINARY))
    matches.sort(key=lambda item: item[0])

    queries = []
    for _, target, connection in matches:
        query = parse_query_link(target, connection)
        if query is not None:
            queries.append(query)
    return queries


def _parse_tags(values: Iterable[object]) -> tuple[Tag, ...]:
    tags: list[Tag] = []
    for value in values:
        if not isinstance(value, str):
            raise ZettelParseError(f"Tags must be strings, got {value!r}")
        try:
            tag = Tag.parse(value)
        except InvalidTag as e:
            raise ZettelParseError(f"Invalid tag: {e}") from e
        if tag not in tags:
            tags.append(tag)
    return tuple(tags)


class MarkdownReader:
    """Markdown with optional YAML front matter (title, tags, date)."""

    format = ZettelFormat.MARKDOWN

    def parse(self, zid: NoteID, path: str, text: str) -> StructuredNote:
        try:
            metadata, content = frontmatter.parse(text)
        except (yaml.YAMLError, ValueError) as e:
            # SafeLoader raises ValueError for timestamps like 2021-13-45
            raise ZettelParseError(f"Invalid YAML front matter:\n{e}") from e

        raw_tags = metadata.get("tags") or []
        if isinstance(raw_tags, str):
            raw_tags = [raw_tags]
        if not isinstance(raw_tags, list):
            raise ZettelParseError(f"'tags' must be a list, got {type(raw_tags).__name__}")

        prose = MARKDOWN_FENCE.sub("", content)
        title = metadata.get("title")
        if not title:
            m = MARKDOWN_HEADING.search(prose)
            title = m.group(1) if m else str(zid)

        date = metadata.get("date")
        return StructuredNote(
            zid=zid,
            path=path,
            format=self.format,
            title=str(title),
            body=content,
            tags=_parse_tags(raw_tags),
            queries=tuple(extract_queries(prose)),
            metadata=dict(metadata),
            date=str(date) if date is not None else None,
        )


class OrgReader:
    """Org-mode files using #+TITLE, #+DATE, #+FILETAGS and #+TAGS keywords."""

    format = ZettelFormat.ORG

    def parse(self, zid: NoteID, path: str, text: str) -> StructuredNote:
        outside_blocks = ORG_SRC_BLOCK.sub("", text)
        keywords: dict[str, str] = {}
        raw_tags: list[str] = []
        for m in ORG_KEYWORD.finditer(outside_blocks):
            key, value = m.group(1).upper(), m.group(2)
            if key == "FILETAGS":
                if value and not (value.startswith(":") and value.endswith(":")):
                    raise ZettelParseError(f"Malformed #+FILETAGS line: {value}")
                raw_tags.extend(part for part in value.split(":") if part)
            elif key == "TAGS":
                raw_tags.extend(value.split())
            else:
                keywords.setdefault(key, value)

        body = ORG_KEYWORD.sub("", text).lstrip("\n")
        title = keywords.get("TITLE")
        if not title:
            m = ORG_HEADING.search(outside_blocks)
            title = m.group(1) if m else str(zid)

        return StructuredNote(
            zid=zid,
            path=path,
            format=self.format,
            title=title,
            body=body,
            tags=_parse_tags(raw_tags),
            queries=tuple(extract_queries(outside_blocks, org=True)),
            metadata={k.lower(): v for k, v in keywords.items()},
            date=keywords.get("DATE") or None,
        )
