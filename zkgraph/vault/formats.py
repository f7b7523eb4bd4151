"""Zettel formats, glob rules and file discovery."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Sequence

from ..errors import CorpusNotFound

logger = logging.getLogger(__name__)


class UnknownFormat(ValueError):
    """A format tag that no reader is registered for."""


class ZettelFormat(str, Enum):
    MARKDOWN = "markdown"
    ORG = "org"

    @classmethod
    def from_tag(cls, tag: str) -> "ZettelFormat":
        """Map a configuration format tag (``md``, ``markdown``, ``org``)."""
        aliases = {"md": cls.MARKDOWN, "markdown": cls.MARKDOWN, "org": cls.ORG}
        try:
            return aliases[tag.strip().lower()]
        except KeyError:
            raise UnknownFormat(f"Unrecognized format: {tag}") from None


@dataclass(frozen=True)
class FormatRule:
    pattern: str
    format: ZettelFormat


DEFAULT_RULES: tuple[FormatRule, ...] = (
    FormatRule("**/*.md", ZettelFormat.MARKDOWN),
    FormatRule("**/*.org", ZettelFormat.ORG),
)


@lru_cache(maxsize=256)
def _compile_glob(pattern: str) -> re.Pattern[str]:
    parts: list[str] = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            parts.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            parts.append(".*")
            i += 2
        elif pattern[i] == "*":
            parts.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            parts.append("[^/]")
            i += 1
        else:
            parts.append(re.escape(pattern[i]))
            i += 1
    return re.compile("".join(parts) + r"\Z")


def glob_match(pattern: str, path: str) -> bool:
    """Match a relative POSIX path against a glob.

    ``*`` and ``?`` never cross a ``/``; ``**/`` spans zero or more
    directories, so ``*.md`` only matches files at the top level while
    ``**/*.md`` matches at any depth.
    """
    return _compile_glob(pattern).match(path) is not None


def dispatch_format(rules: Sequence[FormatRule], path: str) -> ZettelFormat | None:
    """Format of the first rule matching ``path``, or None if none match."""
    for rule in rules:
        if glob_match(rule.pattern, path):
            return rule.format
    return None


def discover_files(root: Path, rules: Iterable[FormatRule]) -> list[str]:
    """Relative POSIX paths of every note file below ``root``.

    Hidden files and directories are skipped. A file is a note when any
    rule's pattern matches it.
    """
    if not root.is_dir():
        raise CorpusNotFound(f"Notes directory not found: {root}")

    patterns = [rule.pattern for rule in rules]
    found = []
    try:
        for path in root.rglob("*"):
            rel = path.relative_to(root)
            if any(part.startswith(".") for part in rel.parts):
                continue
            if not path.is_file():
                continue
            rel_posix = rel.as_posix()
            if any(glob_match(p, rel_posix) for p in patterns):
                found.append(rel_posix)
    except OSError as e:
        raise CorpusNotFound(f"Cannot read notes directory {root}: {e}") from e

    logger.debug("Discovered %d note files under %s", len(found), root)
    return sorted(found)
