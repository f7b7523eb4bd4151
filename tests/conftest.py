"""Pytest configuration and fixtures."""

from pathlib import Path
from typing import Callable

import pytest

from zkgraph.models import BuildResult
from zkgraph.vault.builder import build_zettelkasten


def md_note(*, title: str | None = None, tags: list[str] | None = None, body: str = "") -> str:
    """Markdown note text with optional front matter."""
    lines = []
    if title is not None or tags:
        lines.append("---")
        if title is not None:
            lines.append(f"title: {title}")
        if tags:
            lines.append("tags:")
            lines.extend(f"  - {tag}" for tag in tags)
        lines.append("---")
        lines.append("")
    lines.append(body)
    lines.append("")
    return "\n".join(lines)


def build_sources(sources: dict[str, str], **kwargs) -> BuildResult:
    """Build from an in-memory mapping of relative path -> text."""
    return build_zettelkasten(list(sources), sources.__getitem__, **kwargs)


@pytest.fixture
def build() -> Callable[..., BuildResult]:
    return build_sources


@pytest.fixture
def notes_dir(tmp_path: Path) -> Path:
    """Small on-disk corpus with a folgezettel chain, tags and one broken link."""
    notes = tmp_path / "notes"
    (notes / "sub").mkdir(parents=True)
    (notes / ".hidden").mkdir()

    (notes / "20210101.md").write_text(
        md_note(title="First", tags=["x"], body="Start here. [[[20210102]]]"),
        encoding="utf-8",
    )
    (notes / "sub" / "20210102.md").write_text(
        md_note(title="Second", tags=["x/y"], body="Back to [[20210101]]."),
        encoding="utf-8",
    )
    (notes / "20210103.org").write_text(
        "\n".join(
            [
                "#+TITLE: Third",
                "",
                "* Everything under x",
                "[[z:zettels?prefix=x]]",
                "",
            ]
        ),
        encoding="utf-8",
    )
    (notes / "20210104.md").write_text(
        md_note(title="Broken", body="See [[nowhere]]."),
        encoding="utf-8",
    )
    (notes / ".hidden" / "secret.md").write_text("# Hidden\n", encoding="utf-8")
    (notes / "README.txt").write_text("not a note\n", encoding="utf-8")
    return notes


@pytest.fixture
def md() -> Callable[..., str]:
    return md_note
