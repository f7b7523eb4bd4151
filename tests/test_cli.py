import json
import sys
from pathlib import Path

from click.testing import CliRunner

from zkgraph.cli import cli


def _invoke(*args: str):
    return CliRunner().invoke(cli, list(args))


def test_build_reports_errors_and_fails(notes_dir: Path):
    result = _invoke("--notes", str(notes_dir), "build")

    assert result.exit_code == 1
    assert "E _site/20210104.html" in result.output
    assert "  - Zettel 'nowhere' does not exist (in link [[nowhere]])" in result.output


def test_build_succeeds_without_errors(tmp_path: Path):
    (tmp_path / "a.md").write_text("# A\n\n[[b]]\n", encoding="utf-8")
    (tmp_path / "b.md").write_text("# B\n", encoding="utf-8")

    result = _invoke("--notes", str(tmp_path), "build")

    assert result.exit_code == 0
    assert "Built 2 zettels with 1 links" in result.output
    assert "E _site" not in result.output


def test_build_duplicate_report(tmp_path: Path):
    (tmp_path / "20210101.md").write_text("# md\n", encoding="utf-8")
    (tmp_path / "20210101.org").write_text("#+TITLE: org\n", encoding="utf-8")

    result = _invoke("--notes", str(tmp_path), "build")

    assert result.exit_code == 1
    assert "E _site/20210101.html" in result.output
    assert "Multiple zettels have the same ID: 20210101.md, 20210101.org" in result.output


def test_build_writes_json(notes_dir: Path, tmp_path: Path):
    out = tmp_path / "out" / "graph.json"

    result = _invoke("--notes", str(notes_dir), "build", "--out", str(out))

    assert result.exit_code == 1
    payload = json.loads(out.read_text(encoding="utf-8"))
    assert [n["id"] for n in payload["graph"]["nodes"]] == [
        "20210101",
        "20210102",
        "20210103",
        "20210104",
    ]
    assert payload["errors"]["20210104"]["kind"] == "query-failures"
    assert {"source": "20210101", "target": "20210102", "kind": "hierarchical"} in payload["graph"]["edges"]


def test_config_error_aborts(tmp_path: Path):
    (tmp_path / "zkgraph.toml").write_text('formats = [["*.md", "rst"]]\n', encoding="utf-8")

    result = _invoke("--notes", str(tmp_path), "build")

    assert result.exit_code == 1
    assert "Unrecognized format: rst" in result.output


def test_missing_notes_dir(tmp_path: Path):
    result = _invoke("--notes", str(tmp_path / "missing"), "build")

    assert result.exit_code == 2


def test_show_links_and_backlinks(notes_dir: Path):
    result = _invoke("--notes", str(notes_dir), "show", "20210101")

    assert result.exit_code == 0
    assert "First" in result.output
    assert "Backlinks" in result.output
    assert "20210103" in result.output


def test_show_unknown_zettel(notes_dir: Path):
    result = _invoke("--notes", str(notes_dir), "show", "nope")

    assert result.exit_code == 1
    assert "Zettel not found: nope" in result.output


def test_tree_shows_folgezettel_children(notes_dir: Path):
    result = _invoke("--notes", str(notes_dir), "tree", "20210101")

    assert result.exit_code == 0
    assert "20210102" in result.output
    assert "Second" in result.output


def test_deep_folgezettel_chain(tmp_path: Path):
    depth = sys.getrecursionlimit() + 100
    ids = [f"n{i:05d}" for i in range(depth)]
    for zid, child in zip(ids, ids[1:] + [None]):
        body = f"# {zid}\n\n[[[{child}]]]\n" if child else f"# {zid}\n"
        (tmp_path / f"{zid}.md").write_text(body, encoding="utf-8")

    built = _invoke("--notes", str(tmp_path), "build")
    assert built.exit_code == 0
    assert f"Built {depth} zettels with {depth - 1} links" in built.output

    tree = _invoke("--notes", str(tmp_path), "tree")
    assert tree.exit_code == 0
    assert "n00001" in tree.output
    assert "more below" in tree.output


def test_unreadable_note_is_reported(tmp_path: Path, monkeypatch):
    (tmp_path / "a.md").write_text("# A\n", encoding="utf-8")
    monkeypatch.setattr(
        "zkgraph.vault.builder.discover_files",
        lambda root, rules: ["a.md", "gone.md"],
    )

    result = _invoke("--notes", str(tmp_path), "build")

    assert result.exit_code == 1
    assert "Cannot read gone.md" in result.output
    assert "Traceback" not in result.output
