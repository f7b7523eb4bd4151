"""Tests for tag patterns and query resolution."""

import pytest

from zkgraph.models import (
    ByID,
    ByTag,
    ByTagPrefix,
    ConnectionKind,
    Edge,
    NoteID,
    StructuredNote,
    Tag,
    TagCombinator,
)
from zkgraph.vault.formats import ZettelFormat
from zkgraph.vault.query import CorpusIndex, InvalidTagPattern, QueryResolver, TagPattern

ORD = ConnectionKind.ORDINARY
HIER = ConnectionKind.HIERARCHICAL


def _note(zid: str, tags: tuple[str, ...] = (), queries: tuple = ()) -> StructuredNote:
    return StructuredNote(
        zid=NoteID(zid),
        path=f"{zid}.md",
        format=ZettelFormat.MARKDOWN,
        title=zid,
        body="",
        tags=tuple(Tag(t) for t in tags),
        queries=queries,
    )


def _resolve(owner: StructuredNote, *others: StructuredNote):
    index = CorpusIndex.build([owner, *others])
    return QueryResolver(index).resolve(owner)


@pytest.mark.parametrize(
    "pattern, tag, expected",
    [
        ("a", "a", True),
        ("a", "a/b", False),
        ("a/*", "a/b", True),
        ("a/*", "a/b/c", False),
        ("a/**", "a", True),
        ("a/**", "a/b/c", True),
        ("a/**", "ab", False),
        ("**/c", "c", True),
        ("**/c", "x/y/c", True),
        ("a/**/c", "a/c", True),
        ("a/**/c", "a/b/d/c", True),
        ("proj-?", "proj-1", True),
        ("proj-?", "proj-10", False),
        ("**", "anything/at/all", True),
    ],
)
def test_tag_pattern_matching(pattern: str, tag: str, expected: bool):
    assert TagPattern.compile(pattern).matches(Tag(tag)) is expected


@pytest.mark.parametrize("pattern", ["", "a//b", "/a", "a/", "a/**b", "a b"])
def test_malformed_tag_patterns(pattern: str):
    with pytest.raises(InvalidTagPattern):
        TagPattern.compile(pattern)


def test_tag_prefix_is_hierarchical():
    assert Tag("a/b/c").is_under(Tag("a/b"))
    assert Tag("a/b").is_under(Tag("a/b"))
    assert not Tag("a/bc").is_under(Tag("a/b"))


def test_by_id_resolves_present_target():
    owner = _note("a", queries=(ByID(NoteID("b"), HIER, "[[[b]]]"),))

    resolution = _resolve(owner, _note("b"))

    assert resolution.edges == {Edge(NoteID("a"), NoteID("b"), HIER)}
    assert resolution.failures == ()


def test_missing_id_fails_without_affecting_siblings():
    owner = _note(
        "a",
        queries=(
            ByID(NoteID("missing"), ORD, "[[missing]]"),
            ByID(NoteID("b"), ORD, "[[b]]"),
            ByID(NoteID("gone"), ORD, "[[gone]]"),
        ),
    )

    resolution = _resolve(owner, _note("b"))

    assert resolution.edges == {Edge(NoteID("a"), NoteID("b"), ORD)}
    assert resolution.failures == (
        "Zettel 'missing' does not exist (in link [[missing]])",
        "Zettel 'gone' does not exist (in link [[gone]])",
    )


def test_by_id_may_link_to_itself():
    owner = _note("a", queries=(ByID(NoteID("a"), ORD, "[[a]]"),))

    assert _resolve(owner).edges == {Edge(NoteID("a"), NoteID("a"), ORD)}


def test_by_tag_combinators():
    p = _note("p", tags=("x", "y"))
    q = _note("q", tags=("x",))
    r = _note("r", tags=("z",))
    index = CorpusIndex.build([p, q, r])
    resolver = QueryResolver(index)

    both = resolver.resolve_query(NoteID("o"), ByTag(("x", "y"), TagCombinator.AND))
    either = resolver.resolve_query(NoteID("o"), ByTag(("y", "z"), TagCombinator.OR))

    assert both == [NoteID("p")]
    assert either == [NoteID("p"), NoteID("r")]


def test_by_tag_excludes_owner():
    owner = _note("a", tags=("x",), queries=(ByTag(("x",)),))

    resolution = _resolve(owner, _note("b", tags=("x",)))

    assert resolution.edges == {Edge(NoteID("a"), NoteID("b"), ORD)}


def test_empty_tag_match_is_not_an_error():
    owner = _note("a", queries=(ByTag(("nothing/**",)), ByTagPrefix("nope")))

    resolution = _resolve(owner, _note("b", tags=("x",)))

    assert resolution.edges == frozenset()
    assert resolution.failures == ()


def test_malformed_tag_pattern_is_a_query_failure():
    owner = _note(
        "a",
        queries=(
            ByTag(("a//b",), source="[[z:zettels?tag=a//b]]"),
            ByTagPrefix("", source="[[z:zettels?prefix=]]"),
            ByID(NoteID("b")),
        ),
    )

    resolution = _resolve(owner, _note("b"))

    assert len(resolution.failures) == 2
    assert resolution.failures[0].startswith("Invalid tag pattern in [[z:zettels?tag=a//b]]")
    assert resolution.failures[1].startswith("Invalid tag prefix in [[z:zettels?prefix=]]")
    assert resolution.edges == {Edge(NoteID("a"), NoteID("b"), ORD)}


def test_tag_prefix_matches_nested_but_not_sibling_names():
    owner = _note("o", queries=(ByTagPrefix("a/b"),))

    resolution = _resolve(
        owner,
        _note("nested", tags=("a/b/c",)),
        _note("exact", tags=("a/b",)),
        _note("sibling", tags=("a/bc",)),
    )

    assert {e.target for e in resolution.edges} == {NoteID("nested"), NoteID("exact")}


def test_repeated_and_overlapping_queries_collapse():
    owner = _note(
        "a",
        queries=(
            ByID(NoteID("b")),
            ByID(NoteID("b")),
            ByTag(("t",)),
            ByID(NoteID("b"), HIER),
        ),
    )

    resolution = _resolve(owner, _note("b", tags=("t",)))

    assert resolution.edges == {
        Edge(NoteID("a"), NoteID("b"), ORD),
        Edge(NoteID("a"), NoteID("b"), HIER),
    }


def test_corpus_index_is_read_only():
    index = CorpusIndex.build([_note("a")])

    with pytest.raises(TypeError):
        index.by_id[NoteID("b")] = _note("b")  # type: ignore[index]
