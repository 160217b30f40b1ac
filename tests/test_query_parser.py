"""Tests for the lexical query language."""

import pytest

from paper_search.infrastructure.index.query_parser import (
    BooleanQuery,
    IdQuery,
    IndexedDocument,
    MatchNothing,
    Occur,
    PhraseQuery,
    TermQuery,
    YearRangeQuery,
    parse_query,
    tokenize,
)
from paper_search.shared.exceptions import QueryParseError


def _doc(id="d1", title="", abstract="", authors="", year=None):
    return IndexedDocument(
        id=id,
        year=year,
        fields={
            "title": tokenize(title),
            "abstract_text": tokenize(abstract),
            "authors": tokenize(authors),
        },
    )


HOLOGRAPHIC = _doc(
    "arxiv:1",
    title="Holographic entanglement entropy",
    abstract="Minimal surfaces in AdS compute the entropy of a boundary region.",
    authors="Shinsei Ryu, Tadashi Takayanagi",
    year=2006,
)
QUANTUM = _doc(
    "arxiv:2",
    title="Quantum error correction",
    abstract="Stabilizer codes protect quantum information.",
    authors="Daniel Gottesman",
    year=1997,
)


class TestTokenize:
    def test_lowercase_words(self):
        assert tokenize("AdS/CFT Black-Hole") == ["ads", "cft", "black", "hole"]

    def test_empty(self):
        assert tokenize(None) == []
        assert tokenize("") == []


class TestParseStructure:
    def test_single_term(self):
        assert parse_query("entropy") == TermQuery("entropy")

    def test_juxtaposed_terms_are_or(self):
        node = parse_query("entropy quantum")
        assert isinstance(node, BooleanQuery)
        assert [occur for occur, _ in node.clauses] == [Occur.SHOULD, Occur.SHOULD]

    def test_and_makes_must(self):
        node = parse_query("entropy AND holographic")
        assert node == BooleanQuery(((Occur.MUST, TermQuery("entropy")), (Occur.MUST, TermQuery("holographic"))))

    def test_phrase(self):
        assert parse_query('"black hole"') == PhraseQuery(("black", "hole"))

    def test_hyphenated_word_is_phrase(self):
        assert parse_query("black-hole") == PhraseQuery(("black", "hole"))

    def test_field_alias(self):
        assert parse_query("abstract:entropy") == TermQuery("entropy", ("abstract_text",))
        assert parse_query("author:ryu") == TermQuery("ryu", ("authors",))

    def test_year_exact_and_range(self):
        assert parse_query("year:2006") == YearRangeQuery(2006, 2006)
        assert parse_query("year:[2000 TO 2010]") == YearRangeQuery(2000, 2010)
        assert parse_query("year:[* TO 2010]") == YearRangeQuery(None, 2010)

    def test_id_field_is_exact(self):
        assert parse_query("id:arxiv:1") == IdQuery("arxiv:1")

    def test_punctuation_only_matches_nothing(self):
        assert parse_query("...") == MatchNothing()

    def test_double_negation(self):
        node = parse_query("entropy NOT -quantum")
        assert (Occur.MUST, TermQuery("quantum")) in node.clauses

    def test_positive_terms_exclude_negated(self):
        node = parse_query('title:"black hole" AND +entropy -review')
        assert sorted(node.positive_terms()) == ["black", "entropy", "hole"]


class TestMatching:
    def test_term(self):
        query = parse_query("entropy")
        assert query.matches(HOLOGRAPHIC)
        assert not query.matches(QUANTUM)

    def test_or(self):
        query = parse_query("entropy stabilizer")
        assert query.matches(HOLOGRAPHIC)
        assert query.matches(QUANTUM)

    def test_and(self):
        assert parse_query("quantum AND stabilizer").matches(QUANTUM)
        assert not parse_query("quantum AND entropy").matches(QUANTUM)

    def test_required_and_excluded(self):
        query = parse_query("+entropy -quantum")
        assert query.matches(HOLOGRAPHIC)
        assert not query.matches(QUANTUM)

    def test_not_excludes(self):
        assert not parse_query("entropy NOT holographic").matches(HOLOGRAPHIC)

    def test_purely_negative_matches_nothing(self):
        query = parse_query("-quantum")
        assert not query.matches(HOLOGRAPHIC)
        assert not query.matches(QUANTUM)

    def test_phrase_requires_adjacency(self):
        assert parse_query('"entanglement entropy"').matches(HOLOGRAPHIC)
        assert not parse_query('"entropy entanglement"').matches(HOLOGRAPHIC)

    def test_phrase_within_single_field(self):
        # "entropy" ends the title and "minimal" starts the abstract
        assert not parse_query('"entropy minimal"').matches(HOLOGRAPHIC)

    def test_field_restriction(self):
        assert parse_query("authors:takayanagi").matches(HOLOGRAPHIC)
        assert not parse_query("title:takayanagi").matches(HOLOGRAPHIC)

    def test_year_range(self):
        query = parse_query("year:[2000 TO 2010]")
        assert query.matches(HOLOGRAPHIC)
        assert not query.matches(QUANTUM)
        assert not query.matches(_doc(year=None))

    def test_grouping(self):
        query = parse_query("(entropy OR stabilizer) AND year:[1990 TO 2000]")
        assert query.matches(QUANTUM)
        assert not query.matches(HOLOGRAPHIC)

    def test_id(self):
        assert parse_query("id:arxiv:2").matches(QUANTUM)
        assert not parse_query("id:arxiv:2").matches(HOLOGRAPHIC)


class TestParseErrors:
    @pytest.mark.parametrize(
        "query",
        [
            "",
            "   ",
            '"unterminated',
            "(entropy",
            "entropy)",
            "()",
            "entropy AND",
            "AND entropy",
            "OR entropy",
            "entropy OR",
            "entropy -",
            "venue:nature",
            "title:",
            "title:[a TO b]",
            "year:[2000 TO]",
            "year:[2000 TO 2010",
            "year:recent",
        ],
    )
    def test_malformed(self, query):
        with pytest.raises(QueryParseError):
            parse_query(query)

    def test_position_reported(self):
        with pytest.raises(QueryParseError) as exc_info:
            parse_query('entropy "open')
        assert exc_info.value.position == 8
