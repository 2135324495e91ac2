"""
Tests for full-text search primitives.

Values for ts_rank are the ones PostgreSQL returns for the same inputs
with the english configuration.
"""
import pytest

from folio.services.text_search import (
    matches,
    parse_plain_query,
    to_search_vector,
    ts_rank,
)


class TestSearchVector:
    """Tests for to_search_vector."""

    def test_stems_and_lowercases(self):
        vector = to_search_vector("Software Engineers")
        assert matches(vector, parse_plain_query("software engineer"))

    def test_stop_words_consume_positions(self):
        vector = to_search_vector("Software Engineer in Vancouver")
        (vancouver,) = parse_plain_query("Vancouver")

        assert len(vector) == 3
        assert vector[vancouver] == [4]

    def test_repeated_words_collect_positions(self):
        vector = to_search_vector("design design design")
        assert list(vector.values()) == [[1, 2, 3]]

    def test_punctuation_is_ignored(self):
        vector = to_search_vector("Lead, Platform-Team (Remote)")
        assert matches(vector, parse_plain_query("platform team remote lead"))

    def test_empty_text(self):
        assert to_search_vector("") == {}
        assert to_search_vector(None) == {}


class TestPlainQuery:
    """Tests for parse_plain_query / matches."""

    def test_stop_word_only_query_matches_nothing(self):
        query = parse_plain_query("who is the")
        assert query == []
        assert not matches(to_search_vector("who is the best"), query)

    def test_duplicate_lexemes_collapse(self):
        assert len(parse_plain_query("engineer engineering engineers")) == 1

    def test_all_lexemes_required(self):
        vector = to_search_vector("Alice Smith Software Engineer Vancouver")

        assert matches(vector, parse_plain_query("software engineer"))
        assert not matches(vector, parse_plain_query("software designer"))

    def test_operators_have_no_meaning(self):
        vector = to_search_vector("Bob Lee Designer Toronto")
        assert matches(vector, parse_plain_query("designer & | ! toronto"))


class TestTsRank:
    """Tests for ts_rank."""

    def test_single_lexeme_single_occurrence(self):
        vector = to_search_vector("Software Engineer")
        rank = ts_rank(vector, parse_plain_query("software"))
        assert rank == pytest.approx(0.0607927, rel=1e-5)

    def test_adjacent_lexemes(self):
        vector = to_search_vector("Software Engineer")
        rank = ts_rank(vector, parse_plain_query("software engineer"))
        assert rank == pytest.approx(0.0991032, rel=1e-5)

    def test_closer_terms_rank_higher(self):
        near = to_search_vector("software engineer at acme")
        far = to_search_vector("software people building tools alongside one engineer")
        query = parse_plain_query("software engineer")

        assert ts_rank(near, query) > ts_rank(far, query)

    def test_more_occurrences_rank_higher(self):
        once = to_search_vector("python developer")
        twice = to_search_vector("python developer python")
        query = parse_plain_query("python")

        assert ts_rank(twice, query) > ts_rank(once, query)

    def test_empty_inputs_rank_zero(self):
        assert ts_rank({}, parse_plain_query("software")) == 0.0
        assert ts_rank(to_search_vector("software"), []) == 0.0
