"""Tests for _retrieve.py."""

from unittest.mock import MagicMock

from versekit._models import VerseKey
from versekit._retrieve import _is_stopword_query, search, search_substring


class TestStopwordQuery:
    def test_stop_words_only(self):
        assert _is_stopword_query("the and of")
        assert _is_stopword_query('"the" -a')

    def test_punctuation_only(self):
        assert _is_stopword_query("... ?!")

    def test_real_terms(self):
        assert not _is_stopword_query("the light")
        assert not _is_stopword_query("-darkness")


class TestSearch:
    def test_stop_word_query_skips_store(self):
        storage = MagicMock()
        assert search(storage, "the and of") == []
        storage.search.assert_not_called()

    def test_exclusion_only_skips_store(self):
        storage = MagicMock()
        assert search(storage, "-love -world") == []
        storage.search.assert_not_called()

    def test_compiled_expression_reaches_store(self):
        storage = MagicMock()
        storage.search.return_value = []
        search(storage, "Light -darkness", max_results=7)
        storage.search.assert_called_once_with('("light") NOT ("darkness")', 7)

    def test_against_storage(self, storage, sample_verses):
        storage.upsert_verses(sample_verses)
        hits = search(storage, "shepherd")
        assert [h.verse.key for h in hits] == [VerseKey("Psalms", 23, 1)]
        assert hits[0].rank > 0

    def test_normalization_matches_stored_text(self, storage, sample_verses):
        storage.upsert_verses(sample_verses)
        for query in ("Lord", "LORD'S", "lords"):
            hits = search(storage, query)
            assert [h.verse.key for h in hits] == [VerseKey("Psalms", 23, 1)]

    def test_max_results(self, storage, sample_verses):
        storage.upsert_verses(sample_verses)
        assert len(search(storage, "God", max_results=3)) == 3


class TestSearchSubstring:
    def test_passes_limit(self):
        storage = MagicMock()
        storage.search_substring.return_value = []
        assert search_substring(storage, "world", max_results=5) == []
        storage.search_substring.assert_called_once_with("world", 5)

    def test_against_storage(self, storage, sample_verses):
        storage.upsert_verses(sample_verses)
        hits = search_substring(storage, "the world")
        assert [h.verse.key for h in hits] == [VerseKey("John", 3, 16), VerseKey("John", 3, 17)]
