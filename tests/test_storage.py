"""Tests for _storage.py."""

import sqlite3
import threading
from unittest.mock import MagicMock

import pytest

from versekit._errors import StorageUnavailable, ValidationError
from versekit._models import Book, Testament, Verse, VerseKey
from versekit._normalize import reindex
from versekit._storage import Storage


def _index_terms(storage, key: VerseKey) -> str:
    row = storage.conn.execute(
        "SELECT index_terms FROM verses WHERE book_name = ? AND chapter = ? AND verse_number = ?",
        (key.book, key.chapter, key.verse),
    ).fetchone()
    return row["index_terms"]


class TestConnection:
    def test_connect_creates_schema(self, tmp_path):
        s = Storage(tmp_path / "new.db")
        s.connect()
        try:
            assert s.count_books() == 0
            assert s.count_verses() == 0
        finally:
            s.close()

    def test_unreachable_path(self, tmp_path):
        s = Storage(tmp_path / "missing" / "dir" / "x.db")
        with pytest.raises(StorageUnavailable) as exc_info:
            s.connect()
        assert isinstance(exc_info.value.__cause__, sqlite3.Error)

    def test_not_connected(self, tmp_path):
        s = Storage(tmp_path / "x.db")
        with pytest.raises(StorageUnavailable):
            s.get_chapter("Genesis", 1)

    def test_fault_during_query(self, storage):
        real_conn = storage._conn
        storage._conn = MagicMock()
        storage._conn.execute.side_effect = sqlite3.OperationalError("disk I/O error")
        try:
            with pytest.raises(StorageUnavailable) as exc_info:
                storage.get_chapter("Genesis", 1)
            assert isinstance(exc_info.value.__cause__, sqlite3.OperationalError)
        finally:
            storage._conn = real_conn

    def test_reopen_keeps_data(self, tmp_path, sample_verses):
        db_path = tmp_path / "persist.db"
        s = Storage(db_path)
        s.connect()
        s.upsert_verse(sample_verses[0])
        s.close()

        s2 = Storage(db_path)
        s2.connect()
        try:
            assert s2.get_chapter("Genesis", 1) == [sample_verses[0]]
            assert s2.verify_index() == []
        finally:
            s2.close()


class TestBooks:
    def test_canonical_order(self, storage):
        books = storage.get_books()
        assert len(books) == 66
        assert books[0].name == "Genesis"
        assert books[-1].name == "Revelation"
        assert [b.seq_number for b in books] == sorted(b.seq_number for b in books)

    def test_filter_by_testament(self, storage):
        nt = storage.get_books(Testament.new)
        assert len(nt) == 27
        assert nt[0].name == "Matthew"
        assert all(b.testament is Testament.new for b in nt)

    def test_upsert_book_updates(self, storage):
        storage.upsert_book(Book("Tobit", Testament.apocrypha, 67, 14))
        storage.upsert_book(Book("Tobit", Testament.apocrypha, 70, 14))
        assert storage.get_book("Tobit") == Book("Tobit", Testament.apocrypha, 70, 14)
        assert storage.count_books() == 67

    def test_get_missing_book(self, storage):
        assert storage.get_book("Nonexistent") is None

    def test_refresh_chapter_counts(self, storage):
        storage.upsert_verses([
            Verse("Genesis", 1, 1, "In the beginning."),
            Verse("Genesis", 3, 1, "Now the serpent was more subtil."),
        ])
        storage.refresh_chapter_counts()
        assert storage.get_book("Genesis").chapter_count == 3
        # Books without stored verses keep their count
        assert storage.get_book("Exodus").chapter_count == 40


class TestVerses:
    def test_chapter_sorted_by_verse(self, storage, sample_verses):
        storage.upsert_verses([sample_verses[2], sample_verses[0], sample_verses[1]])
        chapter = storage.get_chapter("Genesis", 1)
        assert [v.verse for v in chapter] == [1, 2, 3]

    def test_empty_chapter(self, storage, sample_verses):
        assert storage.get_chapter("Nonexistent", 1) == []
        storage.upsert_verse(sample_verses[0])
        assert storage.get_chapter("Genesis", 2) == []

    def test_gaps_reflect_corpus(self, storage):
        storage.upsert_verses([
            Verse("Acts", 8, 36, "See, here is water."),
            Verse("Acts", 8, 38, "And he commanded the chariot to stand still."),
        ])
        assert [v.verse for v in storage.get_chapter("Acts", 8)] == [36, 38]

    def test_upsert_is_keyed_on_natural_key(self, storage):
        storage.upsert_verse(Verse("Genesis", 1, 1, "Old text."))
        storage.upsert_verse(Verse("Genesis", 1, 1, "New text."))
        assert storage.count_verses() == 1
        assert storage.get_verse(VerseKey("Genesis", 1, 1)).text == "New text."

    def test_get_verse_missing(self, storage):
        assert storage.get_verse(VerseKey("Genesis", 99, 1)) is None

    def test_delete_verse(self, storage, sample_verses):
        storage.upsert_verse(sample_verses[0])
        assert storage.delete_verse(sample_verses[0].key) is True
        assert storage.delete_verse(sample_verses[0].key) is False
        assert storage.search('"beginning"') == []
        assert storage.verify_index() == []

    def test_constraints_rejected(self, storage):
        with pytest.raises(ValidationError):
            storage.upsert_verse(Verse("Genesis", 0, 1, "Zero chapter."))
        with pytest.raises(ValidationError):
            storage.upsert_verse(Verse("Genesis", 1, -1, "Negative verse."))
        with pytest.raises(ValidationError):
            storage.upsert_verse(Verse("Genesis", 1, 1, "   "))
        assert storage.count_verses() == 0

    def test_failed_batch_is_atomic(self, storage, sample_verses):
        with pytest.raises(ValidationError):
            storage.upsert_verses([sample_verses[0], Verse("Genesis", 1, 0, "Bad.")])
        assert storage.count_verses() == 0
        assert storage.search('"beginning"') == []

    def test_counts(self, storage, sample_verses):
        storage.upsert_verses(sample_verses)
        assert storage.count_verses() == len(sample_verses)
        by_book = {r["book_name"]: r for r in storage.book_verse_counts()}
        assert by_book["Genesis"]["total_verses"] == 3
        assert by_book["John"]["chapter_count"] == 3
        assert [r["book_name"] for r in storage.book_verse_counts()] == [
            "Genesis", "Psalms", "John", "1 John",
        ]
        assert storage.chapter_verse_counts("Genesis") == [{"chapter": 1, "verse_count": 3}]


class TestIndexConsistency:
    def test_insert_sets_index_terms(self, storage, sample_verses):
        storage.upsert_verses(sample_verses)
        for v in sample_verses:
            assert _index_terms(storage, v.key) == reindex(v.text)
        assert storage.verify_index() == []

    def test_update_reindexes(self, storage):
        storage.upsert_verse(Verse("Genesis", 1, 1, "In the beginning God created the heaven."))
        assert len(storage.search('"beginning"')) == 1

        storage.upsert_verse(Verse("Genesis", 1, 1, "Let there be light."))
        assert storage.search('"beginning"') == []
        assert [h.verse.key for h in storage.search('"light"')] == [VerseKey("Genesis", 1, 1)]
        assert _index_terms(storage, VerseKey("Genesis", 1, 1)) == reindex("Let there be light.")
        assert storage.verify_index() == []

    def test_direct_sql_update_reindexes(self, storage):
        storage.upsert_verse(Verse("Genesis", 1, 1, "In the beginning."))
        with storage.conn:
            storage.conn.execute(
                "UPDATE verses SET text = 'Darkness was upon the deep.' WHERE book_name = 'Genesis'"
            )
        assert storage.verify_index() == []
        assert len(storage.search('"darkness"')) == 1
        assert storage.search('"beginning"') == []

    def test_rebuild_index(self, storage, sample_verses):
        storage.upsert_verses(sample_verses)
        storage.rebuild_index()
        assert storage.verify_index() == []
        assert len(storage.search('"god"')) == 6

    def test_concurrent_writers_and_readers(self, storage):
        errors: list[BaseException] = []

        def writer(chapter: int) -> None:
            try:
                for n in range(1, 21):
                    storage.upsert_verse(Verse("Proverbs", chapter, n, f"Wisdom saying {chapter} {n}."))
            except BaseException as e:  # pragma: no cover - reported below
                errors.append(e)

        def reader() -> None:
            try:
                for _ in range(20):
                    for hit in storage.search('"wisdom"', 50):
                        assert hit.verse.text.startswith("Wisdom saying")
            except BaseException as e:  # pragma: no cover - reported below
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(c,)) for c in range(1, 5)]
        threads += [threading.Thread(target=reader) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert storage.count_verses() == 80
        assert storage.verify_index() == []


class TestSearch:
    def test_ranked_descending(self, storage, sample_verses):
        storage.upsert_verses(sample_verses)
        hits = storage.search('"god"')
        assert len(hits) == 6
        ranks = [h.rank for h in hits]
        assert ranks == sorted(ranks, reverse=True)

    def test_stemming(self, storage, sample_verses):
        storage.upsert_verses(sample_verses)
        keys = {h.verse.key for h in storage.search('"love"')}
        assert VerseKey("John", 3, 16) in keys      # "loved"
        assert VerseKey("1 John", 4, 8) in keys     # "love"

    def test_ties_follow_canonical_order(self, storage):
        text = "Grace and truth came."
        storage.upsert_verses([
            Verse("Tobit", 1, 1, text),
            Verse("John", 1, 17, text),
            Verse("Genesis", 2, 1, text),
            Verse("Genesis", 1, 5, text),
        ])
        hits = storage.search('"grace"')
        assert len({h.rank for h in hits}) == 1
        assert [h.verse.key for h in hits] == [
            VerseKey("Genesis", 1, 5),
            VerseKey("Genesis", 2, 1),
            VerseKey("John", 1, 17),
            VerseKey("Tobit", 1, 1),
        ]

    def test_limit(self, storage, sample_verses):
        storage.upsert_verses(sample_verses)
        assert len(storage.search('"god"', 2)) == 2

    def test_no_match(self, storage, sample_verses):
        storage.upsert_verses(sample_verses)
        assert storage.search('"xyzzy"') == []

    def test_substring_case_insensitive(self, storage, sample_verses):
        storage.upsert_verses(sample_verses)
        hits = storage.search_substring("LOVED")
        assert [h.verse.key for h in hits] == [VerseKey("John", 3, 16)]
        assert hits[0].rank == 0.0

    def test_substring_canonical_order(self, storage, sample_verses):
        storage.upsert_verses(list(reversed(sample_verses)))
        hits = storage.search_substring("God")
        assert [h.verse.book for h in hits] == [
            "Genesis", "Genesis", "Genesis", "John", "John", "1 John",
        ]

    def test_substring_wildcards_literal(self, storage, sample_verses):
        storage.upsert_verses(sample_verses)
        assert storage.search_substring("%") == []
        assert storage.search_substring("_") == []
