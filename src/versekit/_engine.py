"""Engine: the query façade over the verse store and its search index."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

from ._canon import canon_books
from ._errors import StorageUnavailable, ValidationError, VersekitError
from ._loader import load_corpus, load_file
from ._models import Book, LoadResult, SearchHit, Testament, Verse, VerseKey
from ._reference import parse_reference
from ._retrieve import search, search_substring
from ._storage import SQLITE_MAX_INT, Storage

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RESULTS = 100


def _check_positive_int(value: object, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer, got {value!r}")
    if value < 1:
        raise ValidationError(f"{name} must be positive, got {value}")
    return value


def _check_text(value: object, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} must be a non-empty string")
    return value.strip()


def _check_verse(verse: Verse) -> Verse:
    """Validate a verse for storage; book and text are stored stripped."""
    for value, name in ((verse.chapter, "chapter"), (verse.verse, "verse")):
        if _check_positive_int(value, name) > SQLITE_MAX_INT:
            raise ValidationError(f"{name} out of range, got {value}")
    return Verse(
        _check_text(verse.book, "book"),
        verse.chapter,
        verse.verse,
        _check_text(verse.text, "text"),
    )


class Engine:
    """Top-level versekit façade.

    Usage::

        engine = Engine(db_path="kjv.db")
        engine.start()
        engine.load("kjv.json")
        verses = engine.fetch_chapter("Genesis", 1)
        hits = engine.search("God so loved")
        engine.close()

    Or as a context manager::

        with Engine(db_path="kjv.db") as engine:
            engine.search("light")
    """

    def __init__(
        self,
        db_path: str | Path = "versekit.db",
        *,
        timeout: float = 5.0,
        seed_canon: bool = True,
    ):
        self._db_path = str(db_path)
        self._timeout = timeout
        self._seed_canon = seed_canon
        self._storage: Storage | None = None

    def start(self) -> None:
        """Connect to storage and seed the canon into an empty books table."""
        storage = Storage(self._db_path, timeout=self._timeout)
        storage.connect()
        self._storage = storage
        if self._seed_canon and storage.count_books() == 0:
            n = storage.upsert_books(canon_books())
            logger.info("Seeded %d canonical books", n)

    def close(self) -> None:
        """Close storage connection."""
        if self._storage:
            self._storage.close()
            self._storage = None

    def __enter__(self) -> Engine:
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def storage(self) -> Storage:
        if self._storage is None:
            raise StorageUnavailable("Engine not started. Call start() first.")
        return self._storage

    def _call(self, action: str, fn: Callable[..., T], *args, **kwargs) -> T:
        """Run a storage call; unclassified failures become StorageUnavailable."""
        try:
            return fn(*args, **kwargs)
        except VersekitError:
            raise
        except Exception as e:
            logger.warning("%s failed: %s: %s", action, type(e).__name__, e)
            raise StorageUnavailable(f"{action} failed: {e}") from e

    # ── Reading ──

    def fetch_chapter(self, book: str, chapter: int) -> list[Verse]:
        """Verses of a chapter in reading order (ascending verse number).

        An unknown book or chapter yields an empty list, not an error.
        """
        book = _check_text(book, "book")
        chapter = _check_positive_int(chapter, "chapter")
        if chapter > SQLITE_MAX_INT:
            return []
        return self._call("fetch_chapter", self.storage.get_chapter, book, chapter)

    def fetch_passage(self, reference: str) -> list[Verse]:
        """Verses of a reference such as ``John 3:16-18`` or ``Ps 23``."""
        ref = parse_reference(_check_text(reference, "reference"))
        if ref.chapter > SQLITE_MAX_INT:
            return []
        verses = self._call("fetch_passage", self.storage.get_chapter, ref.book, ref.chapter)
        if ref.verse_start is None:
            return verses
        end = ref.verse_end if ref.verse_end is not None else ref.verse_start
        return [v for v in verses if ref.verse_start <= v.verse <= end]

    def get_verse(self, key: VerseKey) -> Verse | None:
        if not all(1 <= n <= SQLITE_MAX_INT for n in (key.chapter, key.verse)):
            return None
        return self._call("get_verse", self.storage.get_verse, key)

    def get_books(self, testament: Testament | str | None = None) -> list[Book]:
        """Books in canonical order, optionally for one testament."""
        if testament is not None:
            try:
                testament = Testament(testament)
            except ValueError as e:
                raise ValidationError(f"Unknown testament {testament!r}") from e
        return self._call("get_books", self.storage.get_books, testament)

    # ── Searching ──

    def search(self, query: str, max_results: int = DEFAULT_MAX_RESULTS) -> list[SearchHit]:
        """Ranked full-text search.

        Results are ordered by descending rank; equal ranks follow canonical
        book order, then chapter, then verse. A query that matches nothing,
        or holds only stop words, returns an empty list.
        """
        query = _check_text(query, "query")
        max_results = min(_check_positive_int(max_results, "max_results"), SQLITE_MAX_INT)
        return self._call("search", search, self.storage, query, max_results=max_results)

    def search_substring(
        self, query: str, max_results: int = DEFAULT_MAX_RESULTS,
    ) -> list[SearchHit]:
        """Plain substring search, unranked. Degraded fallback to search()."""
        query = _check_text(query, "query")
        max_results = min(_check_positive_int(max_results, "max_results"), SQLITE_MAX_INT)
        return self._call(
            "search_substring", search_substring, self.storage, query, max_results=max_results,
        )

    # ── Writing ──

    def upsert_verse(self, verse: Verse) -> None:
        """Insert or replace one verse; its index entry follows atomically."""
        self._call("upsert_verse", self.storage.upsert_verse, _check_verse(verse))

    def load(self, path: str | Path, fmt: str | None = None) -> LoadResult:
        """Bulk-load a JSON or CSV corpus file."""
        return self._call("load", load_file, self.storage, path, fmt)

    def load_verses(self, verses: list[Verse], books: list[Book] | None = None) -> LoadResult:
        """Bulk-load in-memory verses (and optionally books)."""
        verses = [_check_verse(v) for v in verses]
        return self._call("load", load_corpus, self.storage, books or [], verses)

    # ── Maintenance ──

    def verify_index(self) -> list[VerseKey]:
        """Keys of verses whose index entry lags their text (normally empty)."""
        return self._call("verify_index", self.storage.verify_index)

    def status(self) -> dict:
        """Return system status."""
        return {
            "status": "ok",
            "n_books": self._call("status", self.storage.count_books),
            "n_verses": self._call("status", self.storage.count_verses),
            "sqlite_version": sqlite3.sqlite_version,
            "db_path": self._db_path,
        }
