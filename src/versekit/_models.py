"""Data structures for versekit."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ._errors import ValidationError


class Testament(str, Enum):
    """Category labels a book can carry."""
    old = "Old Testament"
    new = "New Testament"
    apocrypha = "Apocrypha"


@dataclass(slots=True, frozen=True)
class VerseKey:
    """Natural key of a verse: (book, chapter, verse).

    The string form ``Genesis_1_1`` is the identifier client collections use.
    """
    book: str
    chapter: int
    verse: int

    def __str__(self) -> str:
        return f"{self.book}_{self.chapter}_{self.verse}"

    @classmethod
    def parse(cls, key: str) -> VerseKey:
        """Inverse of ``str(key)``. Book names may contain underscores."""
        book, sep, rest = key.rpartition("_")
        book, sep2, chapter = book.rpartition("_")
        if not sep or not sep2 or not book:
            raise ValidationError(f"Malformed verse key: {key!r}")
        try:
            chapter_n, verse_n = int(chapter), int(rest)
        except ValueError as e:
            raise ValidationError(f"Malformed verse key: {key!r}") from e
        if chapter_n < 1 or verse_n < 1:
            raise ValidationError(f"Chapter and verse must be positive in verse key: {key!r}")
        return cls(book, chapter_n, verse_n)


@dataclass(slots=True, frozen=True)
class Book:
    """A book of the corpus."""
    name: str
    testament: Testament
    seq_number: int
    chapter_count: int = 0


@dataclass(slots=True, frozen=True)
class Verse:
    """A single verse as stored in the corpus."""
    book: str
    chapter: int
    verse: int
    text: str

    @property
    def key(self) -> VerseKey:
        return VerseKey(self.book, self.chapter, self.verse)

    @property
    def reference(self) -> str:
        """Human-readable reference, e.g. ``John 3:16``."""
        return f"{self.book} {self.chapter}:{self.verse}"


@dataclass(slots=True, frozen=True)
class SearchHit:
    """A verse matched by a search, with its relevance rank."""
    verse: Verse
    rank: float


@dataclass(slots=True, frozen=True)
class Reference:
    """A parsed passage reference such as ``John 3:16-18``.

    ``verse_start``/``verse_end`` are ``None`` for a whole chapter.
    """
    book: str
    chapter: int
    verse_start: int | None = None
    verse_end: int | None = None

    def __str__(self) -> str:
        if self.verse_start is None:
            return f"{self.book} {self.chapter}"
        if self.verse_end is None or self.verse_end == self.verse_start:
            return f"{self.book} {self.chapter}:{self.verse_start}"
        return f"{self.book} {self.chapter}:{self.verse_start}-{self.verse_end}"


@dataclass(slots=True)
class LoadResult:
    """Result of a bulk corpus load."""
    n_books: int
    n_verses: int
    source_path: str | None = None
