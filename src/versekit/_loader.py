"""Bulk corpus loading: parse JSON/CSV verse files and store them."""

from __future__ import annotations

import csv
import json
import logging
from collections.abc import Iterable
from pathlib import Path

from ._canon import canon_books
from ._errors import ValidationError
from ._models import Book, LoadResult, Testament, Verse
from ._storage import SQLITE_MAX_INT, Storage

logger = logging.getLogger(__name__)

_CSV_FIELDS = ("book", "chapter", "verse", "text")


def _positive_int(value: object, field: str, where: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{where}: {field} must be an integer, got {value!r}")
    try:
        n = int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError, OverflowError) as e:
        raise ValidationError(f"{where}: {field} must be an integer, got {value!r}") from e
    if n < 1:
        raise ValidationError(f"{where}: {field} must be positive, got {n}")
    if n > SQLITE_MAX_INT:
        raise ValidationError(f"{where}: {field} out of range, got {n}")
    return n


def verse_from_record(record: dict, where: str = "record") -> Verse:
    """Validate one ``{book, chapter, verse, text}`` mapping."""
    if not isinstance(record, dict):
        raise ValidationError(f"{where}: expected an object, got {type(record).__name__}")
    book = record.get("book")
    text = record.get("text")
    if not isinstance(book, str) or not book.strip():
        raise ValidationError(f"{where}: book must be a non-empty string")
    if not isinstance(text, str) or not text.strip():
        raise ValidationError(f"{where}: text must be a non-empty string")
    return Verse(
        book=book.strip(),
        chapter=_positive_int(record.get("chapter"), "chapter", where),
        verse=_positive_int(record.get("verse"), "verse", where),
        text=text.strip(),
    )


def book_from_record(record: dict, where: str = "book") -> Book:
    """Validate one ``{name, testament, seq_number[, chapter_count]}`` mapping."""
    if not isinstance(record, dict):
        raise ValidationError(f"{where}: expected an object, got {type(record).__name__}")
    name = record.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(f"{where}: name must be a non-empty string")
    try:
        testament = Testament(record.get("testament"))
    except ValueError as e:
        raise ValidationError(f"{where}: unknown testament {record.get('testament')!r}") from e
    chapter_count = record.get("chapter_count")
    return Book(
        name=name.strip(),
        testament=testament,
        seq_number=_positive_int(record.get("seq_number"), "seq_number", where),
        chapter_count=_positive_int(chapter_count, "chapter_count", where) if chapter_count else 0,
    )


def read_json(path: Path) -> tuple[list[Book], list[Verse]]:
    """Read a JSON corpus: a list of verse objects, or {"books", "verses"}."""
    try:
        data = json.loads(path.read_text(encoding="utf-8-sig"))
    except UnicodeDecodeError as e:
        raise ValidationError(f"{path}: not valid UTF-8: {e}") from e
    except json.JSONDecodeError as e:
        raise ValidationError(f"{path}: invalid JSON: {e}") from e

    if isinstance(data, list):
        book_records: list = []
        verse_records = data
    elif isinstance(data, dict):
        book_records = data.get("books", [])
        verse_records = data.get("verses", [])
    else:
        raise ValidationError(f"{path}: expected a list or an object at top level")

    for name, records in (("books", book_records), ("verses", verse_records)):
        if not isinstance(records, list):
            raise ValidationError(f"{path}: {name} must be a list")

    books = [
        book_from_record(r, f"{path}: books[{i}]")
        for i, r in enumerate(book_records)
    ]
    verses = [
        verse_from_record(r, f"{path}: verses[{i}]")
        for i, r in enumerate(verse_records)
    ]
    return books, verses


def read_csv(path: Path) -> list[Verse]:
    """Read a CSV corpus with header ``book,chapter,verse,text``."""
    with path.open(newline="", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f)
        try:
            missing = set(_CSV_FIELDS) - set(reader.fieldnames or ())
            if missing:
                raise ValidationError(
                    f"{path}: missing CSV column(s): {', '.join(sorted(missing))}"
                )
            return [
                verse_from_record(row, f"{path}: line {reader.line_num}")
                for row in reader
            ]
        except UnicodeDecodeError as e:
            raise ValidationError(f"{path}: not valid UTF-8: {e}") from e
        except csv.Error as e:
            raise ValidationError(f"{path}: line {reader.line_num}: {e}") from e


def _books_for(verses: Iterable[Verse], storage: Storage) -> list[Book]:
    """Books referenced by verses that are not stored yet.

    Canon books take their canonical slot; anything else is appended after
    the highest stored sequence number, in order of first appearance.
    """
    canon = {b.name: b for b in canon_books()}
    next_seq = max(storage.max_seq_number(), len(canon))
    seen: set[str] = set()
    new_books: list[Book] = []
    for v in verses:
        if v.book in seen:
            continue
        seen.add(v.book)
        if storage.get_book(v.book) is not None:
            continue
        if v.book in canon:
            new_books.append(canon[v.book])
        else:
            next_seq += 1
            logger.info("Registering non-canonical book %r as %s", v.book, Testament.apocrypha.value)
            new_books.append(Book(v.book, Testament.apocrypha, next_seq))
    return new_books


def load_corpus(
    storage: Storage,
    books: list[Book],
    verses: list[Verse],
    *,
    source_path: str | None = None,
) -> LoadResult:
    """Store books and verses, register missing books, refresh chapter counts."""
    n_books = storage.upsert_books(books)
    missing = _books_for(verses, storage)
    if missing:
        n_books += storage.upsert_books(missing)
    n_verses = storage.upsert_verses(verses)
    storage.refresh_chapter_counts()
    logger.info("Loaded %d book(s), %d verse(s)%s", n_books, n_verses,
                f" from {source_path}" if source_path else "")
    return LoadResult(n_books=n_books, n_verses=n_verses, source_path=source_path)


def load_file(storage: Storage, path: str | Path, fmt: str | None = None) -> LoadResult:
    """Load a corpus file. Format comes from ``fmt`` or the file extension."""
    path = Path(path)
    fmt = (fmt or path.suffix.lstrip(".")).lower()
    if not path.is_file():
        raise ValidationError(f"{path} is not a file")

    if fmt == "json":
        books, verses = read_json(path)
    elif fmt == "csv":
        books, verses = [], read_csv(path)
    else:
        raise ValidationError(f"Unsupported corpus format {fmt!r} (expected json or csv)")

    return load_corpus(storage, books, verses, source_path=str(path))
