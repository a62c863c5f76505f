"""SQLite storage layer for versekit."""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path

from ._errors import StorageUnavailable, ValidationError
from ._models import Book, SearchHit, Testament, Verse, VerseKey
from ._normalize import reindex, sql_reindex

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 5.0

# Largest value an SQLite INTEGER parameter can carry.
SQLITE_MAX_INT = 2**63 - 1

# SQL name of the registered reindex() function. Every connection that writes
# verses must register it, since the generated column calls it.
_REINDEX_SQL_FUNC = "verse_index_terms"

_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS books (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    book_name      TEXT NOT NULL UNIQUE,
    testament      TEXT NOT NULL
                   CHECK (testament IN ('Old Testament', 'New Testament', 'Apocrypha')),
    seq_number     INTEGER NOT NULL,
    chapter_count  INTEGER NOT NULL DEFAULT 0,
    created_at     TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
CREATE INDEX IF NOT EXISTS idx_books_testament ON books(testament);
CREATE INDEX IF NOT EXISTS idx_books_seq_number ON books(seq_number);

CREATE TABLE IF NOT EXISTS verses (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    book_name     TEXT NOT NULL,
    chapter       INTEGER NOT NULL CHECK (chapter > 0),
    verse_number  INTEGER NOT NULL CHECK (verse_number > 0),
    text          TEXT NOT NULL CHECK (length(trim(text)) > 0),
    index_terms   TEXT GENERATED ALWAYS AS ({_REINDEX_SQL_FUNC}(text)) STORED,
    created_at    TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    UNIQUE (book_name, chapter, verse_number)
);
CREATE INDEX IF NOT EXISTS idx_verses_book_chapter ON verses(book_name, chapter);

CREATE VIRTUAL TABLE IF NOT EXISTS verses_fts USING fts5(
    index_terms,
    content='verses',
    content_rowid='id',
    tokenize='porter unicode61 remove_diacritics 2'
);

CREATE TRIGGER IF NOT EXISTS verses_ai AFTER INSERT ON verses BEGIN
    INSERT INTO verses_fts(rowid, index_terms) VALUES (new.id, new.index_terms);
END;

CREATE TRIGGER IF NOT EXISTS verses_ad AFTER DELETE ON verses BEGIN
    INSERT INTO verses_fts(verses_fts, rowid, index_terms)
    VALUES ('delete', old.id, old.index_terms);
END;

CREATE TRIGGER IF NOT EXISTS verses_au AFTER UPDATE ON verses BEGIN
    INSERT INTO verses_fts(verses_fts, rowid, index_terms)
    VALUES ('delete', old.id, old.index_terms);
    INSERT INTO verses_fts(rowid, index_terms) VALUES (new.id, new.index_terms);
END;
"""

_UPSERT_VERSE = (
    "INSERT INTO verses (book_name, chapter, verse_number, text) VALUES (?, ?, ?, ?) "
    "ON CONFLICT (book_name, chapter, verse_number) DO UPDATE SET text = excluded.text "
    "WHERE verses.text <> excluded.text"
)

_UPSERT_BOOK = (
    "INSERT INTO books (book_name, testament, seq_number, chapter_count) VALUES (?, ?, ?, ?) "
    "ON CONFLICT (book_name) DO UPDATE SET testament = excluded.testament, "
    "seq_number = excluded.seq_number, chapter_count = excluded.chapter_count"
)

# Canonical reading order: known books by sequence number, unknown books
# after them by name.
_CANONICAL_ORDER = "b.seq_number IS NULL, b.seq_number, v.book_name, v.chapter, v.verse_number"

_VERSE_COLUMNS = "v.book_name, v.chapter, v.verse_number, v.text"


def _row_to_verse(row: sqlite3.Row) -> Verse:
    return Verse(row["book_name"], row["chapter"], row["verse_number"], row["text"])


def _row_to_book(row: sqlite3.Row) -> Book:
    return Book(
        row["book_name"],
        Testament(row["testament"]),
        row["seq_number"],
        row["chapter_count"],
    )


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class Storage:
    """SQLite storage backend for versekit.

    One connection is shared by all threads and serialized with a lock.
    Each write runs in its own transaction, so a verse row and its index
    entry always commit together.
    """

    def __init__(self, db_path: str | Path = "versekit.db", timeout: float = _DEFAULT_TIMEOUT):
        self._db_path = str(db_path)
        self._timeout = timeout
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    @property
    def db_path(self) -> str:
        return self._db_path

    def connect(self) -> None:
        """Open SQLite connection, register reindex() and create schema."""
        try:
            conn = sqlite3.connect(
                self._db_path, timeout=self._timeout, check_same_thread=False,
            )
        except sqlite3.Error as e:
            logger.warning("Cannot open database %s: %s", self._db_path, e)
            raise StorageUnavailable(f"Cannot open database {self._db_path}: {e}") from e

        try:
            conn.row_factory = sqlite3.Row
            conn.create_function(_REINDEX_SQL_FUNC, 1, sql_reindex, deterministic=True)
            conn.execute("PRAGMA trusted_schema=ON")
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA foreign_keys=ON")
            conn.executescript(_SCHEMA)
            conn.commit()
        except sqlite3.Error as e:
            conn.close()
            logger.warning("Cannot initialize database %s: %s", self._db_path, e)
            raise StorageUnavailable(f"Cannot initialize database {self._db_path}: {e}") from e

        self._conn = conn
        logger.debug("Connected to %s", self._db_path)

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageUnavailable("Storage not connected. Call connect() first.")
        return self._conn

    @contextmanager
    def _session(self, action: str) -> Iterator[sqlite3.Connection]:
        """Serialize access and translate sqlite3 errors."""
        with self._lock:
            conn = self.conn
            try:
                yield conn
            except sqlite3.IntegrityError as e:
                raise ValidationError(f"{action} rejected by store constraints: {e}") from e
            except sqlite3.Error as e:
                logger.warning("Storage error during %s: %s", action, e)
                raise StorageUnavailable(f"{action} failed: {e}") from e

    # ── Books ──

    def upsert_book(self, book: Book) -> None:
        """Insert or update a book, keyed on its name."""
        self.upsert_books([book])

    def upsert_books(self, books: Iterable[Book]) -> int:
        """Insert or update books in one transaction. Returns the count."""
        rows = [
            (b.name, Testament(b.testament).value, b.seq_number, b.chapter_count)
            for b in books
        ]
        with self._session("upsert_books") as conn, conn:
            conn.executemany(_UPSERT_BOOK, rows)
        return len(rows)

    def get_books(self, testament: Testament | None = None) -> list[Book]:
        """All books in canonical order, optionally filtered by testament."""
        with self._session("get_books") as conn:
            if testament is not None:
                rows = conn.execute(
                    "SELECT * FROM books WHERE testament = ? ORDER BY seq_number",
                    (Testament(testament).value,),
                ).fetchall()
            else:
                rows = conn.execute("SELECT * FROM books ORDER BY seq_number").fetchall()
        return [_row_to_book(r) for r in rows]

    def get_book(self, name: str) -> Book | None:
        with self._session("get_book") as conn:
            row = conn.execute(
                "SELECT * FROM books WHERE book_name = ?", (name,)
            ).fetchone()
        return _row_to_book(row) if row is not None else None

    def max_seq_number(self) -> int:
        with self._session("max_seq_number") as conn:
            row = conn.execute("SELECT COALESCE(MAX(seq_number), 0) AS n FROM books").fetchone()
        return row["n"]

    def refresh_chapter_counts(self) -> None:
        """Set chapter_count from stored verses, for books that have any."""
        with self._session("refresh_chapter_counts") as conn, conn:
            conn.execute(
                "UPDATE books SET chapter_count = "
                "(SELECT MAX(chapter) FROM verses WHERE verses.book_name = books.book_name) "
                "WHERE book_name IN (SELECT DISTINCT book_name FROM verses)"
            )

    # ── Verses ──

    def upsert_verse(self, verse: Verse) -> None:
        """Insert or update a verse, keyed on (book, chapter, verse).

        The index entry is a generated column, recomputed by the same
        statement, and the FTS row follows in the same transaction.
        """
        self.upsert_verses([verse])

    def upsert_verses(self, verses: Iterable[Verse]) -> int:
        """Upsert verses in one transaction. Returns the count."""
        rows = [(v.book, v.chapter, v.verse, v.text) for v in verses]
        with self._session("upsert_verses") as conn, conn:
            conn.executemany(_UPSERT_VERSE, rows)
        logger.debug("Upserted %d verse(s)", len(rows))
        return len(rows)

    def get_verse(self, key: VerseKey) -> Verse | None:
        with self._session("get_verse") as conn:
            row = conn.execute(
                f"SELECT {_VERSE_COLUMNS} FROM verses v "
                "WHERE v.book_name = ? AND v.chapter = ? AND v.verse_number = ?",
                (key.book, key.chapter, key.verse),
            ).fetchone()
        return _row_to_verse(row) if row is not None else None

    def delete_verse(self, key: VerseKey) -> bool:
        """Delete a verse and its index entry. Returns True if found."""
        with self._session("delete_verse") as conn, conn:
            cur = conn.execute(
                "DELETE FROM verses WHERE book_name = ? AND chapter = ? AND verse_number = ?",
                (key.book, key.chapter, key.verse),
            )
        return cur.rowcount > 0

    def get_chapter(self, book: str, chapter: int) -> list[Verse]:
        """Verses of one chapter by ascending verse number. Empty if none."""
        with self._session("get_chapter") as conn:
            rows = conn.execute(
                f"SELECT {_VERSE_COLUMNS} FROM verses v "
                "WHERE v.book_name = ? AND v.chapter = ? ORDER BY v.verse_number",
                (book, chapter),
            ).fetchall()
        return [_row_to_verse(r) for r in rows]

    # ── Search ──

    def search(self, match_expression: str, limit: int = 100) -> list[SearchHit]:
        """Run an FTS5 MATCH expression, best first.

        rank is the negated bm25() score, so larger is more relevant. Equal
        ranks fall back to canonical book order, then chapter and verse.
        """
        with self._session("search") as conn:
            rows = conn.execute(
                f"SELECT {_VERSE_COLUMNS}, -bm25(verses_fts) AS score "
                "FROM verses_fts "
                "JOIN verses v ON v.id = verses_fts.rowid "
                "LEFT JOIN books b ON b.book_name = v.book_name "
                "WHERE verses_fts MATCH ? "
                f"ORDER BY score DESC, {_CANONICAL_ORDER} "
                "LIMIT ?",
                (match_expression, limit),
            ).fetchall()
        return [SearchHit(_row_to_verse(r), r["score"]) for r in rows]

    def search_substring(self, text: str, limit: int = 100) -> list[SearchHit]:
        """Case-insensitive substring match in canonical order, rank 0.0."""
        with self._session("search_substring") as conn:
            rows = conn.execute(
                f"SELECT {_VERSE_COLUMNS} FROM verses v "
                "LEFT JOIN books b ON b.book_name = v.book_name "
                "WHERE v.text LIKE ? ESCAPE '\\' "
                f"ORDER BY {_CANONICAL_ORDER} "
                "LIMIT ?",
                (f"%{_escape_like(text)}%", limit),
            ).fetchall()
        return [SearchHit(_row_to_verse(r), 0.0) for r in rows]

    # ── Index maintenance ──

    def verify_index(self) -> list[VerseKey]:
        """Return keys of verses whose index entry is stale.

        Also runs the FTS5 integrity check, which fails (StorageUnavailable)
        if the full-text table disagrees with the verse table.
        """
        stale: list[VerseKey] = []
        with self._session("verify_index") as conn, conn:
            conn.execute("INSERT INTO verses_fts(verses_fts) VALUES ('integrity-check')")
            for row in conn.execute(
                "SELECT book_name, chapter, verse_number, text, index_terms FROM verses"
            ):
                if row["index_terms"] != reindex(row["text"]):
                    stale.append(VerseKey(row["book_name"], row["chapter"], row["verse_number"]))
        return stale

    def rebuild_index(self) -> None:
        """Rebuild the full-text table from the stored index entries."""
        with self._session("rebuild_index") as conn, conn:
            conn.execute("INSERT INTO verses_fts(verses_fts) VALUES ('rebuild')")

    # ── Counts ──

    def count_books(self) -> int:
        with self._session("count_books") as conn:
            row = conn.execute("SELECT COUNT(*) AS n FROM books").fetchone()
        return row["n"]

    def count_verses(self) -> int:
        with self._session("count_verses") as conn:
            row = conn.execute("SELECT COUNT(*) AS n FROM verses").fetchone()
        return row["n"]

    def book_verse_counts(self) -> list[dict]:
        """Per-book verse totals and highest chapter, in canonical order."""
        with self._session("book_verse_counts") as conn:
            rows = conn.execute(
                "SELECT v.book_name, COUNT(*) AS total_verses, MAX(v.chapter) AS chapter_count "
                "FROM verses v LEFT JOIN books b ON b.book_name = v.book_name "
                "GROUP BY v.book_name "
                "ORDER BY MIN(b.seq_number) IS NULL, MIN(b.seq_number), v.book_name"
            ).fetchall()
        return [dict(r) for r in rows]

    def chapter_verse_counts(self, book: str) -> list[dict]:
        """Verse count of each stored chapter of a book."""
        with self._session("chapter_verse_counts") as conn:
            rows = conn.execute(
                "SELECT chapter, COUNT(*) AS verse_count FROM verses "
                "WHERE book_name = ? GROUP BY chapter ORDER BY chapter",
                (book,),
            ).fetchall()
        return [dict(r) for r in rows]
