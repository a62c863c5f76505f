"""The 66-book Protestant canon: names, testaments, chapter counts, aliases."""

from __future__ import annotations

from dataclasses import dataclass

from ._models import Book, Testament


@dataclass(slots=True, frozen=True)
class CanonBook:
    """Metadata for one canonical book."""
    name: str
    testament: Testament
    chapters: int
    aliases: tuple[str, ...] = ()


_OT = Testament.old
_NT = Testament.new

CANON: tuple[CanonBook, ...] = (
    CanonBook("Genesis", _OT, 50, ("gen", "ge", "gn")),
    CanonBook("Exodus", _OT, 40, ("exo", "ex", "exod")),
    CanonBook("Leviticus", _OT, 27, ("lev", "le", "lv")),
    CanonBook("Numbers", _OT, 36, ("num", "nu", "nm")),
    CanonBook("Deuteronomy", _OT, 34, ("deut", "deu", "dt")),
    CanonBook("Joshua", _OT, 24, ("josh", "jos")),
    CanonBook("Judges", _OT, 21, ("judg", "jdg")),
    CanonBook("Ruth", _OT, 4, ("rth", "ru")),
    CanonBook("1 Samuel", _OT, 31, ("1sam", "1sa")),
    CanonBook("2 Samuel", _OT, 24, ("2sam", "2sa")),
    CanonBook("1 Kings", _OT, 22, ("1kgs", "1ki")),
    CanonBook("2 Kings", _OT, 25, ("2kgs", "2ki")),
    CanonBook("1 Chronicles", _OT, 29, ("1chr", "1ch")),
    CanonBook("2 Chronicles", _OT, 36, ("2chr", "2ch")),
    CanonBook("Ezra", _OT, 10, ("ezr",)),
    CanonBook("Nehemiah", _OT, 13, ("neh", "ne")),
    CanonBook("Esther", _OT, 10, ("esth", "est")),
    CanonBook("Job", _OT, 42, ("jb",)),
    CanonBook("Psalms", _OT, 150, ("ps", "psa", "psalm", "pss")),
    CanonBook("Proverbs", _OT, 31, ("prov", "pro", "prv")),
    CanonBook("Ecclesiastes", _OT, 12, ("eccl", "ecc", "qoh")),
    CanonBook("Song of Solomon", _OT, 8, ("song", "sos", "canticles", "song of songs")),
    CanonBook("Isaiah", _OT, 66, ("isa", "is")),
    CanonBook("Jeremiah", _OT, 52, ("jer", "je")),
    CanonBook("Lamentations", _OT, 5, ("lam", "la")),
    CanonBook("Ezekiel", _OT, 48, ("ezek", "eze", "ezk")),
    CanonBook("Daniel", _OT, 12, ("dan", "da", "dn")),
    CanonBook("Hosea", _OT, 14, ("hos", "ho")),
    CanonBook("Joel", _OT, 3, ("joe", "jl")),
    CanonBook("Amos", _OT, 9, ("am",)),
    CanonBook("Obadiah", _OT, 1, ("obad", "ob")),
    CanonBook("Jonah", _OT, 4, ("jon", "jnh")),
    CanonBook("Micah", _OT, 7, ("mic", "mc")),
    CanonBook("Nahum", _OT, 3, ("nah", "na")),
    CanonBook("Habakkuk", _OT, 3, ("hab", "hb")),
    CanonBook("Zephaniah", _OT, 3, ("zeph", "zep")),
    CanonBook("Haggai", _OT, 2, ("hag", "hg")),
    CanonBook("Zechariah", _OT, 14, ("zech", "zec")),
    CanonBook("Malachi", _OT, 4, ("mal", "ml")),
    CanonBook("Matthew", _NT, 28, ("matt", "mat", "mt")),
    CanonBook("Mark", _NT, 16, ("mrk", "mk", "mr")),
    CanonBook("Luke", _NT, 24, ("luk", "lk")),
    CanonBook("John", _NT, 21, ("jhn", "jn")),
    CanonBook("Acts", _NT, 28, ("act", "ac")),
    CanonBook("Romans", _NT, 16, ("rom", "ro", "rm")),
    CanonBook("1 Corinthians", _NT, 16, ("1cor", "1co")),
    CanonBook("2 Corinthians", _NT, 13, ("2cor", "2co")),
    CanonBook("Galatians", _NT, 6, ("gal", "ga")),
    CanonBook("Ephesians", _NT, 6, ("eph", "ephes")),
    CanonBook("Philippians", _NT, 4, ("phil", "php")),
    CanonBook("Colossians", _NT, 4, ("col",)),
    CanonBook("1 Thessalonians", _NT, 5, ("1thess", "1th")),
    CanonBook("2 Thessalonians", _NT, 3, ("2thess", "2th")),
    CanonBook("1 Timothy", _NT, 6, ("1tim", "1ti")),
    CanonBook("2 Timothy", _NT, 4, ("2tim", "2ti")),
    CanonBook("Titus", _NT, 3, ("tit",)),
    CanonBook("Philemon", _NT, 1, ("philem", "phm")),
    CanonBook("Hebrews", _NT, 13, ("heb",)),
    CanonBook("James", _NT, 5, ("jas", "jm")),
    CanonBook("1 Peter", _NT, 5, ("1pet", "1pe")),
    CanonBook("2 Peter", _NT, 3, ("2pet", "2pe")),
    CanonBook("1 John", _NT, 5, ("1jn", "1jo")),
    CanonBook("2 John", _NT, 1, ("2jn", "2jo")),
    CanonBook("3 John", _NT, 1, ("3jn", "3jo")),
    CanonBook("Jude", _NT, 1, ("jud", "jd")),
    CanonBook("Revelation", _NT, 22, ("rev", "re", "apocalypse")),
)


def _lookup_key(name: str) -> str:
    return "".join(name.split()).casefold()


def _build_lookup() -> dict[str, str]:
    lookup: dict[str, str] = {}
    for cb in CANON:
        for key in (cb.name, *cb.aliases):
            lookup[_lookup_key(key)] = cb.name
    return lookup


_LOOKUP = _build_lookup()


def resolve_book_name(name: str) -> str | None:
    """Map a book name or alias ("jn", "1 cor", "psalm") to its canonical name."""
    return _LOOKUP.get(_lookup_key(name))


def canon_books() -> list[Book]:
    """Canon as Book records, sequence numbers starting at 1."""
    return [
        Book(cb.name, cb.testament, seq, cb.chapters)
        for seq, cb in enumerate(CANON, start=1)
    ]
