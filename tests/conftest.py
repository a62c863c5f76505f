"""Test fixtures for versekit."""

import pytest

from versekit import Engine, Verse
from versekit._canon import canon_books
from versekit._storage import Storage

SAMPLE_VERSES = [
    Verse("Genesis", 1, 1, "In the beginning God created the heaven and the earth."),
    Verse("Genesis", 1, 2,
          "And the earth was without form, and void; and darkness was upon the face "
          "of the deep. And the Spirit of God moved upon the face of the waters."),
    Verse("Genesis", 1, 3, "And God said, Let there be light: and there was light."),
    Verse("Psalms", 23, 1, "The LORD is my shepherd; I shall not want."),
    Verse("John", 3, 16,
          "For God so loved the world, that he gave his only begotten Son, that "
          "whosoever believeth in him should not perish, but have everlasting life."),
    Verse("John", 3, 17,
          "For God sent not his Son into the world to condemn the world; but that "
          "the world through him might be saved."),
    Verse("1 John", 4, 8, "He that loveth not knoweth not God; for God is love."),
]


@pytest.fixture
def sample_verses():
    return list(SAMPLE_VERSES)


@pytest.fixture
def storage(tmp_path):
    """Per-test SQLite storage with the canon books."""
    db_path = tmp_path / "test.db"
    s = Storage(db_path)
    s.connect()
    s.upsert_books(canon_books())
    yield s
    s.close()


@pytest.fixture
def engine(tmp_path):
    """Per-test Engine instance, empty apart from the seeded canon."""
    db_path = tmp_path / "test.db"
    eng = Engine(db_path=db_path)
    eng.start()
    yield eng
    eng.close()


@pytest.fixture
def loaded_engine(engine):
    """Engine holding SAMPLE_VERSES."""
    engine.load_verses(SAMPLE_VERSES)
    return engine
