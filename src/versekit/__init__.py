"""versekit: scripture lookup, full-text search and study collections."""

from ._collections import Favorites, Topic, TopicBook
from ._engine import Engine
from ._errors import StorageUnavailable, ValidationError, VersekitError
from ._models import (
    Book,
    LoadResult,
    Reference,
    SearchHit,
    Testament,
    Verse,
    VerseKey,
)
from ._normalize import reindex, tokenize
from ._reference import parse_reference

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "Book",
    "Engine",
    "Favorites",
    "LoadResult",
    "Reference",
    "SearchHit",
    "StorageUnavailable",
    "Testament",
    "Topic",
    "TopicBook",
    "ValidationError",
    "Verse",
    "VerseKey",
    "VersekitError",
    "parse_reference",
    "reindex",
    "tokenize",
]
