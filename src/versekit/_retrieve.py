"""Retrieval module for versekit: ranked full-text and substring search."""

from __future__ import annotations

import logging

from ._models import SearchHit
from ._normalize import build_match_query, tokenize
from ._storage import Storage

logger = logging.getLogger(__name__)


def _is_stopword_query(query: str) -> bool:
    """Check if query has no indexable words (only stop words or punctuation)."""
    return not tokenize(query.replace('"', " ").replace("-", " "))


def search(storage: Storage, query: str, *, max_results: int = 100) -> list[SearchHit]:
    """Rank verses against a web-search style query.

    The query goes through the same normalization as stored verse text, is
    compiled to an FTS5 expression, and ranked by bm25. Queries with nothing
    left to match return an empty list without touching the store.
    """
    if _is_stopword_query(query):
        logger.debug("Query %r is all stop words", query)
        return []

    match = build_match_query(query)
    if match is None:
        logger.debug("Query %r has no positive terms", query)
        return []

    hits = storage.search(match, max_results)
    logger.debug("search %r (%s) -> %d hit(s)", query, match, len(hits))
    return hits


def search_substring(storage: Storage, query: str, *, max_results: int = 100) -> list[SearchHit]:
    """Unranked substring match, kept as a fallback for exact-text lookups."""
    hits = storage.search_substring(query, max_results)
    logger.debug("substring search %r -> %d hit(s)", query, len(hits))
    return hits
