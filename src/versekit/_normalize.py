"""Text normalization shared by the verse index and search queries.

Stored verse text and query text both pass through :func:`tokenize`, so the
two always agree on case, diacritics, punctuation and stop words. Stemming
is left to the FTS5 ``porter`` tokenizer, which is applied to both sides of
every match.
"""

from __future__ import annotations

import re
import unicodedata

# English stop words (Snowball list, the one PostgreSQL's ``english``
# configuration uses).
_STOP_WORDS_RAW = """
i me my myself we our ours ourselves you your yours yourself yourselves he
him his himself she her hers herself it its itself they them their theirs
themselves what which who whom this that these those am is are was were be
been being have has had having do does did doing a an the and but if or
because as until while of at by for with about against between into through
during before after above below to from up down in out on off over under
again further then once here there when where why how all any both each few
more most other some such no nor not only own same so than too very s t can
will just don should now
"""

STOP_WORDS: frozenset[str] = frozenset(_STOP_WORDS_RAW.split())

_APOSTROPHES = re.compile(r"['‘’ʼ]")
_WORD_RE = re.compile(r"[^\W_]+")
_QUERY_RE = re.compile(r'(-?)"([^"]*)"?|(\S+)')
_OR = "or"


def _fold(text: str) -> str:
    """Strip diacritics and casefold."""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return _APOSTROPHES.sub("", stripped).casefold()


def tokenize(text: str) -> list[str]:
    """Split text into normalized index terms, in order, stop words removed."""
    return [w for w in _WORD_RE.findall(_fold(text)) if w not in STOP_WORDS]


def reindex(text: str) -> str:
    """Derive the index entry for a verse text.

    Pure and deterministic: the same text always yields the same entry.
    """
    return " ".join(tokenize(text))


def sql_reindex(text: str | None) -> str | None:
    """SQL-callable wrapper around :func:`reindex` (NULL in, NULL out)."""
    if text is None:
        return None
    return reindex(text)


def _fts_fragment(terms: list[str]) -> str:
    # Terms are alphanumeric only, so quoting needs no escaping.
    return '"' + " ".join(terms) + '"'


def build_match_query(query: str) -> str | None:
    """Translate a web-search style query into an FTS5 MATCH expression.

    Bare words are ANDed, ``"quoted text"`` is a phrase, ``or`` between two
    terms makes them alternatives, and a leading ``-`` excludes a term.
    Returns None when nothing searchable is left (only stop words, or only
    exclusions).
    """
    groups: list[list[str]] = []
    excluded: list[str] = []
    pending_or = False

    for m in _QUERY_RE.finditer(query):
        negate, phrase, word = m.group(1), m.group(2), m.group(3)
        if phrase is None:
            if word.casefold() == _OR:
                pending_or = bool(groups)
                continue
            negate = "-" if word.startswith("-") else ""
            phrase = word.lstrip("-")

        terms = tokenize(phrase)
        if not terms:
            pending_or = False
            continue

        fragment = _fts_fragment(terms)
        if negate:
            excluded.append(fragment)
        elif pending_or:
            groups[-1].append(fragment)
        else:
            groups.append([fragment])
        pending_or = False

    if not groups:
        return None

    expr = " AND ".join(
        g[0] if len(g) == 1 else "(" + " OR ".join(g) + ")"
        for g in groups
    )
    if excluded:
        expr = f"({expr}) NOT ({' OR '.join(excluded)})"
    return expr
